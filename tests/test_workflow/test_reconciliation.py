"""
Tests for the edit reconciliation engine.
"""

import pytest

from expense_reports.workflow.errors import ValidationError
from expense_reports.workflow.items import MarkedDeletedItem, NewItem, PersistedItem
from expense_reports.workflow.reconciliation import reconcile
from tests.factories import make_fields

A = PersistedItem(id="a", fields=make_fields(1000))
B = PersistedItem(id="b", fields=make_fields(2000))
BASELINE = [A, B]


class TestReconcile:

    def test_unchanged_list_updates_everything(self):
        plan = reconcile(BASELINE, BASELINE)
        assert plan.to_delete == ()
        assert plan.to_update == (A, B)
        assert plan.to_insert == ()
        assert plan.new_total_cents == 3000

    def test_delete_update_insert(self):
        b2 = PersistedItem(id="b", fields=make_fields(2500))
        new = NewItem(fields=make_fields(500), key="n1")
        plan = reconcile(BASELINE, [MarkedDeletedItem(id="a", fields=A.fields), b2, new])

        assert plan.to_delete == ("a",)
        assert plan.to_update == (b2,)
        assert plan.to_insert == (new,)
        assert plan.new_total_cents == 3000

    def test_deleted_amounts_not_counted(self):
        plan = reconcile(BASELINE, [A, MarkedDeletedItem(id="b", fields=B.fields)])
        assert plan.new_total_cents == 1000

    def test_everything_deleted_is_empty(self):
        plan = reconcile(BASELINE, [
            MarkedDeletedItem(id="a", fields=A.fields),
            MarkedDeletedItem(id="b", fields=B.fields),
        ])
        assert plan.is_empty
        assert plan.remaining_count == 0
        assert plan.new_total_cents == 0

    def test_total_is_sum_of_survivors(self):
        new = [NewItem(fields=make_fields(n)) for n in (1, 22, 333)]
        plan = reconcile(BASELINE, [A, B, *new])
        survivors = list(plan.to_update) + list(plan.to_insert)
        assert plan.new_total_cents == sum(i.fields.amount_cents for i in survivors) == 3356

    def test_empty_baseline_with_new_items(self):
        plan = reconcile([], [NewItem(fields=make_fields(700))])
        assert plan.remaining_count == 1
        assert plan.new_total_cents == 700

    def test_foreign_id_rejected(self):
        with pytest.raises(ValidationError, match="does not belong"):
            reconcile(BASELINE, [A, B, PersistedItem(id="zzz", fields=make_fields())])

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValidationError, match="more than once"):
            reconcile(BASELINE, [A, B, A])

    def test_missing_baseline_item_rejected(self):
        with pytest.raises(ValidationError, match="missing"):
            reconcile(BASELINE, [A])

    def test_pure(self):
        edited = [A, MarkedDeletedItem(id="b", fields=B.fields)]
        assert reconcile(BASELINE, edited) == reconcile(BASELINE, edited)
        assert BASELINE == [A, B]
