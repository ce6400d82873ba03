"""
Tests for item variants, flag conversion, normalization and edit sessions.
"""

import pytest

from expense_reports.workflow.errors import ValidationError
from expense_reports.workflow.items import (
    EditSession,
    MarkedDeletedItem,
    NewItem,
    PersistedItem,
    edited_item_from_flags,
    normalize_fields,
)
from tests.factories import make_fields


class TestEditedItemFromFlags:

    def test_existing_item(self):
        item = edited_item_from_flags(make_fields(), item_id="a")
        assert item == PersistedItem(id="a", fields=make_fields())

    def test_new_item_keeps_key(self):
        item = edited_item_from_flags(make_fields(), is_new=True, key="k1")
        assert isinstance(item, NewItem)
        assert item.key == "k1"

    def test_new_item_gets_generated_key(self):
        item = edited_item_from_flags(make_fields(), is_new=True)
        assert isinstance(item, NewItem)
        assert item.key

    def test_deleted_existing_item(self):
        item = edited_item_from_flags(make_fields(), item_id="a", is_deleted=True)
        assert isinstance(item, MarkedDeletedItem)
        assert item.id == "a"

    def test_new_and_deleted_is_nothing(self):
        assert edited_item_from_flags(make_fields(), item_id="a", is_new=True, is_deleted=True) is None

    def test_deleted_without_id_is_nothing(self):
        assert edited_item_from_flags(make_fields(), is_deleted=True) is None

    def test_unflagged_without_id_rejected(self):
        with pytest.raises(ValidationError):
            edited_item_from_flags(make_fields())


class TestNormalizeFields:

    def test_description_dropped_outside_other(self):
        fields = normalize_fields(make_fields(category="Parking", description="garage"), "Other")
        assert fields.description is None

    def test_description_kept_for_other(self):
        fields = normalize_fields(make_fields(category="Other", description="  gift  "), "Other")
        assert fields.description == "gift"

    def test_blank_description_for_other_becomes_none(self):
        fields = normalize_fields(make_fields(category="Other", description="   "), "Other")
        assert fields.description is None

    def test_unchanged_fields_returned_as_is(self):
        original = make_fields(category="Parking")
        assert normalize_fields(original, "Other") is original


class TestEditSession:

    def _baseline(self):
        return [
            PersistedItem(id="a", fields=make_fields(1000)),
            PersistedItem(id="b", fields=make_fields(2000)),
        ]

    def test_starts_from_baseline(self):
        session = EditSession(self._baseline())
        assert session.items == self._baseline()

    def test_remove_persisted_marks_deleted(self):
        session = EditSession(self._baseline())
        session.remove("a")
        assert isinstance(session.items[0], MarkedDeletedItem)
        assert len(session.items) == 2

    def test_remove_new_item_drops_it(self):
        session = EditSession(self._baseline())
        added = session.add(make_fields(500), key="n1")
        session.remove(added.key)
        assert all(not isinstance(i, NewItem) for i in session.items)
        assert len(session.items) == 2

    def test_update_replaces_fields(self):
        session = EditSession(self._baseline())
        updated = session.update("b", amount_cents=2500)
        assert updated.fields.amount_cents == 2500
        assert session.items[1].fields.amount_cents == 2500

    def test_update_new_item_by_key(self):
        session = EditSession(self._baseline())
        session.add(make_fields(500), key="n1")
        session.update("n1", category="Parking")
        assert session.items[-1].fields.category == "Parking"

    def test_update_deleted_item_rejected(self):
        session = EditSession(self._baseline())
        session.remove("a")
        with pytest.raises(ValidationError):
            session.update("a", amount_cents=1)

    def test_unknown_key_rejected(self):
        session = EditSession(self._baseline())
        with pytest.raises(ValidationError):
            session.remove("zzz")
