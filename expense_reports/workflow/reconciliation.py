"""
Edit reconciliation engine.

Turns (baseline rows, edited items) into the three persistence sets and the
new report total. No merging and no conflict detection: the last editor wins.

    to_delete  = ids of MarkedDeletedItem
    to_update  = PersistedItem (full-row replace)
    to_insert  = NewItem
    new_total  = sum(to_update) + sum(to_insert)

Pure: performs no I/O.
"""

from dataclasses import dataclass
from typing import Sequence

from expense_reports.workflow.errors import ValidationError
from expense_reports.workflow.items import (
    EditedItem,
    MarkedDeletedItem,
    NewItem,
    PersistedItem,
)


@dataclass(frozen=True)
class ReconciliationPlan:
    to_delete: tuple[str, ...]
    to_update: tuple[PersistedItem, ...]
    to_insert: tuple[NewItem, ...]
    new_total_cents: int

    @property
    def remaining_count(self) -> int:
        return len(self.to_update) + len(self.to_insert)

    @property
    def is_empty(self) -> bool:
        """True when no item would survive the save."""
        return self.remaining_count == 0


def reconcile(
    baseline: Sequence[PersistedItem],
    edited: Sequence[EditedItem],
) -> ReconciliationPlan:
    """
    Classify edited items against the persisted baseline.

    Every baseline row must appear exactly once in the edited list, either
    kept (PersistedItem) or marked deleted; edits that reference rows outside
    the baseline are rejected. This keeps the stored total equal to the sum
    of the stored items.
    """
    baseline_ids = {item.id for item in baseline}
    seen: set[str] = set()

    to_delete: list[str] = []
    to_update: list[PersistedItem] = []
    to_insert: list[NewItem] = []

    for item in edited:
        if isinstance(item, NewItem):
            to_insert.append(item)
            continue

        if item.id not in baseline_ids:
            raise ValidationError(f"Item {item.id} does not belong to this report")
        if item.id in seen:
            raise ValidationError(f"Item {item.id} appears more than once")
        seen.add(item.id)

        if isinstance(item, MarkedDeletedItem):
            to_delete.append(item.id)
        elif isinstance(item, PersistedItem):
            to_update.append(item)
        else:
            raise TypeError(f"Unexpected edited item type: {type(item).__name__}")

    missing = baseline_ids - seen
    if missing:
        raise ValidationError(
            f"Edit must keep or delete every existing item; missing {sorted(missing)}"
        )

    new_total = sum(i.fields.amount_cents for i in to_update) + sum(
        i.fields.amount_cents for i in to_insert
    )

    return ReconciliationPlan(
        to_delete=tuple(to_delete),
        to_update=tuple(to_update),
        to_insert=tuple(to_insert),
        new_total_cents=new_total,
    )
