"""
Expense item entity and the edit-session variants.

An item being edited is exactly one of:

    PersistedItem(id, fields)      -> row exists, will be rewritten
    NewItem(key, fields)           -> added in this session, will be inserted
    MarkedDeletedItem(id, fields)  -> row exists, will be deleted

There is no "new and deleted" state: removing a NewItem drops it from the
session, so it never produces a database operation.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Sequence, Union

from expense_reports.workflow.errors import ValidationError


@dataclass(frozen=True)
class ItemFields:
    """The persisted columns of an expense item, minus identity."""
    date: date
    amount_cents: int
    category: str
    description: Optional[str] = None
    receipt_ref: Optional[str] = None


@dataclass(frozen=True)
class PersistedItem:
    id: str
    fields: ItemFields

    @property
    def key(self) -> str:
        return self.id


@dataclass(frozen=True)
class NewItem:
    fields: ItemFields
    # Client-side handle, used to address the item before it has an id
    key: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class MarkedDeletedItem:
    id: str
    fields: ItemFields

    @property
    def key(self) -> str:
        return self.id


EditedItem = Union[PersistedItem, NewItem, MarkedDeletedItem]


def edited_item_from_flags(
    fields: ItemFields,
    item_id: Optional[str] = None,
    is_new: bool = False,
    is_deleted: bool = False,
    key: Optional[str] = None,
) -> Optional[EditedItem]:
    """
    Convert the boolean-flag representation used by clients into a variant.
    Returns None for items that need no database operation at all.
    """
    if is_new and is_deleted:
        return None
    if is_new:
        return NewItem(fields=fields, key=key or str(uuid.uuid4()))
    if is_deleted:
        if item_id is None:
            return None
        return MarkedDeletedItem(id=item_id, fields=fields)
    if item_id is None:
        raise ValidationError("An item without an id must be marked as new")
    return PersistedItem(id=item_id, fields=fields)


def normalize_fields(fields: ItemFields, other_category: str) -> ItemFields:
    """Keep the description only for the sentinel category."""
    if fields.category != other_category:
        if fields.description is None:
            return fields
        return replace(fields, description=None)
    description = (fields.description or "").strip() or None
    if description == fields.description:
        return fields
    return replace(fields, description=description)


class EditSession:
    """
    In-memory edit of a report's items.
    Starts from the persisted baseline and records adds, updates and removals
    as variants, ready to hand to the reconciliation engine.
    """

    def __init__(self, baseline: Sequence[PersistedItem]):
        self.baseline = tuple(baseline)
        self._items: list[EditedItem] = list(self.baseline)

    @property
    def items(self) -> list[EditedItem]:
        return list(self._items)

    def add(self, fields: ItemFields, key: Optional[str] = None) -> NewItem:
        item = NewItem(fields=fields, key=key or str(uuid.uuid4()))
        self._items.append(item)
        return item

    def update(self, key: str, **changes) -> EditedItem:
        index = self._index_of(key)
        item = self._items[index]
        if isinstance(item, MarkedDeletedItem):
            raise ValidationError(f"Item {key} is marked for deletion")
        updated = replace(item, fields=replace(item.fields, **changes))
        self._items[index] = updated
        return updated

    def remove(self, key: str) -> None:
        index = self._index_of(key)
        item = self._items[index]
        if isinstance(item, NewItem):
            del self._items[index]
        elif isinstance(item, PersistedItem):
            self._items[index] = MarkedDeletedItem(id=item.id, fields=item.fields)

    def _index_of(self, key: str) -> int:
        for i, item in enumerate(self._items):
            if item.key == key:
                return i
        raise ValidationError(f"No item {key} in this edit session")
