"""
Abstract base class for report persistence.
The workflow only talks to this interface; it never issues queries itself.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from expense_reports.models.enums import ReportStatus, Role
from expense_reports.workflow.items import ItemFields, NewItem, PersistedItem
from expense_reports.workflow.records import Report, ReportListing


class ReportStore(ABC):
    """
    Persistence collaborator for expense reports.

    Every implementation must:
    1. Raise NotFound for unknown report ids
    2. Raise PersistenceError for any I/O failure
    3. Implement persist_update as a true update that keeps item ids
    4. Return plain records, never ORM objects

    Atomicity of a save (delete, update, insert, totals) is the store's
    business. The SQL store gets it from the request transaction.
    """

    @abstractmethod
    async def load_report(self, report_id: str) -> tuple[Report, list[PersistedItem]]:
        """Report and its items ordered by date."""
        ...

    @abstractmethod
    async def create_report(self, owner_id: str, total_cents: int, status: ReportStatus) -> Report:
        ...

    @abstractmethod
    async def persist_delete(self, item_ids: Sequence[str]) -> None:
        ...

    @abstractmethod
    async def persist_update(self, items: Sequence[PersistedItem]) -> None:
        """Full-row replace of each item's fields."""
        ...

    @abstractmethod
    async def persist_insert(self, report_id: str, items: Sequence[ItemFields | NewItem]) -> list[PersistedItem]:
        ...

    @abstractmethod
    async def persist_report_totals(self, report_id: str, total_cents: int, status: ReportStatus) -> Report:
        ...

    @abstractmethod
    async def persist_status(self, report_id: str, status: ReportStatus) -> Report:
        ...

    @abstractmethod
    async def delete_report(self, report_id: str) -> None:
        """Delete the report and, with it, all of its items."""
        ...

    @abstractmethod
    async def resolve_principal_role(self, user_id: str) -> Role:
        """Unknown users are plain users."""
        ...

    @abstractmethod
    async def list_reports(self, owner_id: Optional[str] = None) -> list[ReportListing]:
        """Newest first. owner_id=None lists every report (admin view)."""
        ...

    @abstractmethod
    async def count_by_status(self, owner_id: str) -> dict[ReportStatus, int]:
        ...


def fields_of(item: ItemFields | NewItem) -> ItemFields:
    return item.fields if isinstance(item, NewItem) else item
