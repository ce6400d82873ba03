"""
In-memory report store for tests and local development.
Records every mutating call so callers can assert on persistence order,
and can be told to fail specific operations.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from expense_reports.models.enums import ReportStatus, Role
from expense_reports.store.base import ReportStore, fields_of
from expense_reports.workflow.errors import NotFound, PersistenceError
from expense_reports.workflow.items import ItemFields, NewItem, PersistedItem
from expense_reports.workflow.records import Report, ReportListing


class InMemoryReportStore(ReportStore):
    """Dict-backed store. Not transactional: a failed save stays partially applied."""

    def __init__(
        self,
        roles: Optional[dict[str, Role]] = None,
        emails: Optional[dict[str, str]] = None,
        fail_on: Iterable[str] = (),
    ):
        self.reports: dict[str, Report] = {}
        # item id -> (report id, item)
        self.items: dict[str, tuple[str, PersistedItem]] = {}
        self.roles = dict(roles or {})
        self.emails = dict(emails or {})
        self.fail_on = set(fail_on)
        self.calls: list[str] = []

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise PersistenceError(operation, "injected failure")

    def _require_report(self, report_id: str) -> Report:
        report = self.reports.get(report_id)
        if report is None:
            raise NotFound(report_id)
        return report

    def _items_of(self, report_id: str) -> list[PersistedItem]:
        rows = [item for rid, item in self.items.values() if rid == report_id]
        return sorted(rows, key=lambda i: i.fields.date)

    # ── Reads ────────────────────────────────────────────────

    async def load_report(self, report_id: str) -> tuple[Report, list[PersistedItem]]:
        report = self._require_report(report_id)
        return report, self._items_of(report_id)

    async def resolve_principal_role(self, user_id: str) -> Role:
        return self.roles.get(user_id, Role.USER)

    async def list_reports(self, owner_id: Optional[str] = None) -> list[ReportListing]:
        listings = []
        for report in self.reports.values():
            if owner_id is not None and report.owner_id != owner_id:
                continue
            dates = [i.fields.date for i in self._items_of(report.id)]
            listings.append(ReportListing(
                report=report,
                min_date=min(dates) if dates else None,
                max_date=max(dates) if dates else None,
                owner_email=self.emails.get(report.owner_id),
            ))
        return sorted(listings, key=lambda l: l.report.created_at, reverse=True)

    async def count_by_status(self, owner_id: str) -> dict[ReportStatus, int]:
        counts = {status: 0 for status in ReportStatus}
        for report in self.reports.values():
            if report.owner_id == owner_id:
                counts[report.status] += 1
        return counts

    # ── Writes ───────────────────────────────────────────────

    async def create_report(self, owner_id: str, total_cents: int, status: ReportStatus) -> Report:
        self._record("create_report")
        report = Report(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
            status=status,
            total_amount_cents=total_cents,
        )
        self.reports[report.id] = report
        return report

    async def persist_delete(self, item_ids: Sequence[str]) -> None:
        self._record("persist_delete")
        for item_id in item_ids:
            self.items.pop(item_id, None)

    async def persist_update(self, items: Sequence[PersistedItem]) -> None:
        self._record("persist_update")
        for item in items:
            if item.id not in self.items:
                raise PersistenceError("persist_update", f"item {item.id} does not exist")
            report_id, _ = self.items[item.id]
            self.items[item.id] = (report_id, item)

    async def persist_insert(self, report_id: str, items: Sequence[ItemFields | NewItem]) -> list[PersistedItem]:
        self._record("persist_insert")
        self._require_report(report_id)
        inserted = []
        for item in items:
            row = PersistedItem(id=str(uuid.uuid4()), fields=fields_of(item))
            self.items[row.id] = (report_id, row)
            inserted.append(row)
        return inserted

    async def persist_report_totals(self, report_id: str, total_cents: int, status: ReportStatus) -> Report:
        self._record("persist_report_totals")
        report = replace(self._require_report(report_id), total_amount_cents=total_cents, status=status)
        self.reports[report_id] = report
        return report

    async def persist_status(self, report_id: str, status: ReportStatus) -> Report:
        self._record("persist_status")
        report = replace(self._require_report(report_id), status=status)
        self.reports[report_id] = report
        return report

    async def delete_report(self, report_id: str) -> None:
        self._record("delete_report")
        self._require_report(report_id)
        del self.reports[report_id]
        for item_id in [iid for iid, (rid, _) in self.items.items() if rid == report_id]:
            del self.items[item_id]
