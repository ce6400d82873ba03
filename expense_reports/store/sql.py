"""
SQLAlchemy-backed report store.

Works inside the caller's session: nothing here commits. With the
per-request session from get_session(), the delete/update/insert/totals
steps of one save share a single transaction and roll back together.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reports.models.enums import ReportStatus, Role
from expense_reports.models.tables import ExpenseItem, ExpenseReport, UserRole
from expense_reports.store.base import ReportStore, fields_of
from expense_reports.workflow.errors import NotFound, PersistenceError
from expense_reports.workflow.items import ItemFields, NewItem, PersistedItem
from expense_reports.workflow.records import Report, ReportListing

logger = structlog.get_logger(__name__)


def _report_uuid(report_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(report_id))
    except ValueError:
        raise NotFound(report_id)


def _to_report(row: ExpenseReport) -> Report:
    return Report(
        id=str(row.id),
        owner_id=str(row.owner_id),
        created_at=row.created_at,
        status=ReportStatus(row.status),
        total_amount_cents=row.total_amount_cents,
    )


def _to_item(row: ExpenseItem) -> PersistedItem:
    return PersistedItem(
        id=str(row.id),
        fields=ItemFields(
            date=row.date,
            amount_cents=row.amount_cents,
            category=row.category,
            description=row.description,
            receipt_ref=row.receipt_ref,
        ),
    )


def _item_values(fields: ItemFields) -> dict:
    return {
        "date": fields.date,
        "amount_cents": fields.amount_cents,
        "category": fields.category,
        "description": fields.description,
        "receipt_ref": fields.receipt_ref,
    }


class SqlReportStore(ReportStore):
    """Report store over an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Translate driver/ORM failures into PersistenceError."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("store_operation_failed", operation=operation, error=str(e)[:500])
            raise PersistenceError(operation, str(e)) from e

    async def _get_report_row(self, report_id: str) -> ExpenseReport:
        row = await self.session.get(ExpenseReport, _report_uuid(report_id))
        if row is None:
            raise NotFound(report_id)
        return row

    # ── Reads ────────────────────────────────────────────────

    async def load_report(self, report_id: str) -> tuple[Report, list[PersistedItem]]:
        async with self._guard("load_report"):
            row = await self._get_report_row(report_id)
            result = await self.session.execute(
                select(ExpenseItem)
                .where(ExpenseItem.report_id == row.id)
                .order_by(ExpenseItem.date, ExpenseItem.created_at)
            )
            items = [_to_item(i) for i in result.scalars().all()]
        return _to_report(row), items

    async def resolve_principal_role(self, user_id: str) -> Role:
        try:
            user_uuid = uuid.UUID(str(user_id))
        except ValueError:
            return Role.USER
        async with self._guard("resolve_principal_role"):
            row = await self.session.get(UserRole, user_uuid)
        if row is None:
            return Role.USER
        return Role(row.role)

    async def list_reports(self, owner_id: Optional[str] = None) -> list[ReportListing]:
        query = (
            select(
                ExpenseReport,
                func.min(ExpenseItem.date),
                func.max(ExpenseItem.date),
                UserRole.email,
            )
            .outerjoin(ExpenseItem, ExpenseItem.report_id == ExpenseReport.id)
            .outerjoin(UserRole, UserRole.user_id == ExpenseReport.owner_id)
            .group_by(ExpenseReport.id, UserRole.email)
            .order_by(ExpenseReport.created_at.desc())
        )
        if owner_id is not None:
            query = query.where(ExpenseReport.owner_id == uuid.UUID(str(owner_id)))

        async with self._guard("list_reports"):
            result = await self.session.execute(query)
            rows = result.all()

        return [
            ReportListing(
                report=_to_report(report),
                min_date=min_date,
                max_date=max_date,
                owner_email=email,
            )
            for report, min_date, max_date, email in rows
        ]

    async def count_by_status(self, owner_id: str) -> dict[ReportStatus, int]:
        async with self._guard("count_by_status"):
            result = await self.session.execute(
                select(ExpenseReport.status, func.count(ExpenseReport.id))
                .where(ExpenseReport.owner_id == uuid.UUID(str(owner_id)))
                .group_by(ExpenseReport.status)
            )
            stats = {row[0]: row[1] for row in result.all()}
        return {status: stats.get(status.value, 0) for status in ReportStatus}

    # ── Writes ───────────────────────────────────────────────

    async def create_report(self, owner_id: str, total_cents: int, status: ReportStatus) -> Report:
        async with self._guard("create_report"):
            row = ExpenseReport(
                id=uuid.uuid4(),
                owner_id=uuid.UUID(str(owner_id)),
                status=status.value,
                total_amount_cents=total_cents,
            )
            self.session.add(row)
            await self.session.flush()
        return _to_report(row)

    async def persist_delete(self, item_ids: Sequence[str]) -> None:
        if not item_ids:
            return
        async with self._guard("persist_delete"):
            await self.session.execute(
                delete(ExpenseItem).where(
                    ExpenseItem.id.in_([uuid.UUID(i) for i in item_ids])
                )
            )

    async def persist_update(self, items: Sequence[PersistedItem]) -> None:
        async with self._guard("persist_update"):
            for item in items:
                result = await self.session.execute(
                    update(ExpenseItem)
                    .where(ExpenseItem.id == uuid.UUID(item.id))
                    .values(**_item_values(item.fields))
                )
                if result.rowcount != 1:
                    raise PersistenceError("persist_update", f"item {item.id} does not exist")

    async def persist_insert(self, report_id: str, items: Sequence[ItemFields | NewItem]) -> list[PersistedItem]:
        report_uuid = _report_uuid(report_id)
        async with self._guard("persist_insert"):
            rows = [
                ExpenseItem(id=uuid.uuid4(), report_id=report_uuid, **_item_values(fields_of(item)))
                for item in items
            ]
            self.session.add_all(rows)
            await self.session.flush()
        return [_to_item(r) for r in rows]

    async def persist_report_totals(self, report_id: str, total_cents: int, status: ReportStatus) -> Report:
        async with self._guard("persist_report_totals"):
            row = await self._get_report_row(report_id)
            row.total_amount_cents = total_cents
            row.status = status.value
            await self.session.flush()
        return _to_report(row)

    async def persist_status(self, report_id: str, status: ReportStatus) -> Report:
        async with self._guard("persist_status"):
            row = await self._get_report_row(report_id)
            row.status = status.value
            await self.session.flush()
        return _to_report(row)

    async def delete_report(self, report_id: str) -> None:
        report_uuid = _report_uuid(report_id)
        async with self._guard("delete_report"):
            # Items first: not every backend enforces ON DELETE CASCADE
            await self.session.execute(
                delete(ExpenseItem).where(ExpenseItem.report_id == report_uuid)
            )
            result = await self.session.execute(
                delete(ExpenseReport).where(ExpenseReport.id == report_uuid)
            )
            if result.rowcount == 0:
                raise NotFound(report_id)
