"""
Report submission and resubmission workflow.

A save walks IDLE → VALIDATING → PERSISTING → NOTIFY_PENDING → DONE.
Any error moves it to FAILED; the raised error carries the stage it failed in.

- VALIDATING: permission, reconciliation, at least one item left, amounts,
  categories, description normalization. Nothing is written yet.
- PERSISTING: delete → update → insert → report total and status.
  Earlier writes of a failed save are not undone here; the SQL store relies
  on the request transaction for that.
- NOTIFY_PENDING: owner saves that leave the report submitted notify
  reviewers. A notification failure becomes a warning on the result.
"""

import time
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

import structlog

from expense_reports.config import settings
from expense_reports.models.enums import Action, ReportStatus, SaveStage
from expense_reports.notifications.base import Notifier
from expense_reports.observability import metrics
from expense_reports.store.base import ReportStore
from expense_reports.workflow.errors import (
    ExpenseReportError,
    NotificationError,
    NotificationWarning,
    ValidationError,
)
from expense_reports.workflow.items import (
    EditedItem,
    ItemFields,
    MarkedDeletedItem,
    PersistedItem,
    normalize_fields,
)
from expense_reports.workflow.money import validate_amount_cents
from expense_reports.workflow.reconciliation import ReconciliationPlan, reconcile
from expense_reports.workflow.records import Principal, Report, ReportListing
from expense_reports.workflow.status import (
    allowed_actions,
    require,
    status_after_edit,
    status_after_review,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReportView:
    report: Report
    items: list[PersistedItem]
    actions: frozenset[Action]


@dataclass
class SaveResult:
    """Outcome of a successful save: refreshed state plus any warnings."""
    report: Report
    items: list[PersistedItem]
    warnings: list[NotificationWarning] = field(default_factory=list)
    stage: SaveStage = SaveStage.DONE
    plan: Optional[ReconciliationPlan] = None


class _SaveTracker:
    """Tracks the current stage of a save so failures can report where they stopped."""

    def __init__(self, operation: str, principal: Principal, report_id: Optional[str] = None):
        self.operation = operation
        self.stage = SaveStage.IDLE
        self.log = logger.bind(operation=operation, principal_id=principal.id, report_id=report_id)

    def enter(self, stage: SaveStage) -> None:
        self.stage = stage
        self.log.debug("save_stage", stage=stage.value)

    def fail(self, error: Exception) -> None:
        failed_in = self.stage
        self.stage = SaveStage.FAILED
        if isinstance(error, ExpenseReportError):
            error.stage = failed_in.value
            self.log.warning(
                "save_failed", stage=failed_in.value, code=error.code, error=error.message
            )
        else:
            self.log.error("save_crashed", stage=failed_in.value, error=str(error))


class ReportWorkflow:
    """
    Orchestrates every state-changing operation on expense reports.
    Holds no state between calls; callers serialize saves per report.
    """

    def __init__(
        self,
        store: ReportStore,
        notifier: Notifier,
        categories: Optional[Sequence[str]] = None,
        other_category: Optional[str] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.categories = frozenset(settings.category_list if categories is None else categories)
        self.other_category = other_category or settings.OTHER_CATEGORY

    # ── Reads ────────────────────────────────────────────────

    async def load_report(self, principal: Principal, report_id: str) -> ReportView:
        report, items = await self.store.load_report(report_id)
        require(principal, report, Action.VIEW)
        return ReportView(report=report, items=items, actions=allowed_actions(principal, report))

    async def list_reports(self, principal: Principal) -> list[ReportListing]:
        """Admins see every report, everyone else only their own."""
        if principal.is_admin:
            return await self.store.list_reports(None)
        return await self.store.list_reports(principal.id)

    async def report_summary(self, principal: Principal) -> dict[ReportStatus, int]:
        return await self.store.count_by_status(principal.id)

    # ── Submission ───────────────────────────────────────────

    async def submit_report(self, principal: Principal, items: Sequence[ItemFields]) -> SaveResult:
        """Create a report from its first submission."""
        tracker = _SaveTracker("submit_report", principal)
        started = time.perf_counter()
        try:
            tracker.enter(SaveStage.VALIDATING)
            if not items:
                raise ValidationError("An expense report needs at least one item")
            fields = [self._clean_fields(f) for f in items]
            total = sum(f.amount_cents for f in fields)

            tracker.enter(SaveStage.PERSISTING)
            report = await self.store.create_report(principal.id, total, ReportStatus.SUBMITTED)
            tracker.log = tracker.log.bind(report_id=report.id)
            await self.store.persist_insert(report.id, fields)

            tracker.enter(SaveStage.NOTIFY_PENDING)
            warnings = await self._notify(report.id)

            report, stored = await self.store.load_report(report.id)
            tracker.enter(SaveStage.DONE)
        except Exception as e:
            tracker.fail(e)
            raise
        finally:
            metrics.save_duration_seconds.labels(operation="submit_report").observe(
                time.perf_counter() - started
            )

        metrics.reports_submitted_total.inc()
        tracker.log.info(
            "report_submitted",
            item_count=len(stored),
            total_amount_cents=report.total_amount_cents,
            warnings=len(warnings),
        )
        return SaveResult(report=report, items=stored, warnings=warnings)

    # ── Edits ────────────────────────────────────────────────

    async def save_edits(
        self,
        principal: Principal,
        report_id: str,
        edited: Sequence[EditedItem],
    ) -> SaveResult:
        """Reconcile an edited item list against the stored report and persist the diff."""
        tracker = _SaveTracker("save_edits", principal, report_id)
        started = time.perf_counter()
        actor = "admin" if principal.is_admin else "owner"
        try:
            tracker.enter(SaveStage.VALIDATING)
            report, baseline = await self.store.load_report(report_id)
            new_status = status_after_edit(principal, report)

            plan = reconcile(baseline, [self._clean_item(i) for i in edited])
            if plan.is_empty:
                raise ValidationError("An expense report must keep at least one item")

            tracker.enter(SaveStage.PERSISTING)
            if plan.to_delete:
                await self.store.persist_delete(list(plan.to_delete))
            if plan.to_update:
                await self.store.persist_update(list(plan.to_update))
            if plan.to_insert:
                await self.store.persist_insert(report.id, list(plan.to_insert))
            report = await self.store.persist_report_totals(
                report.id, plan.new_total_cents, new_status
            )

            warnings: list[NotificationWarning] = []
            if not principal.is_admin and new_status == ReportStatus.SUBMITTED:
                tracker.enter(SaveStage.NOTIFY_PENDING)
                warnings = await self._notify(report.id)

            report, items = await self.store.load_report(report.id)
            tracker.enter(SaveStage.DONE)
        except Exception as e:
            tracker.fail(e)
            metrics.report_saves_total.labels(actor=actor, outcome="failed").inc()
            raise
        finally:
            metrics.save_duration_seconds.labels(operation="save_edits").observe(
                time.perf_counter() - started
            )

        metrics.report_saves_total.labels(actor=actor, outcome="saved").inc()
        tracker.log.info(
            "report_saved",
            deleted=len(plan.to_delete),
            updated=len(plan.to_update),
            inserted=len(plan.to_insert),
            total_amount_cents=plan.new_total_cents,
            status=report.status.value,
            warnings=len(warnings),
        )
        return SaveResult(report=report, items=items, warnings=warnings, plan=plan)

    # ── Review ───────────────────────────────────────────────

    async def approve(self, principal: Principal, report_id: str) -> Report:
        return await self._review(principal, report_id, Action.APPROVE)

    async def reject(self, principal: Principal, report_id: str) -> Report:
        return await self._review(principal, report_id, Action.REJECT)

    async def _review(self, principal: Principal, report_id: str, action: Action) -> Report:
        report, _ = await self.store.load_report(report_id)
        new_status = status_after_review(principal, report, action)
        updated = await self.store.persist_status(report.id, new_status)

        metrics.report_status_changes_total.labels(status=new_status.value).inc()
        logger.info(
            "report_reviewed",
            report_id=report.id,
            reviewer_id=principal.id,
            status=new_status.value,
        )
        return updated

    # ── Deletion ─────────────────────────────────────────────

    async def delete_report(self, principal: Principal, report_id: str) -> None:
        report, items = await self.store.load_report(report_id)
        require(principal, report, Action.DELETE)
        await self.store.delete_report(report.id)

        metrics.reports_deleted_total.inc()
        logger.info("report_deleted", report_id=report.id, owner_id=report.owner_id, item_count=len(items))

    # ── Helpers ──────────────────────────────────────────────

    def _clean_fields(self, fields: ItemFields) -> ItemFields:
        validate_amount_cents(fields.amount_cents)
        if self.categories and fields.category not in self.categories:
            raise ValidationError(f"Unknown category: {fields.category!r}")
        return normalize_fields(fields, self.other_category)

    def _clean_item(self, item: EditedItem) -> EditedItem:
        # Rows about to be deleted are not rewritten, so their fields are irrelevant
        if isinstance(item, MarkedDeletedItem):
            return item
        return replace(item, fields=self._clean_fields(item.fields))

    async def _notify(self, report_id: str) -> list[NotificationWarning]:
        try:
            await self.notifier.notify_submission(report_id)
        except NotificationError as e:
            metrics.notifications_total.labels(outcome="failed").inc()
            logger.warning(
                "notification_failed",
                report_id=report_id,
                channel=self.notifier.channel,
                error=e.message,
            )
            return [NotificationWarning(report_id=report_id, message=e.message)]
        metrics.notifications_total.labels(outcome="sent").inc()
        return []
