"""
Email notifier backed by the Resend HTTP API.

Re-reads the report before sending so the email shows what was actually
stored. The lookup is retried a fixed number of times with a fixed delay,
because the notifier may run before the saving transaction is visible to it.
"""

import asyncio
from datetime import date
from typing import Awaitable, Callable, Optional

import httpx
import structlog

from expense_reports.config import settings
from expense_reports.notifications.base import Notifier
from expense_reports.workflow.errors import ExpenseReportError, NotificationError
from expense_reports.workflow.items import PersistedItem
from expense_reports.workflow.money import format_cents
from expense_reports.workflow.records import Report

logger = structlog.get_logger(__name__)

ReportLoader = Callable[[str], Awaitable[tuple[Report, list[PersistedItem]]]]


def _format_date(d: date) -> str:
    return f"{d:%b} {d.day}, {d.year}"


def render_submission_email(report: Report, items: list[PersistedItem]) -> tuple[str, str]:
    """Build (subject, body) for a submitted report."""
    total = format_cents(report.total_amount_cents)
    lines = [
        "New Expense Report Submitted",
        "",
        f"Total Amount: {total}",
        "",
        "Expense Items:",
    ]
    for item in items:
        f = item.fields
        lines.append(f"- Date: {_format_date(f.date)}")
        lines.append(f"  Amount: {format_cents(f.amount_cents)}")
        lines.append(f"  Category: {f.category}")
        if f.description:
            lines.append(f"  Description: {f.description}")
        lines.append(f"  Receipt: {f.receipt_ref or 'No receipt uploaded'}")
    return f"New Expense Report - {total}", "\n".join(lines) + "\n"


class EmailNotifier(Notifier):
    """Sends a plain-text summary email through Resend."""

    def __init__(
        self,
        loader: ReportLoader,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        lookup_attempts: Optional[int] = None,
        lookup_delay_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.loader = loader
        self.api_key = api_key or settings.RESEND_API_KEY
        self.api_url = api_url or settings.RESEND_API_URL
        self.sender = sender or settings.NOTIFY_FROM
        self.recipient = recipient or settings.NOTIFY_TO
        self.timeout_seconds = timeout_seconds or settings.NOTIFY_TIMEOUT_SECONDS
        self.lookup_attempts = max(1, lookup_attempts or settings.NOTIFY_LOOKUP_ATTEMPTS)
        self.lookup_delay_seconds = (
            settings.NOTIFY_LOOKUP_DELAY_SECONDS if lookup_delay_seconds is None else lookup_delay_seconds
        )
        self.transport = transport

    @property
    def channel(self) -> str:
        return "email"

    async def notify_submission(self, report_id: str) -> None:
        if not self.api_key:
            raise NotificationError("Email provider API key is not configured")

        report, items = await self._load_with_retry(report_id)
        subject, body = render_submission_email(report, items)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                response = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.sender,
                        "to": self.recipient,
                        "subject": subject,
                        "text": body,
                    },
                )
        except httpx.HTTPError as e:
            raise NotificationError(f"Email request failed: {e}") from e

        if response.is_error:
            raise NotificationError(
                f"Email provider returned {response.status_code}: {response.text[:200]}"
            )

        logger.info("submission_email_sent", report_id=report_id, status_code=response.status_code)

    async def _load_with_retry(self, report_id: str) -> tuple[Report, list[PersistedItem]]:
        last_error: Optional[ExpenseReportError] = None
        for attempt in range(1, self.lookup_attempts + 1):
            try:
                return await self.loader(report_id)
            except ExpenseReportError as e:
                last_error = e
                logger.warning(
                    "notification_lookup_failed",
                    report_id=report_id,
                    attempt=attempt,
                    error=e.message,
                )
                if attempt < self.lookup_attempts:
                    await asyncio.sleep(self.lookup_delay_seconds)
        raise NotificationError(
            f"Could not load report {report_id} after {self.lookup_attempts} attempts: {last_error.message}"
        )
