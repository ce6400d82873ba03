"""
Log-only notifier.
Used when no email provider is configured, and in tests to observe which
reports triggered a notification.
"""

import structlog

from expense_reports.notifications.base import Notifier

logger = structlog.get_logger(__name__)


class LogNotifier(Notifier):
    """Logs the submission instead of sending anything."""

    def __init__(self):
        self.notified: list[str] = []

    @property
    def channel(self) -> str:
        return "log"

    async def notify_submission(self, report_id: str) -> None:
        self.notified.append(report_id)
        logger.info("submission_notification_logged", report_id=report_id)
