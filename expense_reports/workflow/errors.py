"""
Typed errors raised by the expense report workflow and its collaborators.

Every error carries a machine-readable ``code`` so the API layer can map it
to a status without parsing messages. ``stage`` is filled in by the save
workflow with the step that failed (VALIDATING, PERSISTING, ...).
"""

from dataclasses import dataclass
from typing import Optional


class ExpenseReportError(Exception):
    """Base class for all expense report errors."""

    code = "ERR_EXPENSE_REPORT"

    def __init__(self, message: str, stage: Optional[str] = None):
        self.message = message
        self.stage = stage
        super().__init__(message)


class ValidationError(ExpenseReportError):
    """Input rejected before any persistence happened."""

    code = "ERR_VALIDATION"


class PermissionDenied(ExpenseReportError):
    """Action not allowed for this principal and report status."""

    code = "ERR_PERMISSION"

    def __init__(self, action: str, message: str, stage: Optional[str] = None):
        self.action = action
        super().__init__(message, stage=stage)


class NotFound(ExpenseReportError):
    """Report does not exist."""

    code = "ERR_NOT_FOUND"

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Expense report {report_id} not found")


class PersistenceError(ExpenseReportError):
    """A store operation failed. Earlier writes of the same save are not undone here."""

    code = "ERR_PERSISTENCE"

    def __init__(self, operation: str, message: str, stage: Optional[str] = None):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}", stage=stage)


class NotificationError(ExpenseReportError):
    """Raised by a notifier. The workflow downgrades it to a warning."""

    code = "ERR_NOTIFICATION"


@dataclass(frozen=True)
class NotificationWarning:
    """Non-fatal notification failure attached to a successful save."""

    report_id: str
    message: str
    code: str = "WARN_NOTIFICATION"
