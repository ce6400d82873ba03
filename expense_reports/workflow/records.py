"""
Plain records exchanged between the workflow and the store.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from expense_reports.models.enums import ReportStatus, Role


@dataclass(frozen=True)
class Principal:
    """The acting user. Passed explicitly into every workflow operation."""
    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Report:
    id: str
    owner_id: str
    created_at: datetime
    status: ReportStatus
    total_amount_cents: int


@dataclass(frozen=True)
class ReportListing:
    """A report row for list views, with the span of its item dates."""
    report: Report
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    owner_email: Optional[str] = None
