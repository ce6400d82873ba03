"""
SQLAlchemy ORM models.
Amounts are stored as integer cents. Types are kept portable so the same
models run on PostgreSQL in production and SQLite in tests.
"""

import uuid
import datetime as dt
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_reports.models.database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ────────────────────────────────────────────────────────────
# EXPENSE REPORTS
# ────────────────────────────────────────────────────────────
class ExpenseReport(Base):
    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="submitted", server_default="submitted"
    )
    total_amount_cents: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    # Relationships
    items = relationship(
        "ExpenseItem",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('submitted', 'approved', 'rejected')", name="ck_expenses_status"
        ),
        CheckConstraint("total_amount_cents >= 0", name="ck_expenses_total_non_negative"),
        Index("idx_expenses_owner", "owner_id"),
        Index("idx_expenses_created", "created_at"),
    )


# ────────────────────────────────────────────────────────────
# EXPENSE ITEMS
# ────────────────────────────────────────────────────────────
class ExpenseItem(Base):
    __tablename__ = "expense_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    receipt_ref: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    # Relationships
    report = relationship("ExpenseReport", back_populates="items")

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_expense_items_amount_non_negative"),
        Index("idx_expense_items_report", "report_id"),
    )


# ────────────────────────────────────────────────────────────
# USER ROLES
# ────────────────────────────────────────────────────────────
class UserRole(Base):
    __tablename__ = "user_roles"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    role: Mapped[str] = mapped_column(
        String(16), nullable=False, default="user", server_default="user"
    )
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_user_roles_role"),
    )
