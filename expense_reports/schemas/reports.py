"""
Pydantic request/response schemas for the /api/v1/reports endpoints.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from expense_reports.workflow.items import EditedItem, ItemFields, PersistedItem, edited_item_from_flags
from expense_reports.workflow.money import format_cents, parse_currency_input
from expense_reports.workflow.records import Report, ReportListing


# ── Request Schemas ──────────────────────────────────────────

class ItemIn(BaseModel):
    """
    One expense line as sent by a client.
    Either amount_cents or the raw typed amount_input ("$12.34") is required.
    """
    date: date
    amount_cents: Optional[int] = None
    amount_input: Optional[str] = None
    category: str
    description: Optional[str] = None
    receipt_ref: Optional[str] = None

    @model_validator(mode="after")
    def _resolve_amount(self):
        if self.amount_cents is None:
            if self.amount_input is None:
                raise ValueError("amount_cents or amount_input is required")
            self.amount_cents = parse_currency_input(self.amount_input)
        return self

    def to_fields(self) -> ItemFields:
        return ItemFields(
            date=self.date,
            amount_cents=self.amount_cents,
            category=self.category,
            description=self.description,
            receipt_ref=self.receipt_ref,
        )


class EditedItemIn(ItemIn):
    """An item in an edit session, with the client's edit flags."""
    id: Optional[str] = None
    key: Optional[str] = None
    is_new: bool = False
    is_deleted: bool = False

    def to_edited(self) -> Optional[EditedItem]:
        return edited_item_from_flags(
            self.to_fields(),
            item_id=self.id,
            is_new=self.is_new,
            is_deleted=self.is_deleted,
            key=self.key,
        )


class ReportSubmitRequest(BaseModel):
    items: list[ItemIn] = Field(min_length=1)


class ReportEditRequest(BaseModel):
    items: list[EditedItemIn]


# ── Response Schemas ─────────────────────────────────────────

class ItemResponse(BaseModel):
    id: str
    date: date
    amount_cents: int
    amount_display: str
    category: str
    description: Optional[str] = None
    receipt_ref: Optional[str] = None

    @classmethod
    def from_item(cls, item: PersistedItem) -> "ItemResponse":
        f = item.fields
        return cls(
            id=item.id,
            date=f.date,
            amount_cents=f.amount_cents,
            amount_display=format_cents(f.amount_cents),
            category=f.category,
            description=f.description,
            receipt_ref=f.receipt_ref,
        )


class ReportSummary(BaseModel):
    """Report header fields."""
    id: str
    owner_id: str
    created_at: datetime
    status: str
    total_amount_cents: int
    total_display: str

    @classmethod
    def from_report(cls, report: Report) -> "ReportSummary":
        return cls(
            id=report.id,
            owner_id=report.owner_id,
            created_at=report.created_at,
            status=report.status.value,
            total_amount_cents=report.total_amount_cents,
            total_display=format_cents(report.total_amount_cents),
        )


class ReportDetail(ReportSummary):
    """Report with its items and what the caller may do with it."""
    items: list[ItemResponse] = []
    allowed_actions: list[str] = []


class WarningResponse(BaseModel):
    code: str
    message: str


class SaveResponse(BaseModel):
    """Result of a submission or edit. Warnings never mean the save failed."""
    report: ReportDetail
    warnings: list[WarningResponse] = []


class ReportListEntry(ReportSummary):
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    owner_email: Optional[str] = None

    @classmethod
    def from_listing(cls, listing: ReportListing) -> "ReportListEntry":
        base = ReportSummary.from_report(listing.report)
        return cls(
            **base.model_dump(),
            min_date=listing.min_date,
            max_date=listing.max_date,
            owner_email=listing.owner_email,
        )


class ReportListResponse(BaseModel):
    reports: list[ReportListEntry]
    total: int


class StatusCountsResponse(BaseModel):
    submitted: int = 0
    approved: int = 0
    rejected: int = 0


class ReceiptUploadResponse(BaseModel):
    receipt_ref: str
    path: str
    size_bytes: int
    receipt_hash: str
