"""
FastAPI dependency injection.
Provides DB sessions, the report store, notifier, workflow, receipt store,
API key validation and the acting principal.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reports.config import settings
from expense_reports.models.database import get_session
from expense_reports.notifications.base import Notifier
from expense_reports.observability.logging import bind_request_context
from expense_reports.notifications.email import EmailNotifier
from expense_reports.notifications.stub import LogNotifier
from expense_reports.storage.receipts import ReceiptStore
from expense_reports.store.base import ReportStore
from expense_reports.store.sql import SqlReportStore
from expense_reports.workflow.records import Principal
from expense_reports.workflow.submission import ReportWorkflow


# ── Singleton instances ──────────────────────────────────────
_receipt_store: Optional[ReceiptStore] = None


def get_receipt_store() -> ReceiptStore:
    """Get or create the receipt store singleton."""
    global _receipt_store
    if _receipt_store is None:
        _receipt_store = ReceiptStore()
    return _receipt_store


def get_store(session: AsyncSession = Depends(get_session)) -> ReportStore:
    """SQL store over the request session; get_session commits or rolls it back."""
    return SqlReportStore(session)


def get_notifier(store: ReportStore = Depends(get_store)) -> Notifier:
    """Email when a provider key is configured, log-only otherwise (dev mode)."""
    if settings.RESEND_API_KEY:
        return EmailNotifier(loader=store.load_report)
    return LogNotifier()


def get_workflow(
    store: ReportStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
) -> ReportWorkflow:
    return ReportWorkflow(store=store, notifier=notifier)


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key


async def get_principal(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    store: ReportStore = Depends(get_store),
) -> Principal:
    """
    The acting user, as asserted by the authenticating gateway.
    The role is looked up per request, never cached.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    try:
        user_id = str(uuid.UUID(x_user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header",
        )
    role = await store.resolve_principal_role(user_id)
    bind_request_context(user_id, report_id=request.path_params.get("report_id"))
    return Principal(id=user_id, role=role)
