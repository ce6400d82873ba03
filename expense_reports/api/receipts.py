"""
/api/v1/receipts endpoints.
Upload and download of receipt files referenced by expense items.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse

from expense_reports.config import settings
from expense_reports.dependencies import get_principal, get_receipt_store, get_workflow, verify_api_key
from expense_reports.models.enums import Action
from expense_reports.observability import metrics
from expense_reports.schemas.reports import ReceiptUploadResponse
from expense_reports.storage.paths import receipt_hash, receipt_path
from expense_reports.storage.receipts import ReceiptStore
from expense_reports.workflow.errors import ExpenseReportError, NotFound
from expense_reports.workflow.records import Principal
from expense_reports.workflow.status import require
from expense_reports.workflow.submission import ReportWorkflow

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/receipts", tags=["receipts"], dependencies=[Depends(verify_api_key)])


@router.post("", response_model=ReceiptUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_receipt(
    file: UploadFile = File(...),
    item_key: str = Query(..., min_length=1, description="Item id, or the client key of a new item"),
    report_id: Optional[str] = Query(None),
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
    store: ReceiptStore = Depends(get_receipt_store),
):
    """
    Store a receipt and return the reference to put on the item.
    Uploading again for the same item and file name replaces the file.
    """
    allowed = settings.ALLOWED_RECEIPT_TYPES.split(",")
    if file.content_type not in allowed:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type: {file.content_type}. Allowed: {settings.ALLOWED_RECEIPT_TYPES}",
        )

    file_bytes = await file.read()
    file_size = len(file_bytes)

    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if file_size > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large: {file_size} bytes. Max: {max_bytes} bytes",
        )
    if file_size == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file uploaded",
        )

    owner_id = principal.id
    if report_id:
        # Receipts on an existing report go with the report, and need edit rights
        try:
            view = await workflow.load_report(principal, report_id)
            require(principal, view.report, Action.EDIT)
        except NotFound:
            raise HTTPException(status_code=404, detail="Report not found")
        except ExpenseReportError as e:
            raise HTTPException(status_code=403, detail=e.message)
        owner_id = view.report.owner_id

    path = receipt_path(owner_id, item_key, file.filename or "receipt", report_id=report_id)
    store.save_bytes(path, file_bytes)
    metrics.receipts_uploaded_total.labels(mime_type=file.content_type).inc()

    logger.info(
        "receipt_uploaded",
        path=path,
        report_id=report_id,
        uploader_id=principal.id,
        size_bytes=file_size,
    )

    return ReceiptUploadResponse(
        receipt_ref=store.url_for(path),
        path=path,
        size_bytes=file_size,
        receipt_hash=receipt_hash(file_bytes),
    )


@router.get("/{path:path}")
async def download_receipt(
    path: str,
    principal: Principal = Depends(get_principal),
    store: ReceiptStore = Depends(get_receipt_store),
):
    """Serve a receipt to its owner or to an admin."""
    try:
        full_path = store.full_path(path)
        owner_id = store.owner_of(path)
    except ValueError:
        raise HTTPException(status_code=404, detail="Receipt not found")

    if not principal.is_admin and owner_id != principal.id:
        logger.warning("receipt_access_denied", path=path, owner_id=owner_id, principal_id=principal.id)
        raise HTTPException(status_code=403, detail="Not allowed to read this receipt")
    if not full_path.is_file():
        raise HTTPException(status_code=404, detail="Receipt not found")
    return FileResponse(full_path)
