"""
/api/v1/reports endpoints.
Handles submission, listing, detail, edits, review and deletion.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from expense_reports.dependencies import get_principal, get_workflow, verify_api_key
from expense_reports.models.enums import ReportStatus
from expense_reports.schemas.reports import (
    ItemResponse,
    ReportDetail,
    ReportEditRequest,
    ReportListEntry,
    ReportListResponse,
    ReportSubmitRequest,
    ReportSummary,
    SaveResponse,
    StatusCountsResponse,
    WarningResponse,
)
from expense_reports.workflow.errors import (
    ExpenseReportError,
    NotFound,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from expense_reports.workflow.records import Principal
from expense_reports.workflow.status import allowed_actions
from expense_reports.workflow.submission import ReportWorkflow, SaveResult

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(verify_api_key)])

_HTTP_STATUS = {
    ValidationError: 422,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    PersistenceError: status.HTTP_502_BAD_GATEWAY,
}


def _http_error(error: ExpenseReportError) -> HTTPException:
    """Map a workflow error onto an HTTP error with a machine-readable body."""
    status_code = _HTTP_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = {"code": error.code, "message": error.message}
    if error.stage:
        detail["stage"] = error.stage
    return HTTPException(status_code=status_code, detail=detail)


def _detail(principal: Principal, report, items) -> ReportDetail:
    return ReportDetail(
        **ReportSummary.from_report(report).model_dump(),
        items=[ItemResponse.from_item(i) for i in items],
        allowed_actions=sorted(a.value for a in allowed_actions(principal, report)),
    )


def _save_response(principal: Principal, result: SaveResult) -> SaveResponse:
    return SaveResponse(
        report=_detail(principal, result.report, result.items),
        warnings=[WarningResponse(code=w.code, message=w.message) for w in result.warnings],
    )


@router.get("", response_model=ReportListResponse)
async def list_reports(
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    """Own reports for users, every report (with owner email) for admins."""
    try:
        listings = await workflow.list_reports(principal)
    except ExpenseReportError as e:
        raise _http_error(e)
    return ReportListResponse(
        reports=[ReportListEntry.from_listing(l) for l in listings],
        total=len(listings),
    )


@router.get("/summary", response_model=StatusCountsResponse)
async def report_summary(
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    """Counts of the caller's own reports per status."""
    try:
        counts = await workflow.report_summary(principal)
    except ExpenseReportError as e:
        raise _http_error(e)
    return StatusCountsResponse(
        submitted=counts.get(ReportStatus.SUBMITTED, 0),
        approved=counts.get(ReportStatus.APPROVED, 0),
        rejected=counts.get(ReportStatus.REJECTED, 0),
    )


@router.post("", response_model=SaveResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    body: ReportSubmitRequest,
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    """Submit a new expense report."""
    try:
        result = await workflow.submit_report(principal, [i.to_fields() for i in body.items])
    except ExpenseReportError as e:
        raise _http_error(e)
    return _save_response(principal, result)


@router.get("/{report_id}", response_model=ReportDetail)
async def get_report(
    report_id: str,
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    """Report detail with items and the actions available to the caller."""
    try:
        view = await workflow.load_report(principal, report_id)
    except ExpenseReportError as e:
        raise _http_error(e)
    return _detail(principal, view.report, view.items)


@router.put("/{report_id}/items", response_model=SaveResponse)
async def save_report_items(
    report_id: str,
    body: ReportEditRequest,
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    """
    Save an edit session.
    The body is the full edited list: every existing item kept or flagged
    is_deleted, new ones flagged is_new.
    """
    try:
        edited = [e for e in (i.to_edited() for i in body.items) if e is not None]
        result = await workflow.save_edits(principal, report_id, edited)
    except ExpenseReportError as e:
        raise _http_error(e)
    return _save_response(principal, result)


@router.post("/{report_id}/approve", response_model=ReportSummary)
async def approve_report(
    report_id: str,
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    try:
        report = await workflow.approve(principal, report_id)
    except ExpenseReportError as e:
        raise _http_error(e)
    return ReportSummary.from_report(report)


@router.post("/{report_id}/reject", response_model=ReportSummary)
async def reject_report(
    report_id: str,
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    try:
        report = await workflow.reject(principal, report_id)
    except ExpenseReportError as e:
        raise _http_error(e)
    return ReportSummary.from_report(report)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: str,
    principal: Principal = Depends(get_principal),
    workflow: ReportWorkflow = Depends(get_workflow),
):
    """Delete a report and its items. Owners only, while submitted or rejected."""
    try:
        await workflow.delete_report(principal, report_id)
    except ExpenseReportError as e:
        raise _http_error(e)
