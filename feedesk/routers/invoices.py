from typing import List

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from feedesk.dependencies.services import (
    get_export_service,
    get_invoice_service,
    get_reminder_service,
    get_session_key,
)
from feedesk.routers.errors import to_http_error
from feedesk.schemas.invoice import (
    Invoice,
    InvoiceCreateRequest,
    InvoiceListResponse,
    InvoicesViewState,
    InvoiceUpdateRequest,
    StatusFacet,
)
from feedesk.schemas.reminder import (
    Reminder,
    ReminderBatchResponse,
    ReminderRequest,
    SendRemindersResult,
)
from feedesk.services import ExportService, InvoiceService, ReminderService
from feedesk.services.exceptions import ServiceError
from feedesk.services.export import (
    NO_PAID_INVOICES_CSV,
    NO_PAID_INVOICES_RECEIPT,
    ExportArtifact,
)
from feedesk.services.formatting import export_filename
from feedesk.services.guards import action_guard
from feedesk.services.reminders import render_reminders_csv

router = APIRouter()


def _download(artifact: ExportArtifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    search: str = "",
    status: StatusFacet = "all",
    days_ahead: int = Query(default=3, ge=1, le=30),
    service: InvoiceService = Depends(get_invoice_service),
    session: str = Depends(get_session_key),
):
    state = InvoicesViewState(
        search_term=search,
        status_filter=status,
        days_ahead=days_ahead,
        busy=action_guard.busy_actions(session),
    )
    try:
        return await service.dashboard(state)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to load invoices") from exc


@router.post("", response_model=Invoice, status_code=201)
async def create_invoice(
    req: InvoiceCreateRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.create(req)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to create invoice") from exc


@router.post("/reminders/generate", response_model=ReminderBatchResponse)
async def generate_reminders(
    req: ReminderRequest,
    service: ReminderService = Depends(get_reminder_service),
    session: str = Depends(get_session_key),
):
    try:
        with action_guard.hold("generate-reminders", session=session):
            return await service.generate(req.days_ahead)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to generate reminders. Please try again.") from exc


@router.post("/reminders/csv")
async def download_reminders_csv(reminders: List[Reminder]):
    return _download(
        ExportArtifact(
            filename=export_filename("fee-reminders", "csv"),
            media_type="text/csv",
            content=render_reminders_csv(reminders),
        )
    )


@router.post("/reminders/send", response_model=SendRemindersResult)
async def send_reminders(
    service: ReminderService = Depends(get_reminder_service),
    session: str = Depends(get_session_key),
):
    try:
        with action_guard.hold("send-reminders", session=session):
            return await service.send_remote()
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to send reminders") from exc


@router.get("/export/csv")
async def export_paid_invoices_csv(
    service: ExportService = Depends(get_export_service),
    session: str = Depends(get_session_key),
):
    try:
        with action_guard.hold("export-csv", session=session):
            artifact = await service.csv_export()
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to export CSV. Please try again.") from exc
    if artifact is None:
        return JSONResponse(status_code=404, content={"detail": NO_PAID_INVOICES_CSV})
    return _download(artifact)


@router.get("/export/receipt")
async def export_paid_invoices_receipt(
    service: ExportService = Depends(get_export_service),
    session: str = Depends(get_session_key),
):
    try:
        with action_guard.hold("export-receipt", session=session):
            artifact = await service.receipt_export()
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to generate receipt. Please try again.") from exc
    if artifact is None:
        return JSONResponse(status_code=404, content={"detail": NO_PAID_INVOICES_RECEIPT})
    return _download(artifact)


@router.get("/{invoice_id}", response_model=Invoice)
async def get_invoice(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.get(invoice_id)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to load invoice") from exc


@router.patch("/{invoice_id}", response_model=Invoice)
async def update_invoice(
    invoice_id: str,
    req: InvoiceUpdateRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.update(invoice_id, req)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to update invoice") from exc


@router.post("/{invoice_id}/mark-paid", response_model=Invoice)
async def mark_invoice_paid(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
    session: str = Depends(get_session_key),
):
    try:
        with action_guard.hold(f"mark-paid:{invoice_id}", session=session):
            return await service.mark_paid(invoice_id)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to mark invoice as paid") from exc


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        await service.delete(invoice_id)
    except ServiceError as exc:
        raise to_http_error(exc, "Failed to delete invoice") from exc
    return Response(status_code=204)
