from fastapi import APIRouter, Depends, HTTPException

from feedesk.dependencies.services import get_parent_portal_service, get_session_key
from feedesk.routers.errors import to_http_error
from feedesk.schemas.payment import (
    PaymentSubmissionRequest,
    PaymentSubmissionResponse,
    StudentInvoicesResponse,
    StudentLookupResponse,
)
from feedesk.schemas.student import StudentSearchRequest
from feedesk.services import ParentPortalService
from feedesk.services.exceptions import ServiceError
from feedesk.services.guards import action_guard
from feedesk.services.parent_portal import STUDENT_NOT_FOUND, TOKEN_NOT_FOUND

router = APIRouter()


@router.get("/lookup", response_model=StudentLookupResponse)
async def lookup_by_token(
    token: str,
    service: ParentPortalService = Depends(get_parent_portal_service),
):
    try:
        return await service.lookup_by_token(token)
    except ServiceError as exc:
        raise to_http_error(exc, TOKEN_NOT_FOUND) from exc


@router.post("/search", response_model=StudentLookupResponse)
async def search_students(
    req: StudentSearchRequest,
    service: ParentPortalService = Depends(get_parent_portal_service),
):
    try:
        return await service.search_students(req)
    except ServiceError as exc:
        raise to_http_error(exc, "An error occurred while searching.") from exc


@router.get("/students/{student_id}/invoices", response_model=StudentInvoicesResponse)
async def student_invoices(
    student_id: str,
    service: ParentPortalService = Depends(get_parent_portal_service),
):
    try:
        result = await service.student_invoices(student_id)
    except ServiceError as exc:
        raise to_http_error(exc, "An error occurred while loading student data.") from exc
    if result is None:
        raise HTTPException(status_code=404, detail=STUDENT_NOT_FOUND)
    return result


@router.post("/payments", response_model=PaymentSubmissionResponse, status_code=201)
async def submit_payment(
    req: PaymentSubmissionRequest,
    service: ParentPortalService = Depends(get_parent_portal_service),
    session: str = Depends(get_session_key),
):
    try:
        with action_guard.hold(f"submit-payment:{req.invoice_id}", session=session):
            return await service.submit_payment(req)
    except ServiceError as exc:
        raise to_http_error(
            exc, "Failed to submit payment confirmation. Please try again."
        ) from exc
