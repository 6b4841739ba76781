"""Public lookup of a student's invoices and payment reference submission."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from feedesk.clients.backend import BackendClient, eq, ilike
from feedesk.schemas.invoice import PortalInvoice
from feedesk.schemas.payment import (
    PaymentSubmissionRequest,
    PaymentSubmissionResponse,
    StudentInvoicesResponse,
    StudentLookupResponse,
)
from feedesk.schemas.student import Student, StudentSearchRequest
from feedesk.services.mock_store import MockDataStore, get_mock_store

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10

TOKEN_NOT_FOUND = "Invoice not found — try searching below."
STUDENT_NOT_FOUND = "Student not found."
NO_STUDENT_FOUND = "No student found"


def is_overdue(due_date: date, status: str, *, today: date | None = None) -> bool:
    return status != "paid" and due_date < (today or date.today())


def status_label(due_date: date, status: str, *, today: date | None = None) -> str:
    if status == "paid":
        return "Paid"
    return "Overdue" if is_overdue(due_date, status, today=today) else "Unpaid"


def to_portal_invoice(row: dict, *, today: date | None = None) -> PortalInvoice:
    due_date = date.fromisoformat(str(row["due_date"])[:10])
    status = row["status"]
    return PortalInvoice(
        id=str(row["id"]),
        amount=row.get("amount"),
        due_date=due_date,
        status=status,
        pay_link=row.get("pay_link"),
        is_overdue=is_overdue(due_date, status, today=today),
        status_label=status_label(due_date, status, today=today),
    )


class ParentPortalService:
    def __init__(
        self,
        client: BackendClient,
        *,
        store: MockDataStore | None = None,
    ) -> None:
        self._client = client
        self._store = store
        if self._client.use_mock_data:
            self._store = store or get_mock_store()

    def _mock_store(self) -> MockDataStore:
        if not self._store:
            raise RuntimeError("Mock data store not configured")
        return self._store

    async def lookup_by_token(
        self, token: str, *, today: date | None = None
    ) -> StudentLookupResponse:
        logger.info("Looking up invoice by pay link")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            row = await self._mock_store().invoices.by_pay_link(token)
        else:
            row = await self._client.select_one(
                "invoices", "student_id", filters={"pay_link": eq(token)}
            )
        if not row or not row.get("student_id"):
            return StudentLookupResponse(notice=TOKEN_NOT_FOUND)
        selected = await self.student_invoices(str(row["student_id"]), today=today)
        if selected is None:
            return StudentLookupResponse(notice=STUDENT_NOT_FOUND)
        return StudentLookupResponse(selected=selected)

    async def search_students(
        self, request: StudentSearchRequest, *, today: date | None = None
    ) -> StudentLookupResponse:
        logger.info(
            "Searching students (name=%r, class=%r, roll=%r)",
            request.name,
            request.class_name,
            request.roll,
        )
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            rows = await self._mock_store().students.search(
                name=request.name,
                class_name=request.class_name,
                roll=request.roll,
                limit=SEARCH_LIMIT,
            )
        else:
            filters = {}
            if request.name:
                filters["name"] = ilike(request.name)
            if request.class_name:
                filters["class"] = eq(request.class_name)
            if request.roll:
                filters["roll"] = eq(request.roll)
            rows = await self._client.select(
                "students", "id, name, class, roll", filters=filters, limit=SEARCH_LIMIT
            )

        students = [Student.model_validate(row) for row in rows]
        if not students:
            return StudentLookupResponse(notice=NO_STUDENT_FOUND)
        if len(students) == 1:
            selected = await self.student_invoices(students[0].id, today=today)
            if selected is None:
                return StudentLookupResponse(notice=STUDENT_NOT_FOUND)
            return StudentLookupResponse(selected=selected)
        return StudentLookupResponse(candidates=students)

    async def student_invoices(
        self, student_id: str, *, today: date | None = None
    ) -> Optional[StudentInvoicesResponse]:
        """Student with all of their invoices, latest due date first."""

        if self._client.use_mock_data:
            await self._client.simulate_latency()
            store = self._mock_store()
            student_row = await store.students.get(student_id)
            invoice_rows = await store.invoices.for_student(student_id) if student_row else []
        else:
            student_row = await self._client.select_one(
                "students", "id, name, class, roll", filters={"id": eq(student_id)}
            )
            invoice_rows = []
            if student_row:
                invoice_rows = await self._client.select(
                    "invoices",
                    "id, amount, due_date, status, pay_link",
                    filters={"student_id": eq(student_id)},
                    order="due_date.desc",
                )
        if not student_row:
            return None

        invoices: List[PortalInvoice] = [
            to_portal_invoice(row, today=today) for row in invoice_rows
        ]
        return StudentInvoicesResponse(
            student=Student.model_validate(student_row), invoices=invoices
        )

    async def submit_payment(
        self, request: PaymentSubmissionRequest
    ) -> PaymentSubmissionResponse:
        payload = {
            "invoice_id": request.invoice_id,
            "reference_number": request.reference_number,
            "status": "pending",
        }
        logger.info("Recording payment reference for invoice %s", request.invoice_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            row = await self._mock_store().payments.insert(payload)
        else:
            row = await self._client.insert("payments", payload)
        return PaymentSubmissionResponse(
            id=str(row["id"]) if row.get("id") is not None else None,
            invoice_id=request.invoice_id,
            reference_number=request.reference_number,
        )
