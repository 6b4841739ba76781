from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from feedesk.schemas.invoice import PortalInvoice
from feedesk.schemas.student import Student


class PaymentSubmissionRequest(BaseModel):
    invoice_id: str
    reference_number: str = Field(min_length=1)

    @field_validator("reference_number", mode="before")
    def _strip_reference(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class PaymentSubmissionResponse(BaseModel):
    id: Optional[str] = None
    invoice_id: str
    reference_number: str
    status: str = "pending"
    message: str = (
        "Payment confirmation submitted successfully! We will verify and update the status."
    )


class StudentInvoicesResponse(BaseModel):
    student: Student
    invoices: List[PortalInvoice]


class StudentLookupResponse(BaseModel):
    """Outcome of a parent search: one student with invoices, candidates, or a notice."""

    selected: Optional[StudentInvoicesResponse] = None
    candidates: List[Student] = Field(default_factory=list)
    notice: Optional[str] = None
