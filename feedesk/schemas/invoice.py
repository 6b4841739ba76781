from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from feedesk.schemas.student import StudentRef, StudentWithParents

InvoiceStatus = Literal["draft", "unpaid", "paid"]
StatusFacet = Literal["all", "draft", "unpaid", "paid"]

# Columns every stored invoice must keep a value for.
NON_NULLABLE_UPDATE_FIELDS = ("student_id", "amount", "due_date", "status")


class Invoice(BaseModel):
    """Invoice row joined with its student, as listed on the dashboard."""

    id: str
    student_id: Optional[str] = None
    amount: Optional[float] = None
    due_date: date
    status: InvoiceStatus
    payment_date: Optional[str] = None
    created_at: Optional[str] = None
    pay_link: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None
    student: Optional[StudentRef] = None


class InvoiceCreateRequest(BaseModel):
    student_id: str
    amount: float = Field(ge=0)
    due_date: date
    status: InvoiceStatus = "unpaid"
    payment_date: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None


class InvoiceUpdateRequest(BaseModel):
    student_id: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    status: Optional[InvoiceStatus] = None
    payment_date: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _reject_null_required(cls, data):
        if isinstance(data, dict):
            nulled = sorted(
                field for field in NON_NULLABLE_UPDATE_FIELDS if field in data and data[field] is None
            )
            if nulled:
                raise ValueError(f"{', '.join(nulled)} cannot be null")
        return data


class InvoicesViewState(BaseModel):
    """Search box, status facet and reminder horizon of the invoices dashboard."""

    search_term: str = ""
    status_filter: StatusFacet = "all"
    days_ahead: int = Field(default=3, ge=1, le=30)
    busy: List[str] = Field(default_factory=list)


class InvoiceListResponse(BaseModel):
    total: int
    items: List[Invoice]
    state: InvoicesViewState
    empty_message: Optional[str] = None


class InvoiceWithParentJoin(BaseModel):
    """Unpaid invoice joined to its student and the student's parents."""

    id: str
    amount: Optional[float] = None
    due_date: date
    student: Optional[StudentWithParents] = None


class PaidInvoiceRecord(BaseModel):
    """Paid invoice row in the shape consumed by the export renderers."""

    id: Optional[str] = None
    amount: Optional[float] = None
    due_date: Optional[str] = None
    payment_date: Optional[str] = None
    created_at: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None
    student: Optional[StudentRef] = None


class PortalInvoice(BaseModel):
    """Invoice as shown to a parent, with its overdue flag resolved."""

    id: str
    amount: Optional[float] = None
    due_date: date
    status: InvoiceStatus
    pay_link: Optional[str] = None
    is_overdue: bool = False
    status_label: str
