import asyncio
from datetime import date, timedelta

import pytest

from feedesk.schemas.invoice import InvoiceCreateRequest, InvoicesViewState, InvoiceUpdateRequest
from feedesk.schemas.payment import PaymentSubmissionRequest
from feedesk.schemas.student import StudentSearchRequest
from feedesk.services.exceptions import InvalidRequestError, NotFoundError
from feedesk.services.invoice import InvoiceService
from feedesk.services.mock_store import get_mock_store, reset_mock_store
from feedesk.services.parent_portal import (
    NO_STUDENT_FOUND,
    TOKEN_NOT_FOUND,
    ParentPortalService,
    is_overdue,
    status_label,
)


def _student_id(name: str) -> str:
    rows = asyncio.run(get_mock_store().students.search(name=name))
    return rows[0]["id"]


def test_dashboard_lists_seeded_invoices(mock_client) -> None:
    service = InvoiceService(mock_client)

    response = asyncio.run(service.dashboard(InvoicesViewState()))

    assert mock_client.latency_called is True
    assert response.total == 6
    assert response.empty_message is None
    assert {invoice.student.name for invoice in response.items} == {
        "Ali Raza",
        "Ayesha Khan",
        "Hamza Siddiqui",
    }


def test_dashboard_reports_empty_states(mock_client) -> None:
    service = InvoiceService(mock_client)

    filtered = asyncio.run(service.dashboard(InvoicesViewState(search_term="nobody")))
    assert filtered.total == 0
    assert filtered.empty_message == "No invoices found"

    reset_mock_store(seed=False)
    empty = asyncio.run(InvoiceService(mock_client).dashboard(InvoicesViewState()))
    assert empty.empty_message == "No invoices yet"


def test_create_update_mark_paid_and_delete(mock_client) -> None:
    service = InvoiceService(mock_client)
    student_id = _student_id("Ali")

    created = asyncio.run(
        service.create(
            InvoiceCreateRequest(student_id=student_id, amount=1200, due_date=date(2024, 7, 1))
        )
    )
    assert created.status == "unpaid"
    assert created.student.name == "Ali Raza"
    assert created.pay_link

    updated = asyncio.run(
        service.update(created.id, InvoiceUpdateRequest(amount=1300, status="draft"))
    )
    assert updated.amount == 1300
    assert updated.status == "draft"

    paid = asyncio.run(service.mark_paid(created.id, paid_on=date(2024, 6, 30)))
    assert paid.status == "paid"
    assert paid.payment_date == "2024-06-30"

    asyncio.run(service.delete(created.id))
    with pytest.raises(NotFoundError):
        asyncio.run(service.get(created.id))
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete(created.id))


def test_paid_invoice_cannot_move_backwards(mock_client) -> None:
    service = InvoiceService(mock_client)
    paid = next(
        invoice for invoice in asyncio.run(service.list()) if invoice.status == "paid"
    )

    with pytest.raises(InvalidRequestError):
        asyncio.run(service.update(paid.id, InvoiceUpdateRequest(status="unpaid")))

    unchanged = asyncio.run(service.get(paid.id))
    assert unchanged.status == "paid"


def test_update_to_paid_stamps_payment_date(mock_client) -> None:
    service = InvoiceService(mock_client)
    unpaid = next(
        invoice for invoice in asyncio.run(service.list()) if invoice.status == "unpaid"
    )

    paid = asyncio.run(service.update(unpaid.id, InvoiceUpdateRequest(status="paid")))

    assert paid.payment_date == date.today().isoformat()


def test_create_rejects_negative_amount() -> None:
    with pytest.raises(ValueError):
        InvoiceCreateRequest(student_id="STU-00001", amount=-1, due_date=date(2024, 7, 1))


@pytest.mark.parametrize("field", ["status", "due_date", "student_id", "amount"])
def test_update_request_rejects_null_for_required_columns(field) -> None:
    with pytest.raises(ValueError):
        InvoiceUpdateRequest.model_validate({field: None})


def test_update_rejects_null_columns_and_keeps_invoice_listable(mock_client) -> None:
    service = InvoiceService(mock_client)
    draft = next(
        invoice for invoice in asyncio.run(service.list()) if invoice.status == "draft"
    )

    for field in ("status", "due_date"):
        with pytest.raises(InvalidRequestError):
            asyncio.run(
                service.update(draft.id, InvoiceUpdateRequest.model_construct(**{field: None}))
            )

    unchanged = asyncio.run(service.get(draft.id))
    assert unchanged.status == "draft"
    assert unchanged.due_date == draft.due_date
    assert asyncio.run(service.dashboard(InvoicesViewState())).total == 6


def test_search_single_student_loads_invoices(mock_client) -> None:
    service = ParentPortalService(mock_client)
    today = date.today()

    response = asyncio.run(
        service.search_students(StudentSearchRequest(name="  ayesha "), today=today)
    )

    assert response.notice is None
    assert response.candidates == []
    assert response.selected.student.name == "Ayesha Khan"
    due_dates = [invoice.due_date for invoice in response.selected.invoices]
    assert due_dates == sorted(due_dates, reverse=True)
    labels = {invoice.status_label for invoice in response.selected.invoices}
    assert labels == {"Unpaid", "Paid"}


def test_search_by_class_returns_candidates(mock_client) -> None:
    service = ParentPortalService(mock_client)

    response = asyncio.run(
        service.search_students(StudentSearchRequest.model_validate({"class": "5"}))
    )

    assert response.selected is None
    assert {student.name for student in response.candidates} == {"Ali Raza", "Hamza Siddiqui"}


def test_search_without_match_returns_notice(mock_client) -> None:
    service = ParentPortalService(mock_client)

    response = asyncio.run(service.search_students(StudentSearchRequest(roll="999")))

    assert response.notice == NO_STUDENT_FOUND


def test_search_requires_a_criterion() -> None:
    with pytest.raises(ValueError):
        StudentSearchRequest(name=" ", roll="")


def test_lookup_by_pay_link_token(mock_client) -> None:
    service = ParentPortalService(mock_client)
    store = get_mock_store()
    hamza_id = _student_id("Hamza")
    token = next(
        row["pay_link"] for row in store.invoices.rows() if row["student_id"] == hamza_id
    )

    found = asyncio.run(service.lookup_by_token(token))
    missing = asyncio.run(service.lookup_by_token("not-a-token"))

    assert found.selected.student.name == "Hamza Siddiqui"
    assert len(found.selected.invoices) == 2
    assert missing.notice == TOKEN_NOT_FOUND
    assert missing.selected is None


def test_submit_payment_appends_pending_record(mock_client) -> None:
    service = ParentPortalService(mock_client)

    response = asyncio.run(
        service.submit_payment(
            PaymentSubmissionRequest(invoice_id="INV-00001", reference_number=" TXN-42 ")
        )
    )

    assert response.status == "pending"
    assert response.reference_number == "TXN-42"
    rows = get_mock_store().payments.rows()
    assert len(rows) == 1
    assert rows[0]["invoice_id"] == "INV-00001"
    assert rows[0]["status"] == "pending"


def test_blank_payment_reference_is_rejected() -> None:
    with pytest.raises(ValueError):
        PaymentSubmissionRequest(invoice_id="INV-00001", reference_number="   ")


def test_overdue_flags() -> None:
    today = date(2024, 6, 9)
    yesterday = today - timedelta(days=1)

    assert is_overdue(yesterday, "unpaid", today=today) is True
    assert is_overdue(today, "unpaid", today=today) is False
    assert is_overdue(yesterday, "paid", today=today) is False
    assert status_label(yesterday, "unpaid", today=today) == "Overdue"
    assert status_label(yesterday, "draft", today=today) == "Overdue"
    assert status_label(today, "unpaid", today=today) == "Unpaid"
    assert status_label(yesterday, "paid", today=today) == "Paid"
