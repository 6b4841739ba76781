from datetime import date

from feedesk.schemas.invoice import Invoice
from feedesk.schemas.student import StudentRef
from feedesk.services.filtering import empty_state_message, filter_invoices, matches_search


def _invoice(invoice_id: str, name, amount, due: date, status: str = "unpaid") -> Invoice:
    student = StudentRef(name=name) if name is not None else None
    return Invoice(id=invoice_id, amount=amount, due_date=due, status=status, student=student)


INVOICES = [
    _invoice("1", "Ali Raza", 1500, date(2024, 5, 1), "unpaid"),
    _invoice("2", "Ayesha Khan", 3000, date(2024, 6, 10), "paid"),
    _invoice("3", None, 2500, date(2024, 7, 15), "draft"),
    _invoice("4", "Hamza", None, date(2024, 8, 1), "unpaid"),
]


def test_empty_query_with_all_facet_keeps_everything_in_order() -> None:
    assert filter_invoices(INVOICES, "", "all") == INVOICES


def test_student_name_match_is_case_insensitive() -> None:
    assert [invoice.id for invoice in filter_invoices(INVOICES, "ALI")] == ["1"]
    assert [invoice.id for invoice in filter_invoices(INVOICES, "khan")] == ["2"]


def test_amount_and_due_date_substring_matches() -> None:
    assert [invoice.id for invoice in filter_invoices(INVOICES, "150")] == ["1"]
    assert [invoice.id for invoice in filter_invoices(INVOICES, "2024-07")] == ["3"]
    assert [invoice.id for invoice in filter_invoices(INVOICES, "00")] == ["1", "2", "3"]


def test_orphaned_invoice_only_matches_amount_or_date() -> None:
    orphan = INVOICES[2]

    assert matches_search(orphan, "2500") is True
    assert matches_search(orphan, "ali") is False


def test_status_facet_combines_with_query() -> None:
    assert [invoice.id for invoice in filter_invoices(INVOICES, "", "unpaid")] == ["1", "4"]
    assert [invoice.id for invoice in filter_invoices(INVOICES, "hamza", "unpaid")] == ["4"]
    assert filter_invoices(INVOICES, "hamza", "paid") == []


def test_empty_state_message() -> None:
    assert empty_state_message("", "all") == "No invoices yet"
    assert empty_state_message("ali", "all") == "No invoices found"
    assert empty_state_message("", "draft") == "No invoices found"
