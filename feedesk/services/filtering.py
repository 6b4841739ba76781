from __future__ import annotations

from typing import Iterable, List

from feedesk.schemas.invoice import Invoice
from feedesk.services.formatting import format_amount


def matches_search(invoice: Invoice, query: str) -> bool:
    """Student name (case-insensitive), amount or raw due date contains ``query``."""

    if not query:
        return True
    student_name = invoice.student.name if invoice.student else None
    if student_name and query.lower() in student_name.lower():
        return True
    if invoice.amount is not None and query in format_amount(invoice.amount):
        return True
    return query in invoice.due_date.isoformat()


def matches_status(invoice: Invoice, status: str) -> bool:
    return status == "all" or invoice.status == status


def filter_invoices(invoices: Iterable[Invoice], query: str = "", status: str = "all") -> List[Invoice]:
    return [
        invoice
        for invoice in invoices
        if matches_status(invoice, status) and matches_search(invoice, query)
    ]


def empty_state_message(query: str, status: str) -> str:
    if query or status != "all":
        return "No invoices found"
    return "No invoices yet"