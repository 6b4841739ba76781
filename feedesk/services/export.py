"""CSV and printable HTML renderings of the paid invoice set."""

from __future__ import annotations

import csv
import html
import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from feedesk.clients.backend import BackendClient, eq
from feedesk.config import Settings, get_settings
from feedesk.schemas.invoice import PaidInvoiceRecord
from feedesk.services.formatting import export_filename, format_amount, format_due_date
from feedesk.services.mock_store import MockDataStore, get_mock_store

logger = logging.getLogger(__name__)

PAID_INVOICE_COLUMNS = """
    id,
    amount,
    due_date,
    payment_date,
    created_at,
    parent_name,
    parent_contact,
    student:students(name, class, roll)
"""

PAID_INVOICES_CSV_HEADER = [
    "invoice_id",
    "student_name",
    "class",
    "roll",
    "amount",
    "due_date",
    "payment_date",
    "created_at",
    "father_name",
    "father_contact",
]

RECEIPT_HEADINGS = [
    "Invoice ID",
    "Student Name",
    "Class",
    "Father Name",
    "Father Contact",
    "Amount",
    "Payment Date",
]

NO_PAID_INVOICES_CSV = "No paid invoices found to export."
NO_PAID_INVOICES_RECEIPT = "No paid invoices found to generate receipt."


def quoted_csv(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Header line plus rows, every data field quoted."""

    output = io.StringIO()
    output.write(",".join(header) + "\n")
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return output.getvalue().rstrip("\n")


def _csv_row(record: PaidInvoiceRecord) -> List[str]:
    student = record.student
    return [
        record.id or "",
        (student.name if student else None) or "",
        (student.class_name if student else None) or "",
        (student.roll if student else None) or "",
        format_amount(record.amount),
        record.due_date or "",
        record.payment_date or "",
        record.created_at or "",
        record.parent_name or "",
        record.parent_contact or "",
    ]


def render_paid_invoices_csv(records: Sequence[PaidInvoiceRecord]) -> str:
    return quoted_csv(PAID_INVOICES_CSV_HEADER, (_csv_row(record) for record in records))


def receipt_total(records: Iterable[PaidInvoiceRecord]) -> float:
    return sum(record.amount or 0 for record in records)


def _display_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return format_due_date(date.fromisoformat(value[:10]))
    except ValueError:
        return value


def render_receipt_html(
    records: Sequence[PaidInvoiceRecord],
    *,
    generated_on: date | None = None,
    currency: str = "PKR",
) -> str:
    def cell(value: str) -> str:
        return f"<td>{html.escape(value)}</td>"

    body_rows: List[str] = []
    for record in records:
        student = record.student
        cells = [
            record.id or "",
            (student.name if student else None) or "",
            (student.class_name if student else None) or "",
            record.parent_name or "N/A",
            record.parent_contact or "N/A",
            f"{currency} {format_amount(record.amount)}",
            _display_date(record.payment_date),
        ]
        body_rows.append("<tr>" + "".join(cell(value) for value in cells) + "</tr>")

    total = f"{currency} {format_amount(receipt_total(records))}"
    body_rows.append(
        '<tr class="total"><td colspan="5">Total</td>'
        f"{cell(total)}<td></td></tr>"
    )
    header = "".join(f"<th>{html.escape(heading)}</th>" for heading in RECEIPT_HEADINGS)
    generated = format_due_date(generated_on or date.today())
    rows_html = "".join(body_rows)

    return f"""<!DOCTYPE html>
<html>
    <head>
        <meta charset="utf-8">
        <title>Paid Invoices Receipt</title>
        <style>
            body {{ font-family: Arial, sans-serif; margin: 20px; }}
            table {{ width: 100%; border-collapse: collapse; margin-top: 20px; }}
            th, td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
            th {{ background-color: #f2f2f2; }}
            .header {{ text-align: center; margin-bottom: 30px; }}
            .total {{ font-weight: bold; background-color: #f9f9f9; }}
        </style>
    </head>
    <body>
        <div class="header">
            <h1>Paid Invoices Receipt</h1>
            <p>Generated on: {generated}</p>
        </div>
        <table>
            <thead><tr>{header}</tr></thead>
            <tbody>{rows_html}</tbody>
        </table>
    </body>
</html>
"""


@dataclass
class ExportArtifact:
    filename: str
    media_type: str
    content: str


class ExportService:
    def __init__(
        self,
        client: BackendClient,
        *,
        settings: Settings | None = None,
        store: MockDataStore | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self._store = store
        if self._client.use_mock_data:
            self._store = store or get_mock_store()

    async def paid_invoices(self) -> List[PaidInvoiceRecord]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._store:
                raise RuntimeError("Mock data store not configured")
            rows = await self._store.invoices.paid()
        else:
            rows = await self._client.select(
                "invoices",
                PAID_INVOICE_COLUMNS,
                filters={"status": eq("paid")},
                order="payment_date.desc",
            )
        return [PaidInvoiceRecord.model_validate(row) for row in rows]

    async def csv_export(self, *, on: date | None = None) -> Optional[ExportArtifact]:
        """Paid invoices as CSV, or ``None`` when there is nothing to export."""

        records = await self.paid_invoices()
        if not records:
            logger.info("CSV export skipped: no paid invoices")
            return None
        return ExportArtifact(
            filename=export_filename("paid-invoices", "csv", on),
            media_type="text/csv",
            content=render_paid_invoices_csv(records),
        )

    async def receipt_export(self, *, on: date | None = None) -> Optional[ExportArtifact]:
        """Printable receipt of paid invoices, or ``None`` when there are none."""

        records = await self.paid_invoices()
        if not records:
            logger.info("Receipt skipped: no paid invoices")
            return None
        return ExportArtifact(
            filename=export_filename("paid-invoices-receipt", "html", on),
            media_type="text/html",
            content=render_receipt_html(
                records, generated_on=on, currency=self._settings.currency
            ),
        )
