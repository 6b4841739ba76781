"""Fee reminder batches for unpaid invoices nearing their due date."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, List, Sequence
from urllib.parse import quote

from pydantic import ValidationError

from feedesk.clients.backend import BackendClient, eq, lte
from feedesk.config import Settings, get_settings
from feedesk.schemas.invoice import InvoiceWithParentJoin
from feedesk.schemas.reminder import (
    Reminder,
    ReminderBatchResponse,
    ReminderTemplateInput,
    SendRemindersResult,
)
from feedesk.schemas.student import ParentContact
from feedesk.services.exceptions import DownstreamServiceError, InvalidRequestError
from feedesk.services.export import quoted_csv
from feedesk.services.formatting import format_amount, format_due_date
from feedesk.services.mock_store import MockDataStore, get_mock_store

logger = logging.getLogger(__name__)

MIN_DAYS_AHEAD = 1
MAX_DAYS_AHEAD = 30
REMOTE_HORIZON_DAYS = 3

DUE_INVOICE_COLUMNS = """
    id,
    amount,
    due_date,
    student:students(
        id,
        name,
        student_parents(parent:parents(id, name, phone))
    )
"""

REMINDER_CSV_HEADER = ["phone", "message", "student", "amount", "due_date"]


def render_reminder_message(
    data: ReminderTemplateInput,
    *,
    currency: str = "PKR",
    pay_link_base_url: str = "https://your-payment-link.com/pay",
) -> str:
    return (
        f"Assalamualaikum {data.parent_name}, {data.student_name} ki fees "
        f"{currency} {format_amount(data.amount)} due hai "
        f"(Due: {format_due_date(data.due_date)}). "
        f"Pay link: {pay_link_base_url}/{data.invoice_id}"
    )


def normalize_phone(phone: str, *, country_prefix: str = "92") -> str:
    """Digits only, national prefix added in place of a leading trunk ``0``."""

    digits = "".join(ch for ch in phone if ch.isdigit())
    if digits.startswith(country_prefix):
        return digits
    if digits.startswith("0"):
        digits = digits[1:]
    return country_prefix + digits


def build_chat_link(
    phone: str,
    message: str,
    *,
    base_url: str = "https://wa.me",
    country_prefix: str = "92",
) -> str:
    canonical = normalize_phone(phone, country_prefix=country_prefix)
    encoded = quote(message, safe="-_.!~*'()")
    return f"{base_url}/{canonical}?text={encoded}"


def reminder_recipients(invoice: InvoiceWithParentJoin) -> List[ParentContact]:
    """Parents of the invoice's student that can be reached by phone.

    Invoices without a student or without linked parents, and parents with a
    blank phone, yield no recipients. Skipping them is intentional.
    """

    if invoice.student is None:
        return []
    recipients: List[ParentContact] = []
    for link in invoice.student.student_parents:
        parent = link.parent
        if parent is None or not (parent.phone or "").strip():
            continue
        recipients.append(parent)
    return recipients


def all_messages_text(reminders: Iterable[Reminder]) -> str:
    return "\n\n".join(reminder.message for reminder in reminders)


def render_reminders_csv(reminders: Sequence[Reminder]) -> str:
    return quoted_csv(
        REMINDER_CSV_HEADER,
        (
            [
                reminder.phone,
                reminder.message,
                reminder.student_name or "",
                format_amount(reminder.amount),
                reminder.due_date.isoformat(),
            ]
            for reminder in reminders
        ),
    )


class ReminderService:
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

    async def generate(
        self, days_ahead: int | None = None, *, today: date | None = None
    ) -> ReminderBatchResponse:
        horizon = self._settings.reminder_days_ahead if days_ahead is None else days_ahead
        if not MIN_DAYS_AHEAD <= horizon <= MAX_DAYS_AHEAD:
            raise InvalidRequestError(
                f"days_ahead must be between {MIN_DAYS_AHEAD} and {MAX_DAYS_AHEAD}"
            )
        target_date = (today or date.today()) + timedelta(days=horizon)
        logger.info("Generating reminders for unpaid invoices due by %s", target_date)

        invoices = await self._due_invoices(target_date)
        reminders: List[Reminder] = []
        for invoice in invoices:
            for parent in reminder_recipients(invoice):
                reminder = self._build_reminder(invoice, parent)
                reminders.append(reminder)
                await self._log_message(reminder.phone, reminder.message)

        logger.info(
            "Generated %s reminders from %s due invoices", len(reminders), len(invoices)
        )
        return ReminderBatchResponse(
            total=len(reminders),
            days_ahead=horizon,
            target_date=target_date,
            items=reminders,
            copy_text=all_messages_text(reminders),
        )

    def _build_reminder(
        self, invoice: InvoiceWithParentJoin, parent: ParentContact
    ) -> Reminder:
        student_name = invoice.student.name if invoice.student else None
        message = render_reminder_message(
            ReminderTemplateInput(
                parent_name=parent.name or "",
                student_name=student_name or "",
                amount=invoice.amount,
                due_date=invoice.due_date,
                invoice_id=invoice.id,
            ),
            currency=self._settings.currency,
            pay_link_base_url=self._settings.pay_link_base_url,
        )
        phone = str(parent.phone)
        return Reminder(
            parent_name=parent.name,
            phone=phone,
            student_name=student_name,
            amount=invoice.amount,
            due_date=invoice.due_date,
            message=message,
            invoice_id=invoice.id,
            chat_link=build_chat_link(
                phone,
                message,
                base_url=self._settings.chat_base_url,
                country_prefix=self._settings.country_prefix,
            ),
        )

    async def _due_invoices(self, target_date: date) -> List[InvoiceWithParentJoin]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._store:
                raise RuntimeError("Mock data store not configured")
            rows = await self._store.invoices.unpaid_due_by(target_date)
        else:
            rows = await self._client.select(
                "invoices",
                DUE_INVOICE_COLUMNS,
                filters={"status": eq("unpaid"), "due_date": lte(target_date.isoformat())},
            )
        return [InvoiceWithParentJoin.model_validate(row) for row in rows]

    async def _log_message(self, phone: str, message: str) -> None:
        payload = {"target_phone": phone, "message": message}
        if self._client.use_mock_data:
            if not self._store:
                raise RuntimeError("Mock data store not configured")
            await self._store.sms_logs.insert(payload)
            return
        await self._client.insert("sms_logs", payload)

    async def send_remote(self, *, today: date | None = None) -> SendRemindersResult:
        """Trigger the hosted send-reminders function.

        Failures are reported in the result rather than raised so the dashboard
        can show them in its result banner.
        """

        if self._client.use_mock_data:
            batch = await self.generate(REMOTE_HORIZON_DAYS, today=today)
            return SendRemindersResult(
                success=True,
                reminders_sent=batch.total,
                total_invoices=len({reminder.invoice_id for reminder in batch.items}),
            )

        try:
            data = await self._client.invoke_function(self._settings.reminders_function)
            return SendRemindersResult.model_validate(data)
        except DownstreamServiceError as exc:
            return SendRemindersResult(success=False, error=str(exc) or "Failed to send reminders")
        except ValidationError:
            logger.exception("Unexpected payload from %s", self._settings.reminders_function)
            return SendRemindersResult(success=False, error="Failed to send reminders")
