from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReminderRequest(BaseModel):
    days_ahead: Optional[int] = Field(default=None, ge=1, le=30)


class ReminderTemplateInput(BaseModel):
    parent_name: str
    student_name: str
    amount: Optional[float] = None
    due_date: date
    invoice_id: str


class Reminder(BaseModel):
    parent_name: Optional[str] = None
    phone: str
    student_name: Optional[str] = None
    amount: Optional[float] = None
    due_date: date
    message: str
    invoice_id: str
    chat_link: Optional[str] = None


class ReminderBatchResponse(BaseModel):
    total: int
    days_ahead: int
    target_date: date
    items: List[Reminder]
    copy_text: str


class SendRemindersResult(BaseModel):
    """Result payload of the remote send-reminders function."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    reminders_sent: Optional[int] = Field(default=None, alias="remindersSent")
    total_invoices: Optional[int] = Field(default=None, alias="totalInvoices")
    error: Optional[str] = None
