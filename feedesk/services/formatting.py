"""Small display helpers shared by the reminder and export renderers."""

from __future__ import annotations

from datetime import date
from typing import Optional


def format_amount(amount: Optional[float]) -> str:
    """Render an amount without currency symbol; whole numbers drop the decimal part."""

    if amount is None:
        return "0"
    value = float(amount)
    if value.is_integer():
        return str(int(value))
    return str(value)


def format_due_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def export_filename(kind: str, extension: str, on: date | None = None) -> str:
    """``<kind>-<ISO date>.<ext>``, e.g. ``paid-invoices-2024-06-09.csv``."""

    day = on or date.today()
    return f"{kind}-{day.isoformat()}.{extension}"
