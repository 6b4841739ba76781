"""Service package public API definitions.

The HTTP client imports ``feedesk.services.exceptions``, which executes this
module first. Importing the service implementations eagerly here would pull in
``feedesk.clients.backend`` again and cause a circular import, so services are
resolved lazily on first attribute access.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "ExportService",
    "InvoiceService",
    "ParentPortalService",
    "ReminderService",
]

_SERVICE_MODULES = {
    "ExportService": "export",
    "InvoiceService": "invoice",
    "ParentPortalService": "parent_portal",
    "ReminderService": "reminders",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .export import ExportService as ExportService
    from .invoice import InvoiceService as InvoiceService
    from .parent_portal import ParentPortalService as ParentPortalService
    from .reminders import ReminderService as ReminderService
