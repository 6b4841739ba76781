from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, Request

from feedesk.clients.backend import BackendClient
from feedesk.config import Settings, get_settings
from feedesk.services import (
    ExportService,
    InvoiceService,
    ParentPortalService,
    ReminderService,
)

SESSION_HEADER = "X-Session-Id"


@lru_cache(maxsize=1)
def get_backend_client_cached() -> BackendClient:
    settings = get_settings()
    return BackendClient(
        str(settings.backend_url) if settings.backend_url else None,
        anon_key=settings.backend_anon_key,
        timeout=settings.backend_timeout,
        use_mock_data=settings.use_mock_data,
    )


def get_backend_client() -> BackendClient:
    return get_backend_client_cached()


def get_invoice_service(
    client: BackendClient = Depends(get_backend_client),
) -> InvoiceService:
    return InvoiceService(client)


def get_reminder_service(
    client: BackendClient = Depends(get_backend_client),
    settings: Settings = Depends(get_settings),
) -> ReminderService:
    return ReminderService(client, settings=settings)


def get_export_service(
    client: BackendClient = Depends(get_backend_client),
    settings: Settings = Depends(get_settings),
) -> ExportService:
    return ExportService(client, settings=settings)


def get_parent_portal_service(
    client: BackendClient = Depends(get_backend_client),
) -> ParentPortalService:
    return ParentPortalService(client)


def get_session_key(
    request: Request,
    session_id: Optional[str] = Header(default=None, alias=SESSION_HEADER),
) -> str:
    """Identify the caller whose busy flags an action belongs to."""

    if session_id and session_id.strip():
        return session_id.strip()
    return request.client.host if request.client else "anonymous"
