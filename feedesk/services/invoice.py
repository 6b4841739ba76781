from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List

from feedesk.clients.backend import BackendClient, eq
from feedesk.schemas.invoice import (
    Invoice,
    InvoiceCreateRequest,
    InvoiceListResponse,
    InvoicesViewState,
    InvoiceUpdateRequest,
    NON_NULLABLE_UPDATE_FIELDS,
)
from feedesk.services.exceptions import InvalidRequestError, NotFoundError
from feedesk.services.filtering import empty_state_message, filter_invoices
from feedesk.services.mock_store import MockDataStore, get_mock_store, new_pay_link_token

logger = logging.getLogger(__name__)

INVOICE_COLUMNS = "*, student:students(id, name, class, roll)"

STATUS_ORDER = {"draft": 0, "unpaid": 0, "paid": 1}


class InvoiceService:
    def __init__(
        self,
        client: BackendClient,
        *,
        store: MockDataStore | None = None,
    ) -> None:
        self._client = client
        self._store = store
        if self._client.use_mock_data:
            self._store = store or get_mock_store()

    def _mock_store(self) -> MockDataStore:
        if not self._store:
            raise RuntimeError("Mock data store not configured")
        return self._store

    async def list(self) -> List[Invoice]:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            rows = await self._mock_store().invoices.list_with_students()
        else:
            rows = await self._client.select(
                "invoices", INVOICE_COLUMNS, order="created_at.desc"
            )
        return [Invoice.model_validate(row) for row in rows]

    async def dashboard(self, state: InvoicesViewState) -> InvoiceListResponse:
        logger.info(
            "Listing invoices (search=%r, status=%s)", state.search_term, state.status_filter
        )
        items = filter_invoices(await self.list(), state.search_term, state.status_filter)
        return InvoiceListResponse(
            total=len(items),
            items=items,
            state=state,
            empty_message=(
                None if items else empty_state_message(state.search_term, state.status_filter)
            ),
        )

    async def get(self, invoice_id: str) -> Invoice:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            row = await self._mock_store().invoices.get(invoice_id)
        else:
            row = await self._client.select_one(
                "invoices", INVOICE_COLUMNS, filters={"id": eq(invoice_id)}
            )
        if row is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return Invoice.model_validate(row)

    async def create(self, request: InvoiceCreateRequest) -> Invoice:
        logger.info("Creating invoice for student %s", request.student_id)
        payload = request.model_dump(mode="json")
        payload["pay_link"] = new_pay_link_token()
        if payload["status"] == "paid" and not payload.get("payment_date"):
            payload["payment_date"] = date.today().isoformat()

        if self._client.use_mock_data:
            await self._client.simulate_latency()
            row = await self._mock_store().invoices.create(payload)
            return await self.get(row["id"])

        row = await self._client.insert("invoices", payload)
        return await self.get(str(row["id"]))

    async def update(self, invoice_id: str, request: InvoiceUpdateRequest) -> Invoice:
        changes: Dict[str, Any] = request.model_dump(mode="json", exclude_unset=True)
        nulled = sorted(
            field for field in NON_NULLABLE_UPDATE_FIELDS if field in changes and changes[field] is None
        )
        if nulled:
            raise InvalidRequestError(f"Invoice {invoice_id}: {', '.join(nulled)} cannot be null")
        current = await self.get(invoice_id)
        new_status = changes.get("status")
        if new_status and STATUS_ORDER[new_status] < STATUS_ORDER[current.status]:
            raise InvalidRequestError(
                f"Invoice {invoice_id} is {current.status} and cannot move back to {new_status}"
            )
        if new_status == "paid" and current.status != "paid" and not changes.get("payment_date"):
            changes["payment_date"] = date.today().isoformat()
        if not changes:
            return current

        logger.info("Updating invoice %s: %s", invoice_id, sorted(changes))
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._mock_store().invoices.update(invoice_id, changes)
        else:
            await self._client.update("invoices", {"id": eq(invoice_id)}, changes)
        return await self.get(invoice_id)

    async def mark_paid(self, invoice_id: str, *, paid_on: date | None = None) -> Invoice:
        current = await self.get(invoice_id)
        if current.status == "paid":
            return current
        changes = {
            "status": "paid",
            "payment_date": (paid_on or date.today()).isoformat(),
        }
        logger.info("Marking invoice %s as paid", invoice_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._mock_store().invoices.update(invoice_id, changes)
        else:
            await self._client.update("invoices", {"id": eq(invoice_id)}, changes)
        return await self.get(invoice_id)

    async def delete(self, invoice_id: str) -> None:
        logger.info("Deleting invoice %s", invoice_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            deleted = await self._mock_store().invoices.delete(invoice_id)
        else:
            deleted = bool(await self._client.delete("invoices", {"id": eq(invoice_id)}))
        if not deleted:
            raise NotFoundError(f"Invoice {invoice_id} not found")
