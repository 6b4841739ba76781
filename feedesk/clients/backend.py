from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from feedesk.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)


def eq(value: Any) -> str:
    return f"eq.{value}"


def lte(value: Any) -> str:
    return f"lte.{value}"


def ilike(value: str) -> str:
    """Case-insensitive substring filter, ``%`` wildcards written as ``*``."""

    return f"ilike.*{value}*"


class BackendClient:
    """Async client for the hosted database's REST and functions endpoints."""

    def __init__(
        self,
        base_url: str | None,
        *,
        anon_key: str | None = None,
        timeout: float = 10.0,
        use_mock_data: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/") if base_url else None
        self._timeout = timeout
        self.use_mock_data = use_mock_data or not self._base_url
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if anon_key:
            self._headers["apikey"] = anon_key
            self._headers["Authorization"] = f"Bearer {anon_key}"
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.use_mock_data or not self._base_url:
            raise RuntimeError("HTTP client requested while running in mock mode")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json: Any = None,
        headers: Dict[str, str] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method, path, params=params, json=json, headers=headers
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            logger.exception(
                "Backend returned error %s for %s %s",
                exc.response.status_code,
                method,
                path,
            )
            raise DownstreamServiceError(
                "Backend returned an error response",
                status_code=exc.response.status_code,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.exception("Unable to reach backend: %s", exc)
            raise DownstreamServiceError(
                "Unable to reach backend", status_code=None, cause=exc
            ) from exc

    async def select(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": "".join(columns.split())}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        response = await self._send("GET", f"/rest/v1/{table}", params=params)
        return response.json()

    async def select_one(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Dict[str, str] | None = None,
    ) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, columns, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._send(
            "POST",
            f"/rest/v1/{table}",
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        return rows[0] if rows else dict(payload)

    async def update(
        self, table: str, filters: Dict[str, str], payload: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        response = await self._send(
            "PATCH",
            f"/rest/v1/{table}",
            params=filters,
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def delete(self, table: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        response = await self._send(
            "DELETE",
            f"/rest/v1/{table}",
            params=filters,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def invoke_function(self, name: str) -> Dict[str, Any]:
        """POST a remote function with the bearer credential and no body.

        The functions runtime reports its own failures in the JSON body, so an
        error status with a JSON payload is returned rather than raised.
        """

        client = await self._ensure_client()
        try:
            response = await client.post(f"/functions/v1/{name}")
        except httpx.RequestError as exc:
            logger.exception("Unable to reach function %s: %s", name, exc)
            raise DownstreamServiceError(
                f"Unable to reach function {name}", status_code=None, cause=exc
            ) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise DownstreamServiceError(
                f"Function {name} returned a non-JSON response",
                status_code=response.status_code,
                cause=exc,
            ) from exc

    async def simulate_latency(self) -> None:
        """Allow services to await for latency even when mocking responses."""

        await asyncio.sleep(0)
