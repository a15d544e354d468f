"""
REST client for the hosted PostgREST store (Supabase).

Exposes the four primitives the handlers need: select, insert, upsert and
rpc. Every non-2xx response or transport failure is raised as
``DownstreamError`` immediately; there are no retries at this layer.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx

from progress_sync.core.config import RuntimeConfig
from progress_sync.core.domain_metrics import record_store_call
from progress_sync.core.errors import DownstreamError
from progress_sync.core.logging import get_logger

logger = get_logger(__name__)

REST_PATH = "/rest/v1"
MERGE_DUPLICATES = "resolution=merge-duplicates,return=representation"
RETURN_REPRESENTATION = "return=representation"
_MAX_ERROR_BODY_CHARS = 500


class RemoteStoreClient:
    """Thin async wrapper over PostgREST table and RPC endpoints."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @staticmethod
    def build_http_client(
        config: RuntimeConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> httpx.AsyncClient:
        """Create an AsyncClient bound to ``{store_url}/rest/v1`` with service credentials."""

        return httpx.AsyncClient(
            base_url=f"{config.store_url}{REST_PATH}",
            headers={
                "apikey": config.store_key,
                "Authorization": f"Bearer {config.store_key}",
                "Accept": "application/json",
            },
            timeout=config.store_timeout_seconds,
            transport=transport,
        )

    async def select(
        self,
        table: str,
        filters: Mapping[str, str],
        *,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Return matching rows; PostgREST's 406 (no rows for singular select) means []."""

        params = {**filters, "select": columns}
        response = await self._send("select", "GET", f"/{table}", params=params, allow={406})
        if response.status_code == 406:
            return []
        return _as_rows(response)

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        response = await self._send(
            "insert",
            "POST",
            f"/{table}",
            json=list(rows),
            headers={"Prefer": RETURN_REPRESENTATION},
        )
        return _as_rows(response)

    async def upsert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str | None = None,
    ) -> list[dict[str, Any]]:
        """Insert rows merging into existing ones on the conflict target."""

        params = {"on_conflict": on_conflict} if on_conflict else None
        response = await self._send(
            "upsert",
            "POST",
            f"/{table}",
            params=params,
            json=list(rows),
            headers={"Prefer": MERGE_DUPLICATES},
        )
        return _as_rows(response)

    async def rpc(self, function: str, params: Mapping[str, Any]) -> Any:
        response = await self._send("rpc", "POST", f"/rpc/{function}", json=dict(params))
        if not response.content:
            return None
        return response.json()

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        allow: frozenset[int] | set[int] = frozenset(),
    ) -> httpx.Response:
        started = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            record_store_call(operation, ok=False, duration_seconds=time.perf_counter() - started)
            logger.error(
                "Store %s transport failure",
                operation,
                extra={"store_path": path, "error": str(exc)},
            )
            raise DownstreamError(f"Supabase {operation} failed: {exc}") from exc

        ok = response.is_success or response.status_code in allow
        record_store_call(operation, ok=ok, duration_seconds=time.perf_counter() - started)
        if not ok:
            body = response.text[:_MAX_ERROR_BODY_CHARS]
            logger.warning(
                "Store %s returned %s",
                operation,
                response.status_code,
                extra={"store_path": path, "status_code": response.status_code},
            )
            raise DownstreamError(
                f"Supabase {operation} failed: {response.status_code} {body}".rstrip(),
                upstream_status=response.status_code,
            )
        return response


def _as_rows(response: httpx.Response) -> list[dict[str, Any]]:
    if not response.content:
        return []
    try:
        payload = response.json()
    except ValueError as exc:
        raise DownstreamError("Supabase returned a non-JSON body") from exc
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        return [payload]
    return []


@asynccontextmanager
async def open_store_client(
    config: RuntimeConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[RemoteStoreClient]:
    """Open a per-request store client and close its connection pool afterwards."""

    async with RemoteStoreClient.build_http_client(config, transport=transport) as http_client:
        yield RemoteStoreClient(http_client)


__all__ = [
    "MERGE_DUPLICATES",
    "RemoteStoreClient",
    "open_store_client",
]
