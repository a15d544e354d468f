from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI, Request, status
from httpx import ASGITransport, AsyncClient

from progress_sync.core.logging import get_request_id
from progress_sync.core.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    RequestSizeLimitMiddleware,
)


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_request_size_limit_rejects_large_payload() -> None:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_request_bytes=64)

    @app.post("/echo")
    async def echo_endpoint() -> dict[str, str]:
        return {"status": "ok"}

    async with _client(app) as client:
        response = await client.post(
            "/echo", content="x" * 128, headers={"content-type": "text/plain"}
        )

    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    payload = response.json()
    assert payload["ok"] is False
    assert payload["code"] == "PAYLOAD_TOO_LARGE"
    assert payload["error"].startswith("Request body exceeds")


@pytest.mark.asyncio
async def test_request_size_limit_allows_small_payload_and_keeps_body() -> None:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_request_bytes=256)

    @app.post("/echo")
    async def echo_endpoint(request: Request) -> dict[str, str]:
        return {"body": (await request.body()).decode()}

    async with _client(app) as client:
        response = await client.post("/echo", content='{"op":"batch"}')

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"body": '{"op":"batch"}'}


def test_request_size_limit_requires_positive_bound() -> None:
    with pytest.raises(ValueError):
        RequestSizeLimitMiddleware(FastAPI(), max_request_bytes=0)


@pytest.mark.asyncio
async def test_request_id_is_bound_for_handlers() -> None:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/rid")
    async def rid() -> dict[str, str | None]:
        return {"request_id": get_request_id()}

    async with _client(app) as client:
        response = await client.get("/rid", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.json() == {"request_id": "abc-123"}


@pytest.mark.asyncio
async def test_access_log_records_action_without_headers(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="progress_sync.access")
    app = FastAPI()
    app.add_middleware(AccessLogMiddleware)

    @app.get("/sync")
    async def sync() -> dict[str, bool]:
        return {"ok": True}

    async with _client(app) as client:
        await client.get(
            "/sync",
            params={"action": "pull"},
            headers={"x-telegram-init-data": "user=secret&hash=abc"},
        )

    record = next(r for r in caplog.records if r.name == "progress_sync.access")
    assert getattr(record, "http_method", None) == "GET"
    assert getattr(record, "http_path", None) == "/sync"
    assert getattr(record, "action", None) == "pull"
    assert getattr(record, "status_code", None) == 200
    assert isinstance(getattr(record, "duration_ms", None), float)
    assert "secret" not in str(record.__dict__)
