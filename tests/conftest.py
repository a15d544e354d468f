from __future__ import annotations

import os
from typing import AsyncIterator, Final

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

_TEST_ENV_VARS: Final[dict[str, str]] = {
    "APP_ENV": "test",
    "TELEGRAM_BOT_TOKEN": "999999:TEST_TOKEN",
    "SUPABASE_URL": "https://store.test",
    "SUPABASE_SERVICE_KEY": "service-role-key",
    "LOG_LEVEL": "WARNING",
}

for key, value in _TEST_ENV_VARS.items():
    os.environ.setdefault(key, value)

from progress_sync.api.dependencies import get_store_transport  # noqa: E402
from progress_sync.main import app  # noqa: E402
from tests.helpers import FakeStore  # noqa: E402


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore()


@pytest_asyncio.fixture()
async def api_client(fake_store: FakeStore) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[get_store_transport] = lambda: fake_store.transport
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
