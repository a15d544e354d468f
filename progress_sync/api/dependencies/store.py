"""Per-request wiring of configuration, store client and services."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
from fastapi import Depends

from progress_sync.core.config import RuntimeConfig, Settings, get_settings
from progress_sync.core.store import RemoteStoreClient, open_store_client
from progress_sync.repositories.progress import ProgressRepository
from progress_sync.repositories.user_state import UserStateRepository
from progress_sync.services.progress import ProgressService
from progress_sync.services.sync import SyncService


def get_runtime_config(settings: Settings = Depends(get_settings)) -> RuntimeConfig:  # noqa: B008
    """Resolve request-time credentials; raises ConfigurationError (500) when incomplete."""
    return settings.require_runtime()


def get_store_transport() -> httpx.AsyncBaseTransport | None:
    """Transport override hook; ``None`` means the default network transport."""
    return None


async def get_store_client(
    config: RuntimeConfig = Depends(get_runtime_config),  # noqa: B008
    transport: httpx.AsyncBaseTransport | None = Depends(get_store_transport),  # noqa: B008
) -> AsyncGenerator[RemoteStoreClient, None]:
    async with open_store_client(config, transport=transport) as store:
        yield store


def get_sync_service(
    store: RemoteStoreClient = Depends(get_store_client),  # noqa: B008
) -> SyncService:
    return SyncService(UserStateRepository(store))


def get_progress_service(
    store: RemoteStoreClient = Depends(get_store_client),  # noqa: B008
) -> ProgressService:
    return ProgressService(ProgressRepository(store))


__all__ = [
    "get_progress_service",
    "get_runtime_config",
    "get_store_client",
    "get_store_transport",
    "get_sync_service",
]
