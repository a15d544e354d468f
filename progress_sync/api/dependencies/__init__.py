"""Shared FastAPI dependency builders."""

from progress_sync.api.dependencies.auth import (
    INIT_DATA_HEADER,
    authenticate_init_data,
    resolve_batch_identity,
)
from progress_sync.api.dependencies.store import (
    get_progress_service,
    get_runtime_config,
    get_store_client,
    get_store_transport,
    get_sync_service,
)

__all__ = [
    "INIT_DATA_HEADER",
    "authenticate_init_data",
    "get_progress_service",
    "get_runtime_config",
    "get_store_client",
    "get_store_transport",
    "get_sync_service",
    "resolve_batch_identity",
]
