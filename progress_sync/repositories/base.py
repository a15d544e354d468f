"""Common helpers for repository implementations."""

from __future__ import annotations

from progress_sync.core.store import RemoteStoreClient


class BaseRepository:
    """Lightweight helper storing the RemoteStoreClient dependency."""

    def __init__(self, store: RemoteStoreClient) -> None:
        self.store = store


__all__ = ["BaseRepository"]
