"""Batched progress event ingestion."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from progress_sync.core.errors import DownstreamError
from progress_sync.core.logging import get_logger
from progress_sync.repositories.progress import ProgressRepository
from progress_sync.schemas.progress import DailyStats, ProgressEvent, StatEvent, SyncEvent

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressService:
    """Apply a batch of client events to the daily counters of one user."""

    def __init__(
        self,
        progress_repo: ProgressRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.progress_repo = progress_repo
        self._clock = clock

    async def ensure_user(self, user_id: int) -> None:
        """Best-effort profile upsert; a failure is logged and does not abort the batch."""
        try:
            await self.progress_repo.upsert_user(user_id)
        except DownstreamError as exc:
            logger.warning("upsert_user failed for user_id=%s: %s", user_id, exc.message)

    async def apply_events(self, user_id: int, events: Sequence[ProgressEvent]) -> int:
        """
        Log every event, then update today's counters.

        The last ``sync`` snapshot is written as absolute values; ``stat``
        events are summed per kind and sent through the atomic increment
        procedure, never as a read-modify-write.
        """

        if not events:
            return 0

        await self.progress_repo.log_events([self._event_row(user_id, event) for event in events])

        today = self._clock().date()
        increments: Counter[str] = Counter()
        snapshot: DailyStats | None = None
        for event in events:
            if isinstance(event, StatEvent):
                increments[event.payload.kind.value] += 1
            elif isinstance(event, SyncEvent):
                snapshot = event.payload.stats

        if snapshot is not None:
            await self.progress_repo.upsert_daily(
                user_id, today, snapshot.model_dump(exclude_none=True)
            )
        if any(count > 0 for count in increments.values()):
            await self.progress_repo.increment(user_id, today, dict(increments))

        logger.info(
            "Applied progress batch",
            extra={"user_id": user_id, "events": len(events), "day": today.isoformat()},
        )
        return len(events)

    @staticmethod
    def _event_row(user_id: int, event: ProgressEvent) -> dict[str, Any]:
        if isinstance(event, StatEvent):
            event_type = event.payload.kind.value
        else:
            event_type = "sync"
        return {
            "user_id": user_id,
            "type": event_type,
            "payload": event.payload.model_dump(mode="json", exclude_none=True),
            "ts": datetime.fromtimestamp(event.ts / 1000, tz=timezone.utc).isoformat(),
        }
