"""Repository for daily progress counters and the raw event log."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from progress_sync.repositories.base import BaseRepository

USERS_TABLE = "users"
EVENTS_TABLE = "events"
PROGRESS_TABLE = "progress"
INCREMENT_FUNCTION = "mnc_increment_progress"
COUNTER_COLUMNS: tuple[str, ...] = ("cards", "quiz", "cheese", "accent")


class ProgressRepository(BaseRepository):
    async def upsert_user(self, user_id: int) -> None:
        await self.store.upsert(USERS_TABLE, [{"id": user_id}], on_conflict="id")

    async def log_events(self, rows: Sequence[Mapping[str, Any]]) -> None:
        if rows:
            await self.store.insert(EVENTS_TABLE, rows)

    async def upsert_daily(self, user_id: int, day: date, counters: Mapping[str, int]) -> None:
        """Overwrite the absolute counters for ``(user_id, day)``; last write wins."""

        row: dict[str, Any] = {"user_id": user_id, "day": day.isoformat()}
        for column in COUNTER_COLUMNS:
            row[column] = int(counters.get(column) or 0)
        await self.store.upsert(PROGRESS_TABLE, [row], on_conflict="user_id,day")

    async def increment(self, user_id: int, day: date, deltas: Mapping[str, int]) -> None:
        """Add ``deltas`` server-side in one statement so concurrent batches never lose updates."""

        params: dict[str, Any] = {"p_user_id": user_id, "p_day": day.isoformat()}
        for column in COUNTER_COLUMNS:
            params[f"p_{column}"] = int(deltas.get(column, 0))
        await self.store.rpc(INCREMENT_FUNCTION, params)
