"""Repository for whole-state snapshots (``user_state`` table)."""

from __future__ import annotations

from typing import Any

from progress_sync.repositories.base import BaseRepository
from progress_sync.schemas.sync import UserState

STATE_TABLE = "user_state"
# tg_id is a bigint in the table; the view exposes it as text for exact filtering
STATE_VIEW = "user_state_v"


class UserStateRepository(BaseRepository):
    """Point lookup and idempotent upsert keyed by Telegram id."""

    async def get(self, tg_id: int) -> UserState | None:
        rows = await self.store.select(STATE_VIEW, {"tg_id_s": f"eq.{tg_id}"})
        if not rows:
            return None
        row = {**rows[0], "tg_id": tg_id}
        return UserState.model_validate(row)

    async def upsert(self, state: UserState) -> dict[str, Any]:
        """Merge the row on ``tg_id``; returns the stored representation."""

        row = state.model_dump(mode="json")
        saved = await self.store.upsert(STATE_TABLE, [row], on_conflict="tg_id")
        return saved[0] if saved else row
