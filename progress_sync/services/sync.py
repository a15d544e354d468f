"""Whole-state pull/push for a verified Telegram identity."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from progress_sync.core.logging import get_logger
from progress_sync.models.telegram_user import TelegramIdentity
from progress_sync.repositories.user_state import UserStateRepository
from progress_sync.schemas.sync import PushStateRequest, UserState

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncService:
    """Read and overwrite the user's state snapshot."""

    def __init__(
        self,
        state_repo: UserStateRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.state_repo = state_repo
        self._clock = clock

    async def pull(self, identity: TelegramIdentity) -> UserState:
        """Return the stored state, or the empty shape when nothing was pushed yet."""
        state = await self.state_repo.get(identity.id)
        if state is None:
            logger.debug("No stored state for tg_id=%s", identity.id)
            return UserState.empty(identity.id)
        return state

    async def push(self, identity: TelegramIdentity, incoming: PushStateRequest) -> dict[str, Any]:
        state = UserState(
            tg_id=identity.id,
            username=identity.username,
            first_name=identity.first_name,
            last_name=identity.last_name,
            pairs=incoming.pairs,
            known=incoming.known,
            counters=incoming.counters,
            updated_at=self._clock(),
        )
        saved = await self.state_repo.upsert(state)
        logger.info(
            "State pushed",
            extra={"tg_id": identity.id, "pairs": len(incoming.pairs), "known": len(incoming.known)},
        )
        return saved
