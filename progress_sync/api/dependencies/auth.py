"""Identity resolution for the sync and progress handlers."""

from __future__ import annotations

from collections.abc import Mapping

from progress_sync.core.config import RuntimeConfig, Settings
from progress_sync.core.domain_metrics import record_verification
from progress_sync.core.errors import AuthenticationError, MalformedInputError
from progress_sync.core.logging import get_logger
from progress_sync.core.telegram import verify_init_data
from progress_sync.models.telegram_user import TelegramIdentity

logger = get_logger("progress_sync.auth")

INIT_DATA_HEADER = "x-telegram-init-data"
DEV_USER_HEADER = "x-dev-user"


def authenticate_init_data(init_data: str | None, config: RuntimeConfig) -> TelegramIdentity:
    """Verify initData or raise AuthenticationError carrying only the reason tag."""

    result = verify_init_data(
        init_data or "",
        config.bot_token,
        config.init_data_max_age_seconds,
    )
    if result.identity is None:
        reason = result.reason.value if result.reason else None
        record_verification(reason)
        logger.warning("initData rejected", extra={"reason": reason})
        raise AuthenticationError("Invalid Telegram initData", reason=reason)

    record_verification(None)
    return result.identity


def dev_identity(headers: Mapping[str, str], settings: Settings) -> TelegramIdentity | None:
    """Identity from X-Dev-User; only ever honored outside staging/production."""

    if not settings.dev_identity_allowed:
        return None
    raw = headers.get(DEV_USER_HEADER)
    if not raw:
        return None
    try:
        user_id = int(raw.strip())
    except ValueError:
        return None
    if user_id == 0:
        return None
    logger.warning("Using dev identity header", extra={"user_id": user_id})
    return TelegramIdentity(id=user_id)


def resolve_batch_identity(
    init_data: object,
    headers: Mapping[str, str],
    config: RuntimeConfig,
    settings: Settings,
) -> TelegramIdentity:
    """initData from the body wins; otherwise fall back to the dev header, else 401."""

    if init_data:
        if not isinstance(init_data, str):
            raise MalformedInputError("initData must be a string")
        return authenticate_init_data(init_data, config)

    identity = dev_identity(headers, settings)
    if identity is None:
        raise AuthenticationError("No user")
    return identity


__all__ = [
    "DEV_USER_HEADER",
    "INIT_DATA_HEADER",
    "authenticate_init_data",
    "dev_identity",
    "resolve_batch_identity",
]
