"""Telegram WebApp initData verification.

The check follows the Mini App protocol: the signing key is
``HMAC_SHA256(key="WebAppData", msg=bot_token)`` and the presented ``hash`` must
equal ``hex(HMAC_SHA256(key=signing_key, msg=data_check_string))`` where the
data-check-string is every non-hash pair, sorted by key, rendered as
``key=value`` and joined with ``\\n``.

``verify_init_data`` never raises; callers map the returned reason to a 401.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from urllib.parse import parse_qsl

from progress_sync.models.telegram_user import TelegramIdentity

# Fixed by the WebApp protocol, not a deployment parameter.
WEB_APP_DATA_KEY = b"WebAppData"


class VerificationFailure(StrEnum):
    EMPTY = "EMPTY"
    NO_HASH = "NO_HASH"
    NO_USER = "NO_USER"
    HASH_MISMATCH = "HASH_MISMATCH"
    USER_PARSE = "USER_PARSE"
    STALE = "STALE"


@dataclass(frozen=True, slots=True)
class InitDataVerification:
    """Outcome of an initData check: exactly one of identity/reason is set."""

    identity: TelegramIdentity | None = None
    reason: VerificationFailure | None = None

    @property
    def ok(self) -> bool:
        return self.identity is not None

    @classmethod
    def failed(cls, reason: VerificationFailure) -> "InitDataVerification":
        return cls(reason=reason)


def verify_init_data(
    init_data: str,
    bot_token: str,
    max_age_seconds: int,
    *,
    now: float | None = None,
) -> InitDataVerification:
    """Verify a Telegram WebApp initData string and extract the user identity."""

    if not init_data:
        return InitDataVerification.failed(VerificationFailure.EMPTY)

    pairs = parse_qsl(init_data, keep_blank_values=True)

    received_hash = next((value for key, value in pairs if key == "hash"), "")
    if not received_hash:
        return InitDataVerification.failed(VerificationFailure.NO_HASH)
    pairs = [(key, value) for key, value in pairs if key != "hash"]

    user_raw = next((value for key, value in pairs if key == "user"), None)
    if user_raw is None:
        return InitDataVerification.failed(VerificationFailure.NO_USER)

    expected_hash = calculate_hash(build_data_check_string(pairs), bot_token)
    if not hmac.compare_digest(expected_hash.encode(), received_hash.encode()):
        return InitDataVerification.failed(VerificationFailure.HASH_MISMATCH)

    user_data = _parse_user(user_raw)
    if user_data is None:
        return InitDataVerification.failed(VerificationFailure.USER_PARSE)

    auth_date = _parse_auth_date(pairs)
    current = time.time() if now is None else now
    if current - auth_date > max_age_seconds:
        return InitDataVerification.failed(VerificationFailure.STALE)
    try:
        issued_at = datetime.fromtimestamp(auth_date, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        # signed but outside the representable calendar; never a usable issue time
        return InitDataVerification.failed(VerificationFailure.STALE)

    identity = TelegramIdentity(
        id=user_data["id"],
        username=_optional_str(user_data.get("username")),
        first_name=_optional_str(user_data.get("first_name")),
        last_name=_optional_str(user_data.get("last_name")),
        language_code=_optional_str(user_data.get("language_code")),
        auth_date=issued_at,
    )
    return InitDataVerification(identity=identity)


def build_data_check_string(pairs: list[tuple[str, str]]) -> str:
    """Sort decoded pairs by key (codepoint order, stable) and join as key=value lines."""
    ordered = sorted(pairs, key=lambda pair: pair[0])
    return "\n".join(f"{key}={value}" for key, value in ordered)


def derive_signing_key(bot_token: str) -> bytes:
    return hmac.new(WEB_APP_DATA_KEY, bot_token.encode(), hashlib.sha256).digest()


def calculate_hash(data_check_string: str, bot_token: str) -> str:
    return hmac.new(
        derive_signing_key(bot_token),
        data_check_string.encode(),
        hashlib.sha256,
    ).hexdigest()


def _parse_user(raw: str) -> dict[str, object] | None:
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    user_id = data.get("id")
    # bool is an int subclass; a JSON true is not a user id
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        return None
    return data


def _parse_auth_date(pairs: list[tuple[str, str]]) -> int:
    raw = next((value for key, value in pairs if key == "auth_date"), "")
    try:
        return int(raw)
    except ValueError:
        return 0


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


__all__ = [
    "InitDataVerification",
    "VerificationFailure",
    "WEB_APP_DATA_KEY",
    "build_data_check_string",
    "calculate_hash",
    "derive_signing_key",
    "verify_init_data",
]
