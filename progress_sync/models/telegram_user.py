"""Telegram WebApp identity extracted from verified initData."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TelegramIdentity(BaseModel):
    """Verified Telegram user; lives for the duration of one request."""

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: Optional[str] = None
    auth_date: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)
