"""Schemas for the state sync handler (pull/push of the whole user state)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class UserState(BaseModel):
    """User state row as stored in ``user_state`` and read through ``user_state_v``."""

    tg_id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    pairs: list[Any] = Field(default_factory=list)
    known: list[Any] = Field(default_factory=list)
    counters: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("pairs", "known", "counters", mode="before")
    @classmethod
    def _null_is_empty(cls, value: object, info: ValidationInfo) -> object:
        if value is None:
            return {} if info.field_name == "counters" else []
        return value

    @classmethod
    def empty(cls, tg_id: int) -> "UserState":
        """State returned for an identity that has never pushed anything."""
        return cls(tg_id=tg_id)


class PushStateRequest(BaseModel):
    """Body of ``POST /api/sync?action=push``."""

    pairs: list[Any] = Field(default_factory=list)
    known: list[Any] = Field(default_factory=list)
    counters: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("pairs", "known", "counters", mode="before")
    @classmethod
    def _null_is_empty(cls, value: object, info: ValidationInfo) -> object:
        if value is None:
            return {} if info.field_name == "counters" else []
        return value


class PullResponse(UserState):
    ok: bool = True


class PushResponse(BaseModel):
    ok: bool = True
    saved: dict[str, Any]


class PingResponse(BaseModel):
    ok: bool = True
