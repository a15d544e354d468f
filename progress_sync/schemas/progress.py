"""Schemas for the progress handler's batched event ingestion."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# 9999-12-31T23:59:59Z in epoch milliseconds, the largest instant a datetime can hold
MAX_EVENT_TS_MS = 253_402_300_799_000

EventTimestamp = Annotated[
    float,
    Field(
        ge=0,
        le=MAX_EVENT_TS_MS,
        allow_inf_nan=False,
        description="Client timestamp in epoch milliseconds.",
    ),
]


class StatKind(StrEnum):
    CARDS = "cards"
    QUIZ = "quiz"
    CHEESE = "cheese"
    ACCENT = "accent"


class StatPayload(BaseModel):
    kind: StatKind


class StatEvent(BaseModel):
    """A single completed activity; increments the matching daily counter by one."""

    type: Literal["stat"]
    payload: StatPayload
    ts: EventTimestamp


class DailyStats(BaseModel):
    cards: int | None = None
    quiz: int | None = None
    cheese: int | None = None
    accent: int | None = None

    model_config = ConfigDict(extra="ignore")


class SyncPayload(BaseModel):
    stats: DailyStats | None = None


class SyncEvent(BaseModel):
    """Absolute snapshot of today's counters; the last one in a batch wins."""

    type: Literal["sync"]
    payload: SyncPayload
    ts: EventTimestamp


ProgressEvent = Annotated[Union[StatEvent, SyncEvent], Field(discriminator="type")]


class BatchRequest(BaseModel):
    """Body of ``POST /api/progress``."""

    init_data: str | None = Field(default=None, alias="initData")
    op: Literal["batch"]
    events: list[ProgressEvent] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BatchResponse(BaseModel):
    ok: bool = True
    saved: int


class PongResponse(BaseModel):
    ok: bool = True
    ping: Literal["pong"] = "pong"
