"""Health check endpoint."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from progress_sync.core.config import Settings, get_settings
from progress_sync.core.version import APP_VERSION

router = APIRouter()


class HealthResponse(BaseModel):
    """Schema returned by the /health endpoint."""

    ok: bool
    status: Literal["healthy", "misconfigured"]
    timestamp: datetime
    checks: dict[str, str]
    version: str = Field(default=APP_VERSION)


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    tags=["health"],
)
async def health(settings: Settings = Depends(get_settings)) -> HealthResponse:  # noqa: B008
    """
    Report process liveness and whether request-time configuration is complete.

    Missing variable names are reported, never their values. The remote store
    is not probed.
    """

    missing = settings.missing_runtime_variables()
    checks = {"config": "ok" if not missing else "missing: " + ", ".join(missing)}
    return HealthResponse(
        ok=not missing,
        status="healthy" if not missing else "misconfigured",
        timestamp=datetime.now(tz=timezone.utc),
        checks=checks,
        version=APP_VERSION,
    )
