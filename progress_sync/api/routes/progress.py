"""
Progress event handler.

``GET /api/progress`` is a liveness probe. ``POST /api/progress`` accepts
``{"initData": "...", "op": "batch", "events": [...]}``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from progress_sync.api.cors import preflight_response
from progress_sync.api.dependencies import (
    get_progress_service,
    get_runtime_config,
    resolve_batch_identity,
)
from progress_sync.api.routes.body import read_json_object
from progress_sync.core.config import RuntimeConfig, Settings, get_settings
from progress_sync.core.errors import MalformedInputError
from progress_sync.schemas.progress import BatchRequest, BatchResponse, PongResponse
from progress_sync.services.progress import ProgressService

router = APIRouter(tags=["progress"])


@router.options("/progress", include_in_schema=False)
async def progress_preflight(settings: Settings = Depends(get_settings)) -> Response:  # noqa: B008
    return preflight_response(settings)


@router.get("/progress", response_model=PongResponse)
async def progress_ping() -> PongResponse:
    return PongResponse()


@router.post("/progress", response_model=BatchResponse)
async def apply_batch(
    request: Request,
    settings: Settings = Depends(get_settings),  # noqa: B008
    config: RuntimeConfig = Depends(get_runtime_config),  # noqa: B008
    service: ProgressService = Depends(get_progress_service),  # noqa: B008
) -> BatchResponse:
    body = await read_json_object(request)
    identity = resolve_batch_identity(body.get("initData"), request.headers, config, settings)

    try:
        batch = BatchRequest.model_validate(body)
    except ValidationError as exc:
        raise MalformedInputError("Invalid op") from exc

    await service.ensure_user(identity.id)
    saved = await service.apply_events(identity.id, batch.events)
    return BatchResponse(saved=saved)


__all__ = ["router"]
