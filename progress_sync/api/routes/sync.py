"""
State sync handler.

``GET|POST /api/sync?action=ping|pull|push``. The credential travels in the
``x-telegram-init-data`` header; ``ping`` needs none.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ValidationError

from progress_sync.api.cors import preflight_response
from progress_sync.api.dependencies import (
    INIT_DATA_HEADER,
    authenticate_init_data,
    get_runtime_config,
    get_sync_service,
)
from progress_sync.api.routes.body import read_json_object
from progress_sync.core.config import RuntimeConfig, Settings, get_settings
from progress_sync.core.errors import MalformedInputError, MethodNotAllowedError
from progress_sync.schemas.sync import PingResponse, PullResponse, PushResponse, PushStateRequest
from progress_sync.services.sync import SyncService

router = APIRouter(tags=["sync"])


@router.options("/sync", include_in_schema=False)
async def sync_preflight(settings: Settings = Depends(get_settings)) -> Response:  # noqa: B008
    return preflight_response(settings)


@router.api_route("/sync", methods=["GET", "POST"], response_model=None)
async def sync(
    request: Request,
    action: str | None = None,
    config: RuntimeConfig = Depends(get_runtime_config),  # noqa: B008
    service: SyncService = Depends(get_sync_service),  # noqa: B008
) -> BaseModel:
    """
    Dispatch on ``action``.

    **Errors:**
    - 500 CONFIGURATION_ERROR: bot token or store credentials are missing
    - 401 AUTH_FAILED: initData failed verification (``reason`` holds the tag)
    - 405 METHOD_NOT_ALLOWED: push over anything but POST
    - 400 INVALID_INPUT: unknown action or malformed push body
    - 500 DOWNSTREAM_ERROR: the store call failed
    """

    if action == "ping":
        return PingResponse()

    identity = authenticate_init_data(request.headers.get(INIT_DATA_HEADER), config)

    if action == "pull":
        state = await service.pull(identity)
        return PullResponse.model_validate(state.model_dump())

    if action == "push":
        if request.method != "POST":
            raise MethodNotAllowedError("POST only")
        body = await read_json_object(request)
        try:
            incoming = PushStateRequest.model_validate(body)
        except ValidationError as exc:
            raise MalformedInputError("Invalid state payload") from exc
        saved = await service.push(identity, incoming)
        return PushResponse(saved=saved)

    raise MalformedInputError("Unknown action")


__all__ = ["router"]
