"""JSON body parsing that maps malformed input to 400 instead of FastAPI's 422."""

from __future__ import annotations

import json
from typing import Any

from fastapi import Request

from progress_sync.core.errors import MalformedInputError


async def read_json_object(request: Request) -> dict[str, Any]:
    """Return the body as a JSON object; an empty body counts as ``{}``."""

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise MalformedInputError("Invalid JSON") from exc
    if not isinstance(payload, dict):
        raise MalformedInputError("JSON body must be an object")
    return payload
