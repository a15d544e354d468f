"""Package version lookup for the health payload and the OpenAPI document."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Final

import tomllib

DISTRIBUTION_NAME: Final[str] = "miniapp-progress-sync"
_PYPROJECT: Final[Path] = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _resolve_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        pass

    # Source checkout without installed metadata
    if _PYPROJECT.exists():
        with _PYPROJECT.open("rb") as fp:
            project = tomllib.load(fp).get("project")
        if isinstance(project, dict) and isinstance(project.get("version"), str):
            return project["version"]
    return "0.0.0"


APP_VERSION: Final[str] = _resolve_version()

__all__ = ["APP_VERSION", "DISTRIBUTION_NAME"]
