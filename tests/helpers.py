"""Shared helpers for tests."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode

import httpx
from pydantic_settings import PydanticBaseSettingsSource

from progress_sync.core.config import Settings

TEST_BOT_TOKEN = "999999:TEST_TOKEN"
TEST_STORE_URL = "https://store.test"
TEST_STORE_KEY = "service-role-key"

DEFAULT_USER: Dict[str, Any] = {
    "id": 123456,
    "first_name": "John",
    "last_name": "Doe",
    "username": "john_doe",
}


def sign_pairs(pairs: list[tuple[str, str]], bot_token: str) -> str:
    """Compute the WebApp hash over decoded pairs, independently of the app code."""

    data_check_string = "\n".join(f"{k}={v}" for k, v in sorted(pairs, key=lambda p: p[0]))
    secret_key = hmac.new(
        key="WebAppData".encode(),
        msg=bot_token.encode(),
        digestmod=hashlib.sha256,
    ).digest()
    return hmac.new(
        key=secret_key,
        msg=data_check_string.encode(),
        digestmod=hashlib.sha256,
    ).hexdigest()


def generate_init_data(
    bot_token: str = TEST_BOT_TOKEN,
    overrides: Optional[Dict[str, str]] = None,
    *,
    user: Optional[Dict[str, Any]] = None,
    auth_date: Optional[int] = None,
) -> str:
    """Create signed initData payload resembling Telegram WebApp data."""

    payload = {
        "query_id": "test-query",
        "user": json.dumps(user or DEFAULT_USER, separators=(",", ":")),
        "auth_date": str(int(time.time()) if auth_date is None else auth_date),
    }
    if overrides:
        payload.update(overrides)

    payload["hash"] = sign_pairs(list(payload.items()), bot_token)
    return urlencode(payload)


def replace_hash(init_data: str, new_hash: str) -> str:
    pairs = [(k, new_hash if k == "hash" else v) for k, v in parse_qsl(init_data)]
    return urlencode(pairs)


def drop_field(init_data: str, field: str) -> str:
    return urlencode([(k, v) for k, v in parse_qsl(init_data) if k != field])


class NoEnvSettings(Settings):
    """Helper subclass that ignores environment and .env files during validation."""

    model_config = Settings.model_config.copy()
    model_config["env_file"] = ()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[Settings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)


REQUIRED_SETTINGS: Dict[str, object] = {
    "APP_ENV": "test",
    "TELEGRAM_BOT_TOKEN": TEST_BOT_TOKEN,
    "SUPABASE_URL": TEST_STORE_URL,
    "SUPABASE_SERVICE_KEY": TEST_STORE_KEY,
}


def build_settings(**overrides: object) -> Settings:
    """Build Settings from explicit values; pass ``KEY=None`` to drop a required value."""

    data = {**REQUIRED_SETTINGS, **overrides}
    return NoEnvSettings.model_validate({k: v for k, v in data.items() if v is not None})


class FakeStore:
    """
    In-memory PostgREST stand-in served through ``httpx.MockTransport``.

    Supports the calls the app makes: select on ``user_state_v``, insert,
    upsert with ``on_conflict`` and the ``mnc_increment_progress`` RPC.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.transport = httpx.MockTransport(self._handle)

    def fail(self, method: str, name: str, status_code: int = 500, body: str = "boom") -> None:
        self.failures[(method, name)] = (status_code, body)

    def calls(self, method: str, name: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and _name(r) == name]

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        name = _name(request)
        failure = self.failures.get((request.method, name))
        if failure is not None:
            return httpx.Response(failure[0], text=failure[1])

        if request.method == "GET":
            return self._select(request, name)
        body = json.loads(request.content or b"null")
        if name.startswith("rpc/"):
            return self._rpc(name.removeprefix("rpc/"), body)
        on_conflict = request.url.params.get("on_conflict")
        if "merge-duplicates" in request.headers.get("Prefer", "") and on_conflict:
            return httpx.Response(201, json=self._upsert(name, body, on_conflict.split(",")))
        self.rows(name).extend(dict(row) for row in body)
        return httpx.Response(201, json=body)

    def _select(self, request: httpx.Request, name: str) -> httpx.Response:
        if name == "user_state_v":
            wanted = request.url.params.get("tg_id_s", "").removeprefix("eq.")
            found = [
                {**row, "tg_id_s": str(row["tg_id"])}
                for row in self.rows("user_state")
                if str(row["tg_id"]) == wanted
            ]
            return httpx.Response(200, json=found)
        return httpx.Response(200, json=list(self.rows(name)))

    def _upsert(
        self, table: str, rows: list[dict[str, Any]], keys: list[str]
    ) -> list[dict[str, Any]]:
        saved = []
        for row in rows:
            existing = _find(self.rows(table), {k: row[k] for k in keys})
            if existing is None:
                existing = dict(row)
                self.rows(table).append(existing)
            else:
                existing.update(row)
            saved.append(dict(existing))
        return saved

    def _rpc(self, function: str, params: dict[str, Any]) -> httpx.Response:
        if function != "mnc_increment_progress":
            return httpx.Response(404, json={"message": f"function {function} not found"})
        key = {"user_id": params["p_user_id"], "day": params["p_day"]}
        row = _find(self.rows("progress"), key)
        if row is None:
            row = {**key, "cards": 0, "quiz": 0, "cheese": 0, "accent": 0}
            self.rows("progress").append(row)
        for column in ("cards", "quiz", "cheese", "accent"):
            row[column] += params[f"p_{column}"]
        return httpx.Response(204)


def _name(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/rest/v1/")


def _find(rows: list[dict[str, Any]], key: dict[str, Any]) -> dict[str, Any] | None:
    return next((row for row in rows if all(row.get(k) == v for k, v in key.items())), None)

