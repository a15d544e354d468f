from __future__ import annotations

import pytest
from pydantic import ValidationError

from progress_sync.core.config import DEFAULT_INIT_DATA_MAX_AGE_SECONDS
from progress_sync.core.errors import ConfigurationError
from tests.helpers import (
    REQUIRED_SETTINGS,
    TEST_BOT_TOKEN,
    TEST_STORE_KEY,
    TEST_STORE_URL,
    NoEnvSettings,
    build_settings,
)


def test_settings_defaults() -> None:
    settings = build_settings()

    assert settings.allow_origin == "*"
    assert settings.init_data_max_age_seconds == DEFAULT_INIT_DATA_MAX_AGE_SECONDS == 604800
    assert settings.dev_identity_enabled is False
    assert settings.dev_identity_allowed is False


def test_require_runtime_returns_credentials() -> None:
    config = build_settings(SUPABASE_URL=f"{TEST_STORE_URL}/").require_runtime()

    assert config.bot_token == TEST_BOT_TOKEN
    assert config.store_url == TEST_STORE_URL
    assert config.store_key == TEST_STORE_KEY
    assert config.init_data_max_age_seconds == DEFAULT_INIT_DATA_MAX_AGE_SECONDS


@pytest.mark.parametrize(
    ("alias", "value", "attribute"),
    [
        ("BOT_TOKEN", "1:ALT", "telegram_bot_token"),
        ("SUPABASE_URL_PUBLIC", "https://alt.store", "supabase_url"),
        ("SUPABASE_SERVICE_ROLE", "alt-key", "supabase_service_key"),
    ],
)
def test_settings_accept_alternate_variable_names(alias: str, value: str, attribute: str) -> None:
    canonical = {
        "telegram_bot_token": "TELEGRAM_BOT_TOKEN",
        "supabase_url": "SUPABASE_URL",
        "supabase_service_key": "SUPABASE_SERVICE_KEY",
    }[attribute]
    payload = {k: v for k, v in REQUIRED_SETTINGS.items() if k != canonical}
    payload[alias] = value

    settings = NoEnvSettings.model_validate(payload)

    stored = getattr(settings, attribute)
    if hasattr(stored, "get_secret_value"):
        stored = stored.get_secret_value()
    assert stored == value


def test_require_runtime_lists_every_missing_variable() -> None:
    settings = build_settings(TELEGRAM_BOT_TOKEN=None, SUPABASE_SERVICE_KEY="   ")

    with pytest.raises(ConfigurationError) as exc:
        settings.require_runtime()

    assert exc.value.status_code == 500
    assert exc.value.code == "CONFIGURATION_ERROR"
    assert "SUPABASE_SERVICE_KEY" in exc.value.message
    assert "TELEGRAM_BOT_TOKEN" in exc.value.message
    assert "SUPABASE_URL" not in exc.value.message


def test_settings_boot_without_credentials() -> None:
    settings = build_settings(
        TELEGRAM_BOT_TOKEN=None,
        SUPABASE_URL=None,
        SUPABASE_SERVICE_KEY=None,
    )

    assert settings.missing_runtime_variables() == [
        "TELEGRAM_BOT_TOKEN",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
    ]


def test_secrets_are_not_rendered_in_repr() -> None:
    settings = build_settings()

    assert TEST_BOT_TOKEN not in repr(settings)
    assert TEST_STORE_KEY not in repr(settings)


def test_dev_identity_allowed_in_test_environment() -> None:
    settings = build_settings(DEV_IDENTITY_ENABLED=True)

    assert settings.dev_identity_allowed is True


@pytest.mark.parametrize("environment", ["staging", "production"])
def test_dev_identity_rejected_outside_local_and_test(environment: str) -> None:
    with pytest.raises(ValidationError) as exc:
        build_settings(APP_ENV=environment, DEV_IDENTITY_ENABLED=True)

    assert "DEV_IDENTITY_ENABLED" in str(exc.value)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("INIT_DATA_MAX_AGE_SECONDS", 0),
        ("INIT_DATA_MAX_AGE_SECONDS", -5),
        ("STORE_TIMEOUT_SECONDS", 0),
        ("MAX_REQUEST_BYTES", 0),
    ],
)
def test_settings_reject_non_positive_limits(field: str, value: int) -> None:
    with pytest.raises(ValidationError) as exc:
        build_settings(**{field: value})

    assert field in str(exc.value)


def test_custom_freshness_window_reaches_runtime_config() -> None:
    settings = build_settings(INIT_DATA_MAX_AGE_SECONDS=172800)

    assert settings.require_runtime().init_data_max_age_seconds == 172800


def test_blank_allow_origin_falls_back_to_wildcard() -> None:
    assert build_settings(ALLOW_ORIGIN="  ").allow_origin == "*"
    assert build_settings(ALLOW_ORIGIN="https://app.example").allow_origin == "https://app.example"


def test_require_runtime_rejects_missing_url_alone() -> None:
    settings = build_settings(SUPABASE_URL=" / ")

    with pytest.raises(ConfigurationError) as exc:
        settings.require_runtime()

    assert exc.value.message == "Missing required environment variables: SUPABASE_URL"
