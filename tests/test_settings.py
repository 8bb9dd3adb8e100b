"""Tests for agent settings."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from torus_agent.core.settings import AgentSettings, get_settings

ENV_PREFIX = "AGENT_"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults() -> None:
    settings = AgentSettings(token_secret="s", _env_file=None)  # type: ignore[call-arg]

    assert settings.port == 3000
    assert settings.jwt_algorithm == "HS256"
    assert settings.auth_path == "/auth"
    assert settings.auth_header_name == "Authorization"
    assert settings.auth_origin is None
    assert settings.ss58_format == 42
    assert settings.docs_enabled is True
    assert settings.docs_path == "/docs"
    assert settings.log_level == "info"


def test_token_secret_is_required() -> None:
    with pytest.raises(ValidationError):
        AgentSettings(_env_file=None)  # type: ignore[call-arg]
    with pytest.raises(ValidationError):
        AgentSettings(token_secret="", _env_file=None)  # type: ignore[call-arg]


def test_environment_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AGENT_TOKEN_SECRET", "from-env")
    monkeypatch.setenv("AGENT_PORT", "8080")
    monkeypatch.setenv("AGENT_AUTH_PATH", "login/")
    monkeypatch.setenv("AGENT_DOCS_ENABLED", "false")
    monkeypatch.setenv("AGENT_CORS_ORIGINS", '["https://wallet.example"]')
    monkeypatch.setenv("AGENT_LOG_LEVEL", "DEBUG")

    settings = get_settings()

    assert settings.token_secret == "from-env"
    assert settings.port == 8080
    assert settings.auth_path == "/login"
    assert settings.docs_enabled is False
    assert settings.cors_origins == ["https://wallet.example"]
    assert settings.log_level == "debug"
    assert get_settings() is settings


def test_settings_are_frozen() -> None:
    settings = AgentSettings(token_secret="s", _env_file=None)  # type: ignore[call-arg]
    with pytest.raises(ValidationError):
        settings.port = 1  # type: ignore[misc]


@pytest.mark.parametrize(
    "overrides",
    [
        {"log_level": "verbose"},
        {"ss58_format": 16384},
        {"ss58_format": -1},
    ],
)
def test_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        AgentSettings(token_secret="s", _env_file=None, **overrides)  # type: ignore[arg-type]
