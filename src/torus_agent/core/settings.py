"""Agent settings and fixed protocol constants.

Settings are loaded from environment variables (see the aliases below) and
optionally from an `.env` file. Fields may also be passed by name, which is
how tests and embedding applications configure an agent explicitly.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Final

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Lifetime of a bearer session issued by the auth route.
SESSION_TTL: Final[timedelta] = timedelta(hours=24)
# Maximum age of a signed challenge at verification time.
NONCE_WINDOW: Final[timedelta] = timedelta(minutes=10)
# Minimum spacing between two sweeps of the nonce guard.
NONCE_GC_INTERVAL: Final[timedelta] = timedelta(hours=1)
# Tolerated drift for challenges stamped slightly in the future.
CLOCK_SKEW: Final[timedelta] = timedelta(seconds=60)


def _normalize_path(value: str) -> str:
    cleaned = "/" + "/".join(part for part in value.strip().split("/") if part)
    return cleaned


class AgentSettings(BaseSettings):
    """Runtime configuration of an agent.

    Only `token_secret` is required. Rotating it invalidates every session
    token issued so far; there is no revocation list.
    """

    # Identity of the agent itself
    address: str = Field(default="", alias="AGENT_ADDRESS")
    host: str = Field(default="0.0.0.0", alias="AGENT_HOST")
    port: int = Field(default=3000, alias="AGENT_PORT")

    # Authentication
    token_secret: str = Field(alias="AGENT_TOKEN_SECRET", min_length=1)
    jwt_algorithm: str = Field(default="HS256", alias="AGENT_JWT_ALGORITHM")
    auth_path: str = Field(default="/auth", alias="AGENT_AUTH_PATH")
    auth_header_name: str = Field(default="Authorization", alias="AGENT_AUTH_HEADER_NAME")
    auth_origin: str | None = Field(default=None, alias="AGENT_AUTH_ORIGIN")
    ss58_format: int = Field(default=42, ge=0, le=16383, alias="AGENT_SS58_FORMAT")

    # Documentation
    docs_enabled: bool = Field(default=True, alias="AGENT_DOCS_ENABLED")
    docs_path: str = Field(default="/docs", alias="AGENT_DOCS_PATH")
    docs_title: str = Field(default="Agent API", alias="AGENT_DOCS_TITLE")
    docs_version: str = Field(default="0.1.0", alias="AGENT_DOCS_VERSION")

    # CORS configuration for browser wallets
    cors_origins: list[str] = Field(default=["*"], alias="AGENT_CORS_ORIGINS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="AGENT_CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="AGENT_CORS_ALLOW_HEADERS")

    log_level: str = Field(default="info", alias="AGENT_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    @field_validator("auth_path", "docs_path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        """Store mount paths with exactly one leading slash."""
        return _normalize_path(value)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in {"critical", "error", "warning", "info", "debug"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache
def get_settings() -> AgentSettings:
    """Return settings loaded from the environment, cached per process."""
    return AgentSettings()  # type: ignore[call-arg]
