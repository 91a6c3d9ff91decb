"""
bosbase_sdk.tier0_core.config
──────────────────────────────
Typed client configuration with env layering. Reads from .env → environment
variables. Explicit constructor arguments on BosbaseClient always win over
these values.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bosbase_sdk import __version__


class BosbaseConfig(BaseSettings):
    """Client defaults. All env vars are prefixed with BOSBASE_."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Endpoint ──────────────────────────────────────────────────────────────
    base_url: str = Field(default="/", alias="BOSBASE_URL")
    lang: str = Field(default="en-US", alias="BOSBASE_LANG")
    timeout: float = Field(default=30.0, alias="BOSBASE_TIMEOUT")
    user_agent: str = Field(
        default=f"bosbase-python-sdk/{__version__}", alias="BOSBASE_USER_AGENT"
    )

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="WARNING", alias="BOSBASE_LOG_LEVEL")
    log_format: str = Field(default="json", alias="BOSBASE_LOG_FORMAT")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        return v or "/"

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout must be positive, got {v!r}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "console"}
        if v.lower() not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v.lower()


@lru_cache(maxsize=1)
def get_config() -> BosbaseConfig:
    """
    Return the cached client config.
    Call _reset_config() in tests to pick up new env vars.
    """
    return BosbaseConfig()


def _reset_config() -> None:
    """For tests: clear the config cache."""
    get_config.cache_clear()


__all__ = ["BosbaseConfig", "get_config"]
