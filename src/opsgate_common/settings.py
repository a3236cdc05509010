"""Shared settings helpers and mixins for opsgate services."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from typing import Protocol, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .paths import REPO_ROOT

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})
DEFAULT_DATABASE_URL = "sqlite:///./opsgate.sqlite"

T = TypeVar("T")


def opsgate_settings_config(
    *,
    enable_decoding: bool = True,
    populate_by_name: bool = False,
) -> SettingsConfigDict:
    """Return the standard opsgate ``BaseSettings`` config dict."""

    return SettingsConfigDict(
        env_file=str(REPO_ROOT / ".env"),
        env_file_encoding="utf-8",
        env_prefix="OPSGATE_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        enable_decoding=enable_decoding,
        populate_by_name=populate_by_name,
        str_strip_whitespace=True,
    )


def create_settings_accessors(
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Create ``get_settings`` and ``reload_settings`` helpers for a settings class."""

    @lru_cache(maxsize=1)
    def _build() -> T:
        return settings_type()

    def get_settings() -> T:
        return _build()

    def reload_settings() -> T:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


def normalize_log_format(value: str, *, env_var: str = "OPSGATE_LOG_FORMAT") -> str:
    normalized = value.strip().lower()
    if normalized not in ALLOWED_LOG_FORMATS:
        allowed = ", ".join(sorted(ALLOWED_LOG_FORMATS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


def normalize_log_level(value: str | None, *, env_var: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


class DatabaseSettingsMixin:
    """Shared database settings used by the engine, the CLI, and migrations."""

    database_url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy URL.")
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)
    database_pool_recycle: int = Field(1800, ge=0)
    database_connect_timeout_seconds: int | None = Field(default=10, ge=0)
    database_statement_timeout_ms: int | None = Field(default=30_000, ge=0)

    @field_validator("database_url", mode="before")
    @classmethod
    def _require_database_url(cls, value: object) -> object:
        if value is None:
            return DEFAULT_DATABASE_URL
        if isinstance(value, str) and not value.strip():
            raise ValueError("OPSGATE_DATABASE_URL must not be blank.")
        return value


class DatabaseSettingsProtocol(Protocol):
    """Structural type for database settings consumed across package boundaries."""

    database_url: str
    database_echo: bool
    database_pool_size: int
    database_max_overflow: int
    database_pool_timeout: int
    database_pool_recycle: int
    database_connect_timeout_seconds: int | None
    database_statement_timeout_ms: int | None


__all__ = [
    "ALLOWED_LOG_FORMATS",
    "ALLOWED_LOG_LEVELS",
    "DEFAULT_DATABASE_URL",
    "DatabaseSettingsMixin",
    "DatabaseSettingsProtocol",
    "create_settings_accessors",
    "normalize_log_format",
    "normalize_log_level",
    "opsgate_settings_config",
]
