"""opsgate authorization settings (conventional Pydantic v2)."""

from __future__ import annotations

import json
from datetime import timedelta

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from opsgate_common.settings import (
    DatabaseSettingsMixin,
    create_settings_accessors,
    normalize_log_format,
    normalize_log_level,
    opsgate_settings_config,
)
from opsgate_db.models import DashboardType

# ---- Defaults ---------------------------------------------------------------

DEFAULT_SUPER_ADMIN_ONLY_DASHBOARDS: list[DashboardType] = [DashboardType.PAYMENT]


# ---- Settings ---------------------------------------------------------------


class Settings(DatabaseSettingsMixin, BaseSettings):
    """Authorization engine settings loaded from OPSGATE_* environment variables."""

    model_config = opsgate_settings_config(enable_decoding=False, populate_by_name=True)

    # Logging
    log_format: str = "console"
    log_level: str = "INFO"
    database_log_level: str | None = None

    # Login lockout
    failed_login_lock_threshold: int = Field(5, ge=1)
    failed_login_lock_duration: timedelta = Field(default=timedelta(hours=1))

    # Reconciler
    reconcile_interval_seconds: float = Field(60, gt=0)
    reconcile_batch_size: int = Field(500, ge=1)

    # Pages
    super_admin_only_dashboards: list[DashboardType] = Field(
        default_factory=lambda: list(DEFAULT_SUPER_ADMIN_ONLY_DASHBOARDS)
    )

    # ---- Validators ----

    @field_validator("super_admin_only_dashboards", mode="before")
    @classmethod
    def _parse_dashboard_list(cls, value: object) -> object:
        if value is None:
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(item).strip().upper() for item in parsed]
            return [item.strip().upper() for item in raw.split(",") if item.strip()]
        if isinstance(value, tuple):
            return list(value)
        return value

    @field_validator("failed_login_lock_duration")
    @classmethod
    def _require_positive_duration(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("OPSGATE_FAILED_LOGIN_LOCK_DURATION must be positive.")
        return value

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.log_format = normalize_log_format(self.log_format, env_var="OPSGATE_LOG_FORMAT")

        normalized_log_level = normalize_log_level(self.log_level, env_var="OPSGATE_LOG_LEVEL")
        if normalized_log_level is None:
            raise ValueError("OPSGATE_LOG_LEVEL must not be empty.")
        self.log_level = normalized_log_level

        self.database_log_level = normalize_log_level(
            self.database_log_level,
            env_var="OPSGATE_DATABASE_LOG_LEVEL",
        )
        return self


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = [
    "DEFAULT_SUPER_ADMIN_ONLY_DASHBOARDS",
    "Settings",
    "get_settings",
    "reload_settings",
]
