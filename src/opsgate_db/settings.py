"""Database settings read by ``opsgate db`` and the Alembic environment."""

from __future__ import annotations

from pydantic_settings import BaseSettings
from sqlalchemy.engine import make_url

from opsgate_common.settings import (
    DatabaseSettingsMixin,
    DatabaseSettingsProtocol,
    create_settings_accessors,
    opsgate_settings_config,
)

DatabaseSettings = DatabaseSettingsProtocol


class Settings(DatabaseSettingsMixin, BaseSettings):
    """Only the ``OPSGATE_DATABASE_*`` keys; lockout and logging live in opsgate_authz."""

    model_config = opsgate_settings_config()


get_settings, reload_settings = create_settings_accessors(Settings)


def database_backend(settings: DatabaseSettings) -> str:
    """Return the SQLAlchemy backend name (``sqlite`` or ``postgresql``) for ``settings``."""
    return make_url(str(settings.database_url)).get_backend_name()


__all__ = [
    "DatabaseSettings",
    "Settings",
    "database_backend",
    "get_settings",
    "reload_settings",
]
