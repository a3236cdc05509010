"""Alembic environment for the opsgate schema.

``opsgate_db.migrations_runner.alembic_config`` hands over the resolved
settings in ``config.attributes``; a bare ``alembic`` invocation falls back to
``sqlalchemy.url`` or the ``OPSGATE_DATABASE_URL`` environment.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context

import opsgate_db.models  # noqa: F401  (populates Base.metadata)
from opsgate_common.settings import DatabaseSettingsMixin
from opsgate_db.base import Base
from opsgate_db.engine import build_engine
from opsgate_db.settings import DatabaseSettings, Settings, database_backend

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _resolve_settings() -> DatabaseSettings:
    provided = config.attributes.get("settings")
    if isinstance(provided, DatabaseSettingsMixin):
        return provided
    override_url = config.get_main_option("sqlalchemy.url")
    if override_url:
        return Settings(_env_file=None, database_url=override_url.replace("%%", "%"))
    return Settings()


def _configure(settings: DatabaseSettings, **kwargs) -> None:
    # Account and grant enums are VARCHAR columns, so a widened enum is a type change.
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=database_backend(settings) == "sqlite",
        **kwargs,
    )


def run_migrations_offline() -> None:
    settings = _resolve_settings()
    _configure(
        settings,
        url=str(settings.database_url),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    settings = _resolve_settings()
    engine = build_engine(settings)
    try:
        with engine.connect() as connection:
            _configure(settings, connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
