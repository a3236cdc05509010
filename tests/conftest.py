"""Shared pytest fixtures for opsgate tests."""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from opsgate_authz.settings import Settings, reload_settings
from opsgate_db import Base
from opsgate_db import models as _models  # noqa: F401 - register tables
from opsgate_db.engine import build_engine, build_session_factory

FROZEN_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FrozenClock:
    """Injectable clock that only moves when a test advances it."""

    def __init__(self, now: datetime = FROZEN_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ambient OPSGATE_* variables out of the cached settings."""

    for name in list(os.environ):
        if name.startswith("OPSGATE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPSGATE_DATABASE_URL", "sqlite:///:memory:")
    reload_settings()
    yield
    reload_settings()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        failed_login_lock_threshold=5,
        failed_login_lock_duration=timedelta(hours=1),
    )


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def engine(settings: Settings) -> Iterator[Engine]:
    engine = build_engine(settings)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    with session_factory() as session:
        yield session
        session.rollback()
