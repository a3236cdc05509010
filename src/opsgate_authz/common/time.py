"""Clock helpers shared by time-dependent services."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from opsgate_db.base import utc_now

Clock = Callable[[], datetime]


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive input is assumed UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


__all__ = ["Clock", "ensure_utc", "utc_now"]
