"""Shared database schema + migrations for opsgate."""

from .base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    metadata,
    utc_now,
)
from .settings import Settings, get_settings, reload_settings
from .types import GUID, UTCDateTime

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "GUID",
    "UTCDateTime",
    "UUIDPrimaryKeyMixin",
    "TimestampMixin",
    "utc_now",
    "Settings",
    "get_settings",
    "reload_settings",
]
