"""Central exports for opsgate SQLAlchemy models."""

from .access import (
    AccessLevel,
    AccessPointGrant,
    AccessPointGroup,
    ActionType,
    DashboardAccessGrant,
    DashboardType,
)
from .account import Account, AccountStatus, PrimaryRole, canonicalise_email, normalise_email

__all__ = [
    "AccessLevel",
    "AccessPointGrant",
    "AccessPointGroup",
    "Account",
    "AccountStatus",
    "ActionType",
    "DashboardAccessGrant",
    "DashboardType",
    "PrimaryRole",
    "canonicalise_email",
    "normalise_email",
]
