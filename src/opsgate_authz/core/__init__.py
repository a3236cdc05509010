"""Catalog, errors and static definitions shared across features."""

from .catalog import DASHBOARD_BY_TYPE, DASHBOARDS, get_dashboard, resolve_access_point
from .errors import (
    AccessCatalogError,
    AccountNotFoundError,
    IllegalTransitionError,
    InfrastructureError,
    InvalidConstraintError,
    OpsgateError,
    PermissionDeniedError,
    SelfModificationError,
)
from .types import AccessPointDef, DashboardDef

__all__ = [
    "DASHBOARDS",
    "DASHBOARD_BY_TYPE",
    "AccessCatalogError",
    "AccessPointDef",
    "AccountNotFoundError",
    "DashboardDef",
    "IllegalTransitionError",
    "InfrastructureError",
    "InvalidConstraintError",
    "OpsgateError",
    "PermissionDeniedError",
    "SelfModificationError",
    "get_dashboard",
    "resolve_access_point",
]
