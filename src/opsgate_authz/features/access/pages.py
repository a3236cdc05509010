"""Dashboard page visibility: path mapping and the landing-page rule."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.common.time import Clock, utc_now
from opsgate_authz.features.authz.engine import AuthorizationEngine, Identity
from opsgate_authz.settings import Settings, get_settings
from opsgate_db.models import DashboardType

logger = logging.getLogger(__name__)

LANDING_PATH = "/dashboard"

PATH_DASHBOARDS: dict[str, DashboardType] = {
    "/dashboard/riders": DashboardType.RIDER,
    "/dashboard/merchants": DashboardType.MERCHANT,
    "/dashboard/customers": DashboardType.CUSTOMER,
    "/dashboard/orders": DashboardType.ORDER_FOOD,
    "/dashboard/orders/food": DashboardType.ORDER_FOOD,
    "/dashboard/orders/person-ride": DashboardType.ORDER_PERSON_RIDE,
    "/dashboard/orders/parcel": DashboardType.ORDER_PARCEL,
    "/dashboard/tickets": DashboardType.TICKET,
    "/dashboard/offers": DashboardType.OFFER,
    "/dashboard/area-managers": DashboardType.AREA_MANAGER,
    "/dashboard/payments": DashboardType.PAYMENT,
    "/dashboard/system": DashboardType.SYSTEM,
    "/dashboard/analytics": DashboardType.ANALYTICS,
    "/dashboard/super-admin": DashboardType.SYSTEM,
}

# Longest prefix first so nested order paths win over "/dashboard/orders".
_PREFIXES = sorted(PATH_DASHBOARDS, key=len, reverse=True)


def _normalize_path(path: str) -> str:
    cleaned = path.split("?", 1)[0].split("#", 1)[0].strip()
    if len(cleaned) > 1:
        cleaned = cleaned.rstrip("/")
    return cleaned


def dashboard_for_path(path: str) -> DashboardType | None:
    """Map a page path to its dashboard; exact match first, then segment prefix."""
    normalized = _normalize_path(path)
    exact = PATH_DASHBOARDS.get(normalized)
    if exact is not None:
        return exact
    for prefix in _PREFIXES:
        if normalized.startswith(prefix + "/"):
            return PATH_DASHBOARDS[prefix]
    return None


class PageAccessService:
    """Decide whether a caller may open a dashboard page."""

    def __init__(
        self,
        *,
        session: Session,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings or get_settings()
        self._engine = AuthorizationEngine(session=session, settings=self._settings, clock=clock)

    def can_view_dashboard(self, identity: Identity, dashboard_type: DashboardType | str) -> bool:
        dashboard_type = DashboardType(dashboard_type)
        if self._engine.is_super_admin(identity):
            return True
        if dashboard_type in self._settings.super_admin_only_dashboards:
            logger.debug(
                "pages.denied.super_admin_only",
                extra=log_context(dashboard_type=dashboard_type),
            )
            return False
        return self._engine.has_dashboard_access(identity, dashboard_type)

    def can_view_path(self, identity: Identity, path: str) -> bool:
        """Landing page needs any dashboard; unknown paths are denied."""
        if _normalize_path(path) == LANDING_PATH:
            return bool(self._engine.list_access(identity))
        dashboard_type = dashboard_for_path(path)
        if dashboard_type is None:
            logger.debug("pages.denied.unknown_path", extra=log_context(path=path))
            return False
        return self.can_view_dashboard(identity, dashboard_type)


__all__ = ["LANDING_PATH", "PATH_DASHBOARDS", "PageAccessService", "dashboard_for_path"]
