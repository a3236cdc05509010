"""Grant administration: upsert, revoke and sync of dashboard and access-point grants."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.common.time import Clock, utc_now
from opsgate_authz.core.catalog import parse_actions, resolve_access_point
from opsgate_authz.core.errors import InfrastructureError
from opsgate_db.models import (
    AccessLevel,
    AccessPointGrant,
    AccessPointGroup,
    ActionType,
    DashboardAccessGrant,
    DashboardType,
)

from .repository import AccessRepository
from .schemas import AccessSyncRequest

logger = logging.getLogger(__name__)

SYNC_REVOKE_REASON = "Replaced by access sync"


class AccessGrantService:
    """Write side of the dashboard and access-point indexes.

    Grants are upserted on their natural keys and revoked by deactivation so
    history stays on the row.
    """

    def __init__(self, *, session: Session, clock: Clock = utc_now) -> None:
        self._session = session
        self._clock = clock
        self._repo = AccessRepository(session)

    def grant_dashboard(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
        *,
        access_level: AccessLevel | str = AccessLevel.FULL_ACCESS,
        granted_by_id: UUID | None = None,
    ) -> DashboardAccessGrant:
        dashboard_type = DashboardType(dashboard_type)
        access_level = AccessLevel(access_level)
        now = self._clock()
        try:
            grant = self._repo.get_dashboard_grant(account_id, dashboard_type)
            if grant is None:
                grant = DashboardAccessGrant(
                    account_id=account_id,
                    dashboard_type=dashboard_type,
                    access_level=access_level,
                    is_active=True,
                    granted_by_id=granted_by_id,
                    granted_at=now,
                )
                self._repo.add(grant)
            else:
                if not grant.is_active:
                    grant.granted_by_id = granted_by_id
                    grant.granted_at = now
                grant.access_level = access_level
                grant.is_active = True
                grant.revoked_at = None
                grant.revoked_by_id = None
                grant.revoke_reason = None
            self._session.flush()
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to grant dashboard access.") from exc

        logger.info(
            "access.dashboard.grant",
            extra=log_context(
                account_id=account_id,
                actor_id=granted_by_id,
                dashboard_type=dashboard_type,
                access_level=access_level,
            ),
        )
        return grant

    def revoke_dashboard(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
        *,
        revoked_by_id: UUID | None = None,
        reason: str | None = None,
    ) -> bool:
        """Deactivate the dashboard grant and every access point under it."""
        dashboard_type = DashboardType(dashboard_type)
        try:
            grant = self._repo.get_dashboard_grant(account_id, dashboard_type)
            if grant is None or not grant.is_active:
                return False
            self._deactivate(grant, revoked_by_id=revoked_by_id, reason=reason)
            for point in self._repo.list_access_point_grants(account_id, dashboard_type):
                self._deactivate(point, revoked_by_id=revoked_by_id, reason=reason)
            self._session.flush()
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to revoke dashboard access.") from exc

        logger.info(
            "access.dashboard.revoke",
            extra=log_context(
                account_id=account_id,
                actor_id=revoked_by_id,
                dashboard_type=dashboard_type,
            ),
        )
        return True

    def grant_access_point(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
        group: AccessPointGroup | str,
        *,
        allowed_actions: Iterable[ActionType | str] | None = None,
        context: Mapping[str, Any] | None = None,
        granted_by_id: UUID | None = None,
    ) -> AccessPointGrant:
        """Upsert one access point; the group must belong to the dashboard."""
        definition = resolve_access_point(dashboard_type, group)
        dashboard_type = DashboardType(dashboard_type)
        if allowed_actions is None:
            actions = definition.allowed_actions
        else:
            actions = parse_actions(allowed_actions)
        action_values = [action.value for action in actions]
        now = self._clock()
        try:
            grant = self._repo.get_access_point_grant(account_id, dashboard_type, definition.group)
            if grant is None:
                grant = AccessPointGrant(
                    account_id=account_id,
                    dashboard_type=dashboard_type,
                    access_point_group=definition.group,
                    access_point_name=definition.label,
                    access_point_description=definition.description,
                    allowed_actions=action_values,
                    context=dict(context or {}),
                    is_active=True,
                    granted_by_id=granted_by_id,
                    granted_at=now,
                )
                self._repo.add(grant)
            else:
                if not grant.is_active:
                    grant.granted_by_id = granted_by_id
                    grant.granted_at = now
                grant.access_point_name = definition.label
                grant.access_point_description = definition.description
                grant.allowed_actions = action_values
                if context is not None:
                    grant.context = dict(context)
                grant.is_active = True
                grant.revoked_at = None
                grant.revoked_by_id = None
                grant.revoke_reason = None
            self._session.flush()
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to grant access point.") from exc

        logger.info(
            "access.access_point.grant",
            extra=log_context(
                account_id=account_id,
                actor_id=granted_by_id,
                dashboard_type=dashboard_type,
                access_point_group=definition.group,
                allowed_actions=",".join(action_values),
            ),
        )
        return grant

    def revoke_access_point(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
        group: AccessPointGroup | str,
        *,
        revoked_by_id: UUID | None = None,
        reason: str | None = None,
    ) -> bool:
        dashboard_type = DashboardType(dashboard_type)
        group = AccessPointGroup(group)
        try:
            grant = self._repo.get_access_point_grant(account_id, dashboard_type, group)
            if grant is None or not grant.is_active:
                return False
            self._deactivate(grant, revoked_by_id=revoked_by_id, reason=reason)
            self._session.flush()
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to revoke access point.") from exc
        logger.info(
            "access.access_point.revoke",
            extra=log_context(
                account_id=account_id,
                actor_id=revoked_by_id,
                dashboard_type=dashboard_type,
                access_point_group=group,
            ),
        )
        return True

    def sync_access(
        self,
        account_id: UUID,
        payload: AccessSyncRequest,
        *,
        actor_id: UUID | None = None,
    ) -> None:
        """Make the account's active grants equal ``payload``.

        Grants absent from the payload are deactivated; present ones are
        upserted. Existing access-point context is kept when the payload
        leaves it empty.
        """
        wanted_dashboards = {DashboardType(item.dashboard_type) for item in payload.dashboards}
        wanted_points = {
            (DashboardType(item.dashboard_type), AccessPointGroup(item.access_point_group))
            for item in payload.access_points
        }
        # Validate every access point before touching any row.
        for dashboard_type, group in wanted_points:
            resolve_access_point(dashboard_type, group)

        try:
            existing_dashboards = self._repo.list_dashboard_grants(account_id)
            existing_points = self._repo.list_access_point_grants(account_id)
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to load current access.") from exc

        for grant in existing_dashboards:
            if grant.dashboard_type not in wanted_dashboards:
                self._deactivate(grant, revoked_by_id=actor_id, reason=SYNC_REVOKE_REASON)
        for point in existing_points:
            if (point.dashboard_type, point.access_point_group) not in wanted_points:
                self._deactivate(point, revoked_by_id=actor_id, reason=SYNC_REVOKE_REASON)

        for item in payload.dashboards:
            self.grant_dashboard(
                account_id,
                item.dashboard_type,
                access_level=item.access_level,
                granted_by_id=actor_id,
            )
        for item in payload.access_points:
            self.grant_access_point(
                account_id,
                item.dashboard_type,
                item.access_point_group,
                allowed_actions=item.allowed_actions,
                context=item.context or None,
                granted_by_id=actor_id,
            )

        logger.info(
            "access.sync.success",
            extra=log_context(
                account_id=account_id,
                actor_id=actor_id,
                dashboards=len(wanted_dashboards),
                access_points=len(wanted_points),
            ),
        )

    def _deactivate(
        self,
        grant: DashboardAccessGrant | AccessPointGrant,
        *,
        revoked_by_id: UUID | None,
        reason: str | None,
    ) -> None:
        grant.is_active = False
        grant.revoked_at = self._clock()
        grant.revoked_by_id = revoked_by_id
        grant.revoke_reason = reason


__all__ = ["SYNC_REVOKE_REASON", "AccessGrantService"]
