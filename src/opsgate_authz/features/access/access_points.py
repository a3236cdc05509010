"""Fine-grained access-point grants and context constraint matching."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsgate_authz.core.errors import InfrastructureError
from opsgate_db.models import AccessPointGrant, AccessPointGroup, ActionType, DashboardType

from .repository import AccessRepository


def context_matches(
    grant_context: Mapping[str, Any] | None,
    query_context: Mapping[str, Any] | None,
) -> bool:
    """Subset-constraint match.

    Every key the grant constrains must be present in the query with an equal
    value. Keys the grant does not mention are unconstrained, so an empty
    grant context matches any query.
    """
    if not grant_context:
        return True
    query = query_context or {}
    for key, required in grant_context.items():
        if key not in query or query[key] != required:
            return False
    return True


def grant_allows(
    grant: AccessPointGrant,
    action_type: ActionType | str,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """Whether one active grant satisfies ``(action_type, context)``.

    An empty ``allowed_actions`` list is inert and never matches.
    """
    if not grant.is_active or not grant.allowed_actions:
        return False
    action = ActionType(action_type).value
    if action not in grant.allowed_actions:
        return False
    return context_matches(grant.context, context)


class AccessPointIndex:
    """Read-only view over active ``dashboard_access_points`` rows."""

    def __init__(self, *, session: Session) -> None:
        self._repo = AccessRepository(session)

    def list_access_points(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
    ) -> list[AccessPointGrant]:
        try:
            return self._repo.list_access_point_grants(account_id, DashboardType(dashboard_type))
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to list access points.") from exc

    def has_access_point(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
        group: AccessPointGroup | str,
    ) -> bool:
        group = AccessPointGroup(group)
        return any(
            grant.access_point_group == group and grant.allowed_actions
            for grant in self.list_access_points(account_id, dashboard_type)
        )

    def first_match(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | str,
        action_type: ActionType | str,
        context: Mapping[str, Any] | None = None,
    ) -> AccessPointGrant | None:
        for grant in self.list_access_points(account_id, dashboard_type):
            if grant_allows(grant, action_type, context):
                return grant
        return None


__all__ = ["AccessPointIndex", "context_matches", "grant_allows"]
