"""Decision engine: compose identity, status and grants into allow/deny.

Steps, in order:

1. resolve the caller to an account (not found: deny),
2. require a usable account (suspended, disabled, locked or pending: deny),
3. allow super admins,
4. require an active dashboard grant,
5. allow on the first active access-point grant whose actions include the
   requested action and whose context constraints hold,
6. otherwise deny.

Every failure resolves to deny; :meth:`AuthorizationEngine.can_perform`
never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.common.time import Clock, utc_now
from opsgate_authz.core.errors import OpsgateError
from opsgate_authz.features.access.access_points import AccessPointIndex
from opsgate_authz.features.access.dashboards import DashboardAccessIndex
from opsgate_authz.features.access.schemas import (
    AccessPointOut,
    AccessSummary,
    DashboardAccessOut,
)
from opsgate_authz.features.accounts.status import AccountStatusService
from opsgate_authz.features.identity.resolver import IdentityResolver
from opsgate_authz.features.identity.schemas import CallerIdentity
from opsgate_authz.settings import Settings, get_settings
from opsgate_db.models import Account, ActionType, DashboardType, PrimaryRole

from .schemas import AuthorizationDecision, DecisionReason, PermissionQuery

logger = logging.getLogger(__name__)

Identity = CallerIdentity | Account


class AuthorizationEngine:
    """Stateless permission checks over the account and grant stores."""

    def __init__(
        self,
        *,
        session: Session,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._resolver = IdentityResolver(session=session)
        self._status = AccountStatusService(
            session=session,
            settings=settings or get_settings(),
            clock=clock,
        )
        self._dashboards = DashboardAccessIndex(session=session)
        self._access_points = AccessPointIndex(session=session)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def decide(
        self,
        identity: Identity,
        dashboard_type: DashboardType | str,
        action_type: ActionType | str,
        resource_type: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> AuthorizationDecision:
        account_id = None
        try:
            dashboard_type = DashboardType(dashboard_type)
            action_type = ActionType(action_type)

            account = self._load(identity)
            if account is None:
                return self._deny(DecisionReason.ACCOUNT_NOT_FOUND, dashboard_type, action_type)
            account_id = account.id
            if not self._status.is_usable(account):
                return self._deny(
                    DecisionReason.ACCOUNT_UNUSABLE, dashboard_type, action_type, account
                )

            if account.primary_role == PrimaryRole.SUPER_ADMIN:
                return self._allow(
                    DecisionReason.SUPER_ADMIN, account, dashboard_type, action_type
                )

            if not self._dashboards.has_access(account.id, dashboard_type):
                return self._deny(
                    DecisionReason.NO_DASHBOARD_ACCESS, dashboard_type, action_type, account
                )

            grant = self._access_points.first_match(
                account.id, dashboard_type, action_type, context
            )
            if grant is not None:
                return self._allow(
                    DecisionReason.ACCESS_POINT_MATCH,
                    account,
                    dashboard_type,
                    action_type,
                    grant=grant.access_point_group,
                    resource_type=resource_type,
                )
            return self._deny(
                DecisionReason.NO_MATCHING_ACCESS_POINT, dashboard_type, action_type, account
            )
        except OpsgateError as exc:
            logger.warning(
                "authz.decision.error",
                extra=log_context(
                    account_id=account_id,
                    dashboard_type=dashboard_type,
                    action_type=action_type,
                    error_type=exc.error_type,
                    retryable=exc.retryable,
                ),
                exc_info=True,
            )
        except Exception:
            logger.exception(
                "authz.decision.error",
                extra=log_context(
                    account_id=account_id,
                    dashboard_type=dashboard_type,
                    action_type=action_type,
                ),
            )
        return AuthorizationDecision(
            allowed=False,
            reason=DecisionReason.ERROR,
            account_id=account_id,
        )

    def can_perform(
        self,
        identity: Identity,
        dashboard_type: DashboardType | str,
        action_type: ActionType | str,
        resource_type: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self.decide(identity, dashboard_type, action_type, resource_type, context).allowed

    def can_perform_query(self, identity: Identity, query: PermissionQuery) -> bool:
        return self.can_perform(
            identity,
            query.dashboard_type,
            query.action_type,
            query.resource_type,
            query.context,
        )

    # ------------------------------------------------------------------
    # Navigation helpers
    # ------------------------------------------------------------------

    def is_super_admin(self, identity: Identity) -> bool:
        try:
            account = self._usable_account(identity)
        except Exception:
            logger.exception("authz.super_admin.error")
            return False
        return account is not None and account.primary_role == PrimaryRole.SUPER_ADMIN

    def has_dashboard_access(self, identity: Identity, dashboard_type: DashboardType | str) -> bool:
        """Dashboard-level gate (steps 1 to 4), used for page visibility."""
        try:
            dashboard_type = DashboardType(dashboard_type)
            account = self._usable_account(identity)
            if account is None:
                return False
            if account.primary_role == PrimaryRole.SUPER_ADMIN:
                return True
            return self._dashboards.has_access(account.id, dashboard_type)
        except Exception:
            logger.exception(
                "authz.dashboard_access.error",
                extra=log_context(dashboard_type=dashboard_type),
            )
            return False

    def list_access(self, identity: Identity) -> set[DashboardType]:
        """Dashboards the caller may see; every dashboard for super admins."""
        try:
            account = self._usable_account(identity)
            if account is None:
                return set()
            if account.primary_role == PrimaryRole.SUPER_ADMIN:
                return set(DashboardType)
            return self._dashboards.list_access(account.id)
        except Exception:
            logger.exception("authz.list_access.error")
            return set()

    def access_summary(self, identity: Identity) -> AccessSummary | None:
        """Active grants for navigation payloads; ``None`` for unusable callers."""
        try:
            account = self._usable_account(identity)
            if account is None:
                return None
            dashboards = self._dashboards.list_grants(account.id)
            points = [
                point
                for grant in dashboards
                for point in self._access_points.list_access_points(
                    account.id, grant.dashboard_type
                )
            ]
        except Exception:
            logger.exception("authz.access_summary.error")
            return None
        return AccessSummary(
            account_id=account.id,
            is_super_admin=account.primary_role == PrimaryRole.SUPER_ADMIN,
            dashboards=[DashboardAccessOut.model_validate(grant) for grant in dashboards],
            access_points=[AccessPointOut.model_validate(point) for point in points],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, identity: Identity) -> Account | None:
        if isinstance(identity, Account):
            return identity
        return self._resolver.resolve_identity(identity)

    def _usable_account(self, identity: Identity) -> Account | None:
        account = self._load(identity)
        if account is None or not self._status.is_usable(account):
            return None
        return account

    def _allow(
        self,
        reason: DecisionReason,
        account: Account,
        dashboard_type: DashboardType,
        action_type: ActionType,
        *,
        grant: Any = None,
        resource_type: str | None = None,
    ) -> AuthorizationDecision:
        logger.debug(
            "authz.decision.allow",
            extra=log_context(
                account_id=account.id,
                dashboard_type=dashboard_type,
                action_type=action_type,
                reason=reason,
                access_point_group=grant,
                resource_type=resource_type,
            ),
        )
        return AuthorizationDecision(
            allowed=True,
            reason=reason,
            account_id=account.id,
            access_point_group=grant,
        )

    def _deny(
        self,
        reason: DecisionReason,
        dashboard_type: DashboardType,
        action_type: ActionType,
        account: Account | None = None,
    ) -> AuthorizationDecision:
        account_id = account.id if account is not None else None
        logger.debug(
            "authz.decision.deny",
            extra=log_context(
                account_id=account_id,
                dashboard_type=dashboard_type,
                action_type=action_type,
                reason=reason,
            ),
        )
        return AuthorizationDecision(allowed=False, reason=reason, account_id=account_id)


__all__ = ["AuthorizationEngine", "Identity"]
