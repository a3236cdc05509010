"""Tests for the authorization decision engine."""

from __future__ import annotations

from datetime import timedelta

import pytest

from opsgate_authz.core.errors import InfrastructureError
from opsgate_authz.features.access.dashboards import DashboardAccessIndex
from opsgate_authz.features.authz.engine import AuthorizationEngine
from opsgate_authz.features.authz.schemas import DecisionReason, PermissionQuery
from opsgate_authz.features.identity.schemas import CallerIdentity
from opsgate_db.models import (
    AccessPointGroup,
    AccountStatus,
    ActionType,
    DashboardType,
    PrimaryRole,
)
from tests.utils import grant_access_point, grant_dashboard, make_account


@pytest.fixture()
def engine_(session, settings, clock) -> AuthorizationEngine:
    return AuthorizationEngine(session=session, settings=settings, clock=clock)


def _order_agent(session, *, status: AccountStatus = AccountStatus.ACTIVE, **fields):
    account = make_account(session, status=status, **fields)
    grant_dashboard(session, account.id, DashboardType.ORDER)
    grant_access_point(
        session,
        account.id,
        DashboardType.ORDER,
        AccessPointGroup.ORDER_CANCEL_ASSIGN,
        [ActionType.CANCEL],
    )
    return account


def test_allowed_action_and_denied_action(session, engine_) -> None:
    account = _order_agent(session)

    allowed = engine_.decide(account, DashboardType.ORDER, ActionType.CANCEL, "order", {})
    denied = engine_.decide(account, DashboardType.ORDER, ActionType.REFUND, "order", {})

    assert allowed.allowed is True
    assert allowed.reason == DecisionReason.ACCESS_POINT_MATCH
    assert allowed.access_point_group == AccessPointGroup.ORDER_CANCEL_ASSIGN
    assert denied.allowed is False
    assert denied.reason == DecisionReason.NO_MATCHING_ACCESS_POINT


def test_context_scoped_ticket_grants(session, engine_) -> None:
    account = make_account(session)
    grant_dashboard(session, account.id, DashboardType.TICKET)
    grant_access_point(
        session,
        account.id,
        DashboardType.TICKET,
        AccessPointGroup.TICKET_RIDER,
        [ActionType.VIEW],
        context={"ticket_category": "RIDER"},
    )
    grant_access_point(
        session,
        account.id,
        DashboardType.TICKET,
        AccessPointGroup.TICKET_MERCHANT,
        [ActionType.VIEW],
        context={"ticket_category": "MERCHANT"},
    )

    assert engine_.can_perform(
        account, DashboardType.TICKET, ActionType.VIEW, context={"ticket_category": "RIDER"}
    )
    assert not engine_.can_perform(
        account, DashboardType.TICKET, ActionType.VIEW, context={"ticket_category": "CUSTOMER"}
    )
    assert not engine_.can_perform(account, DashboardType.TICKET, ActionType.VIEW)


@pytest.mark.parametrize(
    "status",
    [
        AccountStatus.PENDING_ACTIVATION,
        AccountStatus.SUSPENDED,
        AccountStatus.DISABLED,
        AccountStatus.LOCKED,
    ],
)
def test_non_active_accounts_are_denied(session, engine_, status) -> None:
    account = _order_agent(session, status=status, status_reason="x")

    decision = engine_.decide(account, DashboardType.ORDER, ActionType.CANCEL)

    assert decision.allowed is False
    assert decision.reason == DecisionReason.ACCOUNT_UNUSABLE


def test_lock_denies_active_account(session, engine_, clock) -> None:
    account = _order_agent(session, account_locked_until=clock.now + timedelta(minutes=1))

    assert not engine_.can_perform(account, DashboardType.ORDER, ActionType.CANCEL)


def test_super_admin_allowed_everywhere(session, engine_) -> None:
    admin = make_account(session, role=PrimaryRole.SUPER_ADMIN)

    for dashboard in DashboardType:
        for action in ActionType:
            decision = engine_.decide(admin, dashboard, action)
            assert decision.allowed, (dashboard, action)
            assert decision.reason == DecisionReason.SUPER_ADMIN


def test_disabled_super_admin_is_denied(session, engine_) -> None:
    admin = make_account(session, role=PrimaryRole.SUPER_ADMIN, status=AccountStatus.DISABLED)

    assert not engine_.can_perform(admin, DashboardType.SYSTEM, ActionType.VIEW)
    assert engine_.is_super_admin(admin) is False


def test_unknown_caller_is_denied(engine_) -> None:
    decision = engine_.decide(
        CallerIdentity(email="stranger@example.test"), DashboardType.ORDER, ActionType.VIEW
    )

    assert decision.allowed is False
    assert decision.reason == DecisionReason.ACCOUNT_NOT_FOUND
    assert decision.account_id is None


def test_access_point_without_dashboard_grant_is_denied(session, engine_) -> None:
    account = make_account(session)
    grant_access_point(
        session,
        account.id,
        DashboardType.RIDER,
        AccessPointGroup.RIDER_VIEW,
        [ActionType.VIEW],
    )

    decision = engine_.decide(account, DashboardType.RIDER, ActionType.VIEW)

    assert decision.reason == DecisionReason.NO_DASHBOARD_ACCESS


def test_inactive_dashboard_grant_is_denied(session, engine_) -> None:
    account = make_account(session)
    grant_dashboard(session, account.id, DashboardType.RIDER, is_active=False)
    grant_access_point(
        session,
        account.id,
        DashboardType.RIDER,
        AccessPointGroup.RIDER_VIEW,
        [ActionType.VIEW],
    )

    assert not engine_.can_perform(account, DashboardType.RIDER, ActionType.VIEW)


def test_resolves_caller_by_email(session, engine_) -> None:
    _order_agent(session, email="Night.Shift@Example.test")

    identity = CallerIdentity(email="night.shift@example.test")

    assert engine_.can_perform(identity, "ORDER", "CANCEL")


def test_expired_suspension_is_reconciled_before_deciding(session, engine_, clock) -> None:
    account = _order_agent(
        session,
        status=AccountStatus.SUSPENDED,
        status_reason="cool-off",
        suspension_expires_at=clock.now - timedelta(seconds=1),
    )

    assert engine_.can_perform(account, DashboardType.ORDER, ActionType.CANCEL)
    assert account.status == AccountStatus.ACTIVE


def test_storage_failure_resolves_to_deny(session, engine_, monkeypatch) -> None:
    account = _order_agent(session)

    def _boom(self, account_id, dashboard_type):
        raise InfrastructureError("database unavailable")

    monkeypatch.setattr(DashboardAccessIndex, "has_access", _boom)

    decision = engine_.decide(account, DashboardType.ORDER, ActionType.CANCEL)

    assert decision.allowed is False
    assert decision.reason == DecisionReason.ERROR
    assert decision.account_id == account.id


def test_unexpected_error_resolves_to_deny(session, engine_, monkeypatch) -> None:
    account = _order_agent(session)

    def _boom(self, account_id, dashboard_type):
        raise RuntimeError("bug")

    monkeypatch.setattr(DashboardAccessIndex, "has_access", _boom)

    assert engine_.can_perform(account, DashboardType.ORDER, ActionType.CANCEL) is False
    assert engine_.has_dashboard_access(account, DashboardType.ORDER) is False


def test_unknown_dashboard_value_is_denied(session, engine_) -> None:
    account = _order_agent(session)

    decision = engine_.decide(account, "WAREHOUSE", ActionType.VIEW)

    assert decision.reason == DecisionReason.ERROR


def test_permission_query_payload(session, engine_) -> None:
    account = _order_agent(session)
    query = PermissionQuery.model_validate(
        {"dashboardType": "ORDER", "actionType": "CANCEL", "resourceType": "ride"}
    )

    assert engine_.can_perform_query(account, query) is True


def test_list_access(session, engine_) -> None:
    account = make_account(session)
    grant_dashboard(session, account.id, DashboardType.RIDER)
    grant_dashboard(session, account.id, DashboardType.MERCHANT)
    grant_dashboard(session, account.id, DashboardType.OFFER, is_active=False)
    admin = make_account(session, role=PrimaryRole.SUPER_ADMIN)
    suspended = make_account(session, status=AccountStatus.SUSPENDED)
    grant_dashboard(session, suspended.id, DashboardType.RIDER)

    assert engine_.list_access(account) == {DashboardType.RIDER, DashboardType.MERCHANT}
    assert engine_.list_access(admin) == set(DashboardType)
    assert engine_.list_access(suspended) == set()


def test_access_summary(session, engine_) -> None:
    account = _order_agent(session)

    summary = engine_.access_summary(account)

    assert summary is not None
    assert summary.account_id == account.id
    assert summary.is_super_admin is False
    assert [d.dashboard_type for d in summary.dashboards] == ["ORDER"]
    assert [p.access_point_group for p in summary.access_points] == ["ORDER_CANCEL_ASSIGN"]
    assert summary.access_points[0].allowed_actions == ["CANCEL"]


def test_decision_is_truthy_when_allowed(session, engine_) -> None:
    account = _order_agent(session)

    assert engine_.decide(account, DashboardType.ORDER, ActionType.CANCEL)
    assert not engine_.decide(account, DashboardType.ORDER, ActionType.DELETE)
