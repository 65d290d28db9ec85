"""
Tests for the administration access policy (decision table + scoping).
"""

import pytest
from aquo.domain.access_policy import (
    Action,
    Actor,
    authorize,
    can_change_role,
    can_perform,
    can_reassign_site,
    may_attempt,
)
from aquo.domain.entities import UserRole
from aquo.domain.violations import ViolationCode

pytestmark = pytest.mark.unit


class TestDecisionTable:
    @pytest.mark.parametrize("action", list(Action))
    def test_admin_can_do_everything(self, admin_actor, site, action):
        assert can_perform(admin_actor, action, site=site)

    @pytest.mark.parametrize("role", [UserRole.USER, UserRole.TECHNICIAN])
    @pytest.mark.parametrize(
        "action", [a for a in Action if a is not Action.READ]
    )
    def test_read_only_roles(self, role, action, site):
        actor = Actor(user_id="x", role=role)
        assert not can_perform(actor, action, site=site)
        assert can_perform(actor, Action.READ)

    @pytest.mark.parametrize(
        "action",
        [
            Action.CREATE_SITE,
            Action.DELETE_SITE,
            Action.CREATE_USER,
            Action.UPDATE_USER,
            Action.DELETE_USER,
            Action.RESET_PASSWORD,
        ],
    )
    def test_sector_manager_denied(self, manager_actor, site, action):
        assert not can_perform(manager_actor, action, site=site)

    def test_missing_actor_or_role_is_denied(self):
        assert not can_perform(None, Action.READ)
        assert not can_perform(Actor(user_id="a", role=None), Action.READ)


class TestSectorManagerScope:
    def test_can_update_own_site(self, manager_actor, site):
        assert can_perform(manager_actor, Action.UPDATE_SITE, site=site)

    def test_cannot_update_other_site(self, manager_actor, other_site):
        assert not can_perform(manager_actor, Action.UPDATE_SITE, site=other_site)

    def test_scoped_action_without_site_is_denied(self, manager_actor):
        assert not can_perform(manager_actor, Action.UPDATE_SITE)

    def test_may_attempt_scoped_action(self, manager_actor):
        assert may_attempt(manager_actor, Action.UPDATE_SITE)
        assert not may_attempt(manager_actor, Action.DELETE_SITE)

    def test_cannot_hand_site_to_another_manager(self, manager_actor, site):
        assert can_reassign_site(manager_actor, site, site.sector_manager_id)
        assert not can_reassign_site(manager_actor, site, "mgr-2")

    def test_admin_can_reassign(self, admin_actor, site):
        assert can_reassign_site(admin_actor, site, "mgr-2")


class TestRoleChanges:
    def test_admin_changes_other_role(self, admin_actor, plain_user):
        assert can_change_role(admin_actor, plain_user)

    def test_admin_cannot_change_own_role(self, admin_actor, admin):
        assert not can_change_role(admin_actor, admin)

    def test_manager_cannot_change_roles(self, manager_actor, plain_user):
        assert not can_change_role(manager_actor, plain_user)


def test_authorize_returns_forbidden_violation(manager_actor):
    violation = authorize(manager_actor, Action.DELETE_SITE)

    assert violation.code == ViolationCode.FORBIDDEN
    assert violation.details == {"action": "delete-site"}


def test_authorize_allows(admin_actor):
    assert authorize(admin_actor, Action.CREATE_SITE) is None
