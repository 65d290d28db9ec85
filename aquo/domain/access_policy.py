"""
Name: Administration Access Policy

Responsibilities:
  - Decide which (role, action) pairs are allowed on users and sites
  - Scope sector managers to the sites they manage
  - Produce a FORBIDDEN violation before any network call is issued
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Mapping

from .entities import Site, User, UserRole
from .violations import RuleViolation, ViolationCode


class Action(str, Enum):
    """R: Operations guarded by the policy."""

    CREATE_USER = "create-user"
    UPDATE_USER = "update-user"
    DELETE_USER = "delete-user"
    RESET_PASSWORD = "reset-password"
    CREATE_SITE = "create-site"
    UPDATE_SITE = "update-site"
    DELETE_SITE = "delete-site"
    READ = "read"


@dataclass(frozen=True)
class Actor:
    """R: Who is performing the action (taken from the session)."""

    user_id: str | None
    role: UserRole | None

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role)


# R: Decision table. Actions missing for a role are denied.
#    SCOPED means "allowed only on resources the actor manages".
_ALLOW: Final[str] = "allow"
_SCOPED: Final[str] = "scoped"

_DECISIONS: Final[Mapping[UserRole, Mapping[Action, str]]] = {
    UserRole.ADMIN: {action: _ALLOW for action in Action},
    UserRole.SECTOR_MANAGER: {
        Action.READ: _ALLOW,
        Action.UPDATE_SITE: _SCOPED,
    },
    UserRole.USER: {Action.READ: _ALLOW},
    UserRole.TECHNICIAN: {Action.READ: _ALLOW},
}


def _is_manager_of(site: Site | None, actor: Actor) -> bool:
    return (
        site is not None
        and actor.user_id is not None
        and site.sector_manager_id == actor.user_id
    )


def can_perform(
    actor: Actor | None, action: Action, *, site: Site | None = None
) -> bool:
    """R: Pure (role, action[, site]) -> bool decision."""
    if actor is None or actor.role is None:
        return False

    decision = _DECISIONS.get(actor.role, {}).get(action)
    if decision == _ALLOW:
        return True
    if decision == _SCOPED:
        return _is_manager_of(site, actor)
    return False


def may_attempt(actor: Actor | None, action: Action) -> bool:
    """
    R: Role-level gate, decidable without loading any resource.

    True when the role is allowed the action on at least some resource;
    scoped actions still need can_perform() with the target site.
    """
    if actor is None or actor.role is None:
        return False
    return _DECISIONS.get(actor.role, {}).get(action) in (_ALLOW, _SCOPED)


def can_reassign_site(actor: Actor | None, site: Site, new_manager_id: str) -> bool:
    """
    R: Only ADMIN may move a site to another manager; a sector manager
    editing its own site must keep itself as manager.
    """
    if actor is None or actor.role is None:
        return False
    if actor.role == UserRole.ADMIN:
        return True
    return new_manager_id == site.sector_manager_id


def can_change_role(actor: Actor | None, target: User) -> bool:
    """R: Only ADMIN may change another user's role (never its own)."""
    if actor is None or actor.role != UserRole.ADMIN:
        return False
    return actor.user_id != target.id


def authorize(
    actor: Actor | None, action: Action, *, site: Site | None = None
) -> RuleViolation | None:
    """R: can_perform() as a violation (None when allowed)."""
    if can_perform(actor, action, site=site):
        return None
    return forbidden(action)


def forbidden(action: Action, message: str | None = None) -> RuleViolation:
    return RuleViolation(
        ViolationCode.FORBIDDEN,
        message or "You are not allowed to perform this action.",
        details={"action": action.value},
    )
