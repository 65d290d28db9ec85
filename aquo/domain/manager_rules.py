"""
===============================================================================
DOMAIN: Sector Manager Referential Rules
===============================================================================

Name:
    Site -> manager referential validator

Business Goal:
    Keep the link between a Site and its sector manager valid:
      - a site may only reference an existing user with role SECTOR_MANAGER
      - a manager cannot disappear (deletion) or lose the role (demotion)
        while sites still reference it, unless the sites are reassigned

Why (Context):
    - The remote store does not cascade: deleting a manager would leave
      orphan sites. Blocking locally keeps the cache and the store consistent
      and the user gets an actionable message (which sites block it).

-------------------------------------------------------------------------------
CRC CARD (Functions-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Responsibilities:
    - check_sector_manager: UNKNOWN_MANAGER / WRONG_ROLE
    - check_manager_deletion: MANAGER_IN_USE unless a valid reassignment
    - check_role_change: MANAGER_IN_USE on demotion of an active manager

Collaborators:
    - domain.entities: User, Site, UserRole
    - domain.violations: RuleViolation, ViolationCode
===============================================================================
"""

from __future__ import annotations

from typing import Iterable

from .entities import Site, User, UserRole
from .violations import RuleViolation, ViolationCode


def find_user(user_id: str, users: Iterable[User]) -> User | None:
    for user in users:
        if user.id == user_id:
            return user
    return None


def sites_managed_by(user_id: str, sites: Iterable[Site]) -> list[Site]:
    return [site for site in sites if site.sector_manager_id == user_id]


def check_sector_manager(
    sector_manager_id: str, users: Iterable[User]
) -> RuleViolation | None:
    """
    Confirms that ``sector_manager_id`` names an existing SECTOR_MANAGER.

    Returns None when the reference is valid.
    """
    user = find_user(sector_manager_id, users)
    if user is None:
        return RuleViolation(
            ViolationCode.UNKNOWN_MANAGER,
            "The selected sector manager does not exist.",
            field="sectorManagerId",
            details={"sector_manager_id": sector_manager_id},
        )
    if user.role != UserRole.SECTOR_MANAGER:
        return RuleViolation(
            ViolationCode.WRONG_ROLE,
            "The selected user is not a sector manager.",
            field="sectorManagerId",
            details={"sector_manager_id": sector_manager_id, "role": user.role.value},
        )
    return None


def check_manager_deletion(
    user_id: str,
    sites: Iterable[Site],
    users: Iterable[User],
    *,
    reassign_to: str | None = None,
) -> RuleViolation | None:
    """
    Decides whether ``user_id`` can be deleted.

    Rules:
      - No site references the user -> allowed.
      - Sites reference it and no reassignment -> MANAGER_IN_USE (never cascades).
      - Reassignment given -> the target must be a valid sector manager and
        not the user being deleted.
    """
    blocking = sites_managed_by(user_id, sites)
    if not blocking:
        return None

    if reassign_to is None:
        return _manager_in_use(user_id, blocking)

    if reassign_to == user_id:
        return RuleViolation(
            ViolationCode.WRONG_ROLE,
            "Sites cannot be reassigned to the user being deleted.",
            field="reassignTo",
            details={"sector_manager_id": reassign_to},
        )
    return check_sector_manager(reassign_to, users)


def check_role_change(
    user: User, new_role: UserRole, sites: Iterable[Site]
) -> RuleViolation | None:
    """A sector manager still referenced by sites cannot be demoted."""
    if user.role != UserRole.SECTOR_MANAGER or new_role == UserRole.SECTOR_MANAGER:
        return None

    blocking = sites_managed_by(user.id, sites)
    if blocking:
        return _manager_in_use(user.id, blocking)
    return None


def _manager_in_use(user_id: str, blocking: list[Site]) -> RuleViolation:
    names = ", ".join(site.name for site in blocking)
    return RuleViolation(
        ViolationCode.MANAGER_IN_USE,
        f"This user manages {len(blocking)} site(s) ({names}); "
        "reassign them before continuing.",
        details={"user_id": user_id, "site_ids": [site.id for site in blocking]},
    )
