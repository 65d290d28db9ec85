"""
===============================================================================
USE CASE: User Administration (list / create / update / delete / reset)
===============================================================================

Name:
    UserAdministration

Business Goal:
    Let administrators manage user accounts without breaking the site ->
    sector manager links held by the site list.

Why (Context):
    - The remote store does not cascade: a deleted or demoted manager would
      leave sites pointing at an invalid user. Deletion is blocked
      (MANAGER_IN_USE) unless the caller names a replacement manager, in
      which case every affected site is moved first.
    - Email uniqueness is checked against the cached list, so the users
      cache is loaded before validating (after the role gate).
    - Deletion and role changes refetch the site list before checking which
      sites the user manages; a failed refetch fails the operation.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    UserAdministration

Responsibilities:
    - Role gate before any network call.
    - User payload rules, role-change and deletion referential rules.
    - Orchestrate reassign-then-delete for managers.
    - Publish every outcome to FlashMessages.

Collaborators:
    - ResourceSynchronizer[User] / ResourceSynchronizer[Site]
    - UserStore, SiteStore (remote store ports)
    - domain: user_rules, manager_rules, access_policy, site_rules
===============================================================================
"""

from __future__ import annotations

from typing import Any

from ...crosscutting.config import get_settings
from ...crosscutting.exceptions import RemoteStoreError
from ...crosscutting.logger import logger
from ...domain.access_policy import Action, Actor, can_change_role, may_attempt
from ...domain.entities import Site, User
from ...domain.manager_rules import (
    check_manager_deletion,
    check_role_change,
    find_user,
    sites_managed_by,
)
from ...domain.repositories import SiteStore, UserStore
from ...domain.site_rules import validate_site_payload
from ...domain.user_rules import (
    validate_password_reset,
    validate_user_create,
    validate_user_update,
)
from ..flash_messages import FlashMessages
from ..results import OperationOutcome
from ..synchronizer import ResourceSynchronizer, error_from_exception
from .common import (
    ConfirmedDeletion,
    confirmation_required,
    creation_key,
    denied,
    not_found,
)


class UserAdministration:
    """Use cases over the user list (one instance per UI session)."""

    def __init__(
        self,
        store: UserStore,
        site_store: SiteStore,
        users: ResourceSynchronizer[User],
        sites: ResourceSynchronizer[Site],
        *,
        flash: FlashMessages | None = None,
        min_password_length: int | None = None,
    ) -> None:
        self._store = store
        self._site_store = site_store
        self._users = users
        self._sites = sites
        self._flash = flash or FlashMessages()
        self._min_password_length = (
            min_password_length
            if min_password_length is not None
            else get_settings().min_password_length
        )

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def users(self) -> tuple[User, ...]:
        return self._users.snapshot()

    @property
    def is_stale(self) -> bool:
        return self._users.cache.is_stale

    def is_pending(self, user_id: str) -> bool:
        return self._users.is_pending(user_id)

    async def refresh(self) -> OperationOutcome[tuple[User, ...]]:
        outcome = await self._users.refresh()
        if not outcome.ok:
            self._flash.publish(outcome)
        return outcome

    async def list_sector_managers(self) -> OperationOutcome[list[User]]:
        """Candidates for the site manager picker (does not touch the cache)."""
        try:
            managers = await self._store.list_sector_managers()
        except RemoteStoreError as exc:
            return self._publish(OperationOutcome.failure(error_from_exception(exc)))
        return OperationOutcome.success(managers)

    # =========================================================================
    # Commands
    # =========================================================================

    async def submit_create(
        self, actor: Actor | None, raw: Any
    ) -> OperationOutcome[User]:
        if not may_attempt(actor, Action.CREATE_USER):
            return self._publish(denied(Action.CREATE_USER))

        users = await self._users.ensure_loaded()
        if not users.ok:
            return self._publish(OperationOutcome.failure(users.error))

        payload, violation = validate_user_create(
            raw, users.value, min_password_length=self._min_password_length
        )
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        outcome = await self._users.mutate(
            "create",
            creation_key(payload.email),
            lambda: self._store.create_user(payload),
            success_message="User created successfully.",
        )
        return self._publish(outcome)

    async def submit_update(
        self, actor: Actor | None, user_id: str, raw: Any
    ) -> OperationOutcome[User]:
        if not may_attempt(actor, Action.UPDATE_USER):
            return self._publish(denied(Action.UPDATE_USER))

        users = await self._users.ensure_loaded()
        if not users.ok:
            return self._publish(OperationOutcome.failure(users.error))
        current = find_user(user_id, users.value)
        if current is None:
            return self._publish(not_found("user", user_id))

        payload, violation = validate_user_update(current, raw, users.value)
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        if payload.role is not None:
            if not can_change_role(actor, current):
                return self._publish(
                    denied(Action.UPDATE_USER, "You cannot change this user's role.")
                )
            sites = await self._sites.refresh()
            if not sites.ok:
                return self._publish(OperationOutcome.failure(sites.error))
            violation = check_role_change(current, payload.role, sites.value)
            if violation is not None:
                return self._publish(OperationOutcome.from_violation(violation))

        outcome = await self._users.mutate(
            "update",
            user_id,
            lambda: self._store.update_user(user_id, payload),
            success_message="User updated successfully.",
        )
        return self._publish(outcome)

    async def delete(
        self, actor: Actor | None, request: ConfirmedDeletion
    ) -> OperationOutcome[None]:
        """
        Deletes a user.

        A sector manager still referenced by sites is only deleted when
        ``request.reassign_to`` names another sector manager: the sites are
        moved first (stopping at the first failure, user kept), the site list
        is refreshed once, then the user is deleted.
        """
        if not may_attempt(actor, Action.DELETE_USER):
            return self._publish(denied(Action.DELETE_USER))
        if not request.confirmed:
            return self._publish(confirmation_required(request.resource_id))

        user_id = request.resource_id
        users = await self._users.ensure_loaded()
        if not users.ok:
            return self._publish(OperationOutcome.failure(users.error))
        # Managed sites come from a fresh list, never the cached one.
        sites = await self._sites.refresh()
        if not sites.ok:
            return self._publish(OperationOutcome.failure(sites.error))

        violation = check_manager_deletion(
            user_id, sites.value, users.value, reassign_to=request.reassign_to
        )
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        blocking = sites_managed_by(user_id, sites.value)
        if blocking:
            failed = await self._reassign_sites(blocking, request.reassign_to)
            if failed is not None:
                return self._publish(failed)

        outcome = await self._users.mutate(
            "delete",
            user_id,
            lambda: self._store.delete_user(user_id),
            success_message="User deleted successfully.",
        )
        return self._publish(outcome)

    async def reset_password(
        self, actor: Actor | None, user_id: str, raw: Any
    ) -> OperationOutcome[None]:
        if not may_attempt(actor, Action.RESET_PASSWORD):
            return self._publish(denied(Action.RESET_PASSWORD))

        payload, violation = validate_password_reset(
            raw, min_password_length=self._min_password_length
        )
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        # The list does not change: no refetch.
        outcome = await self._users.mutate(
            "reset-password",
            user_id,
            lambda: self._store.reset_password(user_id, payload),
            reconcile=False,
            success_message="Password reset successfully.",
        )
        return self._publish(outcome)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _reassign_sites(
        self, blocking: list[Site], new_manager_id: str
    ) -> OperationOutcome | None:
        """
        Moves every site to ``new_manager_id``.

        Returns the first failing outcome, or None when all sites moved.
        """
        for site in blocking:
            raw = site.to_payload()
            raw["sectorManagerId"] = new_manager_id
            payload, violation = validate_site_payload(raw)
            if violation is not None:
                await self._sites.refresh()
                return OperationOutcome.from_violation(violation)

            moved = await self._sites.mutate(
                "update",
                site.id,
                lambda site_id=site.id, body=payload: self._site_store.update_site(
                    site_id, body
                ),
                reconcile=False,
            )
            if not moved.ok:
                logger.warning(
                    "site reassignment failed; user kept",
                    extra={"site_id": site.id, "error_code": moved.error.code},
                )
                await self._sites.refresh()
                return moved

        refreshed = await self._sites.refresh()
        if not refreshed.ok:
            self._sites.cache.mark_stale()
        logger.info(
            "sites reassigned",
            extra={"count": len(blocking), "sector_manager_id": new_manager_id},
        )
        return None

    def _publish(self, outcome: OperationOutcome) -> OperationOutcome:
        self._flash.publish(outcome)
        return outcome
