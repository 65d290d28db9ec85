"""
===============================================================================
USE CASE: Site Administration (list / create / update / delete)
===============================================================================

Name:
    SiteAdministration

Business Goal:
    Let operators administer water-distribution sites while keeping the
    local list consistent with the remote store and every site linked to a
    valid sector manager.

Order of checks (every operation):
    1) Role gate (access_policy.may_attempt): a denied role issues zero
       network calls.
    2) Payload rules (site_rules): numeric and geographic ranges.
    3) Load what the remaining checks need (sites / users caches).
    4) Scoped authorization (a sector manager only edits its own sites and
       cannot hand them over).
    5) Referential rules (manager_rules): the manager exists and has the
       SECTOR_MANAGER role.
    6) Mutate through the synchronizer (in-flight guard + reconcile).

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    SiteAdministration

Responsibilities:
    - Run the checks above and return OperationOutcome (never raises).
    - Publish every outcome to FlashMessages.

Collaborators:
    - ResourceSynchronizer[Site] / ResourceSynchronizer[User]
    - SiteStore (remote store port)
    - domain: site_rules, manager_rules, access_policy
    - FlashMessages
===============================================================================
"""

from __future__ import annotations

from typing import Any

from ...crosscutting.exceptions import RemoteStoreError
from ...crosscutting.logger import logger
from ...domain.access_policy import (
    Action,
    Actor,
    authorize,
    can_reassign_site,
    may_attempt,
)
from ...domain.entities import Site, User
from ...domain.manager_rules import check_sector_manager
from ...domain.repositories import SiteStore
from ...domain.site_rules import validate_site_payload, validate_site_update
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


class SiteAdministration:
    """Use cases over the site list (one instance per UI session)."""

    def __init__(
        self,
        store: SiteStore,
        sites: ResourceSynchronizer[Site],
        users: ResourceSynchronizer[User],
        *,
        flash: FlashMessages | None = None,
    ) -> None:
        self._store = store
        self._sites = sites
        self._users = users
        self._flash = flash or FlashMessages()

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def sites(self) -> tuple[Site, ...]:
        return self._sites.snapshot()

    @property
    def is_stale(self) -> bool:
        return self._sites.cache.is_stale

    def is_pending(self, site_id: str) -> bool:
        return self._sites.is_pending(site_id)

    async def refresh(self) -> OperationOutcome[tuple[Site, ...]]:
        outcome = await self._sites.refresh()
        if not outcome.ok:
            self._flash.publish(outcome)
        return outcome

    async def get_site(self, site_id: str) -> OperationOutcome[Site]:
        """Single-site read; does not touch the cached list."""
        try:
            site = await self._store.get_site(site_id)
        except RemoteStoreError as exc:
            return self._publish(OperationOutcome.failure(error_from_exception(exc)))
        return OperationOutcome.success(site)

    # =========================================================================
    # Commands
    # =========================================================================

    async def submit_create(
        self, actor: Actor | None, raw: Any
    ) -> OperationOutcome[Site]:
        if not may_attempt(actor, Action.CREATE_SITE):
            return self._publish(denied(Action.CREATE_SITE))

        payload, violation = validate_site_payload(raw)
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        users = await self._users.ensure_loaded()
        if not users.ok:
            return self._publish(OperationOutcome.failure(users.error))

        violation = check_sector_manager(payload.sector_manager_id, users.value)
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        outcome = await self._sites.mutate(
            "create",
            creation_key(payload.name),
            lambda: self._store.create_site(payload),
            success_message="Site created successfully.",
        )
        return self._publish(outcome)

    async def submit_update(
        self, actor: Actor | None, site_id: str, raw: Any
    ) -> OperationOutcome[Site]:
        if not may_attempt(actor, Action.UPDATE_SITE):
            return self._publish(denied(Action.UPDATE_SITE))

        current = await self._find_site(site_id)
        if isinstance(current, OperationOutcome):
            return self._publish(current)

        # Scoped check needs the site, loaded above from the cache.
        violation = authorize(actor, Action.UPDATE_SITE, site=current)
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        payload, violation = validate_site_update(current, raw)
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        if not can_reassign_site(actor, current, payload.sector_manager_id):
            return self._publish(
                denied(
                    Action.UPDATE_SITE,
                    "Only an administrator can assign a site to another manager.",
                )
            )

        users = await self._users.ensure_loaded()
        if not users.ok:
            return self._publish(OperationOutcome.failure(users.error))

        violation = check_sector_manager(payload.sector_manager_id, users.value)
        if violation is not None:
            return self._publish(OperationOutcome.from_violation(violation))

        outcome = await self._sites.mutate(
            "update",
            site_id,
            lambda: self._store.update_site(site_id, payload),
            success_message="Site updated successfully.",
        )
        return self._publish(outcome)

    async def delete(
        self, actor: Actor | None, request: ConfirmedDeletion
    ) -> OperationOutcome[None]:
        if not may_attempt(actor, Action.DELETE_SITE):
            return self._publish(denied(Action.DELETE_SITE))
        if not request.confirmed:
            return self._publish(confirmation_required(request.resource_id))

        site_id = request.resource_id
        outcome = await self._sites.mutate(
            "delete",
            site_id,
            lambda: self._store.delete_site(site_id),
            success_message="Site deleted successfully.",
        )
        return self._publish(outcome)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _find_site(self, site_id: str) -> Site | OperationOutcome:
        loaded = await self._sites.ensure_loaded()
        if not loaded.ok:
            return OperationOutcome.failure(loaded.error)
        for site in loaded.value:
            if site.id == site_id:
                return site
        logger.info("site not in local list", extra={"site_id": site_id})
        return not_found("site", site_id)

    def _publish(self, outcome: OperationOutcome) -> OperationOutcome:
        self._flash.publish(outcome)
        return outcome
