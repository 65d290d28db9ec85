"""
===============================================================================
CRC CARD - aquo/container.py (Composition Root / manual DI)
===============================================================================

Responsibilities:
  - Wire one administration console per UI session: session, remote store
    client, caches, synchronizers, use cases and flash messages.
  - Centralize runtime decisions based on Settings (config).

Collaborators:
  - aquo.crosscutting.config.get_settings
  - aquo.infrastructure.remote_store.RemoteStoreClient
  - aquo.application.* (synchronizer, session, flash messages, use cases)

Notes:
  - No business logic here.
  - Nothing is a module-level singleton except Settings: two consoles never
    share a token or a cache.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from .application.flash_messages import FlashMessages
from .application.session import SessionContext
from .application.synchronizer import ResourceSynchronizer
from .application.usecases import SiteAdministration, UserAdministration
from .crosscutting.config import Settings, get_settings
from .crosscutting.logger import logger
from .domain.access_policy import Actor
from .domain.entities import Site, User
from .infrastructure.remote_store import RemoteStoreClient


@dataclass
class AdminConsole:
    """Everything one UI session talks to."""

    session: SessionContext
    store: RemoteStoreClient
    flash: FlashMessages
    users_sync: ResourceSynchronizer[User]
    sites_sync: ResourceSynchronizer[Site]
    users: UserAdministration
    sites: SiteAdministration

    @property
    def actor(self) -> Actor | None:
        return self.session.actor

    def login(self, token: str, user: User | Actor | None = None) -> None:
        """Starts the session; cached lists of a previous user are dropped."""
        self._forget_lists()
        self.session.start(token, user)

    def logout(self) -> None:
        """Ends the session; late responses of pending fetches are ignored."""
        self.session.end()
        self._forget_lists()
        self.flash.dismiss()

    async def aclose(self) -> None:
        self.logout()
        await self.store.aclose()

    async def __aenter__(self) -> "AdminConsole":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _forget_lists(self) -> None:
        self.users_sync.cache.clear()
        self.sites_sync.cache.clear()


def build_console(
    session: SessionContext | None = None,
    *,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AdminConsole:
    """
    Builds an AdminConsole from Settings.

    ``transport`` lets tests plug an httpx.MockTransport.
    """
    settings = settings or get_settings()
    session = session or SessionContext()

    store = RemoteStoreClient(
        session,
        base_url=settings.api_base_url,
        timeout_s=settings.request_timeout_seconds,
        rate_limit_retries=settings.rate_limit_retry_attempts,
        rate_limit_delay_s=settings.rate_limit_retry_delay_seconds,
        transport=transport,
    )
    flash = FlashMessages(settings.flash_message_ttl_seconds)
    users_sync: ResourceSynchronizer[User] = ResourceSynchronizer(
        "users", store.list_users
    )
    sites_sync: ResourceSynchronizer[Site] = ResourceSynchronizer(
        "sites", store.list_sites
    )

    logger.info(
        "admin console ready",
        extra={"api_base_url": settings.api_base_url, "env": settings.app_env},
    )
    return AdminConsole(
        session=session,
        store=store,
        flash=flash,
        users_sync=users_sync,
        sites_sync=sites_sync,
        users=UserAdministration(
            store,
            store,
            users_sync,
            sites_sync,
            flash=flash,
            min_password_length=settings.min_password_length,
        ),
        sites=SiteAdministration(store, sites_sync, users_sync, flash=flash),
    )
