"""
CRC - domain/repositories.py

Name
- Remote Store Interfaces (Protocols)

Responsibilities
- Define the contracts the use cases need from the remote store (ports).
- Keep application code independent from httpx / the wire format.
- Enable straightforward unit testing with in-memory fakes.

Collaborators
- domain.entities: User, Site
- domain.payloads: normalized request bodies
- infrastructure.remote_store.RemoteStoreClient: implements both protocols

Constraints
- Failures are raised as crosscutting.exceptions.RemoteStoreError subclasses.
- Outputs are concrete lists for predictable iteration.
"""

from typing import List, Protocol

from .entities import Site, User
from .payloads import (
    PasswordResetPayload,
    SitePayload,
    UserCreatePayload,
    UserUpdatePayload,
)


class UserStore(Protocol):
    """R: Remote persistence of user accounts."""

    async def list_users(self) -> List[User]:
        ...

    async def list_sector_managers(self) -> List[User]:
        ...

    async def create_user(self, payload: UserCreatePayload) -> User:
        """R: Returns the created user (server-assigned id and timestamps)."""
        ...

    async def update_user(self, user_id: str, payload: UserUpdatePayload) -> User:
        ...

    async def delete_user(self, user_id: str) -> None:
        ...

    async def reset_password(
        self, user_id: str, payload: PasswordResetPayload
    ) -> None:
        ...


class SiteStore(Protocol):
    """R: Remote persistence of water-distribution sites."""

    async def list_sites(self) -> List[Site]:
        ...

    async def get_site(self, site_id: str) -> Site:
        ...

    async def create_site(self, payload: SitePayload) -> Site:
        ...

    async def update_site(self, site_id: str, payload: SitePayload) -> Site:
        ...

    async def delete_site(self, site_id: str) -> None:
        ...
