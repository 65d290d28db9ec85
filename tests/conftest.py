"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Isolate Settings from any local .env file
  - Provide User / Site fixtures with a valid site -> manager graph
  - Provide an in-memory remote store fake (records every call)

Collaborators:
  - pytest / pytest-asyncio
  - aquo.domain: entities and payloads
  - aquo.application: synchronizers wired on top of the fake

Notes:
  - The fake implements both UserStore and SiteStore protocols
  - `gates` let a test hold a call open to interleave coroutines
"""

import asyncio
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from aquo.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from aquo.application.flash_messages import FlashMessages  # noqa: E402
from aquo.application.synchronizer import ResourceSynchronizer  # noqa: E402
from aquo.crosscutting.exceptions import RemoteNotFound  # noqa: E402
from aquo.domain.access_policy import Actor  # noqa: E402
from aquo.domain.entities import (  # noqa: E402
    Location,
    Site,
    SiteStatus,
    User,
    UserRole,
)
from aquo.domain.payloads import (  # noqa: E402
    PasswordResetPayload,
    SitePayload,
    UserCreatePayload,
    UserUpdatePayload,
)


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Every test reads Settings from its own environment."""
    app_config.get_settings.cache_clear()
    yield
    app_config.get_settings.cache_clear()


# ============================================================================
# Domain Entity Fixtures
# ============================================================================

_CREATED = datetime(2024, 1, 10, 8, 30, tzinfo=timezone.utc)


def make_user(
    user_id: str, role: UserRole, *, name: Optional[str] = None, email=None
) -> User:
    return User(
        id=user_id,
        name=name or f"User {user_id}",
        email=email or f"{user_id}@aquo.test",
        role=role,
        phone="",
        created_at=_CREATED,
    )


def make_site(
    site_id: str,
    manager_id: str,
    *,
    name: Optional[str] = None,
    capacity: float = 1000.0,
    level: float = 400.0,
) -> Site:
    return Site(
        id=site_id,
        name=name or f"Site {site_id}",
        location=Location(address="Av. Central 100", latitude=-12.05, longitude=-77.04),
        reservoir_capacity=capacity,
        current_level=level,
        sector_manager_id=manager_id,
        created_at=_CREATED,
    )


@pytest.fixture
def admin() -> User:
    return make_user("admin-1", UserRole.ADMIN, name="Ana Admin")


@pytest.fixture
def manager() -> User:
    return make_user("mgr-1", UserRole.SECTOR_MANAGER, name="Mario Manager")


@pytest.fixture
def other_manager() -> User:
    return make_user("mgr-2", UserRole.SECTOR_MANAGER, name="Marta Manager")


@pytest.fixture
def plain_user() -> User:
    return make_user("user-1", UserRole.USER, name="Ursula User")


@pytest.fixture
def technician() -> User:
    return make_user("tech-1", UserRole.TECHNICIAN, name="Tito Tech")


@pytest.fixture
def users(admin, manager, other_manager, plain_user, technician) -> List[User]:
    return [admin, manager, other_manager, plain_user, technician]


@pytest.fixture
def site(manager) -> Site:
    return make_site("site-1", manager.id, name="North Reservoir")


@pytest.fixture
def other_site(other_manager) -> Site:
    return make_site("site-2", other_manager.id, name="South Reservoir")


@pytest.fixture
def sites(site, other_site) -> List[Site]:
    return [site, other_site]


@pytest.fixture
def admin_actor(admin) -> Actor:
    return Actor.from_user(admin)


@pytest.fixture
def manager_actor(manager) -> Actor:
    return Actor.from_user(manager)


@pytest.fixture
def valid_site_form(manager) -> dict:
    return {
        "name": "East Tank",
        "address": "Jr. Lima 42",
        "latitude": "-12.1",
        "longitude": "-77.0",
        "reservoirCapacity": "1000",
        "currentLevel": "250",
        "sectorManagerId": manager.id,
    }


# ============================================================================
# Remote store fake
# ============================================================================


class FakeRemoteStore:
    """
    In-memory stand-in for RemoteStoreClient.

    - `calls` records (method, *ids) for every call, reads included.
    - `failures[method]` is raised once by the next call to that method.
    - `gates[method]` is awaited before the call completes.
    """

    def __init__(self, users=(), sites=()):
        self.users: Dict[str, User] = {u.id: u for u in users}
        self.sites: Dict[str, Site] = {s.id: s for s in sites}
        self.calls: list = []
        self.failures: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self._counter = 0

    async def _enter(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        exc = self.failures.pop(method, None)
        if exc is not None:
            raise exc

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{100 + self._counter}"

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    # Users ------------------------------------------------------------------

    async def list_users(self) -> List[User]:
        await self._enter("list_users")
        return list(self.users.values())

    async def list_sector_managers(self) -> List[User]:
        await self._enter("list_sector_managers")
        return [u for u in self.users.values() if u.role == UserRole.SECTOR_MANAGER]

    async def create_user(self, payload: UserCreatePayload) -> User:
        await self._enter("create_user")
        user = User(
            id=self._next_id("u"),
            name=payload.name,
            email=payload.email,
            role=payload.role,
            phone=payload.phone,
            created_at=datetime.now(timezone.utc),
        )
        self.users[user.id] = user
        return user

    async def update_user(self, user_id: str, payload: UserUpdatePayload) -> User:
        await self._enter("update_user", user_id)
        if user_id not in self.users:
            raise RemoteNotFound("User not found", status_code=404)
        changes = {
            k: v
            for k, v in {
                "name": payload.name,
                "email": payload.email,
                "phone": payload.phone,
                "role": payload.role,
            }.items()
            if v is not None
        }
        self.users[user_id] = replace(self.users[user_id], **changes)
        return self.users[user_id]

    async def delete_user(self, user_id: str) -> None:
        await self._enter("delete_user", user_id)
        if self.users.pop(user_id, None) is None:
            raise RemoteNotFound("User not found", status_code=404)

    async def reset_password(
        self, user_id: str, payload: PasswordResetPayload
    ) -> None:
        await self._enter("reset_password", user_id)
        if user_id not in self.users:
            raise RemoteNotFound("User not found", status_code=404)

    # Sites ------------------------------------------------------------------

    async def list_sites(self) -> List[Site]:
        await self._enter("list_sites")
        return list(self.sites.values())

    async def get_site(self, site_id: str) -> Site:
        await self._enter("get_site", site_id)
        if site_id not in self.sites:
            raise RemoteNotFound("Site not found", status_code=404)
        return self.sites[site_id]

    async def create_site(self, payload: SitePayload) -> Site:
        await self._enter("create_site")
        created = _site_from(self._next_id("s"), payload, datetime.now(timezone.utc))
        self.sites[created.id] = created
        return created

    async def update_site(self, site_id: str, payload: SitePayload) -> Site:
        await self._enter("update_site", site_id)
        current = self.sites.get(site_id)
        if current is None:
            raise RemoteNotFound("Site not found", status_code=404)
        self.sites[site_id] = _site_from(site_id, payload, current.created_at)
        return self.sites[site_id]

    async def delete_site(self, site_id: str) -> None:
        await self._enter("delete_site", site_id)
        if self.sites.pop(site_id, None) is None:
            raise RemoteNotFound("Site not found", status_code=404)


def _site_from(site_id: str, payload: SitePayload, created_at) -> Site:
    return Site(
        id=site_id,
        name=payload.name,
        location=Location(payload.address, payload.latitude, payload.longitude),
        reservoir_capacity=payload.reservoir_capacity,
        current_level=payload.current_level,
        sector_manager_id=payload.sector_manager_id,
        status=payload.status or SiteStatus.ACTIVE,
        created_at=created_at,
    )


@pytest.fixture
def store(users, sites) -> FakeRemoteStore:
    return FakeRemoteStore(users=users, sites=sites)


@pytest.fixture
def users_sync(store) -> ResourceSynchronizer[User]:
    return ResourceSynchronizer("users", store.list_users)


@pytest.fixture
def sites_sync(store) -> ResourceSynchronizer[Site]:
    return ResourceSynchronizer("sites", store.list_sites)


@pytest.fixture
def flash() -> FlashMessages:
    return FlashMessages(3.0)
