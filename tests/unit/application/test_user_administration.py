"""
===============================================================================
CRC - tests/unit/application/test_user_administration.py

Responsibilities:
    - Deleting a manager with sites -> MANAGER_IN_USE, user list unchanged.
    - Reassign-then-delete, stopping at the first failed reassignment.
    - Role changes: admin only, never its own, no demotion of active managers.
    - Create / reset password through the synchronizer.

Collaborators:
    - UserAdministration (SUT)
    - FakeRemoteStore + real synchronizers (conftest)
===============================================================================
"""

import pytest
from aquo.application.results import ErrorKind
from aquo.application.usecases import (
    ConfirmedDeletion,
    SiteAdministration,
    UserAdministration,
)
from aquo.crosscutting.exceptions import NetworkError, RemoteConflict, RemoteRejection
from aquo.domain.entities import UserRole
from conftest import make_site, make_user

pytestmark = pytest.mark.unit


@pytest.fixture
def user_admin(store, users_sync, sites_sync, flash) -> UserAdministration:
    return UserAdministration(
        store, store, users_sync, sites_sync, flash=flash, min_password_length=8
    )


def _new_user_form(**overrides) -> dict:
    data = {
        "name": "Nora New",
        "email": "nora@aquo.test",
        "role": "USER",
        "password": "correct-horse",
    }
    data.update(overrides)
    return data


class TestCreate:
    @pytest.mark.asyncio
    async def test_created_user_appears_on_next_read(self, user_admin, admin_actor):
        outcome = await user_admin.submit_create(admin_actor, _new_user_form())

        assert outcome.ok
        assert outcome.value.id.startswith("u-")
        assert outcome.value.created_at is not None
        assert outcome.value.id in {u.id for u in user_admin.users}

    @pytest.mark.asyncio
    async def test_manager_cannot_create_users(self, user_admin, store, manager_actor):
        outcome = await user_admin.submit_create(manager_actor, _new_user_form())

        assert outcome.error.kind == ErrorKind.AUTHORIZATION_ERROR
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_admin, store, admin_actor, manager):
        outcome = await user_admin.submit_create(
            admin_actor, _new_user_form(email=manager.email)
        )

        assert outcome.error.code == "DUPLICATE_EMAIL"
        assert "create_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_server_conflict_is_surfaced(self, user_admin, store, admin_actor):
        store.failures["create_user"] = RemoteConflict(
            "Email already registered", status_code=409
        )

        outcome = await user_admin.submit_create(admin_actor, _new_user_form())

        assert outcome.error.kind == ErrorKind.CONFLICT
        assert outcome.error.message == "Email already registered"


class TestDelete:
    @pytest.mark.asyncio
    async def test_manager_in_use_leaves_user_list_unchanged(
        self, user_admin, store, admin_actor, manager
    ):
        await user_admin.refresh()
        before = user_admin.users

        outcome = await user_admin.delete(
            admin_actor, ConfirmedDeletion.confirm(manager.id)
        )

        assert outcome.error.kind == ErrorKind.REFERENTIAL_ERROR
        assert outcome.error.code == "MANAGER_IN_USE"
        assert outcome.error.details["site_ids"] == ["site-1"]
        assert user_admin.users == before
        assert manager.id in store.users
        assert "delete_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_reassign_then_delete(
        self, user_admin, store, admin_actor, manager, other_manager, sites_sync
    ):
        store.sites["site-3"] = make_site("site-3", manager.id)

        outcome = await user_admin.delete(
            admin_actor,
            ConfirmedDeletion.confirm(manager.id, reassign_to=other_manager.id),
        )

        assert outcome.ok
        assert manager.id not in store.users
        assert {s.sector_manager_id for s in store.sites.values()} == {
            other_manager.id
        }
        assert {s.sector_manager_id for s in sites_sync.snapshot()} == {
            other_manager.id
        }
        names = store.call_names()
        assert names.count("update_site") == 2
        assert names.index("delete_user") > names.index("update_site")

    @pytest.mark.asyncio
    async def test_failed_reassignment_keeps_user(
        self, user_admin, store, admin_actor, manager, other_manager
    ):
        store.failures["update_site"] = RemoteRejection("locked", status_code=400)

        outcome = await user_admin.delete(
            admin_actor,
            ConfirmedDeletion.confirm(manager.id, reassign_to=other_manager.id),
        )

        assert outcome.error.kind == ErrorKind.REMOTE_REJECTION
        assert manager.id in store.users
        assert "delete_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_plain_user_is_deleted(
        self, user_admin, store, admin_actor, plain_user
    ):
        outcome = await user_admin.delete(
            admin_actor, ConfirmedDeletion.confirm(plain_user.id)
        )

        assert outcome.ok
        assert plain_user.id not in {u.id for u in user_admin.users}

    @pytest.mark.asyncio
    async def test_site_missing_from_stale_list_still_blocks_deletion(
        self, user_admin, store, sites_sync, users_sync, flash, admin_actor,
        valid_site_form,
    ):
        store.users["mgr-9"] = make_user("mgr-9", UserRole.SECTOR_MANAGER)
        site_admin = SiteAdministration(store, sites_sync, users_sync, flash=flash)
        await site_admin.refresh()
        store.failures["list_sites"] = NetworkError("offline")
        valid_site_form["sectorManagerId"] = "mgr-9"

        created = await site_admin.submit_create(admin_actor, valid_site_form)
        assert created.ok and created.warning is not None
        assert created.value.id not in {s.id for s in sites_sync.snapshot()}

        outcome = await user_admin.delete(
            admin_actor, ConfirmedDeletion.confirm("mgr-9")
        )

        assert outcome.error.code == "MANAGER_IN_USE"
        assert outcome.error.details["site_ids"] == [created.value.id]
        assert "mgr-9" in store.users
        assert "delete_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_site_list_unavailable_keeps_user(
        self, user_admin, store, admin_actor, plain_user
    ):
        store.failures["list_sites"] = NetworkError("offline")

        outcome = await user_admin.delete(
            admin_actor, ConfirmedDeletion.confirm(plain_user.id)
        )

        assert outcome.error.kind == ErrorKind.NETWORK_ERROR
        assert plain_user.id in store.users
        assert "delete_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_unconfirmed_delete(self, user_admin, store, admin_actor, plain_user):
        outcome = await user_admin.delete(admin_actor, ConfirmedDeletion(plain_user.id))

        assert outcome.error.kind == ErrorKind.CONFIRMATION_REQUIRED
        assert store.calls == []


class TestUpdate:
    @pytest.mark.asyncio
    async def test_profile_update(self, user_admin, store, admin_actor, plain_user):
        outcome = await user_admin.submit_update(
            admin_actor, plain_user.id, {"phone": "555-0199"}
        )

        assert outcome.ok
        assert store.users[plain_user.id].phone == "555-0199"

    @pytest.mark.asyncio
    async def test_admin_cannot_change_own_role(self, user_admin, store, admin_actor):
        outcome = await user_admin.submit_update(
            admin_actor, admin_actor.user_id, {"role": "USER"}
        )

        assert outcome.error.kind == ErrorKind.AUTHORIZATION_ERROR
        assert "update_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_active_manager_cannot_be_demoted(
        self, user_admin, store, admin_actor, manager
    ):
        outcome = await user_admin.submit_update(
            admin_actor, manager.id, {"role": "TECHNICIAN"}
        )

        assert outcome.error.code == "MANAGER_IN_USE"
        assert "update_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_demotion_checks_a_fresh_site_list(
        self, user_admin, store, sites_sync, admin_actor, other_manager
    ):
        store.sites.pop("site-2")
        await sites_sync.refresh()
        store.sites["site-2"] = make_site("site-2", other_manager.id)

        outcome = await user_admin.submit_update(
            admin_actor, other_manager.id, {"role": "USER"}
        )

        assert outcome.error.code == "MANAGER_IN_USE"
        assert outcome.error.details["site_ids"] == ["site-2"]
        assert "update_user" not in store.call_names()

    @pytest.mark.asyncio
    async def test_unknown_user(self, user_admin, admin_actor):
        outcome = await user_admin.submit_update(admin_actor, "ghost", {"name": "x"})
        assert outcome.error.kind == ErrorKind.NOT_FOUND


class TestResetPassword:
    @pytest.mark.asyncio
    async def test_reset_does_not_refetch(
        self, user_admin, store, admin_actor, plain_user
    ):
        outcome = await user_admin.reset_password(
            admin_actor, plain_user.id, {"newPassword": "brand-new-pass"}
        )

        assert outcome.ok
        assert store.call_names() == ["reset_password"]

    @pytest.mark.asyncio
    async def test_weak_password(self, user_admin, store, admin_actor, plain_user):
        outcome = await user_admin.reset_password(
            admin_actor, plain_user.id, {"newPassword": "123"}
        )

        assert outcome.error.code == "WEAK_PASSWORD"
        assert store.calls == []


@pytest.mark.asyncio
async def test_list_sector_managers(user_admin, manager, other_manager):
    outcome = await user_admin.list_sector_managers()
    assert {u.id for u in outcome.value} == {manager.id, other_manager.id}
