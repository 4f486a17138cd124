"""Behaviour shared by every storage adapter."""

import pytest

from src.health.core.errors import IdentityAlreadyExists, StorageError
from src.health.core.storage import InMemoryStorage, SqlStorage, create_storage
from src.health.entities.identity import Account, Identity, SsoClaims
from src.health.entities.roster import RosterTable
from src.health.runtime.config.config_data import ConfigData, DatabaseConfig
from src.health.runtime.context import with_context


@pytest.fixture(params=["memory", "sql"])
def any_storage(request, sql_storage):
    if request.param == "memory":
        return InMemoryStorage()
    return sql_storage


class TestIdentities:
    async def test_create_and_find(self, any_storage):
        identity = Identity(
            external_id="user-1",
            consent=True,
            accounts=[Account(id="acc-1", external_id="user-1", default=True)],
        )

        created = await any_storage.create_identity(identity)

        assert created.id == identity.id
        by_external = await any_storage.find_identity_by_external_id("user-1")
        by_id = await any_storage.find_identity_by_id(identity.id)
        assert by_external.id == by_id.id == identity.id
        assert by_id.consent is True
        assert by_id.get_default_account().id == "acc-1"

    async def test_missing_identity(self, any_storage):
        assert await any_storage.find_identity_by_external_id("nobody") is None
        assert await any_storage.find_identity_by_id("nope") is None
        assert await any_storage.find_identity_by_sso_id("0") is None

    async def test_duplicate_external_id(self, any_storage):
        await any_storage.create_identity(Identity(external_id="dup"))
        with pytest.raises(IdentityAlreadyExists):
            await any_storage.create_identity(Identity(external_id="dup"))

    async def test_find_by_sso_id(self, any_storage):
        admin = Identity(
            external_id="a_650",
            sso=SsoClaims(uin="650", email="a@illinois.edu", is_member_of=["g"]),
        )
        await any_storage.create_identity(admin)

        found = await any_storage.find_identity_by_sso_id("650")

        assert found.external_id == "a_650"
        assert found.sso.is_member_of == ["g"]

    async def test_save_replaces_fields(self, any_storage):
        identity = await any_storage.create_identity(Identity(external_id="user-2"))
        identity.consent = True
        identity.encrypted_blob = "blob"

        saved = await any_storage.save_identity(identity)

        assert saved.updated_at is not None
        stored = await any_storage.find_identity_by_id(identity.id)
        assert stored.consent is True
        assert stored.encrypted_blob == "blob"

    async def test_save_unknown_identity(self, any_storage):
        with pytest.raises(StorageError):
            await any_storage.save_identity(Identity(external_id="ghost"))

    async def test_create_default_account(self, any_storage):
        identity = await any_storage.create_identity(Identity(external_id="user-3"))

        updated = await any_storage.create_default_account(identity.id)

        account = updated.get_default_account()
        assert account.id == identity.id
        assert account.external_id == "user-3"
        assert account.active is True
        with pytest.raises(StorageError):
            await any_storage.create_default_account(identity.id)

    async def test_returned_objects_are_detached(self, any_storage):
        identity = await any_storage.create_identity(Identity(external_id="user-4"))
        identity.consent = True

        stored = await any_storage.find_identity_by_id(identity.id)

        assert stored.consent is False

    async def test_clear_user_data(self, any_storage):
        identity = await any_storage.create_identity(Identity(external_id="user-5"))

        await any_storage.clear_user_data(identity.id)

        assert await any_storage.find_identity_by_id(identity.id) is None
        with pytest.raises(StorageError):
            await any_storage.clear_user_data(identity.id)


class TestVersionsAndRoster:
    async def test_app_versions(self, any_storage):
        await any_storage.create_app_version("2.1")
        await any_storage.create_app_version("2.1")
        await any_storage.create_app_version("3.0")

        assert sorted(await any_storage.read_all_supported_versions()) == ["2.1", "3.0"]

    async def test_empty_roster(self, any_storage):
        assert await any_storage.read_all_roster_entries() == []


class TestSqlRoster:
    async def test_extra_fields_round_trip(self, sql_storage, db_service):
        with db_service.session_scope() as session:
            session.add(
                RosterTable(phone="+1555", uin="42", extra={"first_name": "Pat"})
            )

        entries = await sql_storage.read_all_roster_entries()

        assert len(entries) == 1
        assert entries[0].uin == "42"
        assert entries[0].first_name == "Pat"


class TestCreateStorage:
    def test_memory(self):
        assert isinstance(create_storage("memory"), InMemoryStorage)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_storage("mongo")

    def test_sql_uses_database_url(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'health.db'}"
        with with_context(ConfigData(database=DatabaseConfig(url=url))):
            storage = create_storage("sql")
        try:
            assert isinstance(storage, SqlStorage)
        finally:
            storage.close()
