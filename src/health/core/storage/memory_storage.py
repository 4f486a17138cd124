"""In-memory storage used by tests and ``app.storage: memory`` deployments."""

from __future__ import annotations

from collections.abc import Iterable

from src.health.core.errors import IdentityAlreadyExists, StorageError
from src.health.core.storage.storage import Storage
from src.health.entities._base import utc_now
from src.health.entities.identity import Account, Identity
from src.health.entities.roster import RosterEntry


class InMemoryStorage(Storage):
    """Dictionary-backed storage. Stored and returned objects are copies."""

    def __init__(
        self,
        identities: Iterable[Identity] = (),
        versions: Iterable[str] = (),
        roster: Iterable[RosterEntry] = (),
    ):
        self._identities: dict[str, Identity] = {}
        for identity in identities:
            self._identities[identity.id] = identity.model_copy(deep=True)
        self._versions: list[str] = list(versions)
        self._roster: list[RosterEntry] = list(roster)

    def _find(self, predicate) -> Identity | None:
        for identity in self._identities.values():
            if predicate(identity):
                return identity.model_copy(deep=True)
        return None

    async def find_identity_by_external_id(self, external_id: str) -> Identity | None:
        return self._find(lambda i: i.external_id == external_id)

    async def find_identity_by_sso_id(self, sso_id: str) -> Identity | None:
        return self._find(lambda i: i.sso is not None and i.sso.uin == sso_id)

    async def find_identity_by_id(self, identity_id: str) -> Identity | None:
        identity = self._identities.get(identity_id)
        return identity.model_copy(deep=True) if identity else None

    async def create_identity(self, identity: Identity) -> Identity:
        if any(i.external_id == identity.external_id for i in self._identities.values()):
            raise IdentityAlreadyExists(
                f"Identity with external id {identity.external_id} already exists"
            )
        self._identities[identity.id] = identity.model_copy(deep=True)
        return identity.model_copy(deep=True)

    async def save_identity(self, identity: Identity) -> Identity:
        if identity.id not in self._identities:
            raise StorageError(f"There is no identity for id {identity.id}")
        stored = identity.model_copy(deep=True)
        stored.updated_at = utc_now()
        self._identities[identity.id] = stored
        return stored.model_copy(deep=True)

    async def create_default_account(self, identity_id: str) -> Identity:
        identity = self._identities.get(identity_id)
        if identity is None:
            raise StorageError(f"There is no identity for id {identity_id}")
        if identity.has_default_account():
            raise StorageError(
                f"There is already a default account for identity {identity_id}"
            )
        identity.accounts.append(
            Account(
                id=identity.id,
                external_id=identity.external_id,
                default=True,
                active=True,
            )
        )
        identity.updated_at = utc_now()
        return identity.model_copy(deep=True)

    async def clear_user_data(self, identity_id: str) -> None:
        if self._identities.pop(identity_id, None) is None:
            raise StorageError(f"There is no identity for id {identity_id}")

    async def read_all_supported_versions(self) -> list[str]:
        return list(self._versions)

    async def create_app_version(self, version: str) -> None:
        if version not in self._versions:
            self._versions.append(version)

    async def read_all_roster_entries(self) -> list[RosterEntry]:
        return list(self._roster)

    def replace_roster(self, entries: Iterable[RosterEntry]) -> None:
        self._roster = list(entries)
