"""Storage collaborator interface.

The auth core only reads and writes through this interface; the adapters in
this package decide how identities, rosters and versions are persisted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.health.entities.identity import Identity
from src.health.entities.roster import RosterEntry


class Storage(ABC):
    """Abstract interface for persistence backends."""

    @abstractmethod
    async def find_identity_by_external_id(self, external_id: str) -> Identity | None:
        """Find an identity by the external id carried in user tokens.

        Returns:
            The identity or None if not found
        """

    @abstractmethod
    async def find_identity_by_sso_id(self, sso_id: str) -> Identity | None:
        """Find an identity by the institutional id of its SSO claims."""

    @abstractmethod
    async def find_identity_by_id(self, identity_id: str) -> Identity | None:
        pass

    @abstractmethod
    async def create_identity(self, identity: Identity) -> Identity:
        """Persist a new identity.

        Raises:
            IdentityAlreadyExists: If the external id is already taken
        """

    @abstractmethod
    async def save_identity(self, identity: Identity) -> Identity:
        """Replace the stored identity with ``identity``.

        Raises:
            StorageError: If the identity does not exist
        """

    @abstractmethod
    async def create_default_account(self, identity_id: str) -> Identity:
        """Append the default account to an identity and return the result.

        The account reuses the identity's id and external id and is created
        active.

        Raises:
            StorageError: If the identity does not exist or already has one
        """

    @abstractmethod
    async def clear_user_data(self, identity_id: str) -> None:
        """Remove the identity and all of its accounts."""

    @abstractmethod
    async def read_all_supported_versions(self) -> list[str]:
        """Return the supported app versions in storage order."""

    @abstractmethod
    async def create_app_version(self, version: str) -> None:
        pass

    @abstractmethod
    async def read_all_roster_entries(self) -> list[RosterEntry]:
        pass

    def close(self) -> None:
        """Release backend resources."""
