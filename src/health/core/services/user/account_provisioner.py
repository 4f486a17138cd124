from loguru import logger

from src.health.core.services.cache.identity_cache import IdentityCache
from src.health.core.storage.storage import Storage
from src.health.entities.identity import Identity


class DefaultAccountProvisioner:
    """Guarantees that an end-user identity has a default account."""

    def __init__(self, storage: Storage, cache: IdentityCache):
        self._storage = storage
        self._cache = cache

    async def ensure(self, identity: Identity) -> Identity:
        if identity.has_default_account():
            return identity

        logger.info("Creating default account for identity {}", identity.id)
        await self._cache.invalidate(identity.external_id)
        return await self._storage.create_default_account(identity.id)
