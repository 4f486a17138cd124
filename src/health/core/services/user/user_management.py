from loguru import logger

from src.health.core.models.identity import IdentityProfile
from src.health.core.services.cache.identity_cache import IdentityCache
from src.health.core.services.events import EventNotifier
from src.health.core.storage.storage import Storage
from src.health.entities.identity import Account, Identity, SsoClaims

ADMIN_EXTERNAL_ID_PREFIX = "a_"


class UserManagementService:
    """Creates and mutates identities, keeping both identity caches coherent.

    Every mutation invalidates the cached copy before writing, so a request
    that starts after the call returns never sees the old value.
    """

    def __init__(
        self,
        storage: Storage,
        user_cache: IdentityCache,
        admin_cache: IdentityCache,
        notifier: EventNotifier,
    ):
        self._storage = storage
        self._user_cache = user_cache
        self._admin_cache = admin_cache
        self._notifier = notifier

    async def create_app_user(
        self, external_id: str, profile: IdentityProfile
    ) -> Identity:
        """Create an end-user identity together with its default account.

        Raises:
            IdentityAlreadyExists: If ``external_id`` is already registered
        """
        identity = Identity(
            external_id=external_id,
            uuid=profile.uuid,
            public_key=profile.public_key,
            consent=profile.consent,
            consent_vaccine=profile.consent_vaccine,
            exposure_notification=profile.exposure_notification,
            re_post=bool(profile.re_post),
            encrypted_key=profile.encrypted_key,
            encrypted_blob=profile.encrypted_blob,
            encrypted_pk=profile.encrypted_pk,
        )
        identity.accounts.append(
            Account(id=identity.id, external_id=external_id, default=True, active=True)
        )
        await self._user_cache.invalidate(external_id)
        created = await self._storage.create_identity(identity)
        logger.info("Created app identity {}", created.id)
        return created

    async def create_admin_user(self, sso: SsoClaims) -> Identity:
        identity = Identity(external_id=f"{ADMIN_EXTERNAL_ID_PREFIX}{sso.uin}", sso=sso)
        created = await self._storage.create_identity(identity)
        logger.info("Provisioned admin identity {} for {}", created.id, sso.email)
        return created

    async def update_app_user(
        self, identity: Identity, profile: IdentityProfile
    ) -> Identity:
        await self._user_cache.invalidate(identity.external_id)

        updated = identity.model_copy(deep=True)
        updated.uuid = profile.uuid
        updated.public_key = profile.public_key
        updated.consent = profile.consent
        updated.consent_vaccine = profile.consent_vaccine
        updated.exposure_notification = profile.exposure_notification
        if profile.re_post is not None:
            updated.re_post = profile.re_post
        updated.encrypted_key = profile.encrypted_key
        updated.encrypted_blob = profile.encrypted_blob
        updated.encrypted_pk = profile.encrypted_pk

        saved = await self._storage.save_identity(updated)
        await self._notifier.notify_identity_updated(saved)
        return saved

    async def update_sso_if_needed(self, identity: Identity, sso: SsoClaims) -> Identity:
        """Store fresh group memberships when they differ from the saved ones.

        An absent membership list and an empty one count as different.
        """
        current = identity.sso.is_member_of if identity.sso else None
        if identity.sso is not None and current == sso.is_member_of:
            return identity

        logger.info("Group memberships changed for {}, updating", sso.uin)
        await self._admin_cache.invalidate(sso.uin)

        updated = identity.model_copy(deep=True)
        if updated.sso is None:
            updated.sso = sso.model_copy()
        else:
            updated.sso.is_member_of = sso.is_member_of
        return await self._storage.save_identity(updated)

    async def clear_user_data(self, identity: Identity) -> None:
        await self._user_cache.invalidate(identity.external_id)
        await self._storage.clear_user_data(identity.id)
        logger.info("Cleared data of identity {}", identity.id)
        await self._notifier.notify_identity_cleared(identity)
