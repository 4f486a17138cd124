"""Composition root of the authentication checks."""

from __future__ import annotations

from loguru import logger
from starlette.requests import Request

from src.health.core.models.auth import AuthDecision
from src.health.core.services.auth.admin_auth import AdminAuth
from src.health.core.services.auth.api_keys import ApiKeyAuth
from src.health.core.services.auth.user_auth import UserAuth
from src.health.core.services.cache.identity_cache import IdentityCache
from src.health.core.services.events import ApplicationListener
from src.health.core.services.jwt.jwks import JwksService, StaticKeySet
from src.health.core.services.jwt.jwt_verify import TokenValidator
from src.health.core.services.roster.roster_index import RosterIndex
from src.health.core.services.user.account_provisioner import DefaultAccountProvisioner
from src.health.core.services.user.user_management import UserManagementService
from src.health.core.storage.storage import Storage
from src.health.entities.identity import Identity
from src.health.runtime.config.config_data import ConfigData


class AuthGate:
    """Owns the API-key, user and admin checks and the state they share."""

    def __init__(
        self,
        config: ConfigData,
        storage: Storage,
        jwks_service: JwksService,
        users: UserManagementService,
        user_cache: IdentityCache,
        admin_cache: IdentityCache,
        roster: RosterIndex,
        access_keys: StaticKeySet,
    ):
        auth = config.auth
        self.user_cache = user_cache
        self.admin_cache = admin_cache
        self.roster = roster

        self.app_keys = ApiKeyAuth(
            "app",
            auth.app_api_key_header,
            auth.app_api_keys,
            version_header=auth.app_version_header,
        )
        self.providers_keys = ApiKeyAuth(
            "providers", auth.providers_api_key_header, auth.providers_api_keys
        )
        self.external_keys = ApiKeyAuth(
            "external", auth.external_api_key_header, auth.external_api_keys
        )

        self.user_validator = TokenValidator.from_config(config, jwks_service, access_keys)
        self.admin_validator = TokenValidator.from_config(
            config, jwks_service, access_keys, admin=True
        )
        self.user = UserAuth(
            self.user_validator,
            user_cache,
            roster,
            storage,
            DefaultAccountProvisioner(storage, user_cache),
            auth,
        )
        self.admin = AdminAuth(self.admin_validator, admin_cache, storage, users, auth)

    def check_app_key(self, request: Request) -> AuthDecision:
        return self.app_keys.check(request)

    def check_providers_key(self, request: Request) -> AuthDecision:
        return self.providers_keys.check(request)

    def check_external_key(self, request: Request) -> AuthDecision:
        return self.external_keys.check(request)

    async def check_user(self, request: Request) -> AuthDecision:
        return await self.user.check(request)

    async def check_user_account(self, request: Request) -> AuthDecision:
        return await self.user.check_account(request)

    async def check_admin(self, request: Request) -> AuthDecision:
        return await self.admin.check(request)

    async def start(self) -> None:
        await self.roster.reload()
        self.user_cache.start()
        self.admin_cache.start()

    async def stop(self) -> None:
        await self.user_cache.stop()
        await self.admin_cache.stop()


class AuthListener(ApplicationListener):
    """Keeps the end-user cache and the roster in step with data changes."""

    def __init__(self, user_cache: IdentityCache, roster: RosterIndex):
        self._user_cache = user_cache
        self._roster = roster

    async def on_identity_updated(self, identity: Identity) -> None:
        await self._user_cache.invalidate(identity.external_id)

    async def on_identity_cleared(self, identity: Identity) -> None:
        await self._user_cache.invalidate(identity.external_id)

    async def on_rosters_updated(self) -> None:
        logger.info("Roster changed, clearing user cache and reloading")
        await self._user_cache.clear()
        await self._roster.reload()
