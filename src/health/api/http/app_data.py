from dataclasses import dataclass

from src.health.core.services import (
    AuthGate,
    AuthListener,
    EventNotifier,
    IdentityCache,
    JWKSCacheInMemory,
    JwksService,
    RosterIndex,
    StaticKeySet,
    UserManagementService,
    VersionResolver,
)
from src.health.core.storage import Storage, create_storage
from src.health.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    storage: Storage
    jwks_service: JwksService
    notifier: EventNotifier
    user_cache: IdentityCache
    admin_cache: IdentityCache
    roster: RosterIndex
    versions: VersionResolver
    users: UserManagementService
    gate: AuthGate


def build_dependencies(
    config: ConfigData,
    *,
    storage: Storage | None = None,
    jwks_service: JwksService | None = None,
) -> ApplicationDependencies:
    """Wire the auth core from configuration.

    ``storage`` and ``jwks_service`` can be passed in to replace the
    configured backends.
    """
    storage = storage or create_storage(config.app.storage)
    jwks_service = jwks_service or JwksService(
        JWKSCacheInMemory(ttl_seconds=config.oidc.jwks_cache_ttl_seconds), config.oidc
    )
    access_keys = StaticKeySet(config.auth.access_token_keys)

    user_cache = IdentityCache(
        "user",
        ttl_seconds=config.cache.identity_ttl_seconds,
        sweep_interval_seconds=config.cache.sweep_interval_seconds,
    )
    admin_cache = IdentityCache(
        "admin",
        ttl_seconds=config.cache.identity_ttl_seconds,
        sweep_interval_seconds=config.cache.sweep_interval_seconds,
    )
    roster = RosterIndex(storage)
    notifier = EventNotifier()
    versions = VersionResolver(storage)
    users = UserManagementService(storage, user_cache, admin_cache, notifier)
    gate = AuthGate(
        config,
        storage,
        jwks_service,
        users,
        user_cache,
        admin_cache,
        roster,
        access_keys,
    )

    notifier.add_listener(AuthListener(user_cache, roster))
    notifier.add_listener(versions)

    return ApplicationDependencies(
        storage=storage,
        jwks_service=jwks_service,
        notifier=notifier,
        user_cache=user_cache,
        admin_cache=admin_cache,
        roster=roster,
        versions=versions,
        users=users,
        gate=gate,
    )
