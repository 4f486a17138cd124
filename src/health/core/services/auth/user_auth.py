"""End-user authentication: token, roster, identity cache and default account."""

from __future__ import annotations

from loguru import logger
from starlette.requests import Request

from src.health.core.errors import (
    AuthError,
    IdentityNotProvisioned,
    InsufficientPrivilege,
    MalformedRequest,
    UpstreamUnavailable,
)
from src.health.core.models.auth import (
    AuthDecision,
    AuthMethod,
    TokenTransport,
    UserPrincipal,
)
from src.health.core.services.cache.identity_cache import IdentityCache
from src.health.core.services.jwt.jwt_verify import TokenValidator
from src.health.core.services.roster.roster_index import RosterIndex
from src.health.core.services.user.account_provisioner import DefaultAccountProvisioner
from src.health.core.storage.storage import Storage
from src.health.entities.identity import Identity
from src.health.runtime.config.config_data import AuthConfig


def bearer_token(request: Request) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1]


class UserAuth:
    def __init__(
        self,
        validator: TokenValidator,
        cache: IdentityCache,
        roster: RosterIndex,
        storage: Storage,
        provisioner: DefaultAccountProvisioner,
        config: AuthConfig,
    ):
        self._validator = validator
        self._cache = cache
        self._roster = roster
        self._storage = storage
        self._provisioner = provisioner
        self._config = config

    def extract_token(self, request: Request) -> tuple[str, TokenTransport, str | None]:
        """Find the caller's token; the access cookie wins over the header.

        Raises:
            MalformedRequest: If there is no token, or a cookie without CSRF header
        """
        cookie = request.cookies.get(self._config.user_access_cookie)
        if cookie:
            csrf = request.headers.get(self._config.csrf_header)
            if not csrf:
                raise MalformedRequest("Cookie token sent without CSRF token")
            return cookie, TokenTransport.COOKIE, csrf

        token = bearer_token(request)
        if not token:
            raise MalformedRequest("Missing bearer token")
        return token, TokenTransport.HEADER, None

    async def get_identity(self, external_id: str) -> Identity | None:
        identity = await self._cache.get(external_id)
        if identity is not None:
            return identity

        identity = await self._storage.find_identity_by_external_id(external_id)
        if identity is not None:
            await self._cache.put(external_id, identity)
        return identity

    async def authenticate(self, request: Request) -> UserPrincipal:
        """Run the whole user check and return the principal.

        Raises:
            AuthError: On any rejection
        """
        app_version = request.headers.get(self._config.app_version_header) or None
        token, transport, csrf = self.extract_token(request)

        verified = await self._validator.verify(token, transport=transport, csrf_token=csrf)

        external_id = verified.external_id
        auth_method = verified.auth_method
        if auth_method is AuthMethod.PHONE:
            phone = verified.phone or external_id
            uin = self._roster.find_uin_by_phone(phone)
            if uin is None:
                raise IdentityNotProvisioned(f"{phone} phone is not added in the system")
            # Roster-resolved callers are treated as institutional identities
            external_id = uin
            auth_method = AuthMethod.SHIBBOLETH

        identity = await self.get_identity(external_id)
        if identity is None:
            return UserPrincipal(
                identity=None,
                external_id=external_id,
                auth_method=auth_method,
                app_version=app_version,
            )

        identity = await self._provisioner.ensure(identity)
        return UserPrincipal(
            identity=identity,
            external_id=external_id,
            auth_method=auth_method,
            app_version=app_version,
        )

    async def check(self, request: Request) -> AuthDecision:
        return await self._decide(self.authenticate(request))

    async def check_account(self, request: Request) -> AuthDecision:
        """User check followed by selection of the account the caller acts as."""
        return await self._decide(self._authenticate_account(request))

    async def _authenticate_account(self, request: Request) -> UserPrincipal:
        principal = await self.authenticate(request)
        identity = principal.identity
        if identity is None:
            return principal

        account_id = request.headers.get(self._config.account_id_header)
        if not account_id:
            default = identity.get_default_account()
            if default is None:
                raise UpstreamUnavailable(f"No default account for identity {identity.id}")
            account_id = default.id

        account = identity.get_account(account_id)
        if account is None:
            raise InsufficientPrivilege(
                f"Security - {identity.id} is trying to use account {account_id}"
            )
        return principal.model_copy(update={"account": account})

    async def _decide(self, pending) -> AuthDecision:
        try:
            principal = await pending
        except AuthError as exc:
            log = logger.error if exc.status_code >= 500 else logger.warning
            log("User check rejected ({}): {}", exc.code, exc.message)
            return AuthDecision.deny(exc)
        except Exception as exc:
            logger.exception("User check failed")
            return AuthDecision.deny(UpstreamUnavailable(f"User check failed: {exc}"))
        return AuthDecision.allow(principal)
