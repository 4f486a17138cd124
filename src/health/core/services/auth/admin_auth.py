"""Administrator authentication against SSO group memberships."""

from __future__ import annotations

from loguru import logger
from starlette.requests import Request

from src.health.core.errors import (
    AuthError,
    InsufficientPrivilege,
    MalformedRequest,
    MissingRequiredClaim,
    UpstreamUnavailable,
)
from src.health.core.models.auth import AdminPrincipal, AuthDecision, TokenTransport
from src.health.core.services.auth.user_auth import bearer_token
from src.health.core.services.cache.identity_cache import IdentityCache
from src.health.core.services.jwt.jwt_verify import TokenValidator
from src.health.core.services.user.user_management import UserManagementService
from src.health.core.storage.storage import Storage
from src.health.entities.identity import Identity, SsoClaims
from src.health.runtime.config.config_data import AuthConfig


class AdminAuth:
    """Admits SSO-authenticated administrators who belong to the requested group.

    The admin cache is keyed by institutional id. Identities seen for the
    first time are provisioned from the verified claims.
    """

    def __init__(
        self,
        validator: TokenValidator,
        cache: IdentityCache,
        storage: Storage,
        users: UserManagementService,
        config: AuthConfig,
    ):
        self._validator = validator
        self._cache = cache
        self._storage = storage
        self._users = users
        self._config = config

    def extract_token(self, request: Request) -> tuple[str, TokenTransport]:
        """The admin web app sends a cookie; the mobile app a bearer header."""
        cookie = request.cookies.get(self._config.admin_token_cookie)
        if cookie:
            return cookie, TokenTransport.COOKIE
        token = bearer_token(request)
        if not token:
            raise MalformedRequest("Missing admin ID token")
        return token, TokenTransport.HEADER

    async def get_identity(self, sso: SsoClaims) -> Identity:
        identity = await self._cache.get(sso.uin)
        if identity is None:
            identity = await self._storage.find_identity_by_sso_id(sso.uin)
            if identity is None:
                identity = await self._users.create_admin_user(sso)
            await self._cache.put(sso.uin, identity)
        return await self._users.update_sso_if_needed(identity, sso)

    async def authenticate(self, request: Request) -> AdminPrincipal:
        token, transport = self.extract_token(request)
        group = request.headers.get(self._config.group_header)
        if not group:
            raise MalformedRequest(f"Missing {self._config.group_header} header")

        verified = await self._validator.verify_sso(token, transport=transport)
        claims = verified.claims
        email = claims.get("email")
        members = claims.get("uiucedu_is_member_of")
        if members is not None and not isinstance(members, list):
            raise MissingRequiredClaim("uiucedu_is_member_of must be a list")
        sso = SsoClaims(
            uin=verified.external_id,
            email=email if isinstance(email, str) else None,
            is_member_of=members,
        )

        identity = await self.get_identity(sso)
        if not identity.is_member_of(group):
            raise InsufficientPrivilege(
                f"Security - {sso.email} is trying to access not allowed resource"
            )
        return AdminPrincipal(identity=identity, group=group, sso=sso)

    async def check(self, request: Request) -> AuthDecision:
        try:
            principal = await self.authenticate(request)
        except AuthError as exc:
            log = logger.error if exc.status_code >= 500 else logger.warning
            log("Admin check rejected ({}): {}", exc.code, exc.message)
            return AuthDecision.deny(exc)
        except Exception as exc:
            logger.exception("Admin check failed")
            return AuthDecision.deny(UpstreamUnavailable(f"Admin check failed: {exc}"))
        return AuthDecision.allow(principal)
