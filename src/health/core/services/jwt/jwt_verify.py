"""Token classification and verification for the three supported schemes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from authlib.jose import JsonWebToken
from authlib.jose.errors import JoseError
from loguru import logger

from src.health.core.errors import (
    InvalidSignature,
    IssuerMismatch,
    MissingRequiredClaim,
    TokenTypeMismatch,
    UnknownSigningKey,
    UnsupportedTokenType,
    UpstreamUnavailable,
)
from src.health.core.models.auth import (
    AuthMethod,
    TokenScheme,
    TokenTransport,
    VerifiedToken,
)
from src.health.core.services.jwt.jwks import JwksService, StaticKeySet
from src.health.core.services.jwt.jwt_utils import classify_claims, preview_jwt
from src.health.runtime.config.config_data import ConfigData

ACCESS_TOKEN_TYPE = "access"
CSRF_TOKEN_TYPE = "csrf"

# Value of the ``auth`` claim of access tokens -> how the subject signed in
_ACCESS_AUTH_METHODS = {
    "oidc": AuthMethod.SHIBBOLETH,
    "rokwire_phone": AuthMethod.PHONE,
}

_access_jwt = JsonWebToken(["RS256"])
_phone_jwt = JsonWebToken(["HS256"])


class TokenValidator:
    """Turns a raw bearer or cookie token into a :class:`VerifiedToken`.

    Classification only reads the unverified payload; every ``verify_*``
    method checks signatures and claims before returning. The SSO audience
    depends on the transport, so the end-user and admin gates each build
    their own validator with their own pair of client ids.
    """

    def __init__(
        self,
        jwks_service: JwksService,
        access_keys: StaticKeySet,
        *,
        sso_issuer: str,
        sso_audiences: Mapping[TokenTransport, str],
        access_issuer: str,
        phone_secret: str,
        allowed_algorithms: list[str] | None = None,
        clock_skew: int = 60,
        legacy_sso_enabled: bool = True,
        legacy_phone_enabled: bool = True,
    ):
        self._jwks_service = jwks_service
        self._access_keys = access_keys
        self._sso_issuer = sso_issuer
        self._sso_audiences = dict(sso_audiences)
        self._access_issuer = access_issuer
        self._phone_secret = phone_secret
        self._clock_skew = clock_skew
        self._legacy_sso_enabled = legacy_sso_enabled
        self._legacy_phone_enabled = legacy_phone_enabled
        sso_algorithms = [
            a for a in (allowed_algorithms or ["RS256"]) if a.startswith(("RS", "ES", "PS"))
        ]
        self._sso_jwt = JsonWebToken(sso_algorithms or ["RS256"])

    @classmethod
    def from_config(
        cls,
        config: ConfigData,
        jwks_service: JwksService,
        access_keys: StaticKeySet,
        *,
        admin: bool = False,
    ) -> TokenValidator:
        oidc = config.oidc
        if admin:
            audiences = {
                TokenTransport.HEADER: oidc.admin_app_client_id,
                TokenTransport.COOKIE: oidc.admin_web_app_client_id,
            }
        else:
            audiences = {
                TokenTransport.HEADER: oidc.app_client_id,
                TokenTransport.COOKIE: oidc.web_app_client_id,
            }
        return cls(
            jwks_service,
            access_keys,
            sso_issuer=oidc.issuer,
            sso_audiences=audiences,
            access_issuer=config.auth.access_token_issuer,
            phone_secret=config.auth.phone_secret,
            allowed_algorithms=config.jwt.allowed_algorithms,
            clock_skew=config.jwt.clock_skew,
            legacy_sso_enabled=config.auth.legacy_sso_enabled,
            legacy_phone_enabled=config.auth.legacy_phone_enabled,
        )

    def set_keys(self, jwks: dict[str, Any]) -> None:
        """Swap the access-token key set."""
        self._access_keys.replace(jwks)
        logger.info("Access token key set replaced ({} keys)", len(self._access_keys))

    def classify(self, raw: str) -> TokenScheme:
        return classify_claims(preview_jwt(raw).claims)

    async def verify(
        self,
        raw: str,
        *,
        transport: TokenTransport,
        csrf_token: str | None = None,
    ) -> VerifiedToken:
        scheme = self.classify(raw)

        if scheme is TokenScheme.LEGACY_SSO:
            if not self._legacy_sso_enabled:
                raise UnsupportedTokenType("Legacy SSO tokens are disabled")
            return await self.verify_sso(raw, transport=transport)

        if scheme is TokenScheme.LEGACY_PHONE:
            if not self._legacy_phone_enabled:
                raise UnsupportedTokenType("Legacy phone tokens are disabled")
            return self.verify_phone(raw)

        return self.verify_access(raw, transport=transport, csrf_token=csrf_token)

    # ------------------------------------------------------------------
    # legacy SSO ID token

    async def verify_sso(self, raw: str, *, transport: TokenTransport) -> VerifiedToken:
        audience = self._sso_audiences.get(transport)
        if not audience:
            logger.error("No SSO client id configured for {} tokens", transport)
            raise UpstreamUnavailable(f"No SSO audience configured for {transport}")

        preview = preview_jwt(raw)
        key_set = await self._jwks_service.key_set_for(preview.kid)

        claims_options = {
            "iss": {"essential": True, "value": self._sso_issuer},
            "aud": {"essential": True, "value": audience},
        }
        try:
            claims = self._sso_jwt.decode(raw, key_set, claims_options=claims_options)
            claims.validate(leeway=self._clock_skew)
        except (JoseError, ValueError) as exc:
            raise InvalidSignature(f"SSO token rejected: {exc}") from exc

        uin = claims.get("uiucedu_uin")
        if not isinstance(uin, str) or not uin:
            raise MissingRequiredClaim("Missing uiucedu_uin in SSO token")

        return VerifiedToken(
            external_id=uin,
            auth_method=AuthMethod.SHIBBOLETH,
            scheme=TokenScheme.LEGACY_SSO,
            claims=dict(claims),
        )

    # ------------------------------------------------------------------
    # legacy phone token

    def verify_phone(self, raw: str) -> VerifiedToken:
        if not self._phone_secret:
            raise InvalidSignature("Phone token secret is not configured")
        try:
            claims = _phone_jwt.decode(raw, self._phone_secret.encode("utf-8"))
            claims.validate(leeway=self._clock_skew)
        except (JoseError, ValueError) as exc:
            raise InvalidSignature(f"Phone token rejected: {exc}") from exc

        phone = claims.get("phoneNumber")
        if not isinstance(phone, str) or not phone:
            raise MissingRequiredClaim("Missing phoneNumber in phone token")

        return VerifiedToken(
            external_id=phone,
            auth_method=AuthMethod.PHONE,
            scheme=TokenScheme.LEGACY_PHONE,
            claims=dict(claims),
            phone=phone,
        )

    # ------------------------------------------------------------------
    # access / CSRF pair

    def verify_access(
        self,
        raw: str,
        *,
        transport: TokenTransport,
        csrf_token: str | None = None,
    ) -> VerifiedToken:
        if transport is TokenTransport.COOKIE:
            if not csrf_token:
                raise InvalidSignature("Missing CSRF token for cookie transport")
            self.validate_signed_token(csrf_token, CSRF_TOKEN_TYPE)

        claims = self.validate_signed_token(raw, ACCESS_TOKEN_TYPE)

        auth_method = _ACCESS_AUTH_METHODS.get(claims.get("auth"))
        if auth_method is None:
            raise UnsupportedTokenType(f"Unsupported auth type {claims.get('auth')!r}")

        uid = claims.get("uid")
        if not isinstance(uid, str) or not uid:
            raise MissingRequiredClaim("Missing uid in access token")

        return VerifiedToken(
            external_id=uid,
            auth_method=auth_method,
            scheme=TokenScheme.ACCESS,
            claims=claims,
            phone=uid if auth_method is AuthMethod.PHONE else None,
        )

    def validate_signed_token(self, raw: str, expected_type: str) -> dict[str, Any]:
        """Verify one access or CSRF token and return its claims.

        Checks run in order: key id, RSA signature and time claims, issuer,
        then the ``type`` claim.
        """
        preview = preview_jwt(raw)
        kid = preview.kid
        if not isinstance(kid, str) or not kid:
            raise UnknownSigningKey("kid header is missing")
        public_key = self._access_keys.lookup(kid)

        try:
            claims = _access_jwt.decode(raw, public_key)
            claims.validate(leeway=self._clock_skew)
        except (JoseError, ValueError) as exc:
            raise InvalidSignature(f"{expected_type} token rejected: {exc}") from exc

        if claims.get("iss") != self._access_issuer:
            raise IssuerMismatch(f"Issuer does not match: {claims.get('iss')!r}")

        if claims.get("type") != expected_type:
            raise TokenTypeMismatch(
                f"Expected a {expected_type} token, got {claims.get('type')!r}"
            )

        return dict(claims)
