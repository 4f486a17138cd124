"""Models produced by token verification and the auth gates."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.health.core.errors import AuthError
from src.health.entities.identity import Account, Identity, SsoClaims


class TokenScheme(StrEnum):
    LEGACY_SSO = "legacy_sso"
    LEGACY_PHONE = "legacy_phone"
    ACCESS = "access"


class AuthMethod(StrEnum):
    SHIBBOLETH = "shibboleth"
    PHONE = "phone"


class TokenTransport(StrEnum):
    """How the token reached the service; selects the expected audience."""

    HEADER = "header"
    COOKIE = "cookie"


class VerifiedToken(BaseModel):
    """Result of a successful verification.

    ``external_id`` is the institutional id for SSO tokens, the ``uid`` claim
    for access tokens, and the phone number for phone tokens until the roster
    resolves it.
    """

    external_id: str
    auth_method: AuthMethod
    scheme: TokenScheme
    claims: dict[str, Any] = Field(default_factory=dict)
    phone: str | None = None


class ApiKeyPrincipal(BaseModel):
    app_version: str | None = None


class UserPrincipal(BaseModel):
    """An authenticated end user.

    ``identity`` is None when the token verified but no identity is stored
    for ``external_id`` yet.
    """

    identity: Identity | None = None
    external_id: str
    auth_method: AuthMethod
    app_version: str | None = None
    account: Account | None = None

    @property
    def is_registered(self) -> bool:
        return self.identity is not None


class AdminPrincipal(BaseModel):
    identity: Identity
    group: str
    sso: SsoClaims


Principal = ApiKeyPrincipal | UserPrincipal | AdminPrincipal


class AuthDecision(BaseModel):
    """Outcome of one gate check. Gates never raise; they return one of these."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    allowed: bool
    status_code: int = 200
    reason: AuthError | None = None
    principal: Principal | None = None

    @classmethod
    def allow(cls, principal: Principal) -> "AuthDecision":
        return cls(allowed=True, status_code=200, principal=principal)

    @classmethod
    def deny(cls, reason: AuthError) -> "AuthDecision":
        return cls(allowed=False, status_code=reason.status_code, reason=reason)
