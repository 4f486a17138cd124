from .auth import (
    AdminPrincipal,
    ApiKeyPrincipal,
    AuthDecision,
    AuthMethod,
    TokenScheme,
    TokenTransport,
    UserPrincipal,
    VerifiedToken,
)
from .identity import IdentityProfile

__all__ = [
    "AdminPrincipal",
    "ApiKeyPrincipal",
    "AuthDecision",
    "AuthMethod",
    "IdentityProfile",
    "TokenScheme",
    "TokenTransport",
    "UserPrincipal",
    "VerifiedToken",
]
