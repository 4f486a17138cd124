"""Token verification services."""

from .jwks import JWKSCache, JWKSCacheInMemory, JwksService, StaticKeySet
from .jwt_utils import classify_token, preview_jwt
from .jwt_verify import TokenValidator

__all__ = [
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "StaticKeySet",
    "TokenValidator",
    "classify_token",
    "preview_jwt",
]
