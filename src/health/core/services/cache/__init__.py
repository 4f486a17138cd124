from .identity_cache import CachedIdentity, IdentityCache

__all__ = ["CachedIdentity", "IdentityCache"]
