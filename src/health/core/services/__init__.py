"""Core services exports."""

# Auth
from .auth import AdminAuth, ApiKeyAuth, AuthGate, AuthListener, UserAuth

# Caches and indexes
from .cache import IdentityCache

# Database Service
from .database.db_session import DbSessionService
from .events import ApplicationListener, EventNotifier

# JWT Services
from .jwt import JWKSCache, JWKSCacheInMemory, JwksService, StaticKeySet, TokenValidator
from .roster import RosterIndex

# User Services
from .user import DefaultAccountProvisioner, UserManagementService
from .version import VersionResolver

__all__ = [
    # Auth
    "AdminAuth",
    "ApiKeyAuth",
    "AuthGate",
    "AuthListener",
    "UserAuth",
    # Events
    "ApplicationListener",
    "EventNotifier",
    # Caches and indexes
    "IdentityCache",
    "RosterIndex",
    "VersionResolver",
    # JWT Services
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "StaticKeySet",
    "TokenValidator",
    # User Services
    "DefaultAccountProvisioner",
    "UserManagementService",
    # Database Service
    "DbSessionService",
]
