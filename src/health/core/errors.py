"""Error hierarchy shared by the auth core and the HTTP layer.

Every rejection produced by the gates is an :class:`AuthError` carrying the
HTTP status it maps to. Domain errors that are not about authentication
(unknown app version, duplicate identity) derive from :class:`HealthError`
directly and are mapped by the HTTP layer.
"""

from typing import Any


class HealthError(Exception):
    """Base error for the health building block."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or type(self).__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class AuthError(HealthError):
    """A rejection raised while authenticating a request."""

    status_code: int = 401


class MalformedRequest(AuthError):
    status_code = 400


class InvalidVersionFormat(MalformedRequest):
    """Version string is not ``major.minor`` or ``major.minor.patch``."""


class UnsupportedTokenType(AuthError):
    status_code = 401


class InvalidSignature(AuthError):
    status_code = 401


class TokenTypeMismatch(AuthError):
    """An access token was presented as CSRF or the other way around."""

    status_code = 401


class MissingRequiredClaim(AuthError):
    status_code = 401


class IssuerMismatch(AuthError):
    status_code = 401


class UnknownSigningKey(AuthError):
    """The ``kid`` header matched zero or several keys of the key set."""

    status_code = 401


class InvalidApiKey(AuthError):
    status_code = 401


class IdentityNotProvisioned(AuthError):
    """A phone number that is not present in the roster."""

    status_code = 401


class InsufficientPrivilege(AuthError):
    status_code = 403


class UpstreamUnavailable(AuthError):
    """Storage or the identity provider failed while authenticating."""

    status_code = 500


class UnsupportedVersion(HealthError):
    """No supported app version satisfies the requested one."""


class IdentityAlreadyExists(HealthError):
    pass


class StorageError(HealthError):
    """The storage collaborator could not complete an operation."""
