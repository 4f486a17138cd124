import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any, Final

from src.health.core.errors import UnsupportedTokenType
from src.health.core.models.auth import TokenScheme

TOKEN_SIZE_LIMIT: Final = 8192
HEADER_BYTES_LIMIT: Final = 8 * 1024
CLAIMS_BYTES_LIMIT: Final = 64 * 1024

# unpadded base64url segments, exactly three
_COMPACT_FORM: Final = re.compile(r"[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")

# Checked in this order; the first claim present decides the scheme
CLASSIFYING_CLAIMS: Final = (
    ("uiucedu_uin", TokenScheme.LEGACY_SSO),
    ("phoneNumber", TokenScheme.LEGACY_PHONE),
    ("uid", TokenScheme.ACCESS),
)


@dataclass(frozen=True)
class JwtPreview:
    """Header and claims of a token that has not been verified yet."""

    header: dict[str, Any]
    claims: dict[str, Any]

    @property
    def alg(self) -> str | None:
        return self._text(self.header, "alg")

    @property
    def kid(self) -> str | None:
        return self._text(self.header, "kid")

    @property
    def iss(self) -> str | None:
        return self._text(self.claims, "iss")

    @staticmethod
    def _text(source: dict[str, Any], name: str) -> str | None:
        value = source.get(name)
        return value if isinstance(value, str) else None


def _decode_segment(segment: str, label: str, limit: int) -> dict[str, Any]:
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as exc:
        raise UnsupportedTokenType(f"Invalid base64url in {label}") from exc
    if len(raw) > limit:
        raise UnsupportedTokenType(f"{label} too large")

    try:
        decoded = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise UnsupportedTokenType(f"Unreadable {label}") from exc
    if not isinstance(decoded, dict):
        raise UnsupportedTokenType(f"{label} must be a JSON object")
    return decoded


def preview_jwt(token: str) -> JwtPreview:
    """Decode header and payload of a compact JWT without checking the signature."""
    if not token or len(token) > TOKEN_SIZE_LIMIT:
        raise UnsupportedTokenType("Invalid token size")
    if _COMPACT_FORM.fullmatch(token) is None:
        raise UnsupportedTokenType("Not a compact JWT")

    header_segment, claims_segment, _ = token.split(".")
    return JwtPreview(
        header=_decode_segment(header_segment, "JWT header", HEADER_BYTES_LIMIT),
        claims=_decode_segment(claims_segment, "JWT payload", CLAIMS_BYTES_LIMIT),
    )


def classify_claims(claims: dict[str, Any]) -> TokenScheme:
    scheme = next(
        (scheme for claim, scheme in CLASSIFYING_CLAIMS if claim in claims), None
    )
    if scheme is None:
        raise UnsupportedTokenType("Token carries none of the classifying claims")
    return scheme


def classify_token(token: str) -> TokenScheme:
    return classify_claims(preview_jwt(token).claims)
