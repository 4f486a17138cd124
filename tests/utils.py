import time
from typing import Any

from authlib.jose import JsonWebKey, jwt


def rsa_jwk(kid: str):
    """Generate an RSA private key carrying ``kid``."""
    return JsonWebKey.generate_key("RSA", 2048, is_private=True, options={"kid": kid})


def public_jwk(key, kid: str) -> dict[str, Any]:
    data = key.as_dict(is_private=False)
    data.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return data


def encode_token(
    claims: dict[str, Any], key, *, alg: str = "RS256", kid: str | None = None
) -> str:
    header: dict[str, Any] = {"alg": alg}
    if kid is not None:
        header["kid"] = kid
    return jwt.encode(header, claims, key).decode("ascii")


def access_claims(
    issuer: str,
    *,
    uid: str = "user-1",
    auth: str = "oidc",
    token_type: str = "access",
    expires_in: int = 600,
    **extra: Any,
) -> dict[str, Any]:
    now = int(time.time())
    claims = {
        "iss": issuer,
        "uid": uid,
        "auth": auth,
        "type": token_type,
        "iat": now,
        "exp": now + expires_in,
    }
    claims.update(extra)
    return claims


def sso_claims(
    issuer: str,
    audience: str,
    *,
    uin: str = "650000001",
    email: str = "admin@illinois.edu",
    groups: list[str] | None = None,
    expires_in: int = 600,
) -> dict[str, Any]:
    now = int(time.time())
    claims: dict[str, Any] = {
        "iss": issuer,
        "aud": audience,
        "sub": f"sub-{uin}",
        "uiucedu_uin": uin,
        "email": email,
        "iat": now,
        "exp": now + expires_in,
    }
    if groups is not None:
        claims["uiucedu_is_member_of"] = groups
    return claims


def phone_claims(phone: str = "+12175550100", *, expires_in: int = 600) -> dict[str, Any]:
    now = int(time.time())
    return {"phoneNumber": phone, "iat": now, "exp": now + expires_in}
