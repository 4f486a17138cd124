import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import httpx
from authlib.jose import JsonWebKey, KeySet
from authlib.jose.errors import JoseError
from cachetools import TTLCache
from loguru import logger

from src.health.core.errors import UnknownSigningKey, UpstreamUnavailable
from src.health.runtime.config.config_data import OIDCConfig


class JWKSCache(ABC):
    @abstractmethod
    def get_jwks(self, jwks_url: str) -> dict[str, Any]:
        """Return the cached key set for ``jwks_url`` or an empty dict."""
        raise NotImplementedError

    @abstractmethod
    def set_jwks(self, jwks_url: str, jwks: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_jwks_cache(self) -> None:
        """Clear the JWKS cache."""
        raise NotImplementedError


class JWKSCacheInMemory(JWKSCache):
    def __init__(self, ttl_seconds: float = 3600, maxsize: int = 10) -> None:
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(
            maxsize=maxsize, ttl=ttl_seconds
        )

    def get_jwks(self, jwks_url: str) -> dict[str, Any]:
        return self._cache.get(jwks_url, {})

    def set_jwks(self, jwks_url: str, jwks: dict[str, Any]) -> None:
        self._cache[jwks_url] = jwks

    def clear_jwks_cache(self) -> None:
        self._cache.clear()


class JwksService:
    """Fetches and caches the key set published by the SSO provider.

    The JWKS location comes from ``oidc.jwks_uri`` when configured, otherwise
    from the provider's discovery document.
    """

    def __init__(
        self,
        cache: JWKSCache,
        oidc: OIDCConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache = cache
        self._oidc = oidc
        self._clock = clock
        self._jwks_uri: str | None = oidc.jwks_uri or None
        self._last_miss_refetch: float | None = None

    async def _get_json(self, url: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._oidc.http_timeout_seconds) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(f"Failed to fetch {url}: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailable(f"Unexpected document at {url}")
        return data

    async def resolve_jwks_uri(self) -> str:
        if self._jwks_uri:
            return self._jwks_uri
        discovery = await self._get_json(self._oidc.discovery_url)
        jwks_uri = discovery.get("jwks_uri")
        if not isinstance(jwks_uri, str) or not jwks_uri:
            raise UpstreamUnavailable("Discovery document has no jwks_uri")
        self._jwks_uri = jwks_uri
        return jwks_uri

    async def fetch_jwks(self, *, force: bool = False) -> dict[str, Any]:
        jwks_url = await self.resolve_jwks_uri()

        if not force:
            jwks = self._cache.get_jwks(jwks_url)
            if jwks:
                return jwks

        logger.info("Fetching SSO key set from {}", jwks_url)
        jwks = await self._get_json(jwks_url)
        self._cache.set_jwks(jwks_url, jwks)
        return jwks

    async def key_set_for(self, kid: str | None) -> KeySet:
        """Return the keys matching ``kid``, refetching once on a miss (rotation)."""
        jwks = await self.fetch_jwks()
        matching = _select_by_kid(jwks, kid)
        if kid and not matching and self._may_refetch_on_miss():
            logger.info("No SSO key matches kid={}, refetching key set", kid)
            matching = _select_by_kid(await self.fetch_jwks(force=True), kid)
        if not matching:
            raise UnknownSigningKey(f"No JWK matches kid={kid}")
        try:
            return JsonWebKey.import_key_set({"keys": matching})
        except (JoseError, ValueError) as exc:
            raise UpstreamUnavailable(f"Provider published an unusable key: {exc}") from exc

    def _may_refetch_on_miss(self) -> bool:
        """At most one refetch per interval, however many unknown kids arrive."""
        now = self._clock()
        last = self._last_miss_refetch
        if last is not None and now - last < self._oidc.jwks_refetch_interval_seconds:
            logger.debug("Unknown kid within refetch interval; using cached key set")
            return False
        self._last_miss_refetch = now
        return True


def _select_by_kid(jwks: dict[str, Any], kid: str | None) -> list[dict[str, Any]]:
    keys = [k for k in jwks.get("keys", []) if isinstance(k, dict)]
    if kid is None:
        return keys
    return [k for k in keys if k.get("kid") == kid]


class StaticKeySet:
    """Key set used for access and CSRF tokens, taken from configuration.

    Replace it with :meth:`replace` to rotate keys without a restart.
    """

    def __init__(self, jwks: dict[str, Any] | None = None) -> None:
        self._keys: tuple[dict[str, Any], ...] = ()
        self.replace(jwks or {"keys": []})

    def replace(self, jwks: dict[str, Any]) -> None:
        keys = jwks.get("keys")
        if not isinstance(keys, list):
            raise ValueError("JWKS must contain a 'keys' list")
        self._keys = tuple(k for k in keys if isinstance(k, dict))

    def __len__(self) -> int:
        return len(self._keys)

    def lookup(self, kid: str):
        """Return the public key registered under ``kid``.

        Raises:
            UnknownSigningKey: If zero or more than one key carries ``kid``
        """
        matches = [k for k in self._keys if k.get("kid") == kid]
        if not matches:
            raise UnknownSigningKey(f"No key matches kid={kid}")
        if len(matches) > 1:
            raise UnknownSigningKey(f"Multiple keys match kid={kid}")
        try:
            key = JsonWebKey.import_key(matches[0])
        except (JoseError, ValueError) as exc:
            raise UnknownSigningKey(f"Key {kid} cannot be imported: {exc}") from exc
        if key.kty != "RSA":
            raise UnknownSigningKey(f"Key {kid} is not an RSA key")
        return key
