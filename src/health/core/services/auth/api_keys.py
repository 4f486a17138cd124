import hmac
from collections.abc import Iterable

from loguru import logger
from starlette.requests import Request

from src.health.core.errors import AuthError, InvalidApiKey, MalformedRequest
from src.health.core.models.auth import ApiKeyPrincipal, AuthDecision


class ApiKeyAuth:
    """Checks a static API key header against an allow-list."""

    def __init__(
        self,
        name: str,
        header: str,
        keys: Iterable[str],
        *,
        version_header: str | None = None,
    ):
        self.name = name
        self._header = header
        self._keys = tuple(k for k in keys if k)
        self._version_header = version_header

    def _is_known(self, candidate: str) -> bool:
        # Compare against every key so timing does not reveal which one matched
        matched = False
        for key in self._keys:
            if hmac.compare_digest(candidate.encode("utf-8"), key.encode("utf-8")):
                matched = True
        return matched

    def authenticate(self, request: Request) -> ApiKeyPrincipal:
        api_key = request.headers.get(self._header)
        if not api_key:
            raise MalformedRequest(f"Missing {self._header} header")
        if not self._is_known(api_key):
            raise InvalidApiKey(f"Unknown {self.name} API key")

        app_version = None
        if self._version_header:
            app_version = request.headers.get(self._version_header) or None
        return ApiKeyPrincipal(app_version=app_version)

    def check(self, request: Request) -> AuthDecision:
        try:
            return AuthDecision.allow(self.authenticate(request))
        except AuthError as exc:
            logger.warning("{} API key check rejected: {}", self.name, exc.message)
            return AuthDecision.deny(exc)
