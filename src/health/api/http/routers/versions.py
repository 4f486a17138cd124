"""App-version resolution for clients."""

from fastapi import APIRouter, Depends

from src.health.api.http.deps import get_version_resolver, require_app_key
from src.health.core.models.auth import ApiKeyPrincipal
from src.health.core.services import VersionResolver

router = APIRouter(prefix="/covid19/app-version", tags=["versions"])


@router.get("/resolve")
async def resolve_version(
    principal: ApiKeyPrincipal = Depends(require_app_key),
    versions: VersionResolver = Depends(get_version_resolver),
) -> dict[str, str | None]:
    """Map the caller's ``v`` header to the configuration version serving it."""
    return {
        "requested": principal.app_version,
        "version": versions.resolve(principal.app_version),
    }
