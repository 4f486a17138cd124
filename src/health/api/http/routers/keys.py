"""Endpoints reachable with provider and external-system API keys."""

from fastapi import APIRouter, Depends

from src.health.api.http.deps import require_external_key, require_providers_key
from src.health.core.models.auth import ApiKeyPrincipal

router = APIRouter(prefix="/covid19", tags=["keys"])


@router.post("/providers/ping")
async def providers_ping(
    principal: ApiKeyPrincipal = Depends(require_providers_key),
) -> dict[str, str]:
    return {"status": "ok"}


@router.post("/ext/ping")
async def external_ping(
    principal: ApiKeyPrincipal = Depends(require_external_key),
) -> dict[str, str]:
    return {"status": "ok"}
