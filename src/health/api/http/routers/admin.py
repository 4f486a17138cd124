"""Administrator endpoints."""

from fastapi import APIRouter, Depends, status
from loguru import logger
from pydantic import BaseModel

from src.health.api.http.deps import get_version_resolver, require_admin
from src.health.api.http.schemas import IdentityResponse
from src.health.core.models.auth import AdminPrincipal
from src.health.core.services import VersionResolver

router = APIRouter(prefix="/covid19/admin", tags=["admin"])


class AdminUserResponse(BaseModel):
    identity: IdentityResponse
    group: str
    email: str | None


class AppVersionRequest(BaseModel):
    version: str


@router.get("/user", response_model=AdminUserResponse)
async def get_admin_user(
    principal: AdminPrincipal = Depends(require_admin),
) -> AdminUserResponse:
    return AdminUserResponse(
        identity=IdentityResponse.from_identity(principal.identity),
        group=principal.group,
        email=principal.sso.email,
    )


@router.get("/app-versions")
async def list_app_versions(
    principal: AdminPrincipal = Depends(require_admin),
    versions: VersionResolver = Depends(get_version_resolver),
) -> list[str]:
    return list(versions.versions)


@router.post("/app-versions", status_code=status.HTTP_201_CREATED)
async def create_app_version(
    body: AppVersionRequest,
    principal: AdminPrincipal = Depends(require_admin),
    versions: VersionResolver = Depends(get_version_resolver),
) -> dict[str, str]:
    created = await versions.create_version(body.version)
    uin, email = principal.identity.log_data()
    logger.info("Admin {} ({}) created app version {}", uin, email, created)
    return {"version": created}
