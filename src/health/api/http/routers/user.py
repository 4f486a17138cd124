"""End-user identity endpoints."""

from fastapi import APIRouter, Depends, status

from src.health.api.http.deps import (
    get_user_management_service,
    require_registered_user,
    require_user,
    require_user_account,
)
from src.health.api.http.schemas import AccountResponse, IdentityResponse
from src.health.core.errors import IdentityAlreadyExists
from src.health.core.models.auth import UserPrincipal
from src.health.core.models.identity import IdentityProfile
from src.health.core.services import UserManagementService

router = APIRouter(prefix="/covid19/user", tags=["user"])


@router.get("", response_model=IdentityResponse)
async def get_user(
    principal: UserPrincipal = Depends(require_registered_user),
) -> IdentityResponse:
    return IdentityResponse.from_identity(principal.identity)


@router.post("", response_model=IdentityResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    profile: IdentityProfile,
    principal: UserPrincipal = Depends(require_user),
    users: UserManagementService = Depends(get_user_management_service),
) -> IdentityResponse:
    """Register the caller. The external id comes from the verified token."""
    if principal.identity is not None:
        raise IdentityAlreadyExists(
            f"Identity for {principal.external_id} already exists"
        )
    identity = await users.create_app_user(principal.external_id, profile)
    return IdentityResponse.from_identity(identity)


@router.put("", response_model=IdentityResponse)
async def update_user(
    profile: IdentityProfile,
    principal: UserPrincipal = Depends(require_registered_user),
    users: UserManagementService = Depends(get_user_management_service),
) -> IdentityResponse:
    identity = await users.update_app_user(principal.identity, profile)
    return IdentityResponse.from_identity(identity)


@router.delete("/clear", status_code=status.HTTP_204_NO_CONTENT)
async def clear_user(
    principal: UserPrincipal = Depends(require_registered_user),
    users: UserManagementService = Depends(get_user_management_service),
) -> None:
    await users.clear_user_data(principal.identity)


@router.get("/account", response_model=AccountResponse)
async def get_account(
    principal: UserPrincipal = Depends(require_user_account),
) -> AccountResponse:
    return AccountResponse.model_validate(principal.account.model_dump())
