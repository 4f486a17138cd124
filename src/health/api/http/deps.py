"""FastAPI dependency implementations."""

from __future__ import annotations

from http import HTTPStatus

from fastapi import Depends, HTTPException, Request

from src.health.api.http.app_data import ApplicationDependencies
from src.health.core.models.auth import (
    AdminPrincipal,
    ApiKeyPrincipal,
    AuthDecision,
    UserPrincipal,
)
from src.health.core.services import (
    AuthGate,
    UserManagementService,
    VersionResolver,
)


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_gate(request: Request) -> AuthGate:
    """Get the auth gate instance."""
    return get_app_dependencies(request).gate


def get_user_management_service(request: Request) -> UserManagementService:
    """Get the User Management service instance."""
    return get_app_dependencies(request).users


def get_version_resolver(request: Request) -> VersionResolver:
    return get_app_dependencies(request).versions


def enforce(decision: AuthDecision):
    """Return the decision's principal or raise the matching HTTP error.

    The body only carries the status phrase; the reason is already logged.
    """
    if decision.allowed:
        return decision.principal
    raise HTTPException(
        status_code=decision.status_code,
        detail=HTTPStatus(decision.status_code).phrase,
    )


def require_app_key(
    request: Request, gate: AuthGate = Depends(get_gate)
) -> ApiKeyPrincipal:
    return enforce(gate.check_app_key(request))


def require_providers_key(
    request: Request, gate: AuthGate = Depends(get_gate)
) -> ApiKeyPrincipal:
    return enforce(gate.check_providers_key(request))


def require_external_key(
    request: Request, gate: AuthGate = Depends(get_gate)
) -> ApiKeyPrincipal:
    return enforce(gate.check_external_key(request))


async def require_user(
    request: Request, gate: AuthGate = Depends(get_gate)
) -> UserPrincipal:
    """Authenticated caller; the identity may not be registered yet."""
    return enforce(await gate.check_user(request))


async def require_registered_user(
    principal: UserPrincipal = Depends(require_user),
) -> UserPrincipal:
    if principal.identity is None:
        raise HTTPException(status_code=404, detail=HTTPStatus.NOT_FOUND.phrase)
    return principal


async def require_user_account(
    request: Request, gate: AuthGate = Depends(get_gate)
) -> UserPrincipal:
    principal: UserPrincipal = enforce(await gate.check_user_account(request))
    if principal.identity is None:
        raise HTTPException(status_code=404, detail=HTTPStatus.NOT_FOUND.phrase)
    return principal


async def require_admin(
    request: Request, gate: AuthGate = Depends(get_gate)
) -> AdminPrincipal:
    return enforce(await gate.check_admin(request))
