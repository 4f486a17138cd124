"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.health.api.http.app_data import ApplicationDependencies, build_dependencies
from src.health.api.http.routers import admin, keys, user, versions
from src.health.api.utils.app_startup import configure_logging
from src.health.core.errors import (
    AuthError,
    HealthError,
    IdentityAlreadyExists,
    UnsupportedVersion,
)
from src.health.runtime.config.config_data import ConfigData
from src.health.runtime.context import get_config

# Initialize logging
configure_logging()


def status_for(exc: HealthError) -> int:
    if isinstance(exc, AuthError):
        return exc.status_code
    if isinstance(exc, UnsupportedVersion):
        return 404
    if isinstance(exc, IdentityAlreadyExists):
        return 409
    return 500


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        if get_config().app.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    start = time.perf_counter()

    # Everything that logs within this block inherits base_ctx
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        duration_ms = (time.perf_counter() - start) * 1000
        logger.bind(
            status_code=response.status_code,
            duration_ms=round(duration_ms, 1),
        ).info("request.end")
        response.headers.setdefault("X-Request-ID", request_id)
        return response


async def handle_health_error(request: Request, exc: HealthError) -> JSONResponse:
    """Domain errors escaping a handler; the body never carries the reason."""
    status_code = status_for(exc)
    request_id = getattr(request.state, "request_id", None)
    log = logger.error if status_code >= 500 else logger.warning
    log("Request failed with {}: {}", status_code, exc.to_dict())
    return JSONResponse(
        status_code=status_code,
        content={"detail": HTTPStatus(status_code).phrase, "request_id": request_id},
    )


async def startup(app: FastAPI) -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    deps: ApplicationDependencies | None = getattr(app.state, "app_dependencies", None)
    if deps is None:
        deps = build_dependencies(config)
        app.state.app_dependencies = deps

    await deps.versions.load()
    await deps.gate.start()

    # Surface SSO provider problems at startup rather than on the first admin login
    if config.oidc.prefetch_on_startup and config.auth.legacy_sso_enabled:
        try:
            await deps.jwks_service.fetch_jwks()
        except HealthError as exc:
            logger.error("Failed to prefetch SSO key set: {}", exc.message)
            if config.app.environment == "production":
                raise RuntimeError("SSO key set readiness check failed") from exc


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    deps: ApplicationDependencies | None = getattr(app.state, "app_dependencies", None)
    if deps is None:
        return
    await deps.gate.stop()
    deps.storage.close()


def create_app(
    config: ConfigData | None = None,
    dependencies: ApplicationDependencies | None = None,
) -> FastAPI:
    """Build the application.

    ``dependencies`` replaces the wiring done at startup from configuration.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup(app)
        try:
            yield
        finally:
            await shutdown(app)

    is_production = config.app.environment == "production"
    app = FastAPI(
        title="Health Building Block",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )
    if dependencies is not None:
        app.state.app_dependencies = dependencies

    if is_production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )
    app.middleware("http")(log_requests)
    app.add_exception_handler(HealthError, handle_health_error)

    app.include_router(user.router)
    app.include_router(versions.router)
    app.include_router(admin.router)
    app.include_router(keys.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "healthy"}

    @app.get("/ready", response_model=None)
    async def readiness(request: Request) -> dict[str, object] | JSONResponse:
        """Ready once the supported versions are loaded."""
        deps: ApplicationDependencies | None = getattr(
            request.app.state, "app_dependencies", None
        )
        if deps is None or not deps.versions.versions:
            return JSONResponse(status_code=503, content={"status": "not ready"})
        return {
            "status": "ready",
            "versions": len(deps.versions.versions),
            "roster_entries": len(deps.roster),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # the middleware logs requests
    )
