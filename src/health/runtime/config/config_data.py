"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class OIDCConfig(BaseModel):
    """Federated identity provider used by the legacy SSO token scheme."""

    issuer: str = Field(
        default="https://shibboleth.illinois.edu",
        description="OIDC issuer URL of the campus identity provider",
    )
    openid_configuration_endpoint: str | None = Field(
        default=None,
        description="Discovery document URL (defaults to <issuer>/.well-known/openid-configuration)",
    )
    jwks_uri: str | None = Field(
        default=None,
        description="JWKS endpoint; when unset it is read from the discovery document",
    )
    app_client_id: str = Field(
        default="", description="Audience for ID tokens sent by the mobile app"
    )
    web_app_client_id: str = Field(
        default="", description="Audience for ID tokens sent by the web app"
    )
    admin_app_client_id: str = Field(
        default="", description="Audience for admin ID tokens sent by the mobile app"
    )
    admin_web_app_client_id: str = Field(
        default="", description="Audience for admin ID tokens sent by the admin web app"
    )
    http_timeout_seconds: float = Field(
        default=5.0, description="Timeout for discovery and JWKS requests"
    )
    jwks_cache_ttl_seconds: int = Field(
        default=3600, description="How long a fetched key set is reused"
    )
    prefetch_on_startup: bool = Field(
        default=True, description="Fetch the key set during application startup"
    )
    jwks_refetch_interval_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Minimum gap between refetches triggered by an unknown kid",
    )

    @property
    def discovery_url(self) -> str:
        if self.openid_configuration_endpoint:
            return self.openid_configuration_endpoint
        return f"{self.issuer.rstrip('/')}/.well-known/openid-configuration"


class AuthConfig(BaseModel):
    """API keys, token secrets and the header/cookie names the gates read."""

    app_api_keys: list[str] = Field(
        default_factory=list, description="Keys accepted in the app API-key header"
    )
    providers_api_keys: list[str] = Field(
        default_factory=list, description="Keys accepted from healthcare providers"
    )
    external_api_keys: list[str] = Field(
        default_factory=list, description="Keys accepted from external systems"
    )

    phone_secret: str = Field(
        default="", description="Pre-shared HMAC secret of legacy phone tokens"
    )
    access_token_issuer: str = Field(
        default="", description="Issuer expected in access and CSRF tokens"
    )
    access_token_keys: dict[str, Any] = Field(
        default_factory=lambda: {"keys": []},
        description="JWKS used to verify access and CSRF tokens",
    )

    legacy_sso_enabled: bool = Field(
        default=True, description="Accept legacy SSO ID tokens on the user path"
    )
    legacy_phone_enabled: bool = Field(
        default=True, description="Accept legacy phone tokens on the user path"
    )

    app_api_key_header: str = Field(default="ROKWIRE-API-KEY")
    providers_api_key_header: str = Field(default="ROKWIRE-HS-API-KEY")
    external_api_key_header: str = Field(default="ROKWIRE-EXT-HS-API-KEY")
    app_version_header: str = Field(default="v")
    csrf_header: str = Field(default="CSRF")
    group_header: str = Field(default="GROUP")
    account_id_header: str = Field(default="ROKWIRE-ACC-ID")
    user_access_cookie: str = Field(default="rokwire-access")
    admin_token_cookie: str = Field(default="rwa-at-data")

    @field_validator("access_token_keys", mode="before")
    @classmethod
    def _parse_keys(cls, value: Any) -> Any:
        # The key set usually arrives as a JSON string through an env variable
        if isinstance(value, str):
            if not value.strip():
                return {"keys": []}
            return json.loads(value)
        return value

    @field_validator(
        "app_api_keys", "providers_api_keys", "external_api_keys", mode="before"
    )
    @classmethod
    def _split_keys(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class JWTConfig(BaseModel):
    """JWT validation configuration."""

    allowed_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256", "RS384", "RS512", "HS256"],
        description="JWT algorithms allowed for token validation",
    )
    clock_skew: int = Field(default=60, description="Clock skew tolerance in seconds")


class CacheConfig(BaseModel):
    """Identity cache tuning."""

    identity_ttl_seconds: float = Field(
        default=300, description="Entries idle for longer than this are evicted"
    )
    sweep_interval_seconds: float = Field(
        default=300, description="How often the sweeper scans the cache"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./health.db", description="Database connection URL"
    )
    echo: bool = Field(default=False, description="Log every SQL statement")


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    storage: Literal["sql", "memory"] = Field(
        default="sql", description="Storage adapter backing the auth core"
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    oidc: OIDCConfig = Field(
        default_factory=OIDCConfig, description="Legacy SSO provider configuration"
    )
    auth: AuthConfig = Field(
        default_factory=AuthConfig, description="Authentication configuration"
    )
    jwt: JWTConfig = Field(
        default_factory=JWTConfig, description="JWT validation configuration"
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig, description="Identity cache configuration"
    )
