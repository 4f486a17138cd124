from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy import StaticPool
from sqlmodel import create_engine
from starlette.requests import Request

from src.health.core.services.database.db_session import DbSessionService
from src.health.core.storage import InMemoryStorage, SqlStorage
from src.health.entities.identity import Account, Identity, SsoClaims
from src.health.entities.roster import RosterEntry
from src.health.runtime.config.config_data import (
    AppConfig,
    AuthConfig,
    CacheConfig,
    ConfigData,
    OIDCConfig,
)

SSO_ISSUER = "https://shibboleth.test"
SSO_JWKS_URI = "https://shibboleth.test/jwks"
ACCESS_ISSUER = "https://core.rokwire.test"
PHONE_SECRET = "phone-secret-for-tests-0123456789abcdef"

APP_CLIENT_ID = "app-client"
WEB_APP_CLIENT_ID = "web-app-client"
ADMIN_APP_CLIENT_ID = "admin-app-client"
ADMIN_WEB_APP_CLIENT_ID = "admin-web-client"

APP_API_KEY = "app-key"
PROVIDERS_API_KEY = "providers-key"
EXTERNAL_API_KEY = "external-key"

ROSTER_PHONE = "+12175550100"
ROSTER_UIN = "650000042"


@pytest.fixture
def config(access_jwks: dict[str, Any]) -> ConfigData:
    return ConfigData(
        app=AppConfig(environment="test", storage="memory"),
        oidc=OIDCConfig(
            issuer=SSO_ISSUER,
            jwks_uri=SSO_JWKS_URI,
            app_client_id=APP_CLIENT_ID,
            web_app_client_id=WEB_APP_CLIENT_ID,
            admin_app_client_id=ADMIN_APP_CLIENT_ID,
            admin_web_app_client_id=ADMIN_WEB_APP_CLIENT_ID,
            prefetch_on_startup=False,
        ),
        auth=AuthConfig(
            app_api_keys=[APP_API_KEY, "older-app-key"],
            providers_api_keys=[PROVIDERS_API_KEY],
            external_api_keys=[EXTERNAL_API_KEY],
            phone_secret=PHONE_SECRET,
            access_token_issuer=ACCESS_ISSUER,
            access_token_keys=access_jwks,
        ),
        cache=CacheConfig(identity_ttl_seconds=300, sweep_interval_seconds=300),
    )


@pytest.fixture
def request_factory() -> Callable[..., Request]:
    def _make_request(
        headers: dict[str, str] | None = None,
        cookies: dict[str, str] | None = None,
    ) -> Request:
        raw_headers = [
            (name.lower().encode("ascii"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        if cookies:
            cookie = "; ".join(f"{name}={value}" for name, value in cookies.items())
            raw_headers.append((b"cookie", cookie.encode("latin-1")))
        scope = {
            "type": "http",
            "headers": raw_headers,
            "method": "GET",
            "path": "/",
            "query_string": b"",
        }
        return Request(scope)

    return _make_request


@pytest.fixture
def registered_identity() -> Identity:
    """End-user identity with its default account."""
    identity = Identity(external_id="user-1", consent=True)
    identity.accounts.append(
        Account(id=identity.id, external_id="user-1", default=True, active=True)
    )
    identity.accounts.append(
        Account(id="delegated-account", external_id="child-1", first_name="Kid")
    )
    return identity


@pytest.fixture
def roster_identity() -> Identity:
    """Identity of the institutional user listed in the roster, without accounts."""
    return Identity(external_id=ROSTER_UIN)


@pytest.fixture
def admin_identity() -> Identity:
    return Identity(
        external_id="a_650000001",
        sso=SsoClaims(
            uin="650000001",
            email="admin@illinois.edu",
            is_member_of=["health-admins"],
        ),
    )


@pytest.fixture
def roster_entries() -> list[RosterEntry]:
    return [
        RosterEntry(phone=ROSTER_PHONE, uin=ROSTER_UIN, first_name="Pat"),
        RosterEntry(phone="+12175550199", uin="650000099"),
    ]


@pytest.fixture
def storage(
    registered_identity: Identity,
    roster_identity: Identity,
    admin_identity: Identity,
    roster_entries: list[RosterEntry],
) -> InMemoryStorage:
    return InMemoryStorage(
        identities=[registered_identity, roster_identity, admin_identity],
        versions=["2.0", "2.2", "2.1.3", "3.0"],
        roster=roster_entries,
    )


@pytest.fixture
def db_service() -> Generator[DbSessionService]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    service = DbSessionService(engine=engine)
    service.create_all()
    yield service
    service.close()


@pytest.fixture
def sql_storage(db_service: DbSessionService) -> SqlStorage:
    return SqlStorage(db_service)
