from unittest.mock import AsyncMock

import pytest

from src.health.core.errors import (
    IdentityNotProvisioned,
    InsufficientPrivilege,
    InvalidApiKey,
    InvalidSignature,
    MalformedRequest,
    UpstreamUnavailable,
)
from src.health.core.models.auth import AuthMethod
from src.health.core.services import ApiKeyAuth
from tests.fixtures.core import (
    ADMIN_APP_CLIENT_ID,
    ADMIN_WEB_APP_CLIENT_ID,
    APP_API_KEY,
    EXTERNAL_API_KEY,
    PROVIDERS_API_KEY,
    ROSTER_PHONE,
    ROSTER_UIN,
)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestApiKeyChecks:
    def test_app_key_with_version(self, gate, request_factory):
        decision = gate.check_app_key(
            request_factory({"ROKWIRE-API-KEY": APP_API_KEY, "v": "2.2.1"})
        )

        assert decision.allowed
        assert decision.principal.app_version == "2.2.1"

    def test_any_configured_key_is_accepted(self, gate, request_factory):
        decision = gate.check_app_key(request_factory({"ROKWIRE-API-KEY": "older-app-key"}))

        assert decision.allowed
        assert decision.principal.app_version is None

    def test_missing_key_is_bad_request(self, gate, request_factory):
        decision = gate.check_app_key(request_factory({}))

        assert not decision.allowed
        assert decision.status_code == 400
        assert isinstance(decision.reason, MalformedRequest)

    def test_unknown_key_is_unauthorized(self, gate, request_factory):
        decision = gate.check_app_key(request_factory({"ROKWIRE-API-KEY": "guess"}))

        assert decision.status_code == 401
        assert isinstance(decision.reason, InvalidApiKey)

    def test_keys_are_scoped_to_their_check(self, gate, request_factory):
        """A providers key is not an external key and the other way around."""
        providers = request_factory({"ROKWIRE-HS-API-KEY": PROVIDERS_API_KEY})
        external = request_factory({"ROKWIRE-EXT-HS-API-KEY": EXTERNAL_API_KEY})

        assert gate.check_providers_key(providers).allowed
        assert gate.check_external_key(external).allowed
        assert not gate.check_providers_key(
            request_factory({"ROKWIRE-HS-API-KEY": EXTERNAL_API_KEY})
        ).allowed
        assert not gate.check_external_key(
            request_factory({"ROKWIRE-EXT-HS-API-KEY": PROVIDERS_API_KEY})
        ).allowed

    def test_no_configured_keys_rejects_everything(self, request_factory):
        auth = ApiKeyAuth("empty", "X-KEY", [""])
        decision = auth.check(request_factory({"X-KEY": "anything"}))
        assert decision.status_code == 401


class TestUserCheck:
    async def test_registered_user(self, gate, request_factory, make_access_token):
        decision = await gate.check_user(
            request_factory({**bearer(make_access_token(uid="user-1")), "v": "2.2"})
        )

        assert decision.allowed
        principal = decision.principal
        assert principal.is_registered
        assert principal.external_id == "user-1"
        assert principal.app_version == "2.2"
        assert "user-1" in gate.user_cache

    async def test_unregistered_user_is_allowed(
        self, gate, request_factory, make_access_token
    ):
        decision = await gate.check_user(
            request_factory(bearer(make_access_token(uid="newcomer")))
        )

        assert decision.allowed
        assert decision.principal.identity is None
        assert decision.principal.external_id == "newcomer"

    async def test_cache_hit_skips_storage(
        self, gate, storage, request_factory, make_access_token
    ):
        request = request_factory(bearer(make_access_token(uid="user-1")))
        await gate.check_user(request)
        storage.find_identity_by_external_id = AsyncMock(
            side_effect=AssertionError("storage should not be read")
        )

        decision = await gate.check_user(request)

        assert decision.allowed

    async def test_missing_token(self, gate, request_factory):
        decision = await gate.check_user(request_factory({}))
        assert decision.status_code == 400

    async def test_non_bearer_scheme(self, gate, request_factory, make_access_token):
        decision = await gate.check_user(
            request_factory({"Authorization": f"Basic {make_access_token()}"})
        )
        assert decision.status_code == 400

    async def test_cookie_without_csrf_header(
        self, gate, request_factory, make_access_token
    ):
        decision = await gate.check_user(
            request_factory(cookies={"rokwire-access": make_access_token()})
        )
        assert decision.status_code == 400

    async def test_cookie_with_csrf_header(
        self, gate, request_factory, make_access_token, make_csrf_token
    ):
        decision = await gate.check_user(
            request_factory(
                {"CSRF": make_csrf_token()},
                cookies={"rokwire-access": make_access_token()},
            )
        )
        assert decision.allowed

    async def test_cookie_wins_over_header(
        self, gate, request_factory, make_access_token, make_csrf_token
    ):
        decision = await gate.check_user(
            request_factory(
                {**bearer(make_access_token(uid="from-header")), "CSRF": make_csrf_token()},
                cookies={"rokwire-access": make_access_token(uid="user-1")},
            )
        )
        assert decision.principal.external_id == "user-1"

    async def test_invalid_token(self, gate, request_factory, make_access_token):
        decision = await gate.check_user(
            request_factory(bearer(make_access_token(expires_in=-3600)))
        )

        assert decision.status_code == 401
        assert isinstance(decision.reason, InvalidSignature)

    async def test_phone_resolved_through_roster(
        self, gate, request_factory, make_phone_token, roster_identity
    ):
        """A roster phone acts as the institutional identity and gets a default account."""
        decision = await gate.check_user(
            request_factory(bearer(make_phone_token(ROSTER_PHONE)))
        )

        assert decision.allowed
        principal = decision.principal
        assert principal.external_id == ROSTER_UIN
        assert principal.auth_method is AuthMethod.SHIBBOLETH
        assert principal.identity.id == roster_identity.id
        assert principal.identity.has_default_account()

    async def test_phone_access_token_resolved_through_roster(
        self, gate, request_factory, make_access_token
    ):
        decision = await gate.check_user(
            request_factory(
                bearer(make_access_token(uid=ROSTER_PHONE, auth="rokwire_phone"))
            )
        )
        assert decision.principal.external_id == ROSTER_UIN

    async def test_phone_not_in_roster(self, gate, request_factory, make_phone_token):
        decision = await gate.check_user(
            request_factory(bearer(make_phone_token("+19999999999")))
        )

        assert decision.status_code == 401
        assert isinstance(decision.reason, IdentityNotProvisioned)

    async def test_storage_failure_is_server_error(
        self, gate, storage, request_factory, make_access_token
    ):
        storage.find_identity_by_external_id = AsyncMock(side_effect=RuntimeError("db"))

        decision = await gate.check_user(
            request_factory(bearer(make_access_token(uid="user-1")))
        )

        assert decision.status_code == 500
        assert isinstance(decision.reason, UpstreamUnavailable)


class TestUserAccountCheck:
    async def test_defaults_to_default_account(
        self, gate, request_factory, make_access_token, registered_identity
    ):
        decision = await gate.check_user_account(
            request_factory(bearer(make_access_token(uid="user-1")))
        )

        assert decision.allowed
        assert decision.principal.account.id == registered_identity.id

    async def test_selects_requested_account(
        self, gate, request_factory, make_access_token
    ):
        decision = await gate.check_user_account(
            request_factory(
                {
                    **bearer(make_access_token(uid="user-1")),
                    "ROKWIRE-ACC-ID": "delegated-account",
                }
            )
        )

        assert decision.principal.account.external_id == "child-1"

    async def test_foreign_account_is_forbidden(
        self, gate, request_factory, make_access_token
    ):
        decision = await gate.check_user_account(
            request_factory(
                {**bearer(make_access_token(uid="user-1")), "ROKWIRE-ACC-ID": "theirs"}
            )
        )

        assert decision.status_code == 403
        assert isinstance(decision.reason, InsufficientPrivilege)

    async def test_unregistered_user_has_no_account(
        self, gate, request_factory, make_access_token
    ):
        decision = await gate.check_user_account(
            request_factory(bearer(make_access_token(uid="newcomer")))
        )

        assert decision.allowed
        assert decision.principal.account is None


class TestAdminCheck:
    async def test_member_of_group(self, gate, request_factory, make_sso_token):
        token = make_sso_token(audience=ADMIN_APP_CLIENT_ID, groups=["health-admins"])

        decision = await gate.check_admin(
            request_factory({**bearer(token), "GROUP": "health-admins"})
        )

        assert decision.allowed
        assert decision.principal.group == "health-admins"
        assert decision.principal.identity.external_id == "a_650000001"
        assert "650000001" in gate.admin_cache

    async def test_cookie_uses_admin_web_client(
        self, gate, request_factory, make_sso_token
    ):
        token = make_sso_token(
            audience=ADMIN_WEB_APP_CLIENT_ID, groups=["health-admins"]
        )

        decision = await gate.check_admin(
            request_factory({"GROUP": "health-admins"}, cookies={"rwa-at-data": token})
        )

        assert decision.allowed

    async def test_not_a_member(self, gate, request_factory, make_sso_token):
        token = make_sso_token(audience=ADMIN_APP_CLIENT_ID, groups=["health-admins"])

        decision = await gate.check_admin(
            request_factory({**bearer(token), "GROUP": "superusers"})
        )

        assert decision.status_code == 403

    async def test_group_header_required(self, gate, request_factory, make_sso_token):
        token = make_sso_token(audience=ADMIN_APP_CLIENT_ID, groups=["health-admins"])

        decision = await gate.check_admin(request_factory(bearer(token)))

        assert decision.status_code == 400

    async def test_missing_token(self, gate, request_factory):
        decision = await gate.check_admin(request_factory({"GROUP": "health-admins"}))
        assert decision.status_code == 400

    async def test_user_token_is_not_an_admin_token(
        self,
        gate,
        jwks_service,
        sso_jwks,
        request_factory,
        make_access_token,
        monkeypatch,
    ):
        monkeypatch.setattr(jwks_service, "_get_json", AsyncMock(return_value=sso_jwks))

        decision = await gate.check_admin(
            request_factory({**bearer(make_access_token()), "GROUP": "health-admins"})
        )
        assert decision.status_code == 401

    async def test_first_login_provisions_identity(
        self, gate, storage, request_factory, make_sso_token
    ):
        token = make_sso_token(
            audience=ADMIN_APP_CLIENT_ID,
            uin="650000555",
            email="new.admin@illinois.edu",
            groups=["health-admins"],
        )

        decision = await gate.check_admin(
            request_factory({**bearer(token), "GROUP": "health-admins"})
        )

        assert decision.allowed
        stored = await storage.find_identity_by_sso_id("650000555")
        assert stored.external_id == "a_650000555"
        assert stored.sso.email == "new.admin@illinois.edu"

    async def test_changed_memberships_are_saved(
        self, gate, storage, request_factory, make_sso_token, admin_identity
    ):
        """Losing a group takes effect on the next request."""
        first = make_sso_token(audience=ADMIN_APP_CLIENT_ID, groups=["health-admins"])
        await gate.check_admin(request_factory({**bearer(first), "GROUP": "health-admins"}))

        second = make_sso_token(audience=ADMIN_APP_CLIENT_ID, groups=["readers"])
        decision = await gate.check_admin(
            request_factory({**bearer(second), "GROUP": "health-admins"})
        )

        assert decision.status_code == 403
        stored = await storage.find_identity_by_id(admin_identity.id)
        assert stored.sso.is_member_of == ["readers"]
        assert "650000001" not in gate.admin_cache


@pytest.mark.parametrize("method", ["check_user", "check_user_account", "check_admin"])
async def test_checks_never_raise(gate, request_factory, method):
    decision = await getattr(gate, method)(
        request_factory({"Authorization": "Bearer not.a.jwt", "GROUP": "g"})
    )
    assert not decision.allowed
