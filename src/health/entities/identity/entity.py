"""Identity domain entity."""

from pydantic import BaseModel, Field

from src.health.entities._base import Entity


class SsoClaims(BaseModel):
    """Claims copied from a verified campus SSO token."""

    uin: str = Field(description="Institutional identifier (uiucedu_uin)")
    email: str | None = Field(default=None, description="Email from the SSO token")
    is_member_of: list[str] | None = Field(
        default=None, description="Group memberships; None when the claim is absent"
    )


class Account(BaseModel):
    """An account hanging off an identity (own or delegated)."""

    id: str
    external_id: str
    default: bool = False
    active: bool = True

    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    phone: str | None = None
    email: str | None = None


class Identity(Entity):
    """A user or admin record keyed by the token's external id.

    Once an identity has gone through the authenticated user flow exactly one
    of its accounts is the default one. Admin identities discovered through
    SSO may have none.
    """

    external_id: str = Field(description="Identifier carried by the caller's token")
    sso: SsoClaims | None = Field(default=None, description="SSO claims, admins only")

    uuid: str | None = None
    public_key: str | None = None
    consent: bool = False
    consent_vaccine: bool | None = None
    exposure_notification: bool = False
    re_post: bool = False
    encrypted_key: str | None = None
    encrypted_blob: str | None = None
    encrypted_pk: str | None = None

    accounts: list[Account] = Field(default_factory=list)

    def is_member_of(self, group: str) -> bool:
        if self.sso is None or not self.sso.is_member_of:
            return False
        return group in self.sso.is_member_of

    def has_default_account(self) -> bool:
        return self.get_default_account() is not None

    def get_default_account(self) -> Account | None:
        for account in self.accounts:
            if account.default:
                return account
        return None

    def get_account(self, account_id: str) -> Account | None:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def log_data(self) -> tuple[str, str | None]:
        """Identifier and email used in audit log lines."""
        if self.sso is not None:
            return self.sso.uin, self.sso.email
        return self.external_id, None
