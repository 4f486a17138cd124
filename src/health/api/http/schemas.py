"""Response bodies of the HTTP API."""

from datetime import datetime

from pydantic import BaseModel

from src.health.entities.identity import Account, Identity


class AccountResponse(Account):
    pass


class IdentityResponse(BaseModel):
    id: str
    external_id: str
    uuid: str | None = None
    public_key: str | None = None
    consent: bool
    consent_vaccine: bool | None = None
    exposure_notification: bool
    re_post: bool
    encrypted_key: str | None = None
    encrypted_blob: str | None = None
    encrypted_pk: str | None = None
    accounts: list[AccountResponse]
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        # SSO claims stay internal
        return cls.model_validate(identity.model_dump(exclude={"sso"}))
