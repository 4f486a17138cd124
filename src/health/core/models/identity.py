"""Inputs accepted when creating or updating an identity."""

from pydantic import BaseModel


class IdentityProfile(BaseModel):
    """Client-controlled identity fields.

    Encrypted values are opaque to the service. ``re_post`` is only applied
    on update when it is given.
    """

    uuid: str | None = None
    public_key: str | None = None
    consent: bool = False
    consent_vaccine: bool | None = None
    exposure_notification: bool = False
    re_post: bool | None = None
    encrypted_key: str | None = None
    encrypted_blob: str | None = None
    encrypted_pk: str | None = None
