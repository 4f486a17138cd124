"""Identity database table model."""

from typing import Any

from sqlalchemy import JSON, Column, String
from sqlmodel import Field

from src.health.entities._base import EntityTable


class IdentityTable(EntityTable, table=True):
    """Database persistence model for identities.

    SSO claims and accounts are embedded as JSON documents; ``sso_uin`` is
    denormalized so admin lookups can use an index.
    """

    __tablename__ = "identities"

    external_id: str = Field(
        sa_column=Column(String(512), nullable=False, unique=True, index=True)
    )
    sso_uin: str | None = Field(
        default=None, sa_column=Column(String(64), nullable=True, index=True)
    )
    sso: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    uuid: str | None = None
    public_key: str | None = None
    consent: bool = False
    consent_vaccine: bool | None = None
    exposure_notification: bool = False
    re_post: bool = False
    encrypted_key: str | None = None
    encrypted_blob: str | None = None
    encrypted_pk: str | None = None

    accounts: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
