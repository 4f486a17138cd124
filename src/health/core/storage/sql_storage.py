"""SQLModel-backed storage adapter."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from src.health.core.errors import IdentityAlreadyExists, StorageError
from src.health.core.services.database.db_session import DbSessionService
from src.health.core.storage.storage import Storage
from src.health.entities._base import utc_now
from src.health.entities.app_version import AppVersionTable
from src.health.entities.identity import Account, Identity, IdentityTable, SsoClaims
from src.health.entities.roster import RosterEntry, RosterTable


def _to_entity(row: IdentityTable) -> Identity:
    return Identity(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        external_id=row.external_id,
        sso=SsoClaims.model_validate(row.sso) if row.sso else None,
        uuid=row.uuid,
        public_key=row.public_key,
        consent=row.consent,
        consent_vaccine=row.consent_vaccine,
        exposure_notification=row.exposure_notification,
        re_post=row.re_post,
        encrypted_key=row.encrypted_key,
        encrypted_blob=row.encrypted_blob,
        encrypted_pk=row.encrypted_pk,
        accounts=[Account.model_validate(a) for a in row.accounts or []],
    )


def _apply(row: IdentityTable, identity: Identity) -> IdentityTable:
    row.external_id = identity.external_id
    row.sso_uin = identity.sso.uin if identity.sso else None
    row.sso = identity.sso.model_dump() if identity.sso else None
    row.uuid = identity.uuid
    row.public_key = identity.public_key
    row.consent = identity.consent
    row.consent_vaccine = identity.consent_vaccine
    row.exposure_notification = identity.exposure_notification
    row.re_post = identity.re_post
    row.encrypted_key = identity.encrypted_key
    row.encrypted_blob = identity.encrypted_blob
    row.encrypted_pk = identity.encrypted_pk
    # JSON columns are only flushed when the attribute is reassigned
    row.accounts = [a.model_dump() for a in identity.accounts]
    return row


class SqlStorage(Storage):
    def __init__(self, db_service: DbSessionService):
        self._db = db_service

    def _get_row(self, session: Session, identity_id: str) -> IdentityTable:
        row = session.get(IdentityTable, identity_id)
        if row is None:
            raise StorageError(f"There is no identity for id {identity_id}")
        return row

    async def find_identity_by_external_id(self, external_id: str) -> Identity | None:
        with self._db.session_scope() as session:
            row = session.exec(
                select(IdentityTable).where(IdentityTable.external_id == external_id)
            ).first()
            return _to_entity(row) if row else None

    async def find_identity_by_sso_id(self, sso_id: str) -> Identity | None:
        with self._db.session_scope() as session:
            row = session.exec(
                select(IdentityTable).where(IdentityTable.sso_uin == sso_id)
            ).first()
            return _to_entity(row) if row else None

    async def find_identity_by_id(self, identity_id: str) -> Identity | None:
        with self._db.session_scope() as session:
            row = session.get(IdentityTable, identity_id)
            return _to_entity(row) if row else None

    async def create_identity(self, identity: Identity) -> Identity:
        row = _apply(
            IdentityTable(
                id=identity.id,
                created_at=identity.created_at,
                external_id=identity.external_id,
            ),
            identity,
        )
        try:
            with self._db.session_scope() as session:
                session.add(row)
                session.flush()
                return _to_entity(row)
        except IntegrityError as exc:
            raise IdentityAlreadyExists(
                f"Identity with external id {identity.external_id} already exists"
            ) from exc

    async def save_identity(self, identity: Identity) -> Identity:
        with self._db.session_scope() as session:
            row = _apply(self._get_row(session, identity.id), identity)
            row.updated_at = utc_now()
            session.add(row)
            session.flush()
            return _to_entity(row)

    async def create_default_account(self, identity_id: str) -> Identity:
        with self._db.session_scope() as session:
            row = self._get_row(session, identity_id)
            identity = _to_entity(row)
            if identity.has_default_account():
                raise StorageError(
                    f"There is already a default account for identity {identity_id}"
                )
            identity.accounts.append(
                Account(
                    id=identity.id,
                    external_id=identity.external_id,
                    default=True,
                    active=True,
                )
            )
            row.accounts = [a.model_dump() for a in identity.accounts]
            row.updated_at = utc_now()
            session.add(row)
            session.flush()
            return _to_entity(row)

    async def clear_user_data(self, identity_id: str) -> None:
        with self._db.session_scope() as session:
            session.delete(self._get_row(session, identity_id))

    async def read_all_supported_versions(self) -> list[str]:
        with self._db.session_scope() as session:
            return [row.version for row in session.exec(select(AppVersionTable)).all()]

    async def create_app_version(self, version: str) -> None:
        with self._db.session_scope() as session:
            if session.get(AppVersionTable, version) is None:
                session.add(AppVersionTable(version=version))

    async def read_all_roster_entries(self) -> list[RosterEntry]:
        with self._db.session_scope() as session:
            return [
                RosterEntry(phone=row.phone, uin=row.uin, **(row.extra or {}))
                for row in session.exec(select(RosterTable)).all()
            ]

    def close(self) -> None:
        self._db.close()
