import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from pydantic import BaseModel
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


class Entity(BaseModel):
    """Domain record with a generated string id and timestamps."""

    id: str = PydanticField(default_factory=new_id)
    created_at: datetime = PydanticField(default_factory=utc_now)
    updated_at: datetime | None = None


class EntityTable(SQLModel, table=False):
    """Columns shared by every stored record."""

    id: str = Field(primary_key=True, default_factory=new_id)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = Field(
        default=None, sa_column_kwargs={"onupdate": sa.func.now()}
    )
