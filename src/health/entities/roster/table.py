"""Roster database table model."""

from typing import Any

from sqlalchemy import JSON, Column, String
from sqlmodel import Field, SQLModel


class RosterTable(SQLModel, table=True):
    __tablename__ = "rosters"

    phone: str = Field(sa_column=Column(String(64), primary_key=True))
    uin: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    extra: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
