"""Supported app version table model."""

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel


class AppVersionTable(SQLModel, table=True):
    __tablename__ = "app_versions"

    version: str = Field(sa_column=Column(String(32), primary_key=True))
