"""Roster entry domain entity."""

from pydantic import BaseModel, ConfigDict, Field


class RosterEntry(BaseModel):
    """One row of an institutional roster.

    Only ``phone`` and ``uin`` are interpreted; any other string fields are
    carried along untouched.
    """

    model_config = ConfigDict(extra="allow")

    phone: str = Field(description="Phone number as it appears in phone tokens")
    uin: str = Field(description="Institutional identifier")
