"""Phone number -> institutional id table built from the roster."""

from __future__ import annotations

import asyncio
from types import MappingProxyType

from loguru import logger

from src.health.core.storage.storage import Storage
from src.health.entities.roster import RosterEntry


class RosterIndex:
    """In-memory copy of the roster, reloaded wholesale on change.

    Lookups read the current table without locking; ``reload`` builds a new
    table and swaps it in, so a lookup sees either the old or the new roster.
    """

    def __init__(self, storage: Storage):
        self._storage = storage
        self._by_phone: MappingProxyType[str, str] = MappingProxyType({})
        self._lock = asyncio.Lock()

    async def reload(self) -> int:
        """Reload from storage; on failure the previous table is kept."""
        async with self._lock:
            try:
                entries = await self._storage.read_all_roster_entries()
            except Exception:
                logger.exception("Failed to load roster, keeping {} entries", len(self))
                return len(self)
            self.set_entries(entries)
        logger.info("Roster loaded with {} entries", len(self))
        return len(self)

    def set_entries(self, entries: list[RosterEntry]) -> None:
        table: dict[str, str] = {}
        for entry in entries:
            # First entry wins when a phone is listed twice
            table.setdefault(entry.phone, entry.uin)
        self._by_phone = MappingProxyType(table)

    def find_uin_by_phone(self, phone: str) -> str | None:
        return self._by_phone.get(phone)

    def __len__(self) -> int:
        return len(self._by_phone)
