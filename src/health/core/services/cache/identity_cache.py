"""Time-bounded identity cache with a background sweeper."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from src.health.entities.identity import Identity


@dataclass
class CachedIdentity:
    identity: Identity
    last_access: float


class IdentityCache:
    """Maps external id -> identity, evicting entries idle for longer than ``ttl``.

    One lock guards the whole map. Callers never hold it across a storage
    call: they ``get``, fetch on a miss, then ``put``. Identities are copied
    on the way in and on the way out, so callers can mutate what they get.
    """

    def __init__(
        self,
        name: str,
        *,
        ttl_seconds: float = 300,
        sweep_interval_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._ttl = ttl_seconds
        self._interval = sweep_interval_seconds
        self._clock = clock
        self._entries: dict[str, CachedIdentity] = {}
        self._lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    async def get(self, external_id: str) -> Identity | None:
        async with self._lock:
            entry = self._entries.get(external_id)
            if entry is None:
                return None
            entry.last_access = self._clock()
            return entry.identity.model_copy(deep=True)

    async def put(self, external_id: str, identity: Identity) -> None:
        async with self._lock:
            self._entries[external_id] = CachedIdentity(
                identity=identity.model_copy(deep=True), last_access=self._clock()
            )

    async def invalidate(self, external_id: str) -> None:
        async with self._lock:
            self._entries.pop(external_id, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def sweep(self) -> int:
        """Evict stale entries and return how many were removed."""
        async with self._lock:
            now = self._clock()
            stale = [
                key
                for key, entry in self._entries.items()
                if now - entry.last_access > self._ttl
            ]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("{} cache evicted {} identities", self.name, len(stale))
        return len(stale)

    async def run_sweeper(self, stop_event: asyncio.Event) -> None:
        """Sweep every interval until ``stop_event`` is set."""
        while not stop_event.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            if stop_event.is_set():
                break
            try:
                await self.sweep()
            except Exception:
                logger.exception("{} cache sweep failed", self.name)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self.run_sweeper(self._stop_event), name=f"{self.name}-cache-sweeper"
        )
        logger.info("{} cache sweeper started (interval {}s)", self.name, self._interval)

    async def stop(self) -> None:
        if self._task is None or self._stop_event is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self._stop_event = None
        logger.info("{} cache sweeper stopped", self.name)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, external_id: object) -> bool:
        return external_id in self._entries
