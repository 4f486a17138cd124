"""Change notifications fanned out to interested components."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from src.health.entities.identity import Identity


class ApplicationListener:
    """Base listener; override only the notifications you care about."""

    async def on_identity_updated(self, identity: Identity) -> None:
        pass

    async def on_identity_cleared(self, identity: Identity) -> None:
        pass

    async def on_rosters_updated(self) -> None:
        pass

    async def on_configs_changed(self) -> None:
        pass


class EventNotifier:
    """Delivers notifications to listeners one after another.

    A failing listener is logged and skipped; the remaining listeners still
    receive the notification.
    """

    def __init__(self) -> None:
        self._listeners: list[ApplicationListener] = []

    def add_listener(self, listener: ApplicationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ApplicationListener) -> None:
        self._listeners.remove(listener)

    async def _dispatch(self, event: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                await getattr(listener, event)(*args)
            except Exception:
                logger.exception(
                    "Listener {} failed on {}", type(listener).__name__, event
                )

    async def notify_identity_updated(self, identity: Identity) -> None:
        await self._dispatch("on_identity_updated", identity)

    async def notify_identity_cleared(self, identity: Identity) -> None:
        await self._dispatch("on_identity_cleared", identity)

    async def notify_rosters_updated(self) -> None:
        await self._dispatch("on_rosters_updated")

    async def notify_configs_changed(self) -> None:
        await self._dispatch("on_configs_changed")
