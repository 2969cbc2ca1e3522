"""Periodic cleanup of expired session codes and stale rooms."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .dispatcher import Dispatcher
from .protocol import RoomClosed

log = logging.getLogger("sensor_hub.janitor")


@dataclass
class SweepResult:
    expired_codes: List[str] = field(default_factory=list)
    closed_rooms: List[str] = field(default_factory=list)


class Janitor:
    """Runs :meth:`sweep` every ``interval`` seconds on the event loop.

    Rooms are reaped purely by age. A game that is still being played when it
    crosses the age threshold is closed like any other room.
    """

    def __init__(self, dispatcher: Dispatcher, interval: float):
        self.dispatcher = dispatcher
        self.hub = dispatcher.hub
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def sweep(self, now: Optional[int] = None) -> SweepResult:
        now = self.hub.clock() if now is None else now
        result = SweepResult()
        result.expired_codes = self.hub.sessions.purge_expired(now)
        for room in self.hub.rooms.purge_stale(now):
            # Already removed from the registry; only the notices remain.
            self.dispatcher.send_many(room.recipients(), RoomClosed(room_id=room.room_id, reason="expired"))
            result.closed_rooms.append(room.room_id)
        if result.closed_rooms:
            self.dispatcher.broadcast_room_list()
        if result.expired_codes or result.closed_rooms:
            log.info(
                "Sweep removed %d session code(s) and %d room(s)",
                len(result.expired_codes),
                len(result.closed_rooms),
            )
        return result

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception:
                log.exception("Janitor sweep failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="sensor-hub-janitor")
            log.debug("Janitor started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = ["Janitor", "SweepResult"]
