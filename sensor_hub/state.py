"""Runtime state container.

One :class:`HubState` is built per process by the app factory and handed to
the dispatcher, the janitor and the routers (via ``app.state.hub``). It owns
every registry the hub has; nothing lives at module level.
"""
from __future__ import annotations

import random
from typing import Optional

from .catalog import GameCatalog
from .clock import Clock, now_ms
from .config import Settings
from .connections import ConnectionRegistry
from .room_manager import RoomManager
from .sessions import SessionMatcher


class HubState:
    def __init__(
        self,
        settings: Settings,
        *,
        catalog: Optional[GameCatalog] = None,
        clock: Clock = now_ms,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.clock = clock
        self.started_at = clock()
        self.catalog = catalog or GameCatalog(clock=clock)
        self.connections = ConnectionRegistry(clock=clock, outbox_size=settings.outbox_size)
        self.sessions = SessionMatcher(
            clock=clock,
            ttl_ms=int(settings.session_code_ttl * 1000),
            recent_limit=settings.recent_codes_limit,
            rng=rng,
        )
        self.rooms = RoomManager(
            self.catalog,
            clock=clock,
            max_age_ms=int(settings.room_max_age * 1000),
            default_max_players=settings.default_max_players,
            rng=rng,
        )

    def uptime(self) -> float:
        return (self.clock() - self.started_at) / 1000


__all__ = ["HubState"]
