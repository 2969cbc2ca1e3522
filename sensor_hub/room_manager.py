"""Multiplayer room lifecycle.

The manager owns three maps that always change together: rooms by id, room
ids by password and room ids by host connection. Every public method keeps
them consistent before returning and none of them suspends, so callers on the
event loop see either the state before an operation or the state after it.
"""
from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Dict, List, Optional, Tuple

from .catalog import GameCatalog
from .clock import Clock, now_ms
from .codes import CodeAllocator
from .constants import DEFAULT_MAX_PLAYERS, ROOM_MAX_AGE_MS
from .errors import AlreadyHosting, GameNotFound, InvalidPassword, NotHost, RoomNotFound
from .room import STATUS_WAITING, Room
from .schemas import RoomPlayer

log = logging.getLogger("sensor_hub.rooms")


def _resolve_max_players(settings: Dict[str, Any], game_default: Optional[int], fallback: int) -> int:
    requested = settings.get("maxPlayers")
    if isinstance(requested, int) and not isinstance(requested, bool) and requested > 0:
        return requested
    if game_default and game_default > 0:
        return game_default
    return fallback


class RoomManager:
    def __init__(
        self,
        catalog: GameCatalog,
        *,
        clock: Clock = now_ms,
        max_age_ms: int = ROOM_MAX_AGE_MS,
        default_max_players: int = DEFAULT_MAX_PLAYERS,
        rng: Optional[random.Random] = None,
    ):
        self._catalog = catalog
        self._clock = clock
        self.max_age_ms = max_age_ms
        self.default_max_players = default_max_players
        self.rooms: Dict[str, Room] = {}
        self.passwords: Dict[str, str] = {}
        self._hosts: Dict[str, str] = {}
        self.allocator = CodeAllocator(self.passwords, name="room", rng=rng)

    # ---------------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------------

    def get(self, room_id: Optional[str]) -> Optional[Room]:
        if room_id is None:
            return None
        return self.rooms.get(room_id)

    def room_hosted_by(self, conn_id: str) -> Optional[Room]:
        return self.get(self._hosts.get(conn_id))

    def room_of_member(self, conn_id: str) -> Optional[Tuple[Room, RoomPlayer]]:
        for room in self.rooms.values():
            player = room.player_by_conn(conn_id)
            if player is not None:
                return room, player
        return None

    def waiting_rooms(self) -> List[Room]:
        return [r for r in self.rooms.values() if r.status == STATUS_WAITING]

    def __len__(self) -> int:
        return len(self.rooms)

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    def create_room(self, host_conn_id: str, game_id: Optional[str], settings: Optional[Dict[str, Any]] = None) -> Room:
        """Create a waiting room hosted by *host_conn_id*.

        Raises
        ------
        GameNotFound
            If *game_id* is not in the catalog.
        AlreadyHosting
            If the caller already hosts a room.
        ResourceExhausted
            If no password is free.
        """
        settings = dict(settings or {})
        game = self._catalog.get(game_id)
        if game is None:
            raise GameNotFound()
        if host_conn_id in self._hosts:
            raise AlreadyHosting()

        password = self.allocator.allocate()
        room = Room(
            room_id=str(uuid.uuid4()),
            password=password,
            game_id=game.id,
            host_conn_id=host_conn_id,
            max_players=_resolve_max_players(settings, game.max_players, self.default_max_players),
            created_at=self._clock(),
            settings=settings,
        )
        self.rooms[room.room_id] = room
        self.passwords[password] = room.room_id
        self._hosts[host_conn_id] = room.room_id
        log.info("Room created: %s (password: %s, game: %s)", room.room_id, password, game.id)
        return room

    def join_room(self, password: str, conn_id: str, nickname: str, device_id: Optional[str] = None) -> Tuple[Room, RoomPlayer]:
        """Admit a player into the waiting room reserved under *password*.

        Raises
        ------
        InvalidPassword, RoomNotFound, RoomFull, RoomNotWaiting
        """
        room_id = self.passwords.get(password)
        if room_id is None:
            raise InvalidPassword()
        room = self.rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        player = room.add_player(conn_id, nickname, device_id, self._clock())
        log.info("Player %s (%s) joined room %s", player.player_id, nickname, room.room_id)
        return room, player

    def start_game(self, host_conn_id: str) -> Room:
        room = self.room_hosted_by(host_conn_id)
        if room is None:
            raise NotHost()
        room.start()
        log.info("Room %s started", room.room_id)
        return room

    def leave_room(self, conn_id: str) -> Optional[Tuple[Room, RoomPlayer]]:
        found = self.room_of_member(conn_id)
        if found is None:
            return None
        room, player = found
        self.remove_player(room, player.player_id)
        return room, player

    def remove_player(self, room: Room, player_id: str) -> Optional[RoomPlayer]:
        player = room.remove_player(player_id)
        if player is not None:
            log.info("Player %s left room %s", player_id, room.room_id)
        return player

    def close_room(self, room_id: str) -> Optional[Room]:
        room = self.rooms.pop(room_id, None)
        if room is None:
            return None
        if self.passwords.get(room.password) == room_id:
            del self.passwords[room.password]
        if self._hosts.get(room.host_conn_id) == room_id:
            del self._hosts[room.host_conn_id]
        log.info("Room closed: %s", room_id)
        return room

    def purge_stale(self, now: Optional[int] = None) -> List[Room]:
        """Close every room older than ``max_age_ms``, however busy it is."""
        now = self._clock() if now is None else now
        stale = [rid for rid, room in self.rooms.items() if now - room.created_at > self.max_age_ms]
        closed = []
        for rid in stale:
            room = self.close_room(rid)
            if room is not None:
                closed.append(room)
        return closed


__all__ = ["RoomManager"]
