from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from .errors import RoomFull, RoomNotWaiting
from .schemas import RoomPlayer, RoomSnapshot, RoomSummary

# NOTE: ``Room`` deliberately knows nothing about sockets. Broadcasting goes
# through the connection registry using the ids returned by ``recipients``.

STATUS_WAITING = "waiting"
STATUS_PLAYING = "playing"
STATUS_FINISHED = "finished"


class Room:
    """Runtime state of one multiplayer room."""

    def __init__(
        self,
        room_id: str,
        password: str,
        game_id: str,
        host_conn_id: str,
        max_players: int,
        created_at: int,
        settings: Optional[Dict[str, Any]] = None,
    ):
        self.room_id = room_id
        self.password = password
        self.game_id = game_id
        self.host_conn_id = host_conn_id
        self.max_players = max_players
        self.created_at = created_at
        self.settings: Dict[str, Any] = dict(settings or {})
        self.status = STATUS_WAITING
        # player_id -> player; the player count is always derived from this
        self.players: Dict[str, RoomPlayer] = {}

    @property
    def current_players(self) -> int:
        return len(self.players)

    def is_full(self) -> bool:
        return self.current_players >= self.max_players

    # -------------------- Player management -------------------- #

    def add_player(self, conn_id: str, nickname: str, device_id: Optional[str], joined_at: int) -> RoomPlayer:
        if self.is_full():
            raise RoomFull()
        if self.status != STATUS_WAITING:
            raise RoomNotWaiting()
        player_id = str(uuid.uuid4())
        while player_id in self.players:
            player_id = str(uuid.uuid4())
        player = RoomPlayer(
            player_id=player_id,
            conn_id=conn_id,
            nickname=nickname,
            device_id=device_id,
            joined_at=joined_at,
        )
        self.players[player_id] = player
        return player

    def remove_player(self, player_id: str) -> Optional[RoomPlayer]:
        player = self.players.pop(player_id, None)
        # A running game with nobody left in it is over.
        if player is not None and self.status == STATUS_PLAYING and not self.players:
            self.status = STATUS_FINISHED
        return player

    def player_by_conn(self, conn_id: str) -> Optional[RoomPlayer]:
        for player in self.players.values():
            if player.conn_id == conn_id:
                return player
        return None

    def start(self) -> None:
        if self.status != STATUS_WAITING:
            raise RoomNotWaiting()
        self.status = STATUS_PLAYING

    # -------------------- Broadcasting helpers -------------------- #

    def recipients(self, exclude: Optional[str] = None, include_host: bool = True) -> List[str]:
        """Connection ids of everyone in the room, host first, minus *exclude*."""
        ids: List[str] = []
        if include_host:
            ids.append(self.host_conn_id)
        ids.extend(p.conn_id for p in self.players.values())
        return [cid for cid in ids if cid != exclude]

    def snapshot(self) -> RoomSnapshot:
        return RoomSnapshot(
            room_id=self.room_id,
            game_id=self.game_id,
            status=self.status,
            current_players=self.current_players,
            max_players=self.max_players,
            players=list(self.players.values()),
        )

    def summary(self) -> RoomSummary:
        return RoomSummary(
            room_id=self.room_id,
            game_id=self.game_id,
            current_players=self.current_players,
            max_players=self.max_players,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Room {self.room_id} game={self.game_id} {self.current_players}/{self.max_players} {self.status}>"


__all__ = ["Room", "STATUS_WAITING", "STATUS_PLAYING", "STATUS_FINISHED"]
