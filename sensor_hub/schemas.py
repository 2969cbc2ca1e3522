"""Pydantic data schemas used across the hub.

Runtime room records and the REST request/response models live here so the
routers, the room manager and the dispatcher all import from one place.
Everything is serialised with camelCase field names, which is what the
browser SDK and the sensor client expect.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Runtime & Rooms
# -----------------------------

class RoomPlayer(CamelModel):
    """A participant inside a multiplayer room."""

    player_id: str
    # Never shown to other players.
    conn_id: str = Field(exclude=True)
    nickname: str
    device_id: Optional[str] = None
    joined_at: int
    ready: bool = False


class RoomSnapshot(CamelModel):
    room_id: str
    game_id: str
    status: str  # waiting | playing | finished
    current_players: int
    max_players: int
    players: List[RoomPlayer] = []


class GameInfo(CamelModel):
    """A game descriptor as read from ``games/<folder>/game.json``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    name: str = ""
    description: str = ""
    category: Optional[str] = None
    max_players: Optional[int] = None
    is_active: bool = True
    play_count: int = 0
    created_at: int = 0


# -----------------------------
# REST response models
# -----------------------------

class HealthResponse(CamelModel):
    status: str = "healthy"
    timestamp: str
    version: str
    uptime: float
    sessions: int
    rooms: int
    clients: int


class GamesResponse(CamelModel):
    success: bool = True
    games: List[GameInfo]
    total: int


class GameResponse(CamelModel):
    success: bool = True
    game: GameInfo


class RoomSummary(CamelModel):
    """Slim representation of a waiting room for lobby listings."""

    room_id: str
    game_id: str
    current_players: int
    max_players: int
    created_at: int


class RoomsResponse(CamelModel):
    success: bool = True
    rooms: List[RoomSummary]
    total: int


class ServerStatus(CamelModel):
    uptime: float
    total_games: int
    active_sessions: int
    active_rooms: int
    connected_clients: int
    timestamp: int


class StatusResponse(CamelModel):
    success: bool = True
    status: ServerStatus


class ErrorResponse(CamelModel):
    success: bool = False
    error: str


__all__ = [
    "CamelModel",
    # runtime
    "RoomPlayer",
    "RoomSnapshot",
    "GameInfo",
    # rest
    "HealthResponse",
    "GamesResponse",
    "GameResponse",
    "RoomSummary",
    "RoomsResponse",
    "ServerStatus",
    "StatusResponse",
    "ErrorResponse",
]
