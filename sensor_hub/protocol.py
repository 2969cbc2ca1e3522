"""Websocket wire protocol (Pydantic models).

Each direction is a closed set of envelopes tagged by ``type``. Inbound frames
are validated into :data:`InboundEnvelope`, a discriminated union, so a frame
either becomes exactly one known variant or is rejected as malformed.
Outbound messages are built from the models below and serialised by alias.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .errors import MalformedEnvelope
from .schemas import RoomSnapshot, RoomSummary

Timestamp = Optional[Union[int, float]]


# -----------------------------
# Inbound (client -> server)
# -----------------------------

class Inbound(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    timestamp: Timestamp = None


class RegisterHubClient(Inbound):
    type: Literal["register_hub_client"]
    version: Optional[str] = None
    device_type: Optional[str] = None
    user_agent: Optional[str] = None


class RegisterGameClient(Inbound):
    type: Literal["register_game_client"]
    game_id: str
    game_name: Optional[str] = None
    requested_sensors: List[str] = Field(default_factory=lambda: ["orientation"])


class RegisterSensorClient(Inbound):
    type: Literal["register_sensor_client"]
    device_id: str
    user_agent: Optional[str] = None
    supported_sensors: List[str] = Field(default_factory=list)


class CreateSessionCode(Inbound):
    type: Literal["create_session_code"]
    game_id: Optional[str] = None


class JoinSessionCode(Inbound):
    type: Literal["join_session_code"]
    session_code: str
    device_id: Optional[str] = None


class SensorDataIn(Inbound):
    type: Literal["sensor_data"]
    session_id: str
    sensor_data: Any = None


class CreateRoom(Inbound):
    type: Literal["create_room"]
    game_id: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)


class JoinRoom(Inbound):
    type: Literal["join_room"]
    password: str
    nickname: str = "Player"
    device_id: Optional[str] = None


class LeaveRoom(Inbound):
    type: Literal["leave_room"]


class StartGame(Inbound):
    type: Literal["start_game"]


class MultiplayerEventIn(Inbound):
    type: Literal["multiplayer_event"]
    event_type: str
    event_data: Any = None


class MultiplayerSensorDataIn(Inbound):
    type: Literal["multiplayer_sensor_data"]
    sensor_data: Any = None


class Ping(Inbound):
    type: Literal["ping"]


_INBOUND_MODELS = (
    RegisterHubClient,
    RegisterGameClient,
    RegisterSensorClient,
    CreateSessionCode,
    JoinSessionCode,
    SensorDataIn,
    CreateRoom,
    JoinRoom,
    LeaveRoom,
    StartGame,
    MultiplayerEventIn,
    MultiplayerSensorDataIn,
    Ping,
)

InboundEnvelope = Annotated[Union[_INBOUND_MODELS], Field(discriminator="type")]

INBOUND_TYPES: Dict[str, type] = {
    get_args(model.model_fields["type"].annotation)[0]: model for model in _INBOUND_MODELS
}

_inbound_adapter: TypeAdapter = TypeAdapter(InboundEnvelope)


class UnknownMessageType(MalformedEnvelope):
    code = "UNKNOWN_TYPE"

    def __init__(self, msg_type: Any):
        super().__init__(f"Unknown message type: {msg_type!r}")
        self.msg_type = msg_type


def parse_inbound(raw: Union[str, bytes]) -> Inbound:
    """Decode one text frame into its inbound envelope.

    Raises
    ------
    UnknownMessageType
        If ``type`` is present but not one of the known inbound types.
    MalformedEnvelope
        If the frame is not a JSON object, has no ``type`` or fails validation.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedEnvelope(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedEnvelope("Envelope must be a JSON object")
    msg_type = data.get("type")
    if not isinstance(msg_type, str):
        raise MalformedEnvelope("Envelope has no type")
    if msg_type not in INBOUND_TYPES:
        raise UnknownMessageType(msg_type)
    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedEnvelope(f"Invalid {msg_type}: {exc.error_count()} error(s)") from exc


# -----------------------------
# Outbound (server -> client)
# -----------------------------

class Outbound(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Failure(Outbound):
    success: bool = False
    error: str
    code: str


class RegistrationSuccess(Outbound):
    type: Literal["registration_success"] = "registration_success"
    client_id: str
    role: str
    server_version: Optional[str] = None
    game_id: Optional[str] = None
    device_id: Optional[str] = None


class SessionCodeCreated(Outbound):
    type: Literal["session_code_created"] = "session_code_created"
    success: bool = True
    session_code: str
    expires_at: int
    game_id: Optional[str] = None


class SessionCodeFailed(Failure):
    type: Literal["session_code_failed"] = "session_code_failed"


class SensorMatched(Outbound):
    type: Literal["sensor_matched"] = "sensor_matched"
    session_id: str
    device_id: str
    session_code: str


class SessionJoined(Outbound):
    type: Literal["session_joined"] = "session_joined"
    session_id: str
    game_id: Optional[str] = None
    session_code: str


class SessionJoinFailed(Failure):
    type: Literal["session_join_failed"] = "session_join_failed"


class SessionEnded(Outbound):
    type: Literal["session_ended"] = "session_ended"
    session_id: str
    reason: str


class SensorDataOut(Outbound):
    type: Literal["sensor_data"] = "sensor_data"
    session_id: str
    sensor_data: Any = None
    timestamp: int


class RoomCreated(Outbound):
    type: Literal["room_created"] = "room_created"
    success: bool = True
    room_id: str
    password: str
    game_id: str
    max_players: int


class RoomCreateFailed(Failure):
    type: Literal["room_create_failed"] = "room_create_failed"


class RoomJoined(Outbound):
    type: Literal["room_joined"] = "room_joined"
    success: bool = True
    room_id: str
    player_id: str
    room_data: RoomSnapshot


class RoomJoinFailed(Failure):
    type: Literal["room_join_failed"] = "room_join_failed"


class RoomLeft(Outbound):
    type: Literal["room_left"] = "room_left"
    room_id: str


class PlayerJoined(Outbound):
    type: Literal["player_joined"] = "player_joined"
    player_id: str
    nickname: str
    current_players: int


class PlayerLeft(Outbound):
    type: Literal["player_left"] = "player_left"
    player_id: str
    nickname: str
    current_players: int


class RoomClosed(Outbound):
    type: Literal["room_closed"] = "room_closed"
    room_id: str
    reason: str


class GameStart(Outbound):
    type: Literal["game_start"] = "game_start"
    game_id: str
    room_id: str


class GameStartFailed(Failure):
    type: Literal["game_start_failed"] = "game_start_failed"


class MultiplayerEventOut(Outbound):
    type: Literal["multiplayer_event"] = "multiplayer_event"
    room_id: str
    player_id: Optional[str] = None
    event_type: str
    event_data: Any = None
    timestamp: int


class MultiplayerSensorDataOut(Outbound):
    type: Literal["multiplayer_sensor_data"] = "multiplayer_sensor_data"
    room_id: str
    player_id: str
    sensor_data: Any = None
    timestamp: int


class RoomListUpdated(Outbound):
    type: Literal["room_list_updated"] = "room_list_updated"
    rooms: List[RoomSummary]


class Pong(Outbound):
    type: Literal["pong"] = "pong"
    timestamp: Timestamp = None
    server_time: int


__all__ = [
    "Inbound",
    "InboundEnvelope",
    "INBOUND_TYPES",
    "parse_inbound",
    "UnknownMessageType",
    "RegisterHubClient",
    "RegisterGameClient",
    "RegisterSensorClient",
    "CreateSessionCode",
    "JoinSessionCode",
    "SensorDataIn",
    "CreateRoom",
    "JoinRoom",
    "LeaveRoom",
    "StartGame",
    "MultiplayerEventIn",
    "MultiplayerSensorDataIn",
    "Ping",
    "Outbound",
    "Failure",
    "RegistrationSuccess",
    "SessionCodeCreated",
    "SessionCodeFailed",
    "SensorMatched",
    "SessionJoined",
    "SessionJoinFailed",
    "SessionEnded",
    "SensorDataOut",
    "RoomCreated",
    "RoomCreateFailed",
    "RoomJoined",
    "RoomJoinFailed",
    "RoomLeft",
    "PlayerJoined",
    "PlayerLeft",
    "RoomClosed",
    "GameStart",
    "GameStartFailed",
    "MultiplayerEventOut",
    "MultiplayerSensorDataOut",
    "RoomListUpdated",
    "Pong",
]
