import json

import pytest

from sensor_hub.errors import MalformedEnvelope
from sensor_hub.protocol import (
    INBOUND_TYPES,
    JoinRoom,
    JoinSessionCode,
    RegisterGameClient,
    RoomJoinFailed,
    UnknownMessageType,
    parse_inbound,
)


def test_every_inbound_type_is_registered():
    assert set(INBOUND_TYPES) == {
        "register_hub_client",
        "register_game_client",
        "register_sensor_client",
        "create_session_code",
        "join_session_code",
        "sensor_data",
        "create_room",
        "join_room",
        "leave_room",
        "start_game",
        "multiplayer_event",
        "multiplayer_sensor_data",
        "ping",
    }


def test_parses_camel_case_fields():
    msg = parse_inbound(json.dumps({"type": "register_game_client", "gameId": "raceGame"}))
    assert isinstance(msg, RegisterGameClient)
    assert msg.game_id == "raceGame"
    assert msg.requested_sensors == ["orientation"]


def test_numeric_session_code_is_coerced_to_string():
    msg = parse_inbound(json.dumps({"type": "join_session_code", "sessionCode": 4821}))
    assert isinstance(msg, JoinSessionCode)
    assert msg.session_code == "4821"


def test_join_room_defaults_nickname():
    msg = parse_inbound(b'{"type": "join_room", "password": "1234"}')
    assert isinstance(msg, JoinRoom)
    assert msg.nickname == "Player"


def test_unknown_type_is_distinguished_from_malformed():
    with pytest.raises(UnknownMessageType) as info:
        parse_inbound('{"type": "teleport"}')
    assert info.value.msg_type == "teleport"


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '{"gameId": "g1"}',
        '{"type": 7}',
        '{"type": "join_session_code"}',
        '{"type": "register_sensor_client"}',
    ],
)
def test_malformed_frames_raise(raw):
    with pytest.raises(MalformedEnvelope):
        parse_inbound(raw)


def test_failure_messages_carry_success_false_and_code():
    data = json.loads(RoomJoinFailed(error="Room is full.", code="ROOM_FULL").model_dump_json(by_alias=True))
    assert data == {"success": False, "error": "Room is full.", "code": "ROOM_FULL", "type": "room_join_failed"}
