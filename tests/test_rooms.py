import pytest

from sensor_hub.errors import (
    AlreadyHosting,
    GameNotFound,
    InvalidPassword,
    NotHost,
    RoomFull,
    RoomNotFound,
    RoomNotWaiting,
)
from sensor_hub.room import STATUS_FINISHED, STATUS_PLAYING, STATUS_WAITING, Room
from sensor_hub.room_manager import RoomManager

from conftest import ScriptedRandom

HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def manager(catalog, clock):
    return RoomManager(catalog, clock=clock, max_age_ms=HOUR_MS, default_max_players=4)


# -----------------------------
# Room
# -----------------------------

def test_room_counts_players_from_roster():
    room = Room("r1", "1234", "g1", "host", max_players=2, created_at=0)
    a = room.add_player("c-a", "Alice", None, 1)
    room.add_player("c-b", "Bob", None, 2)
    assert room.current_players == 2
    room.remove_player(a.player_id)
    assert room.current_players == 1 == len(room.players)


def test_full_check_precedes_status_check():
    room = Room("r1", "1234", "g1", "host", max_players=1, created_at=0)
    room.add_player("c-a", "Alice", None, 1)
    room.start()
    with pytest.raises(RoomFull):
        room.add_player("c-b", "Bob", None, 2)


def test_started_room_rejects_joins():
    room = Room("r1", "1234", "g1", "host", max_players=4, created_at=0)
    room.start()
    assert room.status == STATUS_PLAYING
    with pytest.raises(RoomNotWaiting):
        room.add_player("c-a", "Alice", None, 1)


def test_second_start_is_rejected():
    room = Room("r1", "1234", "g1", "host", max_players=4, created_at=0)
    room.start()
    with pytest.raises(RoomNotWaiting):
        room.start()


def test_last_player_leaving_a_running_game_finishes_it():
    room = Room("r1", "1234", "g1", "host", max_players=4, created_at=0)
    player = room.add_player("c-a", "Alice", None, 1)
    room.start()
    room.remove_player(player.player_id)
    assert room.status == STATUS_FINISHED


def test_recipients_put_host_first_and_honour_exclude():
    room = Room("r1", "1234", "g1", "host", max_players=4, created_at=0)
    room.add_player("c-a", "Alice", None, 1)
    room.add_player("c-b", "Bob", None, 2)
    assert room.recipients() == ["host", "c-a", "c-b"]
    assert room.recipients(exclude="c-a") == ["host", "c-b"]
    assert room.recipients(include_host=False) == ["c-a", "c-b"]


def test_snapshot_hides_connection_ids():
    room = Room("r1", "1234", "g1", "host", max_players=4, created_at=0)
    room.add_player("c-a", "Alice", "dev-a", 1)
    data = room.snapshot().model_dump(by_alias=True)
    assert data["currentPlayers"] == 1
    assert data["players"][0]["nickname"] == "Alice"
    assert "connId" not in data["players"][0]


# -----------------------------
# RoomManager
# -----------------------------

def test_create_room_uses_game_default_max_players(manager):
    room = manager.create_room("host", "raceGame")
    assert room.max_players == 8
    assert room.status == STATUS_WAITING
    assert manager.passwords[room.password] == room.room_id
    assert manager.room_hosted_by("host") is room


@pytest.mark.parametrize(
    "settings, game_id, expected",
    [
        ({"maxPlayers": 3}, "raceGame", 3),
        ({}, "solo", 4),
        ({"maxPlayers": 0}, "g1", 2),
        ({"maxPlayers": "6"}, "g1", 2),
        ({"maxPlayers": True}, "solo", 4),
    ],
)
def test_max_players_resolution(manager, settings, game_id, expected):
    assert manager.create_room("host", game_id, settings).max_players == expected


def test_unknown_game_is_rejected(manager):
    with pytest.raises(GameNotFound):
        manager.create_room("host", "nope")
    with pytest.raises(GameNotFound):
        manager.create_room("host", None)
    assert len(manager) == 0


def test_one_room_per_host(manager):
    manager.create_room("host", "g1")
    with pytest.raises(AlreadyHosting):
        manager.create_room("host", "raceGame")


def test_g1_admits_two_then_reports_full(manager):
    room = manager.create_room("host", "g1")
    manager.join_room(room.password, "c-alice", "Alice")
    manager.join_room(room.password, "c-bob", "Bob")
    with pytest.raises(RoomFull):
        manager.join_room(room.password, "c-carl", "Carl")
    assert room.current_players == 2


def test_join_with_unknown_password(manager):
    with pytest.raises(InvalidPassword):
        manager.join_room("9999", "c-a", "Alice")


def test_dangling_password_reports_room_not_found(manager):
    manager.passwords["4242"] = "ghost"
    with pytest.raises(RoomNotFound):
        manager.join_room("4242", "c-a", "Alice")


def test_start_game_requires_hosting(manager):
    with pytest.raises(NotHost):
        manager.start_game("stranger")
    room = manager.create_room("host", "g1")
    assert manager.start_game("host") is room
    assert room.status == STATUS_PLAYING
    assert room not in manager.waiting_rooms()


def test_leave_room_removes_membership(manager):
    room = manager.create_room("host", "g1")
    _, player = manager.join_room(room.password, "c-a", "Alice")
    left_room, left_player = manager.leave_room("c-a")
    assert left_room is room and left_player is player
    assert manager.leave_room("c-a") is None
    assert room.current_players == 0


def test_close_room_releases_password_and_host(manager):
    room = manager.create_room("host", "g1")
    assert manager.close_room(room.room_id) is room
    assert room.password not in manager.passwords
    assert manager.room_hosted_by("host") is None
    assert manager.close_room(room.room_id) is None
    # the host may now open a new room
    manager.create_room("host", "g1")


def test_passwords_are_unique_among_live_rooms(catalog, clock):
    manager = RoomManager(catalog, clock=clock, rng=ScriptedRandom([1111, 1111, 2222]))
    first = manager.create_room("h1", "g1")
    second = manager.create_room("h2", "g1")
    assert (first.password, second.password) == ("1111", "2222")


def test_purge_stale_closes_rooms_past_max_age(manager, clock):
    old = manager.create_room("h1", "g1")
    manager.start_game("h1")
    clock.advance(HOUR_MS)
    young = manager.create_room("h2", "g1")
    assert manager.purge_stale() == []
    clock.advance(1)
    closed = manager.purge_stale()
    assert closed == [old]
    assert list(manager.rooms) == [young.room_id]
