from __future__ import annotations

import json
from typing import Iterable, List

import pytest

from sensor_hub.catalog import GameCatalog
from sensor_hub.config import Settings
from sensor_hub.connections import Connection
from sensor_hub.dispatcher import Dispatcher
from sensor_hub.schemas import GameInfo
from sensor_hub.state import HubState

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ScriptedRandom:
    """Stand-in for ``random.Random`` replaying a fixed list of ``randint`` results."""

    def __init__(self, values: Iterable[int]):
        self._values = iter(values)

    def randint(self, a: int, b: int) -> int:
        value = next(self._values)
        assert a <= value <= b
        return value


def drain(conn: Connection) -> List[dict]:
    """Pop everything queued for *conn* and decode it."""
    out = []
    while not conn.outbox.empty():
        out.append(json.loads(conn.outbox.get_nowait()))
    return out


def types_of(messages: List[dict]) -> List[str]:
    return [m["type"] for m in messages]


# -----------------------------
# Fixtures
# -----------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def catalog(clock):
    cat = GameCatalog(clock=clock)
    cat.register(GameInfo(id="g1", name="Game One", max_players=2))
    cat.register(GameInfo(id="raceGame", name="Race", max_players=8))
    cat.register(GameInfo(id="solo", name="No default"))
    return cat


@pytest.fixture
def hub(settings, catalog, clock):
    return HubState(settings, catalog=catalog, clock=clock)


@pytest.fixture
def dispatcher(hub):
    return Dispatcher(hub)


@pytest.fixture
def send(dispatcher):
    """Feed one JSON frame from *conn* into the dispatcher."""

    def _send(conn: Connection, **payload) -> None:
        dispatcher.handle_frame(conn.id, json.dumps(payload))

    return _send


@pytest.fixture
def producer(hub, send):
    conn = hub.connections.register()
    send(conn, type="register_game_client", gameId="raceGame", gameName="Race")
    drain(conn)
    return conn


@pytest.fixture
def make_sensor(hub, send):
    def _make(device_id: str) -> Connection:
        conn = hub.connections.register()
        send(conn, type="register_sensor_client", deviceId=device_id, supportedSensors=["orientation"])
        drain(conn)
        return conn

    return _make
