import pytest

from sensor_hub.errors import (
    ResourceExhausted,
    SessionCodeAlreadyMatched,
    SessionCodeExpired,
    SessionCodeNotFound,
)
from sensor_hub.sessions import STATUS_MATCHED, STATUS_WAITING, SessionMatcher

from conftest import FakeClock, ScriptedRandom

TTL = 10 * 60 * 1000


@pytest.fixture
def matcher(clock):
    return SessionMatcher(clock=clock, ttl_ms=TTL)


def test_create_code_starts_waiting_with_ten_minute_ttl(matcher, clock):
    entry = matcher.create_code("prod-1", "raceGame")
    assert entry.status == STATUS_WAITING
    assert entry.expires_at - entry.created_at == 600_000
    assert entry.created_at == clock.now
    assert matcher.codes[entry.code] is entry


def test_round_trip_keeps_game_id(matcher):
    entry = matcher.create_code("prod-1", "raceGame")
    session, superseded = matcher.match_code(entry.code, "deviceXYZ", "sensor-1")
    assert superseded is None
    assert session.game_id == "raceGame"
    assert session.producer_conn_id == "prod-1"
    assert session.sensor_device_id == "deviceXYZ"
    assert matcher.get_session(session.session_id) is session


def test_second_match_is_already_matched(clock):
    matcher = SessionMatcher(clock=clock, rng=ScriptedRandom([4821]))
    entry = matcher.create_code("prod-1", "raceGame")
    assert entry.code == "4821"
    matcher.match_code("4821", "deviceXYZ")
    with pytest.raises(SessionCodeAlreadyMatched):
        matcher.match_code("4821", "deviceOther")
    # matched codes are retained, not deleted
    assert matcher.codes["4821"].status == STATUS_MATCHED
    assert len(matcher.sessions) == 1


def test_unknown_code_is_not_found(matcher):
    with pytest.raises(SessionCodeNotFound):
        matcher.match_code("0000", "deviceXYZ")


@pytest.mark.parametrize("past_expiry_ms", [0, 1, 60_000])
def test_expired_code_reports_expired_before_any_sweep(matcher, clock, past_expiry_ms):
    entry = matcher.create_code("prod-1", "g")
    clock.advance(TTL + past_expiry_ms)
    with pytest.raises(SessionCodeExpired):
        matcher.match_code(entry.code, "deviceXYZ")
    assert entry.code not in matcher.codes
    assert not matcher.sessions


def test_code_is_still_valid_just_before_expiry(matcher, clock):
    entry = matcher.create_code("prod-1", "g")
    clock.advance(TTL - 1)
    session, _ = matcher.match_code(entry.code, "deviceXYZ")
    assert session.session_code == entry.code


def test_only_one_of_interleaved_matches_succeeds(matcher):
    entry = matcher.create_code("prod-1", "g")
    outcomes = []
    for device in ("a", "b", "c"):
        try:
            matcher.match_code(entry.code, device)
            outcomes.append("ok")
        except SessionCodeAlreadyMatched:
            outcomes.append("already")
    assert outcomes == ["ok", "already", "already"]


def test_new_match_supersedes_previous_session_of_device(matcher):
    first = matcher.create_code("prod-1", "g")
    second = matcher.create_code("prod-2", "g")
    old, _ = matcher.match_code(first.code, "phone", "s-1")
    new, superseded = matcher.match_code(second.code, "phone", "s-1")
    assert superseded is old
    assert matcher.get_session(old.session_id) is None
    assert matcher.session_for_device("phone") is new


def test_purge_expired_removes_only_expired(matcher, clock):
    old = matcher.create_code("prod-1", "g")
    clock.advance(TTL)
    fresh = matcher.create_code("prod-2", "g")
    removed = matcher.purge_expired()
    assert removed == [old.code]
    assert list(matcher.codes) == [fresh.code]


def test_purge_also_drops_expired_matched_codes(matcher, clock):
    entry = matcher.create_code("prod-1", "g")
    matcher.match_code(entry.code, "d")
    clock.advance(TTL + 1)
    assert matcher.purge_expired() == [entry.code]
    # the session itself outlives the code
    assert len(matcher.sessions) == 1


def test_sessions_for_connection_and_end_session(matcher):
    entry = matcher.create_code("prod-1", "g")
    session, _ = matcher.match_code(entry.code, "d", "sensor-1")
    assert matcher.sessions_for_connection("prod-1") == [session]
    assert matcher.sessions_for_connection("sensor-1") == [session]
    assert session.counterpart("prod-1") == "sensor-1"
    assert session.counterpart("sensor-1") == "prod-1"
    assert matcher.end_session(session.session_id) is session
    assert matcher.end_session(session.session_id) is None
    assert matcher.session_for_device("d") is None


def test_discard_waiting_codes_keeps_matched(matcher):
    waiting = matcher.create_code("prod-1", "g")
    matched = matcher.create_code("prod-1", "g")
    matcher.match_code(matched.code, "d")
    other = matcher.create_code("prod-2", "g")
    assert matcher.discard_waiting_codes("prod-1") == [waiting.code]
    assert set(matcher.codes) == {matched.code, other.code}


def test_saturation_surfaces_resource_exhausted():
    matcher = SessionMatcher(clock=FakeClock(), rng=ScriptedRandom([1000] * 9001))
    matcher.create_code("p", "g")
    with pytest.raises(ResourceExhausted):
        matcher.create_code("p", "g")
