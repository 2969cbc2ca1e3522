"""Producer/sensor pairing through 4-digit session codes."""
from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .clock import Clock, now_ms
from .codes import CodeAllocator
from .constants import RECENT_CODES_LIMIT, SESSION_CODE_TTL_MS
from .errors import SessionCodeAlreadyMatched, SessionCodeExpired, SessionCodeNotFound

log = logging.getLogger("sensor_hub.sessions")

STATUS_WAITING = "waiting"
STATUS_MATCHED = "matched"
STATUS_EXPIRED = "expired"


@dataclass
class SessionCode:
    code: str
    producer_conn_id: str
    game_id: Optional[str]
    created_at: int
    expires_at: int
    last_activity: int
    status: str = STATUS_WAITING
    sensor_device_id: Optional[str] = None
    sensor_conn_id: Optional[str] = None

    def is_expired(self, now: int) -> bool:
        return self.expires_at <= now


@dataclass
class Session:
    session_id: str
    session_code: str
    producer_conn_id: str
    sensor_conn_id: Optional[str]
    sensor_device_id: str
    game_id: Optional[str]
    created_at: int
    last_activity: int

    def counterpart(self, conn_id: str) -> Optional[str]:
        if conn_id == self.producer_conn_id:
            return self.sensor_conn_id
        return self.producer_conn_id


class SessionMatcher:
    """Owns session codes, completed sessions and the device -> session index."""

    def __init__(
        self,
        *,
        clock: Clock = now_ms,
        ttl_ms: int = SESSION_CODE_TTL_MS,
        recent_limit: int = RECENT_CODES_LIMIT,
        rng: Optional[random.Random] = None,
    ):
        self._clock = clock
        self.ttl_ms = ttl_ms
        self.codes: Dict[str, SessionCode] = {}
        self.sessions: Dict[str, Session] = {}
        self._device_sessions: Dict[str, str] = {}
        self.allocator = CodeAllocator(self.codes, name="session", recent_limit=recent_limit, rng=rng)

    # ---------------------------------------------------------------------
    # Code lifecycle
    # ---------------------------------------------------------------------

    def create_code(self, producer_conn_id: str, game_id: Optional[str]) -> SessionCode:
        code = self.allocator.allocate()
        now = self._clock()
        entry = SessionCode(
            code=code,
            producer_conn_id=producer_conn_id,
            game_id=game_id,
            created_at=now,
            expires_at=now + self.ttl_ms,
            last_activity=now,
        )
        self.codes[code] = entry
        log.info("Session code %s registered (game: %s)", code, game_id)
        return entry

    def match_code(
        self,
        code: str,
        sensor_device_id: str,
        sensor_conn_id: Optional[str] = None,
    ) -> Tuple[Session, Optional[Session]]:
        """Pair a sensor with the producer waiting on *code*.

        Returns the new session together with the session it superseded for
        the same device, if any. Runs without suspension points, so at most one
        caller can ever observe a given code in the ``waiting`` state.

        Raises
        ------
        SessionCodeNotFound, SessionCodeExpired, SessionCodeAlreadyMatched
        """
        entry = self.codes.get(code)
        if entry is None:
            raise SessionCodeNotFound()
        now = self._clock()
        if entry.is_expired(now):
            entry.status = STATUS_EXPIRED
            del self.codes[code]
            raise SessionCodeExpired()
        if entry.status != STATUS_WAITING:
            raise SessionCodeAlreadyMatched()

        entry.status = STATUS_MATCHED
        entry.sensor_device_id = sensor_device_id
        entry.sensor_conn_id = sensor_conn_id
        entry.last_activity = now

        superseded = None
        previous_id = self._device_sessions.get(sensor_device_id)
        if previous_id is not None:
            superseded = self.end_session(previous_id)

        session = Session(
            session_id=str(uuid.uuid4()),
            session_code=code,
            producer_conn_id=entry.producer_conn_id,
            sensor_conn_id=sensor_conn_id,
            sensor_device_id=sensor_device_id,
            game_id=entry.game_id,
            created_at=now,
            last_activity=now,
        )
        self.sessions[session.session_id] = session
        self._device_sessions[sensor_device_id] = session.session_id
        log.info("Session code %s matched (sensor: %s)", code, sensor_device_id)
        return session, superseded

    def purge_expired(self, now: Optional[int] = None) -> List[str]:
        now = self._clock() if now is None else now
        expired = [code for code, entry in self.codes.items() if entry.is_expired(now)]
        for code in expired:
            self.codes.pop(code).status = STATUS_EXPIRED
            log.info("Expired session code removed: %s", code)
        return expired

    def discard_waiting_codes(self, producer_conn_id: str) -> List[str]:
        """Drop codes still waiting for a sensor once their producer is gone."""
        stale = [
            code for code, entry in self.codes.items()
            if entry.producer_conn_id == producer_conn_id and entry.status == STATUS_WAITING
        ]
        for code in stale:
            del self.codes[code]
        if stale:
            log.info("Discarded %d waiting code(s) of %s", len(stale), producer_conn_id)
        return stale

    # ---------------------------------------------------------------------
    # Sessions
    # ---------------------------------------------------------------------

    def get_session(self, session_id: Optional[str]) -> Optional[Session]:
        if session_id is None:
            return None
        return self.sessions.get(session_id)

    def touch_session(self, session: Session) -> None:
        session.last_activity = self._clock()

    def end_session(self, session_id: str) -> Optional[Session]:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return None
        if self._device_sessions.get(session.sensor_device_id) == session_id:
            del self._device_sessions[session.sensor_device_id]
        log.info("Session ended: %s", session_id)
        return session

    def session_for_device(self, device_id: str) -> Optional[Session]:
        sid = self._device_sessions.get(device_id)
        return self.sessions.get(sid) if sid else None

    def sessions_for_connection(self, conn_id: str) -> List[Session]:
        return [
            s for s in self.sessions.values()
            if s.producer_conn_id == conn_id or s.sensor_conn_id == conn_id
        ]


__all__ = [
    "SessionCode",
    "Session",
    "SessionMatcher",
    "STATUS_WAITING",
    "STATUS_MATCHED",
    "STATUS_EXPIRED",
]
