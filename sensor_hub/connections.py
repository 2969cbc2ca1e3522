"""Live connection registry.

A :class:`Connection` wraps one websocket together with the role the client
registered as and whatever metadata it declared. The registry is the only
owner of the transport handle: matcher and room logic only ever hold
connection ids and ask the registry to deliver messages.

Outbound delivery is decoupled from the socket through a bounded per
connection queue that a writer task drains in order. ``send`` never awaits,
so a slow or dead peer cannot stall the handler that produced the message.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Iterator, List, Optional, Protocol, Union

from pydantic import BaseModel

from .clock import Clock, now_ms
from .constants import OUTBOX_SIZE, ROLE_UNASSIGNED, ROLES

log = logging.getLogger("sensor_hub.connections")

Message = Union[BaseModel, Dict[str, Any]]


class Transport(Protocol):
    async def send_text(self, data: str) -> None:
        ...


def encode(message: Message) -> str:
    """Serialise an outbound message to its JSON wire form."""
    if isinstance(message, BaseModel):
        return message.model_dump_json(by_alias=True, exclude_none=True)
    return json.dumps(message, separators=(",", ":"))


class Connection:
    """One live client connection."""

    def __init__(self, conn_id: str, transport: Optional[Transport], *, created_at: int, outbox_size: int = OUTBOX_SIZE):
        self.id = conn_id
        self.transport = transport
        self.role: str = ROLE_UNASSIGNED
        self.metadata: Dict[str, Any] = {}
        self.created_at = created_at
        self.last_activity = created_at
        self.closed = False
        self.dropped = 0
        self.outbox: "asyncio.Queue[str]" = asyncio.Queue(maxsize=outbox_size)

    # -------------------- Outbound -------------------- #

    def enqueue(self, message: Message) -> bool:
        if self.closed:
            return False
        text = encode(message)
        if self.outbox.full():
            # Most-recent-wins: make room by discarding the oldest frame.
            self.outbox.get_nowait()
            self.dropped += 1
            log.debug("Outbox full for %s; dropped oldest frame", self.id)
        self.outbox.put_nowait(text)
        return True

    async def pump(self) -> None:
        """Drain the outbox to the socket until the transport fails or is cancelled."""
        if self.transport is None:
            return
        while not self.closed:
            text = await self.outbox.get()
            try:
                await self.transport.send_text(text)
            except Exception as exc:  # socket already gone
                log.debug("Send to %s failed: %s", self.id, exc)
                self.closed = True
                return

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"<Connection {self.id} role={self.role}>"


class ConnectionRegistry:
    """Tracks every live connection keyed by a uuid4 connection id."""

    def __init__(self, *, clock: Clock = now_ms, outbox_size: int = OUTBOX_SIZE):
        self._clock = clock
        self._outbox_size = outbox_size
        self._connections: Dict[str, Connection] = {}

    def register(self, transport: Optional[Transport] = None) -> Connection:
        conn_id = str(uuid.uuid4())
        while conn_id in self._connections:
            conn_id = str(uuid.uuid4())
        conn = Connection(conn_id, transport, created_at=self._clock(), outbox_size=self._outbox_size)
        self._connections[conn_id] = conn
        log.info("Client connected: %s", conn_id)
        return conn

    def set_role(self, conn_id: str, role: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[Connection]:
        if role not in ROLES:
            raise ValueError(f"unknown role: {role}")
        conn = self._connections.get(conn_id)
        if conn is None:
            return None
        if conn.role not in (ROLE_UNASSIGNED, role):
            log.warning("Connection %s re-registered as %s (was %s)", conn_id, role, conn.role)
        conn.role = role
        conn.metadata = dict(metadata or {})
        return conn

    def get(self, conn_id: Optional[str]) -> Optional[Connection]:
        if conn_id is None:
            return None
        return self._connections.get(conn_id)

    def touch(self, conn_id: str) -> None:
        conn = self._connections.get(conn_id)
        if conn is not None:
            conn.last_activity = self._clock()

    def remove(self, conn_id: str) -> Optional[Connection]:
        conn = self._connections.pop(conn_id, None)
        if conn is not None:
            conn.close()
            log.info("Client disconnected: %s (%s)", conn_id, conn.role)
        return conn

    def send(self, conn_id: Optional[str], message: Message) -> bool:
        """Queue *message* for *conn_id*; ``False`` when the peer is unreachable."""
        conn = self.get(conn_id)
        if conn is None or conn.closed:
            log.debug("Peer %s unreachable; message dropped", conn_id)
            return False
        return conn.enqueue(message)

    def by_role(self, role: str) -> List[Connection]:
        return [c for c in self._connections.values() if c.role == role]

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))


__all__ = ["Connection", "ConnectionRegistry", "Transport", "encode"]
