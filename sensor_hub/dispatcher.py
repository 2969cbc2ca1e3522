"""Websocket message dispatcher.

This is the single entry point for inbound frames. A frame is parsed into one
of the closed set of inbound envelopes, the sender's role is checked, the
session matcher or room manager mutates its state, and the resulting messages
are queued on the recipients' connections.

Every handler is a plain synchronous function. Sending only enqueues, so a
handler runs from the first state read to the last state write without ever
yielding to the event loop, which is what keeps match/join/start atomic.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional, Tuple, Type, Union

from .connections import Connection, Message
from .constants import ROLE_OBSERVER, ROLE_PRODUCER, ROLE_SENSOR
from .errors import HubError, MalformedEnvelope, RoleNotPermitted
from .protocol import (
    INBOUND_TYPES,
    CreateRoom,
    CreateSessionCode,
    GameStart,
    GameStartFailed,
    Inbound,
    JoinRoom,
    JoinSessionCode,
    LeaveRoom,
    MultiplayerEventIn,
    MultiplayerEventOut,
    MultiplayerSensorDataIn,
    MultiplayerSensorDataOut,
    Ping,
    PlayerJoined,
    PlayerLeft,
    Pong,
    RegisterGameClient,
    RegisterHubClient,
    RegisterSensorClient,
    RegistrationSuccess,
    RoomClosed,
    RoomCreated,
    RoomCreateFailed,
    RoomJoined,
    RoomJoinFailed,
    RoomLeft,
    RoomListUpdated,
    SensorDataIn,
    SensorDataOut,
    SensorMatched,
    SessionCodeCreated,
    SessionCodeFailed,
    SessionEnded,
    SessionJoined,
    SessionJoinFailed,
    StartGame,
    UnknownMessageType,
    parse_inbound,
)
from .room import Room
from .schemas import RoomPlayer
from .state import HubState

log = logging.getLogger("sensor_hub.dispatcher")

Handler = Callable[[Connection, Inbound], None]


def _require_role(conn: Connection, *roles: str) -> None:
    if conn.role not in roles:
        allowed = " or ".join(roles)
        raise RoleNotPermitted(f"Only {allowed} clients may do this (you are {conn.role}).")


class Dispatcher:
    def __init__(self, hub: HubState):
        self.hub = hub
        self.connections = hub.connections
        self.sessions = hub.sessions
        self.rooms = hub.rooms
        self._handlers: Dict[Type[Inbound], Handler] = {
            RegisterHubClient: self.handle_register_hub_client,
            RegisterGameClient: self.handle_register_game_client,
            RegisterSensorClient: self.handle_register_sensor_client,
            CreateSessionCode: self.handle_create_session_code,
            JoinSessionCode: self.handle_join_session_code,
            SensorDataIn: self.handle_sensor_data,
            CreateRoom: self.handle_create_room,
            JoinRoom: self.handle_join_room,
            LeaveRoom: self.handle_leave_room,
            StartGame: self.handle_start_game,
            MultiplayerEventIn: self.handle_multiplayer_event,
            MultiplayerSensorDataIn: self.handle_multiplayer_sensor_data,
            Ping: self.handle_ping,
        }
        missing = set(INBOUND_TYPES.values()) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for inbound types: {sorted(m.__name__ for m in missing)}")

    # ---------------------------------------------------------------------
    # Entry points
    # ---------------------------------------------------------------------

    def handle_frame(self, conn_id: str, raw: Union[str, bytes]) -> None:
        """Parse and dispatch one raw frame; malformed frames are logged and dropped."""
        conn = self.connections.get(conn_id)
        if conn is None:
            return
        try:
            envelope = parse_inbound(raw)
        except UnknownMessageType as exc:
            log.info("Unknown message type from %s: %r", conn_id, exc.msg_type)
            return
        except MalformedEnvelope as exc:
            log.warning("Dropped malformed frame from %s: %s", conn_id, exc.message)
            return
        self.dispatch(conn, envelope)

    def dispatch(self, conn: Connection, envelope: Inbound) -> None:
        self.connections.touch(conn.id)
        self._handlers[type(envelope)](conn, envelope)

    def disconnect(self, conn_id: str) -> None:
        """Tear down everything *conn_id* took part in, then forget it."""
        if conn_id not in self.connections:
            return

        for session in self.sessions.sessions_for_connection(conn_id):
            self.sessions.end_session(session.session_id)
            self.send(session.counterpart(conn_id), SessionEnded(session_id=session.session_id, reason="peer_disconnected"))
        self.sessions.discard_waiting_codes(conn_id)

        hosted = self.rooms.room_hosted_by(conn_id)
        if hosted is not None:
            self.close_room(hosted, "host_disconnected")
        left = self.rooms.leave_room(conn_id)
        if left is not None:
            self._announce_leave(*left)

        self.connections.remove(conn_id)

    # ---------------------------------------------------------------------
    # Sending helpers
    # ---------------------------------------------------------------------

    def send(self, conn_id: Optional[str], message: Message) -> bool:
        return self.connections.send(conn_id, message)

    def send_many(self, conn_ids: Iterable[str], message: Message) -> int:
        return sum(1 for cid in conn_ids if self.send(cid, message))

    def broadcast_room_list(self) -> None:
        observers = self.connections.by_role(ROLE_OBSERVER)
        if not observers:
            return
        update = RoomListUpdated(rooms=[r.summary() for r in self.rooms.waiting_rooms()])
        self.send_many((c.id for c in observers), update)

    def close_room(self, room: Room, reason: str, *, notify_host: bool = False) -> None:
        """Delete *room* and tell each member, exactly once, why."""
        recipients = room.recipients(include_host=notify_host)
        if self.rooms.close_room(room.room_id) is None:
            return
        self.send_many(recipients, RoomClosed(room_id=room.room_id, reason=reason))
        self.broadcast_room_list()

    def _announce_leave(self, room: Room, player: RoomPlayer) -> None:
        self.send_many(
            room.recipients(),
            PlayerLeft(player_id=player.player_id, nickname=player.nickname, current_players=room.current_players),
        )
        self.broadcast_room_list()

    def _room_context(self, conn: Connection) -> Tuple[Optional[Room], Optional[RoomPlayer]]:
        hosted = self.rooms.room_hosted_by(conn.id)
        if hosted is not None:
            return hosted, None
        found = self.rooms.room_of_member(conn.id)
        if found is None:
            return None, None
        return found

    # ---------------------------------------------------------------------
    # Registration
    # ---------------------------------------------------------------------

    def handle_register_hub_client(self, conn: Connection, msg: RegisterHubClient) -> None:
        self.connections.set_role(conn.id, ROLE_OBSERVER, {
            "version": msg.version or self.hub.settings.server_version,
            "deviceType": msg.device_type,
            "userAgent": msg.user_agent,
        })
        self.send(conn.id, RegistrationSuccess(
            client_id=conn.id,
            role=ROLE_OBSERVER,
            server_version=self.hub.settings.server_version,
        ))
        self.send(conn.id, RoomListUpdated(rooms=[r.summary() for r in self.rooms.waiting_rooms()]))
        log.info("Hub client registered: %s", conn.id)

    def handle_register_game_client(self, conn: Connection, msg: RegisterGameClient) -> None:
        self.connections.set_role(conn.id, ROLE_PRODUCER, {
            "gameId": msg.game_id,
            "gameName": msg.game_name,
            "requestedSensors": msg.requested_sensors,
        })
        self.send(conn.id, RegistrationSuccess(client_id=conn.id, role=ROLE_PRODUCER, game_id=msg.game_id))
        log.info("Game client registered: %s (%s)", msg.game_id, conn.id)

    def handle_register_sensor_client(self, conn: Connection, msg: RegisterSensorClient) -> None:
        self.connections.set_role(conn.id, ROLE_SENSOR, {
            "deviceId": msg.device_id,
            "userAgent": msg.user_agent,
            "supportedSensors": msg.supported_sensors,
        })
        self.send(conn.id, RegistrationSuccess(client_id=conn.id, role=ROLE_SENSOR, device_id=msg.device_id))
        log.info("Sensor client registered: %s (%s)", msg.device_id, conn.id)

    # ---------------------------------------------------------------------
    # Session codes
    # ---------------------------------------------------------------------

    def handle_create_session_code(self, conn: Connection, msg: CreateSessionCode) -> None:
        try:
            _require_role(conn, ROLE_PRODUCER)
            entry = self.sessions.create_code(conn.id, msg.game_id or conn.metadata.get("gameId"))
        except HubError as exc:
            log.warning("Session code creation failed for %s: %s", conn.id, exc.message)
            self.send(conn.id, SessionCodeFailed(error=exc.message, code=exc.code))
            return
        self.send(conn.id, SessionCodeCreated(
            session_code=entry.code,
            expires_at=entry.expires_at,
            game_id=entry.game_id,
        ))

    def handle_join_session_code(self, conn: Connection, msg: JoinSessionCode) -> None:
        try:
            _require_role(conn, ROLE_SENSOR)
            device_id = conn.metadata.get("deviceId") or msg.device_id
            if not device_id:
                raise MalformedEnvelope("A device id is required to join a session.")
            session, superseded = self.sessions.match_code(msg.session_code, device_id, conn.id)
        except HubError as exc:
            log.info("Session join rejected for %s (%s): %s", conn.id, msg.session_code, exc.code)
            self.send(conn.id, SessionJoinFailed(error=exc.message, code=exc.code))
            return

        if superseded is not None:
            ended = SessionEnded(session_id=superseded.session_id, reason="superseded")
            self.send_many(
                {superseded.producer_conn_id, superseded.sensor_conn_id} - {conn.id, None},
                ended,
            )
        self.hub.catalog.record_play(session.game_id)

        self.send(conn.id, SessionJoined(
            session_id=session.session_id,
            game_id=session.game_id,
            session_code=session.session_code,
        ))
        self.send(session.producer_conn_id, SensorMatched(
            session_id=session.session_id,
            device_id=device_id,
            session_code=session.session_code,
        ))

    def handle_sensor_data(self, conn: Connection, msg: SensorDataIn) -> None:
        if conn.role != ROLE_SENSOR:
            log.debug("sensor_data from non-sensor %s dropped", conn.id)
            return
        session = self.sessions.get_session(msg.session_id)
        if session is None or session.sensor_conn_id != conn.id:
            log.debug("sensor_data for unknown/foreign session %s dropped", msg.session_id)
            return
        self.sessions.touch_session(session)
        self.send(session.producer_conn_id, SensorDataOut(
            session_id=session.session_id,
            sensor_data=msg.sensor_data,
            timestamp=self.hub.clock(),
        ))

    # ---------------------------------------------------------------------
    # Rooms
    # ---------------------------------------------------------------------

    def handle_create_room(self, conn: Connection, msg: CreateRoom) -> None:
        try:
            _require_role(conn, ROLE_PRODUCER, ROLE_OBSERVER)
            room = self.rooms.create_room(conn.id, msg.game_id or conn.metadata.get("gameId"), msg.settings)
        except HubError as exc:
            log.warning("Room creation failed for %s: %s", conn.id, exc.message)
            self.send(conn.id, RoomCreateFailed(error=exc.message, code=exc.code))
            return
        self.send(conn.id, RoomCreated(
            room_id=room.room_id,
            password=room.password,
            game_id=room.game_id,
            max_players=room.max_players,
        ))
        self.broadcast_room_list()

    def handle_join_room(self, conn: Connection, msg: JoinRoom) -> None:
        previous = self.rooms.room_of_member(conn.id)
        if previous is not None and previous[0].password == msg.password:
            # Already inside this room; answer as if the join just happened.
            room, player = previous
            self.send(conn.id, RoomJoined(room_id=room.room_id, player_id=player.player_id, room_data=room.snapshot()))
            return

        try:
            _require_role(conn, ROLE_SENSOR)
            device_id = msg.device_id or conn.metadata.get("deviceId")
            room, player = self.rooms.join_room(msg.password, conn.id, msg.nickname, device_id)
        except HubError as exc:
            log.info("Room join rejected for %s: %s", conn.id, exc.code)
            self.send(conn.id, RoomJoinFailed(error=exc.message, code=exc.code))
            return

        if previous is not None:
            old_room, old_player = previous
            if self.rooms.remove_player(old_room, old_player.player_id) is not None:
                self._announce_leave(old_room, old_player)

        self.send(conn.id, RoomJoined(room_id=room.room_id, player_id=player.player_id, room_data=room.snapshot()))
        self.send_many(
            room.recipients(exclude=conn.id),
            PlayerJoined(player_id=player.player_id, nickname=player.nickname, current_players=room.current_players),
        )
        self.broadcast_room_list()

    def handle_leave_room(self, conn: Connection, msg: LeaveRoom) -> None:
        hosted = self.rooms.room_hosted_by(conn.id)
        if hosted is not None:
            self.close_room(hosted, "host_left", notify_host=True)
            return
        left = self.rooms.leave_room(conn.id)
        if left is None:
            log.debug("leave_room from %s who is in no room", conn.id)
            return
        room, player = left
        self.send(conn.id, RoomLeft(room_id=room.room_id))
        self._announce_leave(room, player)

    def handle_start_game(self, conn: Connection, msg: StartGame) -> None:
        try:
            room = self.rooms.start_game(conn.id)
        except HubError as exc:
            log.warning("Game start rejected for %s: %s", conn.id, exc.code)
            self.send(conn.id, GameStartFailed(error=exc.message, code=exc.code))
            return
        self.hub.catalog.record_play(room.game_id)
        self.send_many(room.recipients(), GameStart(game_id=room.game_id, room_id=room.room_id))
        self.broadcast_room_list()

    def handle_multiplayer_event(self, conn: Connection, msg: MultiplayerEventIn) -> None:
        room, player = self._room_context(conn)
        if room is None:
            log.debug("multiplayer_event from %s outside any room dropped", conn.id)
            return
        self.send_many(room.recipients(exclude=conn.id), MultiplayerEventOut(
            room_id=room.room_id,
            player_id=player.player_id if player else None,
            event_type=msg.event_type,
            event_data=msg.event_data,
            timestamp=self.hub.clock(),
        ))

    def handle_multiplayer_sensor_data(self, conn: Connection, msg: MultiplayerSensorDataIn) -> None:
        found = self.rooms.room_of_member(conn.id)
        if found is None:
            log.debug("multiplayer_sensor_data from non-member %s dropped", conn.id)
            return
        room, player = found
        self.send(room.host_conn_id, MultiplayerSensorDataOut(
            room_id=room.room_id,
            player_id=player.player_id,
            sensor_data=msg.sensor_data,
            timestamp=self.hub.clock(),
        ))

    # ---------------------------------------------------------------------
    # Liveness
    # ---------------------------------------------------------------------

    def handle_ping(self, conn: Connection, msg: Ping) -> None:
        self.send(conn.id, Pong(timestamp=msg.timestamp, server_time=self.hub.clock()))


__all__ = ["Dispatcher"]
