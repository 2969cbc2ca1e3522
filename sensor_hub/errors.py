"""Domain error taxonomy.

Every failure a handler can report back to a client derives from
:class:`HubError`. The dispatcher catches these at the handler boundary and
turns them into a typed rejection message for the requesting connection, so
none of them ever reach the transport.
"""
from __future__ import annotations


class HubError(Exception):
    """Base class for recoverable, client-reportable failures."""

    code = "HUB_ERROR"
    default_message = "Request failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# -----------------------------
# Code allocation
# -----------------------------

class ResourceExhausted(HubError):
    code = "RESOURCE_EXHAUSTED"
    default_message = "No free code is available right now. Please try again shortly."


# -----------------------------
# Session code matching
# -----------------------------

class SessionCodeNotFound(HubError):
    code = "NOT_FOUND"
    default_message = "Session code does not exist."


class SessionCodeExpired(HubError):
    code = "EXPIRED"
    default_message = "Session code has expired."


class SessionCodeAlreadyMatched(HubError):
    code = "ALREADY_MATCHED"
    default_message = "Session code is already matched."


# -----------------------------
# Rooms
# -----------------------------

class GameNotFound(HubError):
    code = "GAME_NOT_FOUND"
    default_message = "Game does not exist."


class AlreadyHosting(HubError):
    code = "ALREADY_HOSTING"
    default_message = "You already host an active room."


class InvalidPassword(HubError):
    code = "INVALID_PASSWORD"
    default_message = "Wrong room password."


class RoomNotFound(HubError):
    code = "ROOM_NOT_FOUND"
    default_message = "Room does not exist."


class RoomFull(HubError):
    code = "ROOM_FULL"
    default_message = "Room is full."


class RoomNotWaiting(HubError):
    code = "ROOM_NOT_WAITING"
    default_message = "Game has already started."


class NotHost(HubError):
    code = "NOT_HOST"
    default_message = "You are not the host of a room."


# -----------------------------
# Envelope / role checks
# -----------------------------

class RoleNotPermitted(HubError):
    code = "ROLE_NOT_PERMITTED"
    default_message = "Your connection role does not allow this request."


class MalformedEnvelope(HubError):
    code = "MALFORMED_ENVELOPE"
    default_message = "Malformed message."


__all__ = [
    "HubError",
    "ResourceExhausted",
    "SessionCodeNotFound",
    "SessionCodeExpired",
    "SessionCodeAlreadyMatched",
    "GameNotFound",
    "AlreadyHosting",
    "InvalidPassword",
    "RoomNotFound",
    "RoomFull",
    "RoomNotWaiting",
    "NotHost",
    "RoleNotPermitted",
    "MalformedEnvelope",
]
