"""Pydantic-based configuration.

Values come from the environment (``SENSOR_HUB_`` prefix) or a ``.env`` file,
e.g. ``SENSOR_HUB_PORT=9000`` or ``SENSOR_HUB_CORS_ORIGINS='["https://a.b"]'``.
"""
from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_MAX_PLAYERS,
    JANITOR_INTERVAL_S,
    OUTBOX_SIZE,
    RECENT_CODES_LIMIT,
    ROOM_MAX_AGE_MS,
    SERVER_VERSION,
    SESSION_CODE_TTL_MS,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SENSOR_HUB_", env_file=".env", extra="ignore")

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, description="Server port")
    log_level: str = Field(default="INFO")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    games_dir: Path = Field(default=Path("games"), description="Folder scanned for */game.json")
    server_version: str = SERVER_VERSION

    # Seconds
    session_code_ttl: float = SESSION_CODE_TTL_MS / 1000
    janitor_interval: float = JANITOR_INTERVAL_S
    room_max_age: float = ROOM_MAX_AGE_MS / 1000

    recent_codes_limit: int = RECENT_CODES_LIMIT
    default_max_players: int = DEFAULT_MAX_PLAYERS
    outbox_size: int = OUTBOX_SIZE

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("session_code_ttl", "janitor_interval", "room_max_age")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("default_max_players", "outbox_size")
    @classmethod
    def validate_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


__all__ = ["Settings"]
