"""Game catalog.

Games are discovered by scanning ``<games_dir>/<folder>/game.json``. The hub
only needs a handful of fields from a descriptor (id and default max players);
everything else is passed through to the query API untouched.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from .clock import Clock, now_ms
from .schemas import GameInfo

log = logging.getLogger("sensor_hub.catalog")


class GameCatalog:
    def __init__(self, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._games: Dict[str, GameInfo] = {}

    def register(self, game: GameInfo) -> GameInfo:
        gid = (game.id or "").strip()
        if not gid:
            raise ValueError("Game id is empty")
        game.is_active = True
        game.play_count = 0
        game.created_at = self._clock()
        self._games[gid] = game
        log.info("Game registered: %s (%s)", game.name or gid, gid)
        return game

    def load_directory(self, games_dir: Union[str, Path]) -> int:
        """Register every ``game.json`` found one level below *games_dir*."""
        root = Path(games_dir)
        if not root.is_dir():
            log.warning("Games directory %s does not exist; catalog is empty", root)
            return 0

        loaded = 0
        for descriptor in sorted(root.glob("*/game.json")):
            try:
                data = json.loads(descriptor.read_text(encoding="utf-8"))
                self.register(GameInfo.model_validate(data))
                loaded += 1
            except (OSError, json.JSONDecodeError, ValidationError, ValueError) as exc:
                log.error("Failed to load game %s: %s", descriptor.parent.name, exc)
        log.info("%d game(s) registered from %s", loaded, root)
        return loaded

    def get(self, game_id: Optional[str]) -> Optional[GameInfo]:
        if not game_id:
            return None
        return self._games.get(game_id)

    def record_play(self, game_id: Optional[str]) -> None:
        game = self.get(game_id)
        if game is not None:
            game.play_count += 1

    def list_active(self) -> List[GameInfo]:
        games = [g for g in self._games.values() if g.is_active]
        games.sort(key=lambda g: g.play_count, reverse=True)
        return games

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._games


__all__ = ["GameCatalog"]
