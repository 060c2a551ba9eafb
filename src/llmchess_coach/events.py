"""
In-process publish/subscribe channel owned by one GameOrchestrator.

Event names and payloads:
  game_started         GameStarted
  player_move_applied  MoveApplied (with the insight for the player's move, if any)
  ai_move_applied      MoveApplied (source "remote" or "local")
  turn_changed         TurnChanged
  game_ended           GameEnded
  thinking             ThinkingUpdate (streamed from the remote decision engine)
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .models import GameRecord, MoveDescriptor, MoveInsight

log = logging.getLogger("events")

GAME_STARTED = "game_started"
PLAYER_MOVE_APPLIED = "player_move_applied"
AI_MOVE_APPLIED = "ai_move_applied"
TURN_CHANGED = "turn_changed"
GAME_ENDED = "game_ended"
THINKING = "thinking"

Handler = Callable[[Any], None]


@dataclass
class GameStarted:
    session: int
    player_color: str
    fen: str


@dataclass
class MoveApplied:
    move: MoveDescriptor
    fen: str
    move_number: int
    piece_count: int
    insight: Optional[MoveInsight] = None
    source: str = "player"
    milestone: Optional[str] = None

    @property
    def board_summary(self) -> str:
        return f"{self.piece_count} pieces on board"


@dataclass
class TurnChanged:
    color: str
    fen: str
    is_player_turn: bool = False


@dataclass
class GameEnded:
    result: str
    reason: Optional[str]
    player_color: str
    record: Optional[GameRecord] = None


class EventChannel:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(payload)
            except Exception:
                log.exception("Listener for %r failed", event)

    def clear(self) -> None:
        self._handlers.clear()
