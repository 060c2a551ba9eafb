"""
GameHistoryStore: newest-first list of finished games.

Holds at most `capacity` records (oldest evicted first). When a path is given the
list is mirrored to a JSON file after every change and loaded on construction.
"""
from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from pathlib import Path
from typing import List, Optional

from .models import GameRecord

log = logging.getLogger("history_store")

MAX_GAMES = 50


class GameHistoryStore:
    def __init__(self, path: str | Path | None = None, capacity: int = MAX_GAMES):
        self.path = Path(path) if path else None
        self.capacity = max(1, capacity)
        self._lock = threading.Lock()
        self._records: List[GameRecord] = self._load()

    def _load(self) -> List[GameRecord]:
        if not self.path or not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [GameRecord.from_dict(d) for d in data][: self.capacity]
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.warning("Ignoring unreadable history file %s: %s", self.path, e)
            return []

    def _persist(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps([r.to_dict() for r in self._records], indent=2), encoding="utf-8")

    def save(self, record: GameRecord) -> None:
        with self._lock:
            self._records.insert(0, record)
            del self._records[self.capacity:]
            self._persist()
        log.info("Saved game %s (%s, %d moves)", record.id, record.result, record.move_count)

    def history(self) -> List[GameRecord]:
        with self._lock:
            return list(self._records)

    def get_game(self, game_id: str) -> Optional[GameRecord]:
        with self._lock:
            return next((r for r in self._records if r.id == game_id), None)

    def last_game_summary(self) -> Optional[str]:
        with self._lock:
            if not self._records:
                return None
            last = self._records[0]
        result = "ended in a draw" if last.result == "draw" else f"{last.result} won"
        text = f"Last game ({last.date}): {last.move_count} moves, {result}. Model: {last.model}."
        if last.summary:
            text += f" {last.summary}"
        return text

    def clear(self) -> None:
        with self._lock:
            self._records = []
            if self.path and self.path.exists():
                self.path.unlink()

    @staticmethod
    def generate_id() -> str:
        return f"game_{int(time.time() * 1000)}_{secrets.token_hex(3)}"
