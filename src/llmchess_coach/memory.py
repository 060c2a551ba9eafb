"""Per-game memory of applied moves with the rationale the engine gave for each."""
from __future__ import annotations

import time
from typing import List

from .models import MoveDescriptor, MoveFlag, MoveMemory


class GameMemory:
    def __init__(self):
        self._moves: List[MoveMemory] = []

    def record_move(self, move_number: int, fen: str, descriptor: MoveDescriptor, reasoning: str = "") -> MoveMemory:
        entry = MoveMemory(
            move_number=move_number,
            fen=fen,
            uci=descriptor.uci,
            san=descriptor.san,
            reasoning=reasoning or "",
            is_capture=descriptor.is_capture,
            is_check=descriptor.is_check,
            is_promotion=descriptor.flag == MoveFlag.PROMOTION,
            is_castle=descriptor.is_castle,
            timestamp=time.time(),
        )
        self._moves.append(entry)
        return entry

    def moves(self) -> List[MoveMemory]:
        return list(self._moves)

    def last(self, count: int) -> List[MoveMemory]:
        return self._moves[-count:] if count > 0 else []

    def key_moments(self) -> List[MoveMemory]:
        return [m for m in self._moves if m.is_capture or m.is_check or m.is_promotion or m.is_castle]

    def clear(self) -> None:
        self._moves = []

    def __len__(self) -> int:
        return len(self._moves)
