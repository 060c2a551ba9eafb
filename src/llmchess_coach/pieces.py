"""Logical piece registry: one PieceEntity per piece on the board, keyed by square."""
from __future__ import annotations

import copy
import itertools
from typing import Dict, List, Optional

import chess

from .errors import MoveApplicationError
from .models import PieceEntity
from .rules_oracle import color_name


class PieceRegistry:
    def __init__(self):
        self._by_square: Dict[str, PieceEntity] = {}
        self._ids = itertools.count(1)

    @classmethod
    def from_board(cls, board: chess.Board) -> "PieceRegistry":
        reg = cls()
        for sq, piece in sorted(board.piece_map().items()):
            reg.add(color_name(piece.color), piece.symbol().lower(), chess.square_name(sq))
        return reg

    def add(self, color: str, kind: str, square: str) -> PieceEntity:
        if square in self._by_square:
            raise MoveApplicationError(f"square {square} already occupied")
        entity = PieceEntity(id=next(self._ids), color=color, kind=kind, square=square)
        self._by_square[square] = entity
        return entity

    def at(self, square: str) -> Optional[PieceEntity]:
        return self._by_square.get(square)

    def get(self, color: str, kind: str, square: str) -> PieceEntity:
        entity = self._by_square.get(square)
        if entity is None or entity.color != color or entity.kind != kind:
            raise MoveApplicationError(f"no {color} {kind} on {square}")
        return entity

    def move(self, from_square: str, to_square: str) -> PieceEntity:
        entity = self._by_square.pop(from_square, None)
        if entity is None:
            raise MoveApplicationError(f"no piece on {from_square}")
        if to_square in self._by_square:
            self._by_square[from_square] = entity
            raise MoveApplicationError(f"square {to_square} still occupied")
        entity.square = to_square
        self._by_square[to_square] = entity
        return entity

    def remove(self, color: str, kind: str, square: str) -> int:
        entity = self.get(color, kind, square)
        del self._by_square[square]
        return entity.id

    def count(self, color: str) -> int:
        return sum(1 for p in self._by_square.values() if p.color == color)

    def all(self) -> List[PieceEntity]:
        return sorted(self._by_square.values(), key=lambda p: p.id)

    def snapshot(self) -> Dict[str, PieceEntity]:
        return copy.deepcopy(self._by_square)

    def restore(self, snapshot: Dict[str, PieceEntity]) -> None:
        self._by_square = snapshot
