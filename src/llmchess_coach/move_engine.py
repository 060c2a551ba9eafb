"""
MoveEngine: applies validated moves to the rules oracle and the piece registry.

- Capture: the captured entity is removed and its id returned to the caller.
- Castling: king and rook are both relocated before apply returns, or nothing is.
- En passant: the pawn behind the destination square is removed.
- Promotion: AI movers always get a queen; the human side receives a PendingPromotion
  token and the piece is chosen later via finalize_promotion().
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

import chess

from .errors import IllegalMove, MoveApplicationError, PromotionError
from .models import PROMOTABLE_KINDS, MoveDescriptor, MoveFlag, PieceEntity, opposite
from .move_validator import normalize_player_move
from .pieces import PieceRegistry
from .rules_oracle import RulesOracle

log = logging.getLogger("move_engine")

# (rook from file, rook to file) per castling side
_CASTLE_ROOK_FILES = {
    MoveFlag.CASTLE_KINGSIDE: ("h", "f"),
    MoveFlag.CASTLE_QUEENSIDE: ("a", "d"),
}


@dataclass
class PendingPromotion:
    token: str
    color: str
    from_square: str
    square: str
    pawn_id: int


@dataclass
class ApplyResult:
    descriptor: MoveDescriptor
    removed_piece_ids: List[int] = field(default_factory=list)
    captured_piece_id: Optional[int] = None
    pending_promotion: Optional[PendingPromotion] = None
    promoted_piece: Optional[PieceEntity] = None


class MoveEngine:
    def __init__(self, oracle: RulesOracle, player_color: str):
        self.oracle = oracle
        self.player_color = player_color
        self.registry = PieceRegistry.from_board(oracle.board)
        self._pending: Optional[PendingPromotion] = None

    @property
    def pending_promotion(self) -> Optional[PendingPromotion]:
        return self._pending

    def is_player_side(self, color: str) -> bool:
        return color == self.player_color

    def apply(self, move: str, position: str | None = None) -> ApplyResult:
        """Apply move (UCI or SAN) for the side to move; raises IllegalMove."""
        fen = self.oracle.fen()
        if position is not None and position != fen:
            raise IllegalMove(move, position, "stale_position")
        if self._pending is not None:
            raise PromotionError("a pending promotion must be finalized first")

        uci = normalize_player_move(move, fen)
        mover = self.oracle.turn_color()
        human = self.is_player_side(mover)
        if not human and len(uci) == 5 and uci[4] != "q":
            log.debug("AI under-promotion %s normalized to queen", uci)
            uci = uci[:4] + "q"

        snapshot = self.registry.snapshot()
        desc = self.oracle.apply_move(uci)
        try:
            result = self._apply_to_registry(desc, human)
        except MoveApplicationError:
            self.registry.restore(snapshot)
            self.oracle.undo()
            log.exception("Rolled back %s", desc.uci)
            raise
        log.debug("Applied %s (%s) flag=%s", desc.san, desc.uci, desc.flag.value)
        return result

    def _apply_to_registry(self, desc: MoveDescriptor, human: bool) -> ApplyResult:
        result = ApplyResult(descriptor=desc)
        enemy = opposite(desc.color)

        if desc.flag == MoveFlag.EN_PASSANT:
            to_sq = chess.parse_square(desc.to_square)
            behind = to_sq - 8 if desc.color == "white" else to_sq + 8
            removed = self.registry.remove(enemy, "p", chess.square_name(behind))
            result.captured_piece_id = removed
            result.removed_piece_ids.append(removed)
        elif desc.captured:
            removed = self.registry.remove(enemy, desc.captured, desc.to_square)
            result.captured_piece_id = removed
            result.removed_piece_ids.append(removed)

        moved = self.registry.move(desc.from_square, desc.to_square)

        if desc.is_castle:
            rank = desc.to_square[1]
            rook_from, rook_to = _CASTLE_ROOK_FILES[desc.flag]
            self.registry.get(desc.color, "r", f"{rook_from}{rank}")
            self.registry.move(f"{rook_from}{rank}", f"{rook_to}{rank}")

        if desc.flag == MoveFlag.PROMOTION:
            if human:
                self._pending = PendingPromotion(
                    token=uuid.uuid4().hex,
                    color=desc.color,
                    from_square=desc.from_square,
                    square=desc.to_square,
                    pawn_id=moved.id,
                )
                result.pending_promotion = self._pending
            else:
                pawn_id, promoted = self._swap_promoted(desc.color, desc.to_square, "q")
                result.removed_piece_ids.append(pawn_id)
                result.promoted_piece = promoted
        return result

    def _swap_promoted(self, color: str, square: str, kind: str) -> tuple[int, PieceEntity]:
        pawn_id = self.registry.remove(color, "p", square)
        return pawn_id, self.registry.add(color, kind, square)

    def finalize_promotion(self, token: str, kind: str) -> ApplyResult:
        """Complete a human promotion with kind (q, r, b, n)."""
        pending = self._pending
        if pending is None or pending.token != token:
            raise PromotionError("unknown or expired promotion token")
        kind = (kind or "").strip().lower()[:1]
        if kind not in PROMOTABLE_KINDS:
            raise PromotionError(f"cannot promote to {kind!r}")

        desc = self.oracle.repromote(kind)
        pawn_id, promoted = self._swap_promoted(pending.color, pending.square, kind)
        self._pending = None
        log.debug("Promotion on %s finalized to %s", pending.square, kind)
        return ApplyResult(descriptor=desc, removed_piece_ids=[pawn_id], promoted_piece=promoted)
