"""
InsightEngine: rates the player's move against a tactical heuristic score of every legal move.

Score terms (pawn = 1):
- captures: even-or-better trades 2v+1; cheaper captures v-a when recapturable, else 2v
- mate 100 (overrides everything), check +3
- +1.5 per opponent piece newly left hanging, fork +4, pin/skewer +3
- minor piece to the center +1.5 (extended center +0.5)
- pawn reaching relative rank 6+ +2, rank 7 another +4
- castling +3, developing a piece off the back rank +0.5
- moved piece attacked and undefended: -0.8 x its value

Classification: brilliant/good when the move ties the best, good within 2, inaccuracy
within 5, missed_win when the best scored 8+, otherwise blunder. Hanging-piece and
abandoned-piece checks can then make the verdict stricter.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import chess

from .models import PIECE_NAMES, MoveInsight, MoveQuality
from .rules_oracle import parse_notation

log = logging.getLogger("insight")

PIECE_VALUES = {chess.PAWN: 1, chess.KNIGHT: 3, chess.BISHOP: 3, chess.ROOK: 5, chess.QUEEN: 9, chess.KING: 0}

MATE_SCORE = 100
CHECK_BONUS = 3
HANGING_BONUS = 1.5
FORK_BONUS = 4
PIN_BONUS = 3
CASTLE_BONUS = 3
DEVELOPMENT_BONUS = 0.5
SAFETY_FACTOR = 0.8
BRILLIANT_THRESHOLD = 8
WIN_THRESHOLD = 8

CENTER = {chess.D4, chess.D5, chess.E4, chess.E5}
EXTENDED_CENTER = {
    chess.C3, chess.C4, chess.C5, chess.C6, chess.D3, chess.D6,
    chess.E3, chess.E6, chess.F3, chess.F4, chess.F5, chess.F6,
}

ROOK_DIRS = [(1, 0), (-1, 0), (0, 1), (0, -1)]
BISHOP_DIRS = [(1, 1), (1, -1), (-1, 1), (-1, -1)]
SLIDER_DIRS = {chess.ROOK: ROOK_DIRS, chess.BISHOP: BISHOP_DIRS, chess.QUEEN: ROOK_DIRS + BISHOP_DIRS}

_SEVERITY_ORDER = {"good": 0, "brilliant": 0, "inaccuracy": 1, "missed_win": 2, "blunder": 3}


@dataclass
class ScoredMove:
    move: chess.Move
    san: str
    score: float


def _name(piece_type: int) -> str:
    return PIECE_NAMES[chess.piece_symbol(piece_type)]


def _hanging_count(board: chess.Board, attacker: chess.Color) -> int:
    """Opponent pieces (kings excluded) attacked by attacker and not defended."""
    count = 0
    for square, piece in board.piece_map().items():
        if piece.color == attacker or piece.piece_type == chess.KING:
            continue
        if board.is_attacked_by(attacker, square) and not board.is_attacked_by(piece.color, square):
            count += 1
    return count


def _is_fork(board_after: chess.Board, square: int, mover: chess.Color) -> bool:
    targets = 0
    for sq in board_after.attacks(square):
        piece = board_after.piece_at(sq)
        if piece and piece.color != mover and PIECE_VALUES[piece.piece_type] >= 3:
            targets += 1
    return targets >= 2


def _is_pin_or_skewer(board_after: chess.Board, square: int, piece_type: int, mover: chess.Color) -> bool:
    dirs = SLIDER_DIRS.get(piece_type)
    if not dirs:
        return False
    f0, r0 = chess.square_file(square), chess.square_rank(square)
    for df, dr in dirs:
        found = 0
        f, r = f0 + df, r0 + dr
        while 0 <= f < 8 and 0 <= r < 8:
            piece = board_after.piece_at(chess.square(f, r))
            if piece:
                if piece.color == mover:
                    break
                found += 1
                if found >= 2:
                    return True
            f, r = f + df, r + dr
    return False


def _relative_rank(square: int, color: chess.Color) -> int:
    rank = chess.square_rank(square) + 1
    return rank if color == chess.WHITE else 9 - rank


class InsightEngine:
    def score_move(self, board: chess.Board, move: chess.Move) -> float:
        mover = board.turn
        enemy = not mover
        piece = board.piece_at(move.from_square)
        moved_value = PIECE_VALUES[piece.piece_type]
        score = 0.0

        after = board.copy(stack=False)
        after.push(move)

        if board.is_capture(move):
            victim = chess.PAWN if board.is_en_passant(move) else board.piece_type_at(move.to_square)
            captured_value = PIECE_VALUES[victim]
            if captured_value >= moved_value:
                score += captured_value * 2 + 1
            elif after.is_attacked_by(enemy, move.to_square):
                score += captured_value - moved_value
            else:
                score += captured_value * 2

        if after.is_checkmate():
            return MATE_SCORE
        if after.is_check():
            score += CHECK_BONUS

        newly_hanging = _hanging_count(after, mover) - _hanging_count(board, mover)
        score += max(0, newly_hanging) * HANGING_BONUS

        if _is_fork(after, move.to_square, mover):
            score += FORK_BONUS
        if _is_pin_or_skewer(after, move.to_square, piece.piece_type, mover):
            score += PIN_BONUS

        if piece.piece_type in (chess.KNIGHT, chess.BISHOP):
            if move.to_square in CENTER:
                score += 1.5
            elif move.to_square in EXTENDED_CENTER:
                score += 0.5

        if piece.piece_type == chess.PAWN:
            rel = _relative_rank(move.to_square, mover)
            if rel >= 6:
                score += 2
            if rel == 7:
                score += 4

        if board.is_castling(move):
            score += CASTLE_BONUS

        if piece.piece_type not in (chess.PAWN, chess.KING) and _relative_rank(move.from_square, mover) == 1:
            score += DEVELOPMENT_BONUS

        if after.is_attacked_by(enemy, move.to_square) and not after.is_attacked_by(mover, move.to_square):
            score -= moved_value * SAFETY_FACTOR

        return score

    def score_all(self, board: chess.Board) -> List[ScoredMove]:
        scored = [ScoredMove(m, board.san(m), self.score_move(board, m)) for m in board.legal_moves]
        # stable order for equal scores
        scored.sort(key=lambda s: (-s.score, s.move.uci()))
        return scored

    def explain(self, board: chess.Board, move: chess.Move) -> str:
        san = board.san(move)
        piece = board.piece_at(move.from_square)
        after = board.copy(stack=False)
        after.push(move)
        victim = None
        if board.is_capture(move):
            victim = chess.PAWN if board.is_en_passant(move) else board.piece_type_at(move.to_square)

        if after.is_checkmate():
            return f"{san} leads to checkmate!"
        if after.is_check():
            if victim:
                return f"{san} captures the {_name(victim)} with check, a powerful double threat."
            return f"{san} delivers check, forcing your opponent to respond."
        if victim:
            cv, av = PIECE_VALUES[victim], PIECE_VALUES[piece.piece_type]
            if cv > av:
                return (f"{san} wins material, capturing a {_name(victim)} ({cv}) "
                        f"with your {_name(piece.piece_type)} ({av}).")
            return f"Capturing with {san} wins the {_name(victim)}."
        if _is_fork(after, move.to_square, board.turn):
            return f"{san} creates a fork, attacking multiple pieces at once!"
        if _is_pin_or_skewer(after, move.to_square, piece.piece_type, board.turn):
            return f"{san} creates a pin or skewer along the line, trapping an opponent piece."
        if piece.piece_type == chess.PAWN and _relative_rank(move.to_square, board.turn) >= 6:
            return f"{san} pushes the pawn closer to promotion, a dangerous threat."
        return f"{san} was a stronger move in this position."

    def check_hanging(self, board: chess.Board, move: chess.Move) -> Optional[tuple[MoveQuality, str]]:
        """Can the opponent take the moved piece with something cheaper right away?"""
        piece = board.piece_at(move.from_square)
        after = board.copy(stack=False)
        after.push(move)
        moved_type = move.promotion or piece.piece_type
        moved_value = PIECE_VALUES[moved_type]
        capturers = [after.piece_type_at(m.from_square) for m in after.legal_moves if m.to_square == move.to_square]
        if not capturers:
            return None
        cheapest = min(capturers, key=lambda t: PIECE_VALUES[t] if t != chess.KING else 99)
        if PIECE_VALUES[cheapest] >= moved_value:
            return None
        severity: MoveQuality = "blunder" if moved_value >= 5 else "inaccuracy"
        text = (f"Your {_name(moved_type)} on {chess.square_name(move.to_square)} can be captured "
                f"by their {_name(cheapest)}, losing material.")
        return severity, text

    def check_abandoned(self, board: chess.Board, move: chess.Move) -> Optional[tuple[MoveQuality, str]]:
        """Did the moved piece stop guarding a rook or queen the opponent can now win?"""
        mover = board.turn
        guarded = board.attacks(move.from_square)
        after = board.copy(stack=False)
        after.push(move)
        for square, target in after.piece_map().items():
            if target.color != mover or square == move.to_square or square not in guarded:
                continue
            value = PIECE_VALUES[target.piece_type]
            if value < 5:
                continue
            defended = after.is_attacked_by(mover, square)
            attackers = [after.piece_type_at(sq) for sq in after.attackers(not mover, square)]
            # the king only counts when the capture would be legal
            if any(PIECE_VALUES[a] < value and (a != chess.KING or not defended) for a in attackers):
                return "blunder", (f"Moving away left your {_name(target.piece_type)} "
                                   f"on {chess.square_name(square)} undefended!")
        return None

    def analyze(self, position_before: str, player_move: str) -> MoveInsight:
        """Classify player_move (UCI or SAN) played from position_before; raises IllegalMove."""
        board = chess.Board(position_before)
        move = parse_notation(board, player_move)
        player_san = board.san(move)

        scored = self.score_all(board)
        best = scored[0]
        player_score = next(s.score for s in scored if s.move == move)
        gap = best.score - player_score

        better: Optional[str] = None
        explanation = ""
        if player_score >= best.score:
            quality: MoveQuality = "brilliant" if player_score >= BRILLIANT_THRESHOLD else "good"
        elif gap <= 2:
            quality = "good"
        else:
            if gap <= 5:
                quality = "inaccuracy"
            elif best.score >= WIN_THRESHOLD:
                quality = "missed_win"
            else:
                quality = "blunder"
            better = best.san
            explanation = self.explain(board, best.move)

        if quality in ("good", "inaccuracy", "blunder"):
            hanging = self.check_hanging(board, move)
            if hanging and (quality != "blunder" or hanging[0] == "blunder"):
                if _SEVERITY_ORDER[hanging[0]] > _SEVERITY_ORDER[quality]:
                    quality = hanging[0]
                explanation = hanging[1]
                if best.move != move:
                    better = best.san

        if quality == "good":
            abandoned = self.check_abandoned(board, move)
            if abandoned:
                quality, explanation = abandoned
                if best.move != move:
                    better = best.san

        log.debug("Insight %s: %s (score %.1f, best %s %.1f)", player_san, quality, player_score, best.san, best.score)
        return MoveInsight(player_move=player_san, explanation=explanation, quality=quality, better_move=better)
