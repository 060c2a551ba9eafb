"""
RulesOracle: authoritative chess legality/state engine around a python-chess Board.

- Owns the live Board; the only place the live position is mutated.
- Produces MoveDescriptor records (flags, SAN, UCI, captured piece) for legal moves.
- Termination queries (check, mate, stalemate, repetition, draw) and PGN export.

Used by MoveEngine for the live game and, as a scratch copy, by the decision backends
and the insight engine to validate proposals against a snapshot.
"""
from __future__ import annotations

import datetime
from typing import Optional

import chess
import chess.pgn

from .errors import IllegalMove
from .models import MoveDescriptor, MoveFlag


def color_name(turn: chess.Color) -> str:
    return "white" if turn == chess.WHITE else "black"


def color_value(color: str) -> chess.Color:
    return chess.WHITE if str(color).lower() == "white" else chess.BLACK


def describe_move(board: chess.Board, move: chess.Move) -> MoveDescriptor:
    """Build a descriptor for a legal move on board (board is not modified)."""
    piece = board.piece_at(move.from_square)
    if piece is None:
        raise IllegalMove(move.uci(), board.fen(), "empty_source_square")
    captured = None
    if board.is_en_passant(move):
        captured = "p"
    elif board.is_capture(move):
        target = board.piece_at(move.to_square)
        captured = target.symbol().lower() if target else None

    if move.promotion:
        flag = MoveFlag.PROMOTION
    elif board.is_kingside_castling(move):
        flag = MoveFlag.CASTLE_KINGSIDE
    elif board.is_queenside_castling(move):
        flag = MoveFlag.CASTLE_QUEENSIDE
    elif board.is_en_passant(move):
        flag = MoveFlag.EN_PASSANT
    elif captured:
        flag = MoveFlag.CAPTURE
    else:
        flag = MoveFlag.NONE

    return MoveDescriptor(
        from_square=chess.square_name(move.from_square),
        to_square=chess.square_name(move.to_square),
        piece=piece.symbol().lower(),
        color=color_name(piece.color),
        flag=flag,
        san=board.san(move),
        uci=move.uci(),
        captured=captured,
        promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
    )


def parse_notation(board: chess.Board, notation: str) -> chess.Move:
    """Parse UCI or SAN into a legal move for board; raises IllegalMove."""
    token = (notation or "").strip()
    if not token:
        raise IllegalMove(token, board.fen(), "empty_move")
    try:
        mv = chess.Move.from_uci(token.lower())
        if mv in board.legal_moves:
            return mv
    except ValueError:
        pass
    try:
        mv = board.parse_san(token)
    except ValueError:
        raise IllegalMove(token, board.fen()) from None
    if mv not in board.legal_moves:
        raise IllegalMove(token, board.fen())
    return mv


class RulesOracle:
    """Rules oracle around a live python-chess Board."""

    def __init__(self, starting_fen: str | None = None):
        self.board = chess.Board(fen=starting_fen) if starting_fen else chess.Board()
        self._headers: dict[str, str] = {}

    @classmethod
    def from_fen(cls, fen: str) -> "RulesOracle":
        return cls(starting_fen=fen)

    def load(self, fen: str) -> None:
        self.board = chess.Board(fen=fen)

    # ---------------- Queries -----------------
    def fen(self) -> str:
        return self.board.fen()

    def turn_color(self) -> str:
        return color_name(self.board.turn)

    def legal_moves(self, square: str | None = None) -> list[MoveDescriptor]:
        moves = self.board.legal_moves
        if square:
            origin = chess.parse_square(square)
            moves = (m for m in self.board.legal_moves if m.from_square == origin)
        return [describe_move(self.board, m) for m in moves]

    def legal_uci(self) -> list[str]:
        return [m.uci() for m in self.board.legal_moves]

    def describe(self, notation: str) -> MoveDescriptor:
        return describe_move(self.board, parse_notation(self.board, notation))

    def piece_at(self, square: str) -> Optional[tuple[str, str]]:
        piece = self.board.piece_at(chess.parse_square(square))
        if piece is None:
            return None
        return color_name(piece.color), piece.symbol().lower()

    def in_check(self) -> bool:
        return self.board.is_check()

    def in_checkmate(self) -> bool:
        return self.board.is_checkmate()

    def in_stalemate(self) -> bool:
        return self.board.is_stalemate()

    def in_threefold_repetition(self) -> bool:
        return self.board.is_repetition(3)

    def in_draw(self) -> bool:
        return (
            self.board.is_stalemate()
            or self.board.is_insufficient_material()
            or self.board.halfmove_clock >= 100
            or self.in_threefold_repetition()
        )

    def game_over(self) -> bool:
        return self.in_checkmate() or self.in_draw()

    def result(self) -> Optional[str]:
        """Winner color, 'draw', or None while the game is running."""
        if self.in_checkmate():
            return color_name(not self.board.turn)
        if self.in_draw():
            return "draw"
        return None

    def termination_reason(self) -> Optional[str]:
        if self.board.is_checkmate():
            return "checkmate"
        if self.board.is_stalemate():
            return "stalemate"
        if self.board.is_insufficient_material():
            return "insufficient_material"
        if self.in_threefold_repetition():
            return "threefold_repetition"
        if self.board.halfmove_clock >= 100:
            return "fifty_move_rule"
        return None

    # ---------------- Move Application -----------------
    def apply_move(self, notation: str) -> MoveDescriptor:
        mv = parse_notation(self.board, notation)
        desc = describe_move(self.board, mv)
        self.board.push(mv)
        return desc

    def undo(self) -> None:
        self.board.pop()

    def repromote(self, kind: str) -> MoveDescriptor:
        """Replace the last promotion move with a promotion to kind; returns the new descriptor."""
        if not self.board.move_stack or self.board.move_stack[-1].promotion is None:
            raise IllegalMove(kind, self.board.fen(), "no_promotion_to_finalize")
        last = self.board.pop()
        mv = chess.Move(last.from_square, last.to_square, promotion=chess.PIECE_SYMBOLS.index(kind))
        if mv not in self.board.legal_moves:
            self.board.push(last)
            raise IllegalMove(mv.uci(), self.board.fen())
        desc = describe_move(self.board, mv)
        self.board.push(mv)
        return desc

    # ---------------- History / PGN -----------------
    def ply_count(self) -> int:
        return len(self.board.move_stack)

    def san_history(self) -> str:
        """Movetext without headers, e.g. '1. e4 e5 2. Nf3'."""
        if not self.board.move_stack:
            return ""
        return self.board.root().variation_san(self.board.move_stack)

    def set_headers(self, event: str = "LLM Chess Coach", site: str = "?", date: Optional[str] = None,
                    round_: str = "?", white: str = "?", black: str = "?") -> None:
        date = date or datetime.date.today().strftime("%Y.%m.%d")
        self._headers.update({
            "Event": event,
            "Site": site,
            "Date": date,
            "Round": round_,
            "White": white,
            "Black": black,
        })

    def pgn(self) -> str:
        game = chess.pgn.Game.from_board(self.board)
        for k, v in self._headers.items():
            game.headers[k] = v
        game.headers["Result"] = self.board.result(claim_draw=True) if self.game_over() else "*"
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return game.accept(exporter)
