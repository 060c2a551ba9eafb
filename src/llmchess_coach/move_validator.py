"""
Move parsing/validation helpers for human input and LLM replies.

- normalize_player_move(): accept SAN, UCI or 0-0 style castling from a human and
  return the legal UCI move (promotions may omit the piece letter).
- parse_decision(): turn a raw model reply into a Decision using, in order, a strict
  JSON parse of the whole reply, an embedded JSON fragment, then a bare UCI token.
- legal_moves()/is_legal_uci(): cached acceptance-set lookups per FEN.
"""
from __future__ import annotations

import json
import re
from functools import lru_cache

import chess

from .errors import DecisionParseFailure, IllegalMove
from .models import Decision

UCI_RE = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$", re.I)
UCI_TOKEN_RE = re.compile(r"\b([a-h][1-8][a-h][1-8][qrbn]?)\b")
JSON_FRAGMENT_RE = re.compile(r'\{[^}]*"move"\s*:\s*"([a-h][1-8][a-h][1-8][qrbn]?)"[^}]*\}')
CASTLE_ZERO = {"0-0": "O-O", "0-0-0": "O-O-O", "o-o": "O-O", "o-o-o": "O-O-O"}


@lru_cache(maxsize=8192)
def _legal_moves_set(fen: str) -> frozenset[str]:
    """Cache and return the set of legal UCI moves for a given FEN."""
    board = chess.Board(fen=fen)
    return frozenset(m.uci() for m in board.legal_moves)


def is_legal_uci(uci: str, fen: str) -> bool:
    """Fast legality check for a UCI move in a given FEN (no SAN computation)."""
    if not UCI_RE.match(uci or ""):
        return False
    return uci.lower() in _legal_moves_set(fen)


def legal_moves(fen: str) -> list[str]:
    """Return sorted list of legal UCI moves for the FEN (cached)."""
    return sorted(_legal_moves_set(fen))


def normalize_player_move(raw: str, fen: str) -> str:
    """Return the legal UCI move a human meant by raw; raises IllegalMove.

    A promotion given as plain from-to (e7e8) resolves to the queen promotion; the
    actual piece is chosen later through the pending promotion token.
    """
    board = chess.Board(fen=fen)
    token = (raw or "").strip()
    if not token:
        raise IllegalMove(token, fen, "empty_move")
    token = CASTLE_ZERO.get(token.lower(), token)

    if UCI_RE.fullmatch(token):
        uci = token.lower()
        if uci in _legal_moves_set(fen):
            return uci
        if len(uci) == 4 and f"{uci}q" in _legal_moves_set(fen):
            return f"{uci}q"
    try:
        mv = board.parse_san(token)
    except ValueError:
        raise IllegalMove(token, fen) from None
    if mv not in board.legal_moves:
        raise IllegalMove(token, fen)
    return mv.uci()


def _decision_from_obj(obj, source: str) -> Decision | None:
    if not isinstance(obj, dict):
        return None
    move = obj.get("move")
    if not isinstance(move, str) or not move.strip():
        return None
    reasoning = obj.get("reasoning")
    return Decision(move=move.strip().lower(), reasoning=reasoning if isinstance(reasoning, str) else "", source=source)


def parse_decision(text: str) -> Decision:
    """Parse a model reply into a Decision; raises DecisionParseFailure."""
    raw = text or ""
    try:
        parsed = _decision_from_obj(json.loads(raw.strip()), "json")
        if parsed:
            return parsed
    except ValueError:
        pass

    m = JSON_FRAGMENT_RE.search(raw)
    if m:
        try:
            parsed = _decision_from_obj(json.loads(m.group(0)), "json_fragment")
            if parsed:
                return parsed
        except ValueError:
            pass

    m = UCI_TOKEN_RE.search(raw)
    if m:
        return Decision(move=m.group(1).lower(), reasoning="", source="uci_token")

    raise DecisionParseFailure(f"no move found in reply: {raw[:120]!r}")


__all__ = [
    "parse_decision",
    "normalize_player_move",
    "is_legal_uci",
    "legal_moves",
]
