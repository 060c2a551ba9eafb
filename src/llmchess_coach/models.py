"""
Plain data records passed between the move engine, decision backends and the orchestrator.

Colors are "white"/"black"; piece kinds are lowercase letters (p, n, b, r, q, k).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Literal, Optional

Color = Literal["white", "black"]
GameResult = Literal["white", "black", "draw"]
MoveQuality = Literal["brilliant", "good", "inaccuracy", "blunder", "missed_win"]
PlayStyle = Literal["aggressive", "defensive", "balanced"]

PROMOTABLE_KINDS = ("q", "r", "b", "n")

PIECE_NAMES = {"p": "pawn", "n": "knight", "b": "bishop", "r": "rook", "q": "queen", "k": "king"}


def opposite(color: str) -> str:
    return "black" if color == "white" else "white"


class MoveFlag(str, Enum):
    NONE = "none"
    CAPTURE = "capture"
    CASTLE_KINGSIDE = "castle_kingside"
    CASTLE_QUEENSIDE = "castle_queenside"
    EN_PASSANT = "en_passant"
    PROMOTION = "promotion"


@dataclass(frozen=True)
class MoveDescriptor:
    """One move as produced by the rules oracle."""

    from_square: str
    to_square: str
    piece: str
    color: str
    flag: MoveFlag
    san: str
    uci: str
    captured: Optional[str] = None
    promotion: Optional[str] = None

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def is_check(self) -> bool:
        return self.san.endswith("+") or self.san.endswith("#")

    @property
    def is_castle(self) -> bool:
        return self.flag in (MoveFlag.CASTLE_KINGSIDE, MoveFlag.CASTLE_QUEENSIDE)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["flag"] = self.flag.value
        return d


@dataclass
class PieceEntity:
    id: int
    color: str
    kind: str
    square: str


@dataclass
class MoveMemory:
    move_number: int
    fen: str
    uci: str
    san: str
    reasoning: str
    is_capture: bool
    is_check: bool
    is_promotion: bool
    is_castle: bool
    timestamp: float


@dataclass
class MoveInsight:
    player_move: str
    explanation: str
    quality: MoveQuality
    better_move: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PlayerGameStats:
    brilliant_moves: int
    blunders: int
    missed_wins: int
    longest_good_streak: int
    accuracy: int


@dataclass
class GameRecord:
    id: str
    date: str
    result: GameResult
    pgn: str
    provider: str
    model: str
    player_color: str
    move_count: int
    summary: Optional[str] = None
    player_stats: Optional[PlayerGameStats] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "GameRecord":
        stats = data.get("player_stats")
        return cls(
            id=data["id"],
            date=data["date"],
            result=data["result"],
            pgn=data.get("pgn", ""),
            provider=data.get("provider", ""),
            model=data.get("model", ""),
            player_color=data.get("player_color", "white"),
            move_count=int(data.get("move_count", 0)),
            summary=data.get("summary"),
            player_stats=PlayerGameStats(**stats) if isinstance(stats, dict) else None,
        )


@dataclass
class TokenBudget:
    model_limit: int
    reserved_for_response: int
    reserved_for_system_prompt: int
    used: int = 0

    @property
    def budget(self) -> int:
        return self.model_limit - self.reserved_for_response - self.reserved_for_system_prompt

    @property
    def remaining(self) -> int:
        return max(0, self.budget - self.used)

    def info(self) -> dict:
        return {"used": self.used, "budget": self.budget, "remaining": self.remaining}


@dataclass
class ThinkingUpdate:
    """Streaming notification from the remote decision engine.

    done=False carries a text chunk; done=True closes one attempt and carries either the
    committed move/reasoning or an error description.
    """

    text: str
    done: bool
    attempt: int = 0
    reasoning: Optional[str] = None
    chosen_move: Optional[str] = None
    error: Optional[str] = None


@dataclass
class StreamChunk:
    text: str
    done: bool = False


@dataclass
class Decision:
    move: str
    reasoning: str = ""
    source: str = field(default="json")
