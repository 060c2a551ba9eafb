"""Exception taxonomy shared by the move engine, decision backends and orchestrator."""
from __future__ import annotations


class ChessCoachError(Exception):
    """Base class for all package errors."""


class IllegalMove(ChessCoachError, ValueError):
    """The intended move is not in the legal set for the current position."""

    def __init__(self, move: str, fen: str | None = None, reason: str = "illegal_move"):
        self.move = move
        self.fen = fen
        self.reason = reason
        msg = f"Illegal move '{move}' ({reason})"
        if fen:
            msg += f" in position {fen}"
        super().__init__(msg)


class DecisionError(ChessCoachError):
    """Recoverable failure of a single remote decision attempt."""


class DecisionParseFailure(DecisionError):
    """A remote response could not be parsed into a move."""


class DecisionRejected(DecisionError):
    """A parsed move was not legal or the rules oracle refused it."""


class BackendUnavailable(DecisionError):
    """Network or transport failure while talking to a provider."""


class DecisionExhausted(ChessCoachError):
    """Every retry of the remote decision engine failed."""


class PromotionError(ChessCoachError):
    """Unknown or already used promotion token, or an invalid piece kind."""


class MoveApplicationError(ChessCoachError):
    """The piece registry could not reflect a move; the apply was rolled back."""


class GameStateError(ChessCoachError, RuntimeError):
    """Operation not allowed in the orchestrator's current state."""
