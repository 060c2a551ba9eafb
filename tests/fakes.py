"""Test doubles shared by the orchestrator and server tests."""
import chess

from llmchess_coach.models import StreamChunk


class FakeLocalBackend:
    """Stands in for LocalSearchBackend; plays scripted moves or the first legal move."""

    def __init__(self, script=None):
        self.script = list(script or [])
        self.inits = []
        self.requests = []
        self.promotes = []
        self.closed = False

    def send_init(self, fen, color, session):
        self.inits.append((fen, color, session))

    def request_move(self, fen, color, session, player_move=None):
        self.requests.append((fen, color, session, player_move))

    def send_promote(self, color, piece_type, square, move, session):
        self.promotes.append((color, piece_type, square, move, session))

    def wait_for_move(self, session):
        fen = self.requests[-1][0]
        if self.script:
            return self.script.pop(0)
        return sorted(m.uci() for m in chess.Board(fen).legal_moves)[0]

    def close(self):
        self.closed = True


class StubProvider:
    """Provider returning canned replies, one per complete() call."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = 0

    def complete(self, system, user, on_chunk=None):
        self.calls += 1
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        if on_chunk is not None:
            on_chunk(StreamChunk(text=reply))
            on_chunk(StreamChunk(text="", done=True))
        return reply

    def validate_credential(self):
        return True
