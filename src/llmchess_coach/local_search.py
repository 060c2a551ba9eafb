"""
LocalSearchBackend: runs the minimax search on a worker and talks to it with messages.

Outbound (to the worker):
  {"type": "init", "fen", "color", "session"}
  {"type": "aiMove", "playerMove", "fen", "color", "session"}
  {"type": "promote", "color", "pieceType", "square", "move", "session"}
  {"type": "stop"}
Inbound (from the worker):
  {"type": "aiMovePerformed", "aiMove", "session"}

The worker is a separate process by default (use_process=False runs it as a thread).
Responses tagged with an older session are dropped by wait_for_move().
"""
from __future__ import annotations

import logging
import multiprocessing
import queue
import threading
from typing import Optional

from .search import best_move

log = logging.getLogger("local_search")

QUEUE_SIZE = 16


def _worker_loop(inbox, outbox, depth: int) -> None:
    """Serve aiMove requests until a stop message arrives."""
    session = 0
    while True:
        msg = inbox.get()
        kind = msg.get("type")
        if kind == "stop":
            break
        if kind == "init":
            session = msg.get("session", session)
            continue
        if kind == "promote":
            # the position arrives with the next aiMove request
            continue
        if kind == "aiMove":
            session = msg.get("session", session)
            move = best_move(msg["fen"], depth)
            outbox.put({"type": "aiMovePerformed", "aiMove": move, "session": session})


class LocalSearchBackend:
    def __init__(self, depth: int = 3, use_process: bool = True):
        self.depth = depth
        self.use_process = use_process
        self._inbox = None
        self._outbox = None
        self._worker = None

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        if self.running:
            return
        if self.use_process:
            ctx = multiprocessing.get_context("spawn")
            self._inbox, self._outbox = ctx.Queue(QUEUE_SIZE), ctx.Queue(QUEUE_SIZE)
            self._worker = ctx.Process(
                target=_worker_loop, args=(self._inbox, self._outbox, self.depth), daemon=True
            )
        else:
            self._inbox, self._outbox = queue.Queue(QUEUE_SIZE), queue.Queue(QUEUE_SIZE)
            self._worker = threading.Thread(
                target=_worker_loop, args=(self._inbox, self._outbox, self.depth), daemon=True
            )
        self._worker.start()
        log.info("Local search worker started (depth=%d, process=%s)", self.depth, self.use_process)

    def post(self, message: dict) -> None:
        if not self.running:
            self.start()
        self._inbox.put(message)

    def send_init(self, fen: str, color: str, session: int) -> None:
        self.post({"type": "init", "fen": fen, "color": color, "session": session})

    def request_move(self, fen: str, color: str, session: int, player_move: str | None = None) -> None:
        self.post({"type": "aiMove", "playerMove": player_move, "fen": fen, "color": color, "session": session})

    def send_promote(self, color: str, piece_type: str, square: str, move: str, session: int) -> None:
        self.post({
            "type": "promote",
            "color": color,
            "pieceType": piece_type,
            "square": square,
            "move": move,
            "session": session,
        })

    def wait_for_move(self, session: int) -> Optional[str]:
        """Block until the worker answers for session; older answers are discarded."""
        while True:
            msg = self._outbox.get()
            if msg.get("type") != "aiMovePerformed":
                continue
            if msg.get("session") != session:
                log.debug("Discarding stale local move %s (session %s != %s)", msg.get("aiMove"), msg.get("session"), session)
                continue
            return msg.get("aiMove")

    def close(self) -> None:
        if self._worker is None:
            return
        try:
            self._inbox.put({"type": "stop"}, timeout=1)
        except queue.Full:
            log.warning("Local search inbox full while stopping")
        self._worker.join(timeout=2)
        if self.use_process and self._worker.is_alive():
            self._worker.terminate()
        self._worker = None
        log.info("Local search worker stopped")
