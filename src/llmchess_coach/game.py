"""
Single-game orchestrator and config.

- GameConfig: side selection, remote backend settings, local search knobs.
- GameOrchestrator: drives one human-vs-AI game through its states.
  - Player moves go through MoveEngine; every player move is rated by InsightEngine.
  - AI moves come from RemoteDecisionEngine when it is enabled and has a credential;
    if it returns None the same turn falls back to LocalSearchBackend (dispatched once).
  - Termination is checked after every applied move; exactly one GameRecord is saved
    to the GameHistoryStore per finished game.
  - start_game() bumps the session number; results of an older session are dropped.
"""
from __future__ import annotations

import datetime
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .config import SETTINGS, LLMSettings
from .errors import GameStateError, IllegalMove, MoveApplicationError
from .events import (
    AI_MOVE_APPLIED,
    GAME_ENDED,
    GAME_STARTED,
    PLAYER_MOVE_APPLIED,
    THINKING,
    TURN_CHANGED,
    EventChannel,
    GameEnded,
    GameStarted,
    MoveApplied,
    TurnChanged,
)
from .gamification import PlayerStats
from .history_store import GameHistoryStore
from .insight import InsightEngine
from .llm_engine import RemoteDecisionEngine
from .local_search import LocalSearchBackend
from .memory import GameMemory
from .models import GameRecord, MoveDescriptor, MoveInsight, opposite
from .move_engine import ApplyResult, MoveEngine
from .rules_oracle import RulesOracle


class GameState(str, Enum):
    IDLE = "idle"
    AWAITING_PLAYER_MOVE = "awaiting_player_move"
    APPLYING_PLAYER_MOVE = "applying_player_move"
    PENDING_PROMOTION = "pending_promotion"
    AWAITING_AI_MOVE = "awaiting_ai_move"
    APPLYING_AI_MOVE = "applying_ai_move"
    GAME_OVER = "game_over"


@dataclass
class GameConfig:
    llm: LLMSettings = field(default_factory=LLMSettings.from_settings)
    player_color: str | None = None  # None: drawn at random for each game
    starting_fen: str | None = None
    search_depth: int = SETTINGS.search_depth
    search_in_process: bool = SETTINGS.search_in_process
    insights_enabled: bool = SETTINGS.insights_enabled
    auto_ai: bool = True  # reply with the AI move inside submit_player_move/start_game


class GameOrchestrator:
    def __init__(
        self,
        cfg: GameConfig | None = None,
        local_backend: LocalSearchBackend | None = None,
        remote_engine: RemoteDecisionEngine | None = None,
        history_store: GameHistoryStore | None = None,
        rng: random.Random | None = None,
        insight_engine: InsightEngine | None = None,
    ):
        self.log = logging.getLogger("GameOrchestrator")
        self.cfg = cfg or GameConfig()
        self.events = EventChannel()
        self.rng = rng or random.Random()
        self.local = local_backend or LocalSearchBackend(self.cfg.search_depth, use_process=self.cfg.search_in_process)
        if remote_engine is None and self.cfg.llm.usable:
            remote_engine = RemoteDecisionEngine(self.cfg.llm, on_thinking=lambda u: self.events.emit(THINKING, u))
        self.remote = remote_engine
        self.history = history_store or GameHistoryStore(SETTINGS.history_path or None, SETTINGS.history_capacity)
        self.insights = insight_engine or InsightEngine()

        self.state = GameState.IDLE
        self.session = 0
        self.player_color = "white"
        self.oracle: RulesOracle | None = None
        self.engine: MoveEngine | None = None
        self.memory = GameMemory()
        self.stats = PlayerStats()
        self.last_insight: Optional[MoveInsight] = None
        self.record: Optional[GameRecord] = None
        self._promotion_fen_before: Optional[str] = None
        self._last_player_move: Optional[str] = None

    # ---------------- Listeners -----------------
    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.events.on(event, handler)

    def off(self, event: str, handler: Callable[[Any], None]) -> None:
        self.events.off(event, handler)

    # ---------------- Properties -----------------
    @property
    def ai_color(self) -> str:
        return opposite(self.player_color)

    @property
    def fen(self) -> str:
        return self._require_game().fen()

    @property
    def pending_promotion(self):
        return self.engine.pending_promotion if self.engine else None

    @property
    def provider_label(self) -> tuple[str, str]:
        if self.remote is None:
            return "local", "local"
        return self.cfg.llm.config.provider, self.cfg.llm.config.model

    def _require_game(self) -> RulesOracle:
        if self.oracle is None:
            raise GameStateError("no game started")
        return self.oracle

    def _expect(self, *states: GameState) -> None:
        if self.state not in states:
            raise GameStateError(f"not allowed in state {self.state.value}")

    # ---------------- Lifecycle -----------------
    def start_game(self) -> None:
        """Start a fresh game; anything still in flight for the previous game is discarded."""
        self.session += 1
        self.player_color = self.cfg.player_color or self.rng.choice(["white", "black"])
        self.oracle = RulesOracle(self.cfg.starting_fen)
        _, model = self.provider_label
        ai_name = "Local search" if self.remote is None else model
        if self.player_color == "white":
            self.oracle.set_headers(white="Player", black=ai_name)
        else:
            self.oracle.set_headers(white=ai_name, black="Player")
        self.engine = MoveEngine(self.oracle, self.player_color)
        self.memory = GameMemory()
        self.stats = PlayerStats()
        self.last_insight = None
        self.record = None
        self._promotion_fen_before = None
        self._last_player_move = None

        self.local.send_init(self.oracle.fen(), self.ai_color, self.session)
        self.log.info("Game %d started; player is %s", self.session, self.player_color)
        self.events.emit(GAME_STARTED, GameStarted(self.session, self.player_color, self.oracle.fen()))

        if self._check_game_over():
            return
        self._set_turn()
        if self.state == GameState.AWAITING_AI_MOVE and self.cfg.auto_ai:
            self.play_ai_turn()

    def close(self) -> None:
        self.session += 1
        self.local.close()
        self.events.clear()

    def _set_turn(self) -> None:
        turn = self.oracle.turn_color()
        self.state = GameState.AWAITING_PLAYER_MOVE if turn == self.player_color else GameState.AWAITING_AI_MOVE
        self.events.emit(TURN_CHANGED, TurnChanged(turn, self.oracle.fen(), turn == self.player_color))

    # ---------------- Player side -----------------
    def submit_player_move(self, move: str) -> ApplyResult:
        """Apply the player's move; raises IllegalMove and leaves the game unchanged on failure."""
        self._expect(GameState.AWAITING_PLAYER_MOVE)
        fen_before = self.oracle.fen()
        self.state = GameState.APPLYING_PLAYER_MOVE
        try:
            result = self.engine.apply(move)
        except (IllegalMove, MoveApplicationError):
            self.state = GameState.AWAITING_PLAYER_MOVE
            raise

        if result.pending_promotion is not None:
            self._promotion_fen_before = fen_before
            self.state = GameState.PENDING_PROMOTION
            self.log.info("Player promotion on %s awaits a piece choice", result.pending_promotion.square)
            return result

        self._after_player_move(fen_before, result.descriptor)
        return result

    def finalize_promotion(self, token: str, kind: str) -> ApplyResult:
        self._expect(GameState.PENDING_PROMOTION)
        result = self.engine.finalize_promotion(token, kind)
        desc = result.descriptor
        self.local.send_promote(desc.color, desc.promotion, desc.to_square, desc.uci, self.session)
        fen_before, self._promotion_fen_before = self._promotion_fen_before, None
        self._after_player_move(fen_before, desc)
        return result

    def _after_player_move(self, fen_before: str, desc: MoveDescriptor) -> None:
        self.memory.record_move(len(self.memory) + 1, self.oracle.fen(), desc)
        self._last_player_move = desc.uci
        insight = None
        milestone = None
        if self.cfg.insights_enabled:
            insight = self.insights.analyze(fen_before, desc.uci)
            milestone = self.stats.record(insight.quality)
        self.last_insight = insight
        self.events.emit(PLAYER_MOVE_APPLIED, self._applied(desc, insight, "player", milestone))

        if self._check_game_over():
            return
        self._set_turn()
        if self.state == GameState.AWAITING_AI_MOVE and self.cfg.auto_ai:
            self.play_ai_turn()

    # ---------------- AI side -----------------
    def play_ai_turn(self) -> Optional[MoveDescriptor]:
        """Obtain and apply the AI move; returns None when the turn was cancelled by a new game."""
        self._expect(GameState.AWAITING_AI_MOVE)
        session = self.session
        fen = self.oracle.fen()
        color = self.ai_color

        uci: Optional[str] = None
        reasoning = ""
        source = "remote"
        if self.remote is not None:
            chosen = self.remote.choose(
                self.memory, fen, color, self.cfg.llm.play_style, history=self.oracle.san_history()
            )
            if session != self.session:
                self.log.info("Discarding remote move for stale session %d", session)
                return None
            if chosen is not None:
                uci = chosen[0].uci
                reasoning = chosen[1].reasoning
            else:
                self.log.warning("Remote decision failed; falling back to local search")

        if uci is None:
            source = "local"
            self.local.request_move(fen, color, session, self._last_player_move)
            uci = self.local.wait_for_move(session)
            if session != self.session:
                self.log.info("Discarding local move for stale session %d", session)
                return None
            if uci is None:
                raise GameStateError(f"local search found no move in {fen}")

        self.state = GameState.APPLYING_AI_MOVE
        try:
            result = self.engine.apply(uci, position=fen)
        except (IllegalMove, MoveApplicationError):
            self.state = GameState.AWAITING_AI_MOVE
            raise
        desc = result.descriptor
        self.memory.record_move(len(self.memory) + 1, self.oracle.fen(), desc, reasoning)
        self.log.info("AI (%s) played %s", source, desc.san)
        self.events.emit(AI_MOVE_APPLIED, self._applied(desc, None, source))

        if not self._check_game_over():
            self._set_turn()
        return desc

    # ---------------- Termination -----------------
    def _applied(self, desc: MoveDescriptor, insight, source: str, milestone: Optional[str] = None) -> MoveApplied:
        return MoveApplied(
            move=desc,
            fen=self.oracle.fen(),
            move_number=self.oracle.ply_count(),
            piece_count=len(self.oracle.board.piece_map()),
            insight=insight,
            source=source,
            milestone=milestone,
        )

    def _check_game_over(self) -> bool:
        if not self.oracle.game_over():
            return False
        self.state = GameState.GAME_OVER
        result = self.oracle.result()
        reason = self.oracle.termination_reason()
        record = self._save_record(result, reason)
        self.log.info("Game %d over: %s (%s)", self.session, result, reason)
        self.events.emit(GAME_ENDED, GameEnded(result, reason, self.player_color, record))
        return True

    def _save_record(self, result: str, reason: Optional[str]) -> GameRecord:
        if self.record is not None:
            return self.record
        provider, model = self.provider_label
        self.record = GameRecord(
            id=GameHistoryStore.generate_id(),
            date=datetime.date.today().isoformat(),
            result=result,
            pgn=self.oracle.pgn(),
            provider=provider,
            model=model,
            player_color=self.player_color,
            move_count=len(self.memory),
            summary=f"Ended by {reason.replace('_', ' ')}." if reason else None,
            player_stats=self.stats.end_game_stats() if self.stats.qualities else None,
        )
        self.history.save(self.record)
        return self.record

    # ---------------- Snapshot -----------------
    def snapshot(self) -> dict:
        oracle = self._require_game()
        pending = self.pending_promotion
        return {
            "session": self.session,
            "state": self.state.value,
            "fen": oracle.fen(),
            "turn": oracle.turn_color(),
            "player_color": self.player_color,
            "moves": oracle.san_history(),
            "legal_moves": oracle.legal_uci() if self.state == GameState.AWAITING_PLAYER_MOVE else [],
            "pending_promotion": pending.token if pending else None,
            "last_insight": self.last_insight.to_dict() if self.last_insight else None,
            "result": self.record.result if self.record else None,
            "record_id": self.record.id if self.record else None,
        }
