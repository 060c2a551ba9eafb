"""
RemoteDecisionEngine: asks a chat model for the next move and validates the answer.

Per decision:
  - acceptance set = legal UCI moves of the position
  - prompt sized by ContextManager (memory summary and history within budget)
  - up to max_retries sequential attempts, each a fresh streaming completion
  - reply parsed as JSON, then embedded JSON, then a bare UCI token, then (opt-in)
    the guard agent
  - the move must be in the acceptance set and apply on a scratch oracle
  - decide() records the accepted move in GameMemory with its reasoning; choose()
    leaves recording to the caller

Listeners get ThinkingUpdate chunks while a reply streams and exactly one terminal
update (done=True) per attempt. When all attempts fail decide() returns None.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from .config import SETTINGS, LLMSettings
from .context import ContextManager
from .errors import DecisionError, DecisionExhausted, DecisionParseFailure, DecisionRejected, IllegalMove
from .memory import GameMemory
from .models import Decision, MoveDescriptor, StreamChunk, ThinkingUpdate
from .move_validator import parse_decision
from .prompting import PromptConfig
from .providers import LLMProvider, create_provider
from .rules_oracle import RulesOracle

log = logging.getLogger("llm_engine")

FALLBACK_NOTICE = "LLM failed, falling back to built-in AI..."

ThinkingCallback = Callable[[ThinkingUpdate], None]


class RemoteDecisionEngine:
    def __init__(
        self,
        settings: LLMSettings,
        provider: Optional[LLMProvider] = None,
        on_thinking: Optional[ThinkingCallback] = None,
        max_retries: Optional[int] = None,
        use_guard_agent: Optional[bool] = None,
        prompt_cfg: Optional[PromptConfig] = None,
    ):
        self.settings = settings
        self.provider = provider or create_provider(settings.config)
        self.on_thinking = on_thinking
        self.max_retries = max(1, max_retries if max_retries is not None else SETTINGS.max_retries)
        self.use_guard_agent = SETTINGS.use_guard_agent if use_guard_agent is None else use_guard_agent
        self.context = ContextManager(settings.config.model, prompt_cfg)

    def _notify(self, update: ThinkingUpdate) -> None:
        if self.on_thinking is None:
            return
        try:
            self.on_thinking(update)
        except Exception:
            log.exception("Thinking listener failed")

    def validate_credential(self) -> bool:
        return self.provider.validate_credential()

    def _parse(self, text: str, legal: list[str]) -> Decision:
        try:
            return parse_decision(text)
        except DecisionParseFailure:
            if not self.use_guard_agent:
                raise
        # imported here so the agents SDK is only loaded when the guard is enabled
        from .agent_normalizer import suggest_uci_with_agent

        uci = suggest_uci_with_agent(text, legal)
        if not uci:
            raise DecisionParseFailure("guard agent found no move")
        return Decision(move=uci, reasoning="", source="guard_agent")

    def _attempt(self, attempt: int, bundle, position: str, legal: list[str]) -> tuple[MoveDescriptor, Decision]:
        def on_chunk(chunk: StreamChunk) -> None:
            if chunk.text:
                self._notify(ThinkingUpdate(text=chunk.text, done=False, attempt=attempt))

        text = self.provider.complete(bundle.system_prompt, bundle.user_prompt, on_chunk)
        decision = self._parse(text, legal)
        if decision.move not in legal:
            raise DecisionRejected(f"move {decision.move!r} not in legal moves")
        scratch = RulesOracle.from_fen(position)
        try:
            desc = scratch.apply_move(decision.move)
        except IllegalMove as e:
            raise DecisionRejected(f"oracle rejected {decision.move}: {e}") from e
        return desc, decision

    def choose(
        self,
        memory: GameMemory,
        position: str,
        color: str,
        style: Optional[str] = None,
        history: str = "",
    ) -> Optional[tuple[MoveDescriptor, Decision]]:
        """Validated move and the decision behind it, or None after all attempts fail.

        Memory is only read here; callers record the move once it is applied.
        """
        legal = RulesOracle.from_fen(position).legal_uci()
        if not legal:
            log.info("No legal moves in %s; nothing to decide", position)
            return None
        bundle = self.context.build(
            position, legal, color, style or self.settings.play_style, memory.moves(), history
        )

        for attempt in range(1, self.max_retries + 1):
            self._notify(ThinkingUpdate(text="", done=False, attempt=attempt))
            try:
                desc, decision = self._attempt(attempt, bundle, position, legal)
            except DecisionError as e:
                log.warning("Attempt %d/%d failed: %s", attempt, self.max_retries, e)
                last = attempt == self.max_retries
                self._notify(ThinkingUpdate(
                    text=FALLBACK_NOTICE if last else "",
                    done=True,
                    attempt=attempt,
                    error=str(e),
                ))
                continue

            self._notify(ThinkingUpdate(
                text="",
                done=True,
                attempt=attempt,
                reasoning=decision.reasoning,
                chosen_move=desc.san,
            ))
            log.info("Model chose %s (%s) on attempt %d via %s", desc.san, desc.uci, attempt, decision.source)
            return desc, decision

        log.warning("Remote decision exhausted after %d attempts", self.max_retries)
        return None

    def decide(
        self,
        memory: GameMemory,
        position: str,
        color: str,
        style: Optional[str] = None,
        history: str = "",
    ) -> Optional[MoveDescriptor]:
        """Return a validated move for color in position, or None after all attempts fail.

        The accepted move is recorded in memory with its reasoning.
        """
        chosen = self.choose(memory, position, color, style, history)
        if chosen is None:
            return None
        desc, decision = chosen
        scratch = RulesOracle.from_fen(position)
        scratch.apply_move(desc.uci)
        memory.record_move(len(memory) + 1, scratch.fen(), desc, decision.reasoning)
        return desc

    def decide_or_raise(self, memory: GameMemory, position: str, color: str,
                        style: Optional[str] = None, history: str = "") -> MoveDescriptor:
        desc = self.decide(memory, position, color, style, history)
        if desc is None:
            raise DecisionExhausted(f"no valid move after {self.max_retries} attempts")
        return desc
