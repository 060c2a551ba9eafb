"""
ContextManager: fits a move request into the model's token budget.

Priority order:
  1. position, side, legal moves and style (always present)
  2. memory summary, capped at min(40% of what remains, 800 tokens), only if the cap > 50
  3. the full move history if the prompt stays under 90% of the budget
  4. otherwise the last 20 moves prefixed with "[...]" under the same 90% rule
  5. otherwise no history at all
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..models import MoveMemory, TokenBudget
from ..prompting import PromptConfig, build_user_prompt
from . import memory_summarizer, token_estimator

log = logging.getLogger("context")

MEMORY_SHARE = 0.4
MEMORY_CAP = 800
MEMORY_FLOOR = 50
HISTORY_SHARE = 0.9
TRUNCATED_MOVES = 20

_MOVE_NUMBER_RE = re.compile(r"\d+\.\s*")


@dataclass
class PromptBundle:
    system_prompt: str
    user_prompt: str
    budget: TokenBudget


def truncate_history(history: str, keep: int = TRUNCATED_MOVES) -> str:
    chunks = [c.strip() for c in _MOVE_NUMBER_RE.split(history or "") if c.strip()]
    return "[...] " + " ".join(chunks[-keep:])


class ContextManager:
    def __init__(self, model: str, prompt_cfg: Optional[PromptConfig] = None):
        self.model = model
        self.prompt_cfg = prompt_cfg or PromptConfig()

    def build(
        self,
        position: str,
        legal_moves: Iterable[str],
        color: str,
        style: str = "balanced",
        memories: Sequence[MoveMemory] = (),
        history: str = "",
    ) -> PromptBundle:
        legal = list(legal_moves)
        budget = token_estimator.budget_for(self.model)
        limit = budget.budget

        def render(memory_summary: str = "", hist: str = "") -> str:
            return build_user_prompt(self.prompt_cfg, position, color, legal, style, memory_summary, hist)

        summary = ""
        prompt = render()
        used = token_estimator.estimate(prompt)

        memory_budget = min(int((limit - used) * MEMORY_SHARE), MEMORY_CAP)
        if memories and memory_budget > MEMORY_FLOOR:
            summary = memory_summarizer.compress_reasonings(memories, memory_budget)
            if summary:
                prompt = render(summary)
                used = token_estimator.estimate(prompt)

        if history:
            if used + token_estimator.estimate(history) < limit * HISTORY_SHARE:
                prompt = render(summary, history)
                used = token_estimator.estimate(prompt)
            else:
                short = truncate_history(history)
                if used + token_estimator.estimate(short) < limit * HISTORY_SHARE:
                    prompt = render(summary, short)
                    used = token_estimator.estimate(prompt)
                else:
                    log.info("Move history omitted from prompt (budget %d)", limit)

        budget.used = used
        info = budget.info()
        log.info("Token budget: %d/%d (%d remaining)", info["used"], info["budget"], info["remaining"])
        return PromptBundle(system_prompt=self.prompt_cfg.system_instructions, user_prompt=prompt, budget=budget)
