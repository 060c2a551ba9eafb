"""
Guard agent that salvages a move from a reply the regular parser could not read.

Only used when SETTINGS.use_guard_agent is on. The agent sees the raw reply and the
legal moves and answers with one UCI move or NONE; the answer is still checked
against the legal set by the caller.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from agents import Agent, ModelSettings, Runner

from .move_validator import UCI_TOKEN_RE

log = logging.getLogger("agent_normalizer")

INSTRUCTIONS = (
    "You receive a raw reply from a chess player and the list of legal moves.\n"
    "Find the move the reply intends to play.\n"
    "Output ONLY that move in UCI (lowercase, include promotion letter if any). "
    "If no legal move is present, output the single word NONE."
)

move_guard = Agent(
    name="MoveGuard",
    instructions=INSTRUCTIONS,
    model_settings=ModelSettings(temperature=0.0),
)


async def _agent_suggest(raw_reply: str, legal: str) -> str:
    user = f"RAW REPLY: {raw_reply}\nLEGAL MOVES: {legal}\nReturn only the move in UCI or NONE:"
    result = await Runner.run(move_guard, user)
    return (result.final_output or "").strip()


def suggest_uci_with_agent(raw_reply: str, legal_moves: Iterable[str]) -> Optional[str]:
    """Ask the guard agent for a UCI move; None when it finds nothing usable."""
    legal = sorted(legal_moves)
    try:
        answer = asyncio.run(_agent_suggest(raw_reply, ", ".join(legal)))
    except Exception:
        log.exception("Guard agent failed")
        return None
    m = UCI_TOKEN_RE.search(answer.lower())
    if not m or answer.strip().upper() == "NONE":
        log.info("Guard agent found no move in reply")
        return None
    uci = m.group(1)
    if uci not in legal:
        log.info("Guard agent suggested non-legal move %s", uci)
        return None
    return uci
