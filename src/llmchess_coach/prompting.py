"""
Prompt builders and config for LLM move requests using a modular template.

Callers supply system instructions and a template string with placeholders
that are substituted per turn. Template lines whose placeholders resolve to an
empty value are dropped, so optional sections (memory, history) disappear cleanly.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable

DEFAULT_SYSTEM_INSTRUCTIONS = """You are a chess engine playing a game. You will receive the board position in FEN notation, move history, legal moves in UCI format, and optionally a game memory summary.

You MUST respond with EXACTLY this JSON format and nothing else:
{"move": "<uci_move>", "reasoning": "<your brief analysis>"}

Rules:
- The move MUST be one of the legal moves provided. Never invent moves.
- UCI format: source_square + destination_square (e.g., "e2e4", "g1f3").
- For pawn promotion, append the piece letter (e.g., "e7e8q" for queen).
- Keep reasoning concise: 2-3 sentences max covering your key considerations.
- Do not wrap in markdown code blocks. Return raw JSON only."""

DEFAULT_TEMPLATE = """Position (FEN): {FEN}
You are playing as: {COLOR}
Legal moves (UCI): {LEGAL_MOVES}
Game context: {MEMORY_SUMMARY}
Move history (PGN): {HISTORY}
Style: {STYLE}
Respond with JSON only."""

STYLE_INSTRUCTIONS: Dict[str, str] = {
    "aggressive": "Play aggressively. Prefer attacking moves, sacrifices, central control, and king-side attacks.",
    "defensive": "Play defensively. Prefer solid positional play, piece safety, and careful development.",
    "balanced": "Play the objectively strongest move. Balance tactics and positional considerations.",
}

_PLACEHOLDER_RE = re.compile(r"\{([A-Z_]+)\}")


@dataclass
class PromptConfig:
    """Configuration for shaping move prompts using a custom template."""

    system_instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS
    template: str = DEFAULT_TEMPLATE


def render_custom_prompt(template: str, values: Dict[str, str]) -> str:
    """Replace known placeholders in the template. Unknown tokens are left intact."""
    rendered = template or ""
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def build_user_prompt(
    cfg: PromptConfig,
    fen: str,
    color: str,
    legal_moves: Iterable[str],
    style: str = "balanced",
    memory_summary: str = "",
    history: str = "",
) -> str:
    values = {
        "FEN": fen,
        "COLOR": color,
        "LEGAL_MOVES": ", ".join(legal_moves),
        "MEMORY_SUMMARY": memory_summary or "",
        "HISTORY": history or "",
        "STYLE": STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS["balanced"]),
    }
    lines = []
    for line in (cfg.template or "").splitlines():
        keys = _PLACEHOLDER_RE.findall(line)
        if any(k in values and not values[k] for k in keys):
            continue
        lines.append(render_custom_prompt(line, values))
    return "\n".join(lines)
