"""
Compresses a game's MoveMemory list into prompt text under a token ceiling.

The last three reasonings are kept verbatim; older moves collapse into phase lines
(opening, middlegame, endgame) plus the newest ten key events.
"""
from __future__ import annotations

from typing import List, Sequence

from ..models import MoveMemory
from .token_estimator import estimate

RECENT_REASONINGS = 3
OPENING_MOVES = 10
MIDDLEGAME_END = 30
MAX_KEY_EVENTS = 10


def _describe_phase(moves: Sequence[MoveMemory]) -> str:
    captures = sum(1 for m in moves if m.is_capture)
    checks = sum(1 for m in moves if m.is_check)
    parts = [" ".join(m.san for m in moves)]
    if captures:
        parts.append(f"{captures} captures")
    if checks:
        parts.append(f"{checks} checks")
    return ", ".join(parts)


def key_events(moves: Sequence[MoveMemory]) -> List[str]:
    events: List[str] = []
    for m in moves:
        if m.is_capture:
            events.append(f"Move {m.move_number}: {m.san} (capture)")
        if m.is_check:
            events.append(f"Move {m.move_number}: {m.san} (check)")
        if m.is_castle:
            events.append(f"Move {m.move_number}: {m.san} (castle)")
    return events[-MAX_KEY_EVENTS:]


def summarize_moves(moves: Sequence[MoveMemory]) -> str:
    if not moves:
        return ""
    opening = moves[:OPENING_MOVES]
    middlegame = moves[OPENING_MOVES:MIDDLEGAME_END]
    endgame = moves[MIDDLEGAME_END:]

    parts: List[str] = []
    start = 1
    for label, phase in (("Opening", opening), ("Middlegame", middlegame), ("Endgame", endgame)):
        if not phase:
            continue
        end = start + len(phase) - 1
        parts.append(f"{label} (moves {start}-{end}): {_describe_phase(phase)}")
        start = end + 1

    events = key_events(moves)
    if events:
        parts.append("Key events: " + "; ".join(events))
    return ". ".join(parts)


def compress_reasonings(moves: Sequence[MoveMemory], max_tokens: int) -> str:
    """Summary text for moves that never exceeds max_tokens * 4 characters."""
    recent = moves[-RECENT_REASONINGS:]
    older = moves[:-RECENT_REASONINGS] if len(moves) > RECENT_REASONINGS else []

    recent_text = "\n".join(
        f"Move {m.move_number} ({m.san}): {m.reasoning}" for m in recent if m.reasoning
    )
    if estimate(recent_text) >= max_tokens:
        return recent_text[: max_tokens * 4]

    older_summary = summarize_moves(older)
    if older_summary and recent_text:
        combined = f"{older_summary}\n\nRecent analysis:\n{recent_text}"
    else:
        combined = older_summary or recent_text
    if estimate(combined) > max_tokens:
        return combined[: max_tokens * 4]
    return combined
