import unittest
from unittest.mock import patch

import chess

from llmchess_coach.context import token_estimator
from llmchess_coach.context.context_manager import ContextManager, truncate_history
from llmchess_coach.context.memory_summarizer import compress_reasonings, summarize_moves
from llmchess_coach.models import MoveMemory

START = chess.STARTING_FEN
LEGAL = sorted(m.uci() for m in chess.Board().legal_moves)


def memory(n, reasoning="", capture=False, check=False, castle=False):
    return MoveMemory(
        move_number=n, fen=START, uci="e2e4", san=f"m{n}", reasoning=reasoning,
        is_capture=capture, is_check=check, is_promotion=False, is_castle=castle, timestamp=0.0,
    )


class TokenEstimatorTests(unittest.TestCase):
    def test_estimate_rounds_up(self):
        self.assertEqual(token_estimator.estimate(""), 0)
        self.assertEqual(token_estimator.estimate("abcd"), 1)
        self.assertEqual(token_estimator.estimate("abcde"), 2)

    def test_budget_reserves(self):
        self.assertEqual(token_estimator.budget_for("gpt-4o").budget, 128000 - 1200)
        self.assertEqual(token_estimator.budget_for("some-unknown-model").budget, 32000 - 1200)
        b = token_estimator.budget_for("gpt-4o", used=200000)
        self.assertEqual(b.remaining, 0)


class MemorySummarizerTests(unittest.TestCase):
    def test_phases_and_key_events(self):
        moves = [memory(i, capture=(i == 12), check=(i == 33)) for i in range(1, 36)]
        text = summarize_moves(moves)
        self.assertIn("Opening (moves 1-10)", text)
        self.assertIn("Middlegame (moves 11-30)", text)
        self.assertIn("Endgame (moves 31-35)", text)
        self.assertIn("Move 12: m12 (capture)", text)
        self.assertIn("Move 33: m33 (check)", text)

    def test_recent_reasonings_kept(self):
        moves = [memory(i, reasoning=f"idea {i}") for i in range(1, 6)]
        text = compress_reasonings(moves, 800)
        self.assertIn("Recent analysis:", text)
        for i in (3, 4, 5):
            self.assertIn(f"idea {i}", text)
        self.assertNotIn("idea 1", text)

    def test_summary_respects_ceiling(self):
        moves = [memory(i, reasoning="x" * 400) for i in range(1, 6)]
        self.assertLessEqual(len(compress_reasonings(moves, 10)), 40)


class ContextManagerTests(unittest.TestCase):
    def test_minimal_prompt_drops_empty_sections(self):
        bundle = ContextManager("gpt-4o").build(START, LEGAL, "white")
        self.assertIn("e2e4", bundle.user_prompt)
        self.assertNotIn("Game context", bundle.user_prompt)
        self.assertNotIn("Move history", bundle.user_prompt)
        self.assertLessEqual(bundle.budget.used, bundle.budget.budget)

    def test_memory_and_history_included_when_they_fit(self):
        mems = [memory(1, reasoning="opened with the king pawn")]
        cm = ContextManager("gpt-4o")
        bare = cm.build(START, LEGAL, "white")
        full = cm.build(START, LEGAL, "white", memories=mems, history="1. e4 e5")
        self.assertIn("opened with the king pawn", full.user_prompt)
        self.assertIn("Move history (PGN): 1. e4 e5", full.user_prompt)
        self.assertGreater(full.budget.used, bare.budget.used)

    def test_long_history_is_truncated(self):
        history = " ".join(f"{i}. e4 e5" for i in range(1, 20000))
        bundle = ContextManager("gpt-4o-mini-unknown").build(START, LEGAL, "white", history=history)
        self.assertIn("[...]", bundle.user_prompt)
        self.assertLess(bundle.budget.used, bundle.budget.budget)

    def test_history_omitted_when_even_truncation_overflows(self):
        history = " ".join(f"{i}. " + "Nf3 Nf6 " * 10 for i in range(1, 60))
        with patch.dict(token_estimator.MODEL_TOKEN_LIMITS, {"tiny-model": 1400}):
            bundle = ContextManager("tiny-model").build(
                START, LEGAL, "white", memories=[memory(1, reasoning="r")], history=history,
            )
        self.assertNotIn("Move history", bundle.user_prompt)
        self.assertNotIn("Game context", bundle.user_prompt)

    def test_truncate_history_keeps_last_moves(self):
        history = " ".join(f"{i}. a{i} b{i}" for i in range(1, 31))
        short = truncate_history(history)
        self.assertTrue(short.startswith("[...] "))
        self.assertIn("a30 b30", short)
        self.assertIn("a11 b11", short)
        self.assertNotIn("a10 ", short)


if __name__ == "__main__":
    unittest.main()
