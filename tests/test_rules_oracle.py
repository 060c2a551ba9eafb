import unittest

import chess

from llmchess_coach.errors import IllegalMove
from llmchess_coach.models import MoveFlag
from llmchess_coach.rules_oracle import RulesOracle


class RulesOracleTests(unittest.TestCase):
    def test_start_position_queries(self):
        oracle = RulesOracle()
        self.assertEqual(len(oracle.legal_moves()), 20)
        self.assertEqual(oracle.turn_color(), "white")
        self.assertEqual(len(oracle.legal_moves("g1")), 2)
        self.assertFalse(oracle.game_over())
        self.assertIsNone(oracle.result())

    def test_apply_move_accepts_uci_and_san(self):
        oracle = RulesOracle()
        desc = oracle.apply_move("e2e4")
        self.assertEqual(desc.san, "e4")
        self.assertEqual(desc.flag, MoveFlag.NONE)
        desc = oracle.apply_move("Nf6")
        self.assertEqual(desc.uci, "g8f6")
        self.assertEqual(oracle.ply_count(), 2)
        self.assertEqual(oracle.san_history(), "1. e4 Nf6")

    def test_illegal_move_leaves_position(self):
        oracle = RulesOracle()
        fen = oracle.fen()
        with self.assertRaises(IllegalMove):
            oracle.apply_move("e2e5")
        with self.assertRaises(IllegalMove):
            oracle.apply_move("")
        self.assertEqual(oracle.fen(), fen)

    def test_checkmate_result_and_pgn(self):
        oracle = RulesOracle()
        oracle.set_headers(white="Player", black="Local search")
        for mv in ("f2f3", "e7e5", "g2g4", "d8h4"):
            oracle.apply_move(mv)
        self.assertTrue(oracle.in_checkmate())
        self.assertEqual(oracle.result(), "black")
        self.assertEqual(oracle.termination_reason(), "checkmate")
        pgn = oracle.pgn()
        self.assertIn('[Result "0-1"]', pgn)
        self.assertIn("Qh4#", pgn)

    def test_threefold_repetition_is_a_draw(self):
        oracle = RulesOracle()
        for _ in range(2):
            for mv in ("g1f3", "g8f6", "f3g1", "f6g8"):
                oracle.apply_move(mv)
        self.assertTrue(oracle.in_threefold_repetition())
        self.assertEqual(oracle.result(), "draw")

    def test_repromote_swaps_last_promotion(self):
        oracle = RulesOracle("8/P6p/8/8/8/8/7P/k6K w - - 0 1")
        oracle.apply_move("a7a8q")
        desc = oracle.repromote("n")
        self.assertEqual(desc.promotion, "n")
        self.assertEqual(desc.flag, MoveFlag.PROMOTION)
        self.assertEqual(oracle.piece_at("a8"), ("white", "n"))
        self.assertEqual(oracle.board.move_stack[-1], chess.Move.from_uci("a7a8n"))

    def test_repromote_without_promotion_raises(self):
        oracle = RulesOracle()
        oracle.apply_move("e2e4")
        with self.assertRaises(IllegalMove):
            oracle.repromote("q")


if __name__ == "__main__":
    unittest.main()
