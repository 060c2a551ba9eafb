import unittest

import chess

from llmchess_coach.errors import IllegalMove
from llmchess_coach.insight import InsightEngine

EARLY_QUEEN = "rnbqkbnr/pppp1ppp/8/4p3/8/8/PPP1PPPP/RNBQKBNR w KQkq - 0 2"
BACK_RANK = "6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1"


class InsightEngineTests(unittest.TestCase):
    def setUp(self):
        self.engine = InsightEngine()

    def test_opening_pawn_move_is_good(self):
        insight = self.engine.analyze(chess.STARTING_FEN, "e2e4")
        self.assertEqual(insight.player_move, "e4")
        self.assertEqual(insight.quality, "good")
        self.assertIsNone(insight.better_move)

    def test_queen_into_pawn_capture_is_blunder(self):
        insight = self.engine.analyze(EARLY_QUEEN, "d1d4")
        self.assertEqual(insight.quality, "blunder")
        self.assertIn("queen on d4", insight.explanation)
        self.assertIn("pawn", insight.explanation)
        self.assertIsNotNone(insight.better_move)

    def test_ignoring_mate_in_one_is_missed_win(self):
        insight = self.engine.analyze(BACK_RANK, "h2h3")
        self.assertEqual(insight.quality, "missed_win")
        self.assertEqual(insight.better_move, "Ra8#")
        self.assertIn("checkmate", insight.explanation)

    def test_mate_is_brilliant(self):
        insight = self.engine.analyze(BACK_RANK, "Ra8#")
        self.assertEqual(insight.quality, "brilliant")
        self.assertEqual(insight.player_move, "Ra8#")
        self.assertIsNone(insight.better_move)

    def test_analysis_is_repeatable(self):
        first = self.engine.analyze(EARLY_QUEEN, "d1d4")
        second = self.engine.analyze(EARLY_QUEEN, "d1d4")
        self.assertEqual(first, second)

    def test_illegal_move_raises(self):
        with self.assertRaises(IllegalMove):
            self.engine.analyze(chess.STARTING_FEN, "e2e5")

    def test_score_all_is_sorted(self):
        scored = self.engine.score_all(chess.Board(BACK_RANK))
        self.assertEqual(scored[0].san, "Ra8#")
        self.assertEqual(scored[0].score, 100)
        scores = [s.score for s in scored]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_abandoned_rook(self):
        board = chess.Board("6k1/8/8/7b/8/4N3/8/3R2K1 w - - 0 1")
        quality, text = self.engine.check_abandoned(board, chess.Move.from_uci("e3c4"))
        self.assertEqual(quality, "blunder")
        self.assertIn("rook on d1", text)
        self.assertIsNone(self.engine.check_abandoned(board, chess.Move.from_uci("g1f2")))

    def test_rook_left_next_to_enemy_king(self):
        board = chess.Board("8/8/8/8/8/4N3/4k3/3R3K w - - 0 1")
        quality, text = self.engine.check_abandoned(board, chess.Move.from_uci("e3g4"))
        self.assertEqual(quality, "blunder")
        self.assertIn("rook on d1", text)

    def test_king_cannot_take_defended_rook(self):
        board = chess.Board("8/8/8/8/8/1B2N3/4k3/3R3K w - - 0 1")
        self.assertIsNone(self.engine.check_abandoned(board, chess.Move.from_uci("e3g4")))

    def test_hanging_minor_piece_is_inaccuracy(self):
        board = chess.Board(chess.STARTING_FEN)
        board.push_uci("e2e4")
        board.push_uci("a7a6")
        severity, text = self.engine.check_hanging(board, chess.Move.from_uci("f1b5"))
        self.assertEqual(severity, "inaccuracy")
        self.assertIn("bishop on b5", text)


if __name__ == "__main__":
    unittest.main()
