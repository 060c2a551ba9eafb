import unittest
from unittest.mock import AsyncMock, patch

import chess

from llmchess_coach.config import LLMConfig, LLMSettings
from llmchess_coach.errors import BackendUnavailable, DecisionExhausted
from llmchess_coach.llm_engine import FALLBACK_NOTICE, RemoteDecisionEngine
from llmchess_coach.memory import GameMemory
from tests.fakes import StubProvider

START = chess.STARTING_FEN
SETTINGS = LLMSettings(enabled=True, config=LLMConfig(api_key="k", model="gpt-4o-mini"))


def make_engine(replies, **kwargs):
    updates = []
    provider = StubProvider(replies)
    kwargs.setdefault("use_guard_agent", False)
    engine = RemoteDecisionEngine(SETTINGS, provider=provider, on_thinking=updates.append, max_retries=3, **kwargs)
    return engine, provider, updates


def terminal(updates):
    return [u for u in updates if u.done]


class RemoteDecisionEngineTests(unittest.TestCase):
    def test_accepts_json_reply_and_records_memory(self):
        engine, provider, updates = make_engine(['{"move": "e2e4", "reasoning": "Take the center."}'])
        memory = GameMemory()
        desc = engine.decide(memory, START, "white")
        self.assertEqual(desc.uci, "e2e4")
        self.assertEqual(provider.calls, 1)
        self.assertEqual(len(memory), 1)
        self.assertEqual(memory.last(1)[0].reasoning, "Take the center.")
        done = terminal(updates)
        self.assertEqual(len(done), 1)
        self.assertEqual(done[0].chosen_move, "e4")
        self.assertEqual(done[0].reasoning, "Take the center.")
        self.assertTrue(any(u.text for u in updates if not u.done))

    def test_malformed_replies_exhaust_to_none(self):
        engine, provider, updates = make_engine(["hmm", "no idea", "pass"])
        memory = GameMemory()
        self.assertIsNone(engine.decide(memory, START, "white"))
        self.assertEqual(provider.calls, 3)
        self.assertEqual(len(memory), 0)
        done = terminal(updates)
        self.assertEqual(len(done), 3)
        self.assertTrue(all(u.error for u in done))
        self.assertEqual(done[-1].text, FALLBACK_NOTICE)
        self.assertEqual(done[0].text, "")

    def test_illegal_move_is_retried(self):
        engine, provider, updates = make_engine(['{"move": "e2e5"}', "I will play d2d4"])
        desc = engine.decide(GameMemory(), START, "white")
        self.assertEqual(desc.uci, "d2d4")
        self.assertEqual(provider.calls, 2)
        done = terminal(updates)
        self.assertEqual(len(done), 2)
        self.assertIn("e2e5", done[0].error)

    def test_transport_failure_is_retried(self):
        engine, provider, _ = make_engine([BackendUnavailable("timeout"), '{"move": "g1f3"}'])
        self.assertEqual(engine.decide(GameMemory(), START, "white").uci, "g1f3")

    def test_no_legal_moves_returns_none_without_calls(self):
        engine, provider, updates = make_engine(['{"move": "e2e4"}'])
        mated = "R5k1/5ppp/8/8/8/8/5PPP/6K1 b - - 1 1"
        self.assertIsNone(engine.decide(GameMemory(), mated, "black"))
        self.assertEqual(provider.calls, 0)
        self.assertEqual(updates, [])

    def test_listener_errors_do_not_abort(self):
        provider = StubProvider(['{"move": "e2e4"}'])

        def broken(update):
            raise RuntimeError("listener")

        engine = RemoteDecisionEngine(SETTINGS, provider=provider, on_thinking=broken, max_retries=1, use_guard_agent=False)
        self.assertEqual(engine.decide(GameMemory(), START, "white").uci, "e2e4")

    def test_decide_or_raise(self):
        engine, _, _ = make_engine(["", "", ""])
        with self.assertRaises(DecisionExhausted):
            engine.decide_or_raise(GameMemory(), START, "white")

    @patch("llmchess_coach.agent_normalizer._agent_suggest", new_callable=AsyncMock)
    def test_guard_agent_salvages_prose(self, mock_suggest):
        mock_suggest.return_value = "g1f3"
        engine, provider, _ = make_engine(["knight to f3 please"], use_guard_agent=True)
        desc = engine.decide(GameMemory(), START, "white")
        self.assertEqual(desc.uci, "g1f3")
        self.assertEqual(provider.calls, 1)
        mock_suggest.assert_awaited_once()

    @patch("llmchess_coach.agent_normalizer._agent_suggest", new_callable=AsyncMock)
    def test_guard_agent_answer_must_be_legal(self, mock_suggest):
        mock_suggest.return_value = "e2e5"
        engine, provider, _ = make_engine(["castle somehow"] * 3, use_guard_agent=True)
        self.assertIsNone(engine.decide(GameMemory(), START, "white"))
        self.assertEqual(mock_suggest.await_count, 3)

    @patch("llmchess_coach.agent_normalizer._agent_suggest", new_callable=AsyncMock)
    def test_guard_agent_errors_count_as_failed_attempts(self, mock_suggest):
        mock_suggest.side_effect = RuntimeError("agents SDK: no OPENAI_API_KEY")
        engine, provider, updates = make_engine(
            ["knight please", "still prose", '{"move": "g1f3"}'], use_guard_agent=True
        )
        desc = engine.decide(GameMemory(), START, "white")
        self.assertEqual(desc.uci, "g1f3")
        self.assertEqual(provider.calls, 3)
        self.assertEqual(len([u for u in terminal(updates) if u.error]), 2)

    def test_choose_does_not_record_memory(self):
        engine, _, _ = make_engine(['{"move": "e2e4", "reasoning": "Center."}'])
        memory = GameMemory()
        desc, decision = engine.choose(memory, START, "white")
        self.assertEqual(desc.uci, "e2e4")
        self.assertEqual(decision.reasoning, "Center.")
        self.assertEqual(len(memory), 0)


if __name__ == "__main__":
    unittest.main()
