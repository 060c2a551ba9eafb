import os
import unittest
from unittest.mock import patch

from llmchess_coach import config
from llmchess_coach.config import LLMConfig, LLMSettings


class ConfigTests(unittest.TestCase):
    def test_flag_parsing(self):
        for val in (True, "1", "true", "YES", " on "):
            self.assertTrue(config._flag(val))
        for val in (False, "0", "no", ""):
            self.assertFalse(config._flag(val))

    def test_env_fallback_and_cast(self):
        with patch.dict(os.environ, {"LLMCHESS_TEST_DEPTH": "5"}):
            self.assertEqual(config._get("LLMCHESS_TEST_DEPTH", 3, cast=int), 5)
        self.assertEqual(config._get("LLMCHESS_TEST_MISSING", "x"), "x")

    def test_api_key_lookup(self):
        self.assertEqual(config.SETTINGS.api_key_for("unknown"), "")

    def test_llm_settings_usable_needs_key(self):
        self.assertFalse(LLMSettings(enabled=True).usable)
        self.assertFalse(LLMSettings(enabled=False, config=LLMConfig(api_key="k")).usable)
        self.assertTrue(LLMSettings(enabled=True, config=LLMConfig(api_key="k")).usable)


if __name__ == "__main__":
    unittest.main()
