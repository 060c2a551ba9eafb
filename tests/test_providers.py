import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import openai
import requests

from llmchess_coach.config import LLMConfig
from llmchess_coach.errors import BackendUnavailable
from llmchess_coach.providers import (
    AnthropicProvider,
    GeminiProvider,
    GroqProvider,
    OpenAIProvider,
    all_provider_infos,
    create_provider,
)


def delta(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def streaming_response(lines, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.iter_lines.return_value = lines
    ctx = MagicMock()
    ctx.__enter__.return_value = resp
    ctx.__exit__.return_value = False
    return ctx


class OpenAIProviderTests(unittest.TestCase):
    def test_streams_chunks_and_returns_reply(self):
        client = MagicMock()
        client.chat.completions.create.return_value = iter(
            [delta('{"move": '), SimpleNamespace(choices=[]), delta(None), delta('"e2e4"}')]
        )
        provider = OpenAIProvider(LLMConfig(api_key="k", model="gpt-4o-mini"), client=client)
        chunks = []
        reply = provider.complete("sys", "user", chunks.append)
        self.assertEqual(reply, '{"move": "e2e4"}')
        self.assertEqual([c.text for c in chunks], ['{"move": ', '"e2e4"}', ""])
        self.assertTrue(chunks[-1].done)
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertTrue(kwargs["stream"])
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "sys"})

    def test_sdk_errors_become_backend_unavailable(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        provider = OpenAIProvider(LLMConfig(api_key="k"), client=client)
        with self.assertRaises(BackendUnavailable):
            provider.complete("sys", "user")

    def test_credential_check(self):
        client = MagicMock()
        provider = OpenAIProvider(LLMConfig(api_key="k"), client=client)
        self.assertTrue(provider.validate_credential())
        client.models.list.side_effect = openai.OpenAIError("bad key")
        self.assertFalse(provider.validate_credential())

    def test_groq_uses_compatible_endpoint(self):
        provider = GroqProvider(LLMConfig(provider="groq", api_key="k", model="llama-3.3-70b-versatile"))
        self.assertIn("api.groq.com", str(provider.client.base_url))

    def test_proxy_url_overrides_endpoint(self):
        provider = GroqProvider(LLMConfig(provider="groq", api_key="k", proxy_url="http://localhost:9000/v1"))
        self.assertEqual(provider.endpoint(), "http://localhost:9000/v1")


class AnthropicProviderTests(unittest.TestCase):
    @patch("llmchess_coach.providers.anthropic_provider.requests.post")
    def test_reads_content_deltas(self, post):
        post.return_value = streaming_response([
            b"event: content_block_delta",
            b'data: {"type": "content_block_delta", "delta": {"text": "e2"}}',
            b"",
            b'data: {"type": "content_block_delta", "delta": {"text": "e4"}}',
            b'data: {"type": "message_stop"}',
            b'data: {"type": "content_block_delta", "delta": {"text": "ignored"}}',
        ])
        provider = AnthropicProvider(LLMConfig(provider="anthropic", api_key="sk", model="claude-3-5-haiku-20241022"))
        chunks = []
        self.assertEqual(provider.complete("sys", "user", chunks.append), "e2e4")
        self.assertEqual(len(chunks), 3)
        headers = post.call_args.kwargs["headers"]
        self.assertEqual(headers["x-api-key"], "sk")
        self.assertEqual(post.call_args.kwargs["json"]["system"], "sys")

    @patch("llmchess_coach.providers.anthropic_provider.requests.post")
    def test_http_error_status(self, post):
        post.return_value = streaming_response([], status=401)
        provider = AnthropicProvider(LLMConfig(provider="anthropic", api_key="sk"))
        with self.assertRaises(BackendUnavailable):
            provider.complete("sys", "user")

    @patch("llmchess_coach.providers.anthropic_provider.requests.post")
    def test_connection_error(self, post):
        post.side_effect = requests.ConnectionError("down")
        provider = AnthropicProvider(LLMConfig(provider="anthropic", api_key="sk"))
        with self.assertRaises(BackendUnavailable):
            provider.complete("sys", "user")


class GeminiProviderTests(unittest.TestCase):
    @patch("llmchess_coach.providers.gemini_provider.requests.post")
    def test_reads_candidates(self, post):
        post.return_value = streaming_response([
            'data: {"candidates": [{"content": {"parts": [{"text": "g1"}]}}]}',
            'data: {"candidates": []}',
            'data: {"candidates": [{"content": {"parts": [{"text": "f3"}]}}]}',
        ])
        provider = GeminiProvider(LLMConfig(provider="gemini", api_key="KEY", model="gemini-2.0-flash"))
        self.assertEqual(provider.complete("sys", "user"), "g1f3")
        url = post.call_args.args[0]
        self.assertTrue(url.endswith("gemini-2.0-flash:streamGenerateContent?alt=sse&key=KEY"))


class RegistryTests(unittest.TestCase):
    def test_create_provider(self):
        provider = create_provider(LLMConfig(provider="Anthropic", api_key="k"))
        self.assertIsInstance(provider, AnthropicProvider)
        with self.assertRaises(ValueError):
            create_provider(LLMConfig(provider="nope"))

    def test_provider_infos(self):
        infos = {i.type: i for i in all_provider_infos()}
        self.assertEqual(set(infos), {"openai", "anthropic", "gemini", "groq"})
        d = infos["openai"].to_dict()
        self.assertEqual(d["default_model"], "gpt-4o")
        self.assertIn({"id": "gpt-4o-mini", "name": "GPT-4o Mini"}, d["models"])


if __name__ == "__main__":
    unittest.main()
