"""Anthropic Messages API over plain HTTP with server-sent events."""
from __future__ import annotations

from typing import Optional

import requests

from ..errors import BackendUnavailable
from .base import ChunkCallback, LLMProvider, ProviderInfo, emit, iter_sse_json

API_VERSION = "2023-06-01"


class AnthropicProvider(LLMProvider):
    INFO = ProviderInfo(
        type="anthropic",
        name="Anthropic (Claude)",
        models=[
            ("claude-sonnet-4-20250514", "Claude Sonnet 4"),
            ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku"),
        ],
        default_model="claude-sonnet-4-20250514",
    )

    def direct_endpoint(self) -> str:
        return "https://api.anthropic.com/v1/messages"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key,
            "anthropic-version": API_VERSION,
        }

    def complete(self, system: str, user: str, on_chunk: Optional[ChunkCallback] = None) -> str:
        payload = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user}],
            "stream": True,
        }
        parts = []
        try:
            with requests.post(self.endpoint(), headers=self._headers(), json=payload,
                               stream=True, timeout=self.config.timeout_s) as resp:
                if resp.status_code != 200:
                    raise BackendUnavailable(f"Anthropic API error: {resp.status_code}")
                for event in iter_sse_json(resp.iter_lines()):
                    if event is None or event.get("type") == "message_stop":
                        break
                    if event.get("type") == "content_block_delta":
                        text = (event.get("delta") or {}).get("text") or ""
                        if text:
                            parts.append(text)
                            emit(on_chunk, text)
        except requests.RequestException as e:
            self.log.warning("Anthropic request failed: %s", e)
            raise BackendUnavailable(f"Anthropic API error: {e}") from e
        emit(on_chunk, "", done=True)
        return "".join(parts)

    def validate_credential(self) -> bool:
        payload = {
            "model": self.config.model,
            "max_tokens": 10,
            "messages": [{"role": "user", "content": "hi"}],
        }
        try:
            resp = requests.post(self.endpoint(), headers=self._headers(), json=payload, timeout=self.config.timeout_s)
            return resp.ok
        except requests.RequestException as e:
            self.log.info("Anthropic credential check failed: %s", e)
            return False
