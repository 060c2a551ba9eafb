"""Google Gemini streamGenerateContent over plain HTTP with server-sent events."""
from __future__ import annotations

from typing import Optional

import requests

from ..errors import BackendUnavailable
from .base import ChunkCallback, LLMProvider, ProviderInfo, emit, iter_sse_json

API_ROOT = "https://generativelanguage.googleapis.com/v1beta/models"


def _candidate_text(event: dict) -> str:
    try:
        return event["candidates"][0]["content"]["parts"][0].get("text") or ""
    except (KeyError, IndexError, TypeError):
        return ""


class GeminiProvider(LLMProvider):
    INFO = ProviderInfo(
        type="gemini",
        name="Google Gemini",
        models=[
            ("gemini-2.0-flash", "Gemini 2.0 Flash"),
            ("gemini-1.5-pro", "Gemini 1.5 Pro"),
        ],
        default_model="gemini-2.0-flash",
    )

    def direct_endpoint(self) -> str:
        return f"{API_ROOT}/{self.config.model}:streamGenerateContent?alt=sse&key={self.config.api_key}"

    def complete(self, system: str, user: str, on_chunk: Optional[ChunkCallback] = None) -> str:
        payload = {
            "system_instruction": {"parts": [{"text": system}]},
            "contents": [{"parts": [{"text": user}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }
        parts = []
        try:
            with requests.post(self.endpoint(), json=payload, stream=True, timeout=self.config.timeout_s) as resp:
                if resp.status_code != 200:
                    raise BackendUnavailable(f"Gemini API error: {resp.status_code}")
                for event in iter_sse_json(resp.iter_lines()):
                    if event is None:
                        break
                    text = _candidate_text(event)
                    if text:
                        parts.append(text)
                        emit(on_chunk, text)
        except requests.RequestException as e:
            self.log.warning("Gemini request failed: %s", e)
            raise BackendUnavailable(f"Gemini API error: {e}") from e
        emit(on_chunk, "", done=True)
        return "".join(parts)

    def validate_credential(self) -> bool:
        try:
            resp = requests.get(API_ROOT, params={"key": self.config.api_key}, timeout=self.config.timeout_s)
            return resp.ok
        except requests.RequestException as e:
            self.log.info("Gemini credential check failed: %s", e)
            return False
