"""
OpenAI transport for move prompts (streaming Chat Completions via the openai SDK).

GroqProvider reuses the same client against Groq's OpenAI-compatible endpoint.
"""
from __future__ import annotations

from typing import Optional

import openai
from openai import OpenAI

from ..errors import BackendUnavailable
from .base import ChunkCallback, LLMProvider, ProviderInfo, emit


class OpenAIProvider(LLMProvider):
    INFO = ProviderInfo(
        type="openai",
        name="OpenAI",
        models=[
            ("gpt-4o", "GPT-4o"),
            ("gpt-4o-mini", "GPT-4o Mini"),
            ("gpt-4-turbo", "GPT-4 Turbo"),
            ("o1-mini", "o1-mini"),
        ],
        default_model="gpt-4o",
    )
    BASE_URL: Optional[str] = None

    def __init__(self, config, client: OpenAI | None = None):
        super().__init__(config)
        self.client = client or OpenAI(
            api_key=config.api_key or "missing",
            base_url=self.endpoint(),
            timeout=config.timeout_s,
            max_retries=0,
        )

    def direct_endpoint(self) -> Optional[str]:
        return self.BASE_URL

    def complete(self, system: str, user: str, on_chunk: Optional[ChunkCallback] = None) -> str:
        parts = []
        try:
            stream = self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                stream=True,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    parts.append(text)
                    emit(on_chunk, text)
        except openai.OpenAIError as e:
            self.log.warning("%s request failed: %s", self.INFO.name, e)
            raise BackendUnavailable(f"{self.INFO.name} API error: {e}") from e
        emit(on_chunk, "", done=True)
        return "".join(parts)

    def validate_credential(self) -> bool:
        try:
            self.client.models.list()
            return True
        except openai.OpenAIError as e:
            self.log.info("%s credential check failed: %s", self.INFO.name, e)
            return False


class GroqProvider(OpenAIProvider):
    INFO = ProviderInfo(
        type="groq",
        name="Groq",
        models=[
            ("llama-3.3-70b-versatile", "Llama 3.3 70B"),
            ("mixtral-8x7b-32768", "Mixtral 8x7B"),
            ("llama-3.1-8b-instant", "Llama 3.1 8B"),
        ],
        default_model="llama-3.3-70b-versatile",
    )
    BASE_URL = "https://api.groq.com/openai/v1"
