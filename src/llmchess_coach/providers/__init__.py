"""Chat providers for the remote decision engine and the registry that builds them."""
from __future__ import annotations

from typing import Dict, List, Type

from ..config import LLMConfig
from .anthropic_provider import AnthropicProvider
from .base import LLMProvider, ProviderInfo
from .gemini_provider import GeminiProvider
from .openai_provider import GroqProvider, OpenAIProvider

PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "groq": GroqProvider,
}


def create_provider(config: LLMConfig) -> LLMProvider:
    try:
        cls = PROVIDERS[(config.provider or "").lower()]
    except KeyError:
        raise ValueError(f"Unknown provider: {config.provider}") from None
    return cls(config)


def all_provider_infos() -> List[ProviderInfo]:
    return [cls.INFO for cls in PROVIDERS.values()]


__all__ = [
    "LLMProvider",
    "ProviderInfo",
    "OpenAIProvider",
    "GroqProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "create_provider",
    "all_provider_infos",
]
