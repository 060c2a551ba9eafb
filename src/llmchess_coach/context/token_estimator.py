"""Rough token accounting: about four characters per token."""
from __future__ import annotations

import math

from ..models import TokenBudget

MODEL_TOKEN_LIMITS = {
    # OpenAI
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4-turbo": 128000,
    "o1-mini": 128000,
    # Anthropic
    "claude-sonnet-4-20250514": 200000,
    "claude-3-5-haiku-20241022": 200000,
    # Gemini
    "gemini-2.0-flash": 1000000,
    "gemini-1.5-pro": 2000000,
    # Groq
    "llama-3.3-70b-versatile": 128000,
    "mixtral-8x7b-32768": 32768,
    "llama-3.1-8b-instant": 131072,
}

DEFAULT_LIMIT = 32000
RESPONSE_RESERVE = 600
SYSTEM_PROMPT_RESERVE = 600


def estimate(text: str) -> int:
    return math.ceil(len(text or "") / 4)


def model_limit(model: str) -> int:
    return MODEL_TOKEN_LIMITS.get(model, DEFAULT_LIMIT)


def budget_for(model: str, used: int = 0) -> TokenBudget:
    return TokenBudget(
        model_limit=model_limit(model),
        reserved_for_response=RESPONSE_RESERVE,
        reserved_for_system_prompt=SYSTEM_PROMPT_RESERVE,
        used=used,
    )
