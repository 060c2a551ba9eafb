"""
Configuration and environment loading for LLM Chess Coach.

- Loads settings.yml (YAML) from repo root if present; falls back to environment variables.
- Exposes SETTINGS with keys used across the project (API keys, provider selection, tuning knobs).
- LLMSettings/LLMConfig describe the remote decision backend for one game.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


def _repo_root() -> str:
    # this file: src/llmchess_coach/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.path.join(_repo_root(), "settings.yml"))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


def _flag(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Remote decision backend
    llm_enabled: bool
    llm_provider: str
    llm_model: str
    llm_proxy_url: str
    openai_api_key: str
    anthropic_api_key: str
    gemini_api_key: str
    groq_api_key: str
    play_style: str

    # Tuning knobs
    max_retries: int
    responses_timeout_s: float
    max_tokens: int
    temperature: float
    use_guard_agent: bool

    # Local search worker
    search_depth: int
    search_in_process: bool

    # Game history / insights
    history_path: str
    history_capacity: int
    insights_enabled: bool

    def api_key_for(self, provider: str) -> str:
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "gemini": self.gemini_api_key,
            "groq": self.groq_api_key,
        }.get((provider or "").lower(), "")


SETTINGS = Settings(
    llm_enabled=_get("LLMCHESS_LLM_ENABLED", False, cast=_flag),
    llm_provider=_get("LLMCHESS_LLM_PROVIDER", "openai"),
    llm_model=_get("LLMCHESS_LLM_MODEL", "gpt-4o"),
    llm_proxy_url=_get("LLMCHESS_LLM_PROXY_URL", ""),
    openai_api_key=_get("OPENAI_API_KEY", ""),
    anthropic_api_key=_get("ANTHROPIC_API_KEY", ""),
    gemini_api_key=_get("GEMINI_API_KEY", ""),
    groq_api_key=_get("GROQ_API_KEY", ""),
    play_style=_get("LLMCHESS_PLAY_STYLE", "balanced"),
    max_retries=int(_get("LLMCHESS_MAX_RETRIES", 3, cast=int)),
    responses_timeout_s=float(_get("LLMCHESS_RESPONSES_TIMEOUT_S", 60.0, cast=float)),
    max_tokens=int(_get("LLMCHESS_MAX_TOKENS", 500, cast=int)),
    temperature=float(_get("LLMCHESS_TEMPERATURE", 0.7, cast=float)),
    use_guard_agent=_get("LLMCHESS_USE_GUARD_AGENT", False, cast=_flag),
    search_depth=int(_get("LLMCHESS_SEARCH_DEPTH", 3, cast=int)),
    search_in_process=_get("LLMCHESS_SEARCH_IN_PROCESS", True, cast=_flag),
    history_path=_get("LLMCHESS_HISTORY_PATH", ""),
    history_capacity=int(_get("LLMCHESS_HISTORY_CAPACITY", 50, cast=int)),
    insights_enabled=_get("LLMCHESS_INSIGHTS_ENABLED", True, cast=_flag),
)


@dataclass
class LLMConfig:
    provider: str = "openai"
    api_key: str = ""
    model: str = "gpt-4o"
    proxy_url: Optional[str] = None
    max_tokens: int = 500
    temperature: float = 0.7
    timeout_s: float = 60.0


@dataclass
class LLMSettings:
    """Per-game settings for the remote decision backend."""

    enabled: bool = False
    config: LLMConfig = field(default_factory=LLMConfig)
    play_style: str = "balanced"

    @property
    def usable(self) -> bool:
        return bool(self.enabled and self.config.api_key)

    @classmethod
    def from_settings(cls, settings: Settings = SETTINGS) -> "LLMSettings":
        provider = settings.llm_provider.lower()
        return cls(
            enabled=settings.llm_enabled,
            config=LLMConfig(
                provider=provider,
                api_key=settings.api_key_for(provider),
                model=settings.llm_model,
                proxy_url=settings.llm_proxy_url or None,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
                timeout_s=settings.responses_timeout_s,
            ),
            play_style=settings.play_style,
        )
