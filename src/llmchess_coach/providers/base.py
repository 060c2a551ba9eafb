"""
Provider interface for streaming chat completions.

complete() streams text through on_chunk (StreamChunk(text) per delta, then one
StreamChunk("", done=True)) and returns the full reply. Transport failures are raised
as BackendUnavailable so callers never handle SDK or HTTP exceptions directly.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional, Tuple

from ..config import LLMConfig
from ..models import StreamChunk

ChunkCallback = Callable[[StreamChunk], None]


@dataclass(frozen=True)
class ProviderInfo:
    type: str
    name: str
    models: List[Tuple[str, str]] = field(default_factory=list)
    default_model: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "name": self.name,
            "models": [{"id": mid, "name": label} for mid, label in self.models],
            "default_model": self.default_model,
        }


class LLMProvider:
    """Base class for chat providers; subclasses implement info/complete/validate_credential."""

    INFO: ProviderInfo

    def __init__(self, config: LLMConfig):
        self.config = config
        self.log = logging.getLogger(f"llm_provider.{self.INFO.type}")

    def info(self) -> ProviderInfo:
        return self.INFO

    def endpoint(self) -> str:
        return self.config.proxy_url or self.direct_endpoint()

    def direct_endpoint(self) -> str:
        raise NotImplementedError

    def complete(self, system: str, user: str, on_chunk: Optional[ChunkCallback] = None) -> str:
        raise NotImplementedError

    def validate_credential(self) -> bool:
        raise NotImplementedError


def iter_sse_json(lines: Iterator[Any]) -> Iterator[Optional[dict]]:
    """Yield parsed JSON payloads of `data:` lines; yields None for the [DONE] sentinel."""
    for raw in lines:
        if not raw:
            continue
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else raw
        if not line.startswith("data:"):
            continue
        data = line[5:].strip()
        if data == "[DONE]":
            yield None
            return
        try:
            yield json.loads(data)
        except ValueError:
            # partial or keep-alive payloads are skipped
            continue


def emit(on_chunk: Optional[ChunkCallback], text: str, done: bool = False) -> None:
    if on_chunk is not None:
        on_chunk(StreamChunk(text=text, done=done))
