"""Token budgeting and memory compression for move prompts."""

from .context_manager import ContextManager, PromptBundle, truncate_history
from .memory_summarizer import compress_reasonings, summarize_moves
from .token_estimator import budget_for, estimate, model_limit

__all__ = [
    "ContextManager",
    "PromptBundle",
    "truncate_history",
    "compress_reasonings",
    "summarize_moves",
    "budget_for",
    "estimate",
    "model_limit",
]
