"""
Token usage analysis for the message window and any existing summary.

Token counts come from the injected token counter. Counts for unchanged
message windows are served from a small bounded cache; when the counter
fails, a character-based estimate is used instead.
"""

import asyncio
import hashlib
import json
import logging
from collections import OrderedDict
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel

from context_engine.config import WindowConfig, get_window_config
from context_engine.exceptions import DependencyExceptionMapper
from context_engine.models.chat_models import Message
from context_engine.models.relevance_models import TokenAnalysisResult
from context_engine.services.interfaces import TokenCounter
from context_engine.services.token_counter import estimate_tokens
from context_engine.utils.logging_config import get_logger, log_error_context

SUMMARY_TEXT_FIELDS = ("full_summary", "fullSummary", "overview")


def extract_summary_text(summary: Any) -> Optional[str]:
    """
    Extract summary text from a plain string or a structured summary.

    Tries the full summary field, then the overview field, then the first
    non-empty string field, and finally falls back to JSON serialisation.
    """
    if summary is None:
        return None
    if isinstance(summary, str):
        return summary

    if isinstance(summary, BaseModel):
        fields: Mapping[str, Any] = summary.model_dump()
    elif isinstance(summary, Mapping):
        fields = summary
    else:
        fields = {name: getattr(summary, name) for name in SUMMARY_TEXT_FIELDS if hasattr(summary, name)}
        fields.update({k: v for k, v in getattr(summary, "__dict__", {}).items() if k not in fields})

    for name in SUMMARY_TEXT_FIELDS:
        value = fields.get(name)
        if isinstance(value, str) and value.strip():
            return value

    for value in fields.values():
        if isinstance(value, str) and value.strip():
            return value

    if isinstance(summary, (BaseModel, Mapping)) or fields:
        return json.dumps(dict(fields), default=str)
    return json.dumps(summary, default=str)


class TokenUsageAnalyzer:
    """
    Computes token usage with a per-instance bounded cache.

    One analyzer serves one conversation-processing context. Cache access is
    guarded by an asyncio lock because eviction is a read-check-write sequence.
    """

    def __init__(
        self,
        token_counter: TokenCounter,
        config: Optional[WindowConfig] = None,
        cache_capacity: Optional[int] = None
    ):
        self.token_counter = token_counter
        self.config = config or get_window_config()
        self.cache_capacity = cache_capacity or self.config.token_cache_capacity
        self.logger = get_logger("token_usage_analyzer")

        self._cache: "OrderedDict[str, int]" = OrderedDict()
        self._lock = asyncio.Lock()

        # Statistics tracking
        self.cache_hits = 0
        self.cache_misses = 0
        self.fallback_count = 0

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @staticmethod
    def cache_key(messages: Sequence[Message]) -> str:
        """SHA-256 digest of ``id:len(content)`` for every message."""
        raw = "|".join(f"{message.id}:{len(message.content)}" for message in messages)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    async def analyze(self, messages: Sequence[Message], existing_summary: Any = None) -> TokenAnalysisResult:
        """
        Count tokens for messages and the extracted summary text.

        Never raises on counter failures.
        """
        summary_text = extract_summary_text(existing_summary)
        message_tokens = await self.count_message_tokens(messages)
        summary_tokens = await self.count_summary_tokens(summary_text)

        return TokenAnalysisResult(
            message_tokens=message_tokens,
            summary_tokens=summary_tokens,
            summary_text=summary_text
        )

    async def count_message_tokens(self, messages: Sequence[Message]) -> int:
        if not messages:
            return 0

        key = self.cache_key(messages)
        async with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.cache_misses += 1
        try:
            token_count = max(0, await self.token_counter.count_messages(messages))
        except Exception as e:
            self.fallback_count += 1
            error = DependencyExceptionMapper.map_dependency_exception(
                e, "token_counter", "Counting message tokens", {"message_count": len(messages)}
            )
            log_error_context(self.logger, error, {"fallback": "character_estimate"}, level=logging.WARNING)
            return sum(estimate_tokens(message.content) for message in messages)

        async with self._lock:
            self._cache[key] = token_count
            while len(self._cache) > self.cache_capacity:
                evicted, _ = self._cache.popitem(last=False)
                self.logger.debug(f"Evicted token cache entry {evicted[:12]}")

        return token_count

    async def count_summary_tokens(self, summary_text: Optional[str]) -> int:
        if not summary_text:
            return 0

        try:
            return max(0, await self.token_counter.count_text(summary_text))
        except Exception as e:
            self.fallback_count += 1
            error = DependencyExceptionMapper.map_dependency_exception(
                e, "token_counter", "Counting summary tokens", {"summary_length": len(summary_text)}
            )
            log_error_context(self.logger, error, {"fallback": "character_estimate"}, level=logging.WARNING)
            return estimate_tokens(summary_text)

    async def clear_cache(self) -> None:
        async with self._lock:
            self._cache.clear()
