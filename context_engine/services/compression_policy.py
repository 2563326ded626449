"""
Compression policy for the context window.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from context_engine.config import WindowConfig, get_window_config
from context_engine.models.chat_models import Message
from context_engine.models.relevance_models import PrioritizedMessages, TokenAnalysisResult
from context_engine.utils.logging_config import get_logger


@dataclass
class CompressionDecision:
    """Messages to send after the policy ran, and whether they were reduced."""
    messages: List[Message] = field(default_factory=list)
    was_compressed: bool = False


class CompressionPolicy:
    """
    Replaces the message list with the prioritizer's retained subset.

    Compression only happens when the window is over budget, the conversation
    is longer than the minimum message floor, and the retention
    recommendation asks for it.
    """

    def __init__(self, config: Optional[WindowConfig] = None):
        self.config = config or get_window_config()
        self.min_messages = self.config.min_messages_for_compression
        self.logger = get_logger("compression_policy")

    def apply(
        self,
        messages: Sequence[Message],
        prioritized: PrioritizedMessages,
        analysis: TokenAnalysisResult,
        available_tokens: int
    ) -> CompressionDecision:
        over_budget = analysis.total_tokens > available_tokens
        if not over_budget:
            self.logger.debug(f"Context within budget: {analysis.total_tokens}/{available_tokens} tokens")
            return CompressionDecision(messages=list(messages), was_compressed=False)

        if len(messages) <= self.min_messages:
            self.logger.debug(
                f"Over budget ({analysis.total_tokens}/{available_tokens}) but only "
                f"{len(messages)} messages, skipping compression"
            )
            return CompressionDecision(messages=list(messages), was_compressed=False)

        retention = prioritized.retention
        if not retention.should_compress:
            return CompressionDecision(messages=list(messages), was_compressed=False)

        self.logger.info(
            f"Compressing context: {len(messages)} -> {len(retention.messages_to_retain)} messages "
            f"({analysis.total_tokens}/{available_tokens} tokens)"
        )
        return CompressionDecision(messages=list(retention.messages_to_retain), was_compressed=True)
