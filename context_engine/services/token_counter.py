"""
Token counter adapters.

``TiktokenTokenCounter`` counts with a tiktoken BPE encoding;
``CharacterEstimateTokenCounter`` uses the four-characters-per-token
heuristic and never fails.
"""

import math
from typing import Optional, Sequence

import tiktoken

from context_engine.exceptions import handle_dependency_exception
from context_engine.models.chat_models import Message
from context_engine.utils.logging_config import get_logger

logger = get_logger("token_counter")

DEFAULT_ENCODING = "cl100k_base"
CHARS_PER_TOKEN = 4


def estimate_tokens(text: Optional[str]) -> int:
    """Heuristic token count: ceil(characters / 4)."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class TiktokenTokenCounter:
    """Token counter backed by a tiktoken encoding, loaded on first use."""

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        self.encoding_name = encoding_name
        self._encoding = None

    def _get_encoding(self):
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
            logger.debug(f"Loaded tiktoken encoding '{self.encoding_name}'")
        return self._encoding

    @handle_dependency_exception("token_counter")
    async def count_text(self, text: str) -> int:
        if not text:
            return 0
        return len(self._get_encoding().encode(text))

    @handle_dependency_exception("token_counter")
    async def count_message(self, message: Message) -> int:
        return await self.count_text(message.content)

    @handle_dependency_exception("token_counter")
    async def count_messages(self, messages: Sequence[Message]) -> int:
        encoding = self._get_encoding()
        return sum(len(encoding.encode(message.content or "")) for message in messages)


class CharacterEstimateTokenCounter:
    """Token counter using the character heuristic."""

    async def count_text(self, text: str) -> int:
        return estimate_tokens(text)

    async def count_message(self, message: Message) -> int:
        return estimate_tokens(message.content)

    async def count_messages(self, messages: Sequence[Message]) -> int:
        return sum(estimate_tokens(message.content) for message in messages)
