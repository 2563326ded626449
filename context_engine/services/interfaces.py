"""
Interfaces of the external collaborators consumed by the context engine.

The engine never implements classification, knowledge search or real token
counting itself; callers inject objects that satisfy these protocols.
"""

from typing import Any, Dict, List, Protocol, Sequence, runtime_checkable

from context_engine.models.chat_models import Message
from context_engine.models.intent_models import IntentResult, KnowledgeItem


@runtime_checkable
class TokenCounter(Protocol):
    """Counts tokens for text and messages. Implementations may raise."""

    async def count_text(self, text: str) -> int:
        ...

    async def count_message(self, message: Message) -> int:
        ...

    async def count_messages(self, messages: Sequence[Message]) -> int:
        ...


@runtime_checkable
class IntentClassifier(Protocol):
    """Classifies the intent of a user message given a short context."""

    async def classify(self, text: str, context: Dict[str, Any]) -> IntentResult:
        ...


@runtime_checkable
class KnowledgeSearch(Protocol):
    """Returns ranked knowledge snippets for a query."""

    async def search(
        self,
        query: str,
        intent: str,
        recent_user_messages: List[str]
    ) -> List[KnowledgeItem]:
        ...
