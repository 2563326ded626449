"""
Semantic compression of older conversation history.

Keeps the most recent messages verbatim and condenses the rest into a short
summary of business entities, topics, intents, qualification signals,
conversation flow and engagement.
"""

import math
import re
from collections import Counter
from typing import Dict, List, Optional, Pattern, Sequence

from pydantic import BaseModel, Field

from context_engine.exceptions import BusinessRuleViolationError
from context_engine.models.chat_models import Message
from context_engine.services.token_counter import CHARS_PER_TOKEN, estimate_tokens
from context_engine.utils.logging_config import get_logger

TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "pricing": ["price", "cost", "pricing", "budget", "expensive", "cheap", "afford"],
    "features": ["feature", "functionality", "capability", "can it", "does it"],
    "integration": ["integrate", "api", "connect", "sync", "import", "export"],
    "support": ["help", "support", "assistance", "training", "onboarding"],
    "demo": ["demo", "demonstration", "show me", "see it", "preview"],
    "trial": ["trial", "test", "try", "evaluate", "pilot"],
    "timeline": ["when", "timeline", "schedule", "deadline", "urgent"],
    "team": ["team", "users", "people", "staff", "employees"],
    "security": ["secure", "security", "privacy", "compliance", "gdpr"],
    "scalability": ["scale", "growth", "expand", "larger", "enterprise"],
}

BUSINESS_ENTITY_PATTERNS: List[Pattern[str]] = [
    re.compile(r"company[:\s]+([A-Za-z0-9\s&.-]+)", re.IGNORECASE),
    re.compile(r"budget[:\s]+\$?([0-9,]+[KkMm]?)", re.IGNORECASE),
    re.compile(r"team[:\s]+([0-9]+)", re.IGNORECASE),
    re.compile(r"role[:\s]+([A-Za-z\s]+)", re.IGNORECASE),
    re.compile(r"industry[:\s]+([A-Za-z\s]+)", re.IGNORECASE),
    re.compile(r"timeline[:\s]+([A-Za-z0-9\s]+)", re.IGNORECASE),
]

FLOW_INDICATORS: Dict[str, List[str]] = {
    "discovery": ["what", "how", "tell me", "explain", "understand"],
    "evaluation": ["compare", "vs", "versus", "better", "difference"],
    "qualification": ["price", "cost", "team", "budget", "timeline"],
    "decision": ["decide", "choose", "select", "go with", "purchase"],
    "objection": ["but", "however", "concern", "worry", "problem"],
}

INTENT_PATTERNS: Dict[str, List[str]] = {
    "information_seeking": ["what is", "how does", "tell me about"],
    "comparison": ["compare", "vs", "versus", "difference between"],
    "pricing_inquiry": ["cost", "price", "pricing", "how much"],
    "demo_request": ["demo", "show me", "see it in action"],
    "trial_interest": ["trial", "try it", "test it"],
    "feature_inquiry": ["can it", "does it", "feature", "capability"],
    "integration_question": ["integrate", "connect", "api", "sync"],
    "support_inquiry": ["help", "support", "assistance"],
}

SIGNAL_PATTERNS: Dict[str, Pattern[str]] = {
    "budget_mentioned": re.compile(r"budget|cost|price|\$[0-9]", re.IGNORECASE),
    "timeline_indicated": re.compile(r"timeline|when|deadline|soon|urgent", re.IGNORECASE),
    "authority_suggested": re.compile(r"decision|approve|team|manager|director|ceo", re.IGNORECASE),
    "pain_point_expressed": re.compile(r"problem|issue|challenge|difficult|frustrating", re.IGNORECASE),
    "solution_seeking": re.compile(r"solution|solve|fix|help|improve", re.IGNORECASE),
    "evaluation_active": re.compile(r"compare|evaluate|consider|looking at", re.IGNORECASE),
}

ENTHUSIASM_MARKERS = ["!", "great", "excellent", "perfect", "love", "amazing"]

MAX_TOPICS = 5
MAX_ENTITIES = 8
MAX_INTENTS = 5
MAX_ENTITY_LENGTH = 50
MIN_SUMMARY_TOKENS = 50


class CompressionContext(BaseModel):
    max_summary_tokens: int = 300
    preserve_recent_count: int = 6
    business_context_weight: float = 1.5
    topic_importance_threshold: int = 2


class CompressionMetadata(BaseModel):
    original_message_count: int
    compressed_message_count: int
    key_topics_preserved: List[str] = Field(default_factory=list)
    business_entities_preserved: List[str] = Field(default_factory=list)


class CompressionResult(BaseModel):
    compressed_summary: str
    retained_messages: List[Message]
    tokens_saved: int
    compression_ratio: float
    metadata: CompressionMetadata


class SemanticExtraction(BaseModel):
    key_topics: List[str] = Field(default_factory=list)
    business_entities: List[str] = Field(default_factory=list)
    conversation_flow: str = ""
    user_intents: List[str] = Field(default_factory=list)
    business_signals: List[str] = Field(default_factory=list)
    engagement_indicators: List[str] = Field(default_factory=list)


class ConversationCompressionService:
    """Compresses older messages into a semantic summary."""

    def __init__(self):
        self.logger = get_logger("conversation_compression")

    def compress_conversation_history(
        self,
        messages: Sequence[Message],
        context: Optional[CompressionContext] = None
    ) -> CompressionResult:
        """
        Compress everything but the most recent messages.

        Raises:
            BusinessRuleViolationError: On empty history, a non-positive
                preserve count or a summary budget below 50 tokens
        """
        context = context or CompressionContext()
        self._validate(messages, context)

        if len(messages) <= context.preserve_recent_count:
            return CompressionResult(
                compressed_summary="",
                retained_messages=list(messages),
                tokens_saved=0,
                compression_ratio=1.0,
                metadata=CompressionMetadata(
                    original_message_count=len(messages),
                    compressed_message_count=len(messages)
                )
            )

        to_compress = list(messages[:-context.preserve_recent_count])
        to_preserve = list(messages[-context.preserve_recent_count:])

        extraction = self.extract_semantic_information(to_compress, context)
        summary = self.generate_compressed_summary(extraction, context.max_summary_tokens)

        original_tokens = sum(estimate_tokens(message.content) for message in to_compress)
        retained_tokens = sum(estimate_tokens(message.content) for message in to_preserve)
        summary_tokens = estimate_tokens(summary)
        total_original = original_tokens + retained_tokens
        ratio = (summary_tokens + retained_tokens) / total_original if total_original else 1.0

        self.logger.info(
            f"Compressed {len(to_compress)} messages into a {summary_tokens}-token summary, "
            f"retaining {len(to_preserve)} recent messages"
        )

        return CompressionResult(
            compressed_summary=summary,
            retained_messages=to_preserve,
            tokens_saved=original_tokens - summary_tokens,
            compression_ratio=ratio,
            metadata=CompressionMetadata(
                original_message_count=len(messages),
                compressed_message_count=len(to_preserve),
                key_topics_preserved=extraction.key_topics,
                business_entities_preserved=extraction.business_entities
            )
        )

    def extract_semantic_information(
        self,
        messages: Sequence[Message],
        context: CompressionContext
    ) -> SemanticExtraction:
        user_messages = [message for message in messages if message.is_from_user()]
        return SemanticExtraction(
            key_topics=self._extract_key_topics(user_messages, context.topic_importance_threshold),
            business_entities=self._extract_business_entities(user_messages),
            conversation_flow=self._analyze_conversation_flow(user_messages),
            user_intents=self._extract_user_intents(user_messages),
            business_signals=self._extract_business_signals(user_messages),
            engagement_indicators=self._extract_engagement_indicators(user_messages)
        )

    @staticmethod
    def generate_compressed_summary(extraction: SemanticExtraction, max_tokens: int) -> str:
        parts: List[str] = []
        if extraction.business_entities:
            parts.append(f"Business Context: {', '.join(extraction.business_entities)}")
        if extraction.key_topics:
            parts.append(f"Topics: {', '.join(extraction.key_topics)}")
        if extraction.user_intents:
            parts.append(f"User Intents: {' -> '.join(extraction.user_intents)}")
        if extraction.business_signals:
            parts.append(f"Qualification Signals: {', '.join(extraction.business_signals)}")
        if extraction.conversation_flow:
            parts.append(f"Flow: {extraction.conversation_flow}")
        if extraction.engagement_indicators:
            parts.append(f"Engagement: {', '.join(extraction.engagement_indicators)}")

        summary = " | ".join(parts)
        if math.ceil(len(summary) / CHARS_PER_TOKEN) > max_tokens:
            max_chars = max_tokens * CHARS_PER_TOKEN
            return summary[:max_chars - 3] + "..."
        return summary

    @staticmethod
    def _extract_key_topics(messages: Sequence[Message], threshold: int) -> List[str]:
        counts: Counter = Counter()
        for message in messages:
            content = message.content.lower()
            for topic, keywords in TOPIC_KEYWORDS.items():
                matches = sum(1 for keyword in keywords if keyword in content)
                if matches:
                    counts[topic] += matches

        ranked = sorted(
            (topic for topic, count in counts.items() if count >= threshold),
            key=lambda topic: counts[topic],
            reverse=True
        )
        return ranked[:MAX_TOPICS]

    @staticmethod
    def _extract_business_entities(messages: Sequence[Message]) -> List[str]:
        entities: List[str] = []
        for message in messages:
            for pattern in BUSINESS_ENTITY_PATTERNS:
                for match in pattern.finditer(message.content):
                    cleaned = match.group(0).strip()[:MAX_ENTITY_LENGTH]
                    if len(cleaned) > 2 and cleaned not in entities:
                        entities.append(cleaned)
        return entities[:MAX_ENTITIES]

    @staticmethod
    def _analyze_conversation_flow(messages: Sequence[Message]) -> str:
        if not messages:
            return "initial"

        scores: Counter = Counter()
        for message in messages:
            content = message.content.lower()
            for flow, indicators in FLOW_INDICATORS.items():
                matches = sum(1 for indicator in indicators if indicator in content)
                if matches:
                    scores[flow] += matches

        if not scores:
            return "discovery"
        # Counter.most_common keeps first-seen order for ties
        return scores.most_common(1)[0][0]

    @staticmethod
    def _extract_user_intents(messages: Sequence[Message]) -> List[str]:
        intents: List[str] = []
        for message in messages:
            content = message.content.lower()
            for intent, patterns in INTENT_PATTERNS.items():
                if intent not in intents and any(pattern in content for pattern in patterns):
                    intents.append(intent)
        return intents[:MAX_INTENTS]

    @staticmethod
    def _extract_business_signals(messages: Sequence[Message]) -> List[str]:
        signals: List[str] = []
        for message in messages:
            for signal, pattern in SIGNAL_PATTERNS.items():
                if signal not in signals and pattern.search(message.content):
                    signals.append(signal)
        return signals

    @staticmethod
    def _extract_engagement_indicators(messages: Sequence[Message]) -> List[str]:
        if not messages:
            return []

        indicators: List[str] = []
        average_length = sum(len(message.content) for message in messages) / len(messages)
        if average_length > 100:
            indicators.append("detailed_responses")
        if average_length < 20:
            indicators.append("brief_responses")

        if sum(1 for message in messages if "?" in message.content) > 2:
            indicators.append("high_inquiry")

        if any(marker in message.content.lower() for message in messages for marker in ENTHUSIASM_MARKERS):
            indicators.append("positive_sentiment")

        return indicators

    @staticmethod
    def _validate(messages: Sequence[Message], context: CompressionContext) -> None:
        if not messages:
            raise BusinessRuleViolationError(
                "Cannot compress empty message history",
                {"message_count": 0}
            )
        if context.preserve_recent_count < 1:
            raise BusinessRuleViolationError(
                "Must preserve at least 1 recent message",
                {"preserve_recent_count": context.preserve_recent_count}
            )
        if context.max_summary_tokens < MIN_SUMMARY_TOKENS:
            raise BusinessRuleViolationError(
                "Summary token limit too low for meaningful compression",
                {"max_summary_tokens": context.max_summary_tokens}
            )
