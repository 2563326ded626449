"""
Message relevance scoring.

Each message is scored on five independent dimensions (recency, entity
relevance, intent alignment, business context and engagement), which are
combined into one weighted score and a retention priority tier.
"""

import math
import re
from typing import Any, Dict, List, Optional, Pattern, Tuple

from context_engine.config import RelevanceConfig, get_relevance_config
from context_engine.exceptions import BusinessRuleViolationError
from context_engine.models.chat_models import Message
from context_engine.models.relevance_models import PriorityTier, RelevanceContext, RelevanceScore
from context_engine.utils.logging_config import get_logger

CRITICAL_THRESHOLD = 0.8
HIGH_THRESHOLD = 0.6
MEDIUM_THRESHOLD = 0.4

ENTITY_WEIGHTS: Dict[str, float] = {
    "budget": 0.30,
    "company": 0.25,
    "role": 0.20,
    "timeline": 0.15,
    "team_size": 0.10,
    "industry": 0.10,
    "urgency": 0.05,
    "contact_method": 0.05,
}
MULTI_ENTITY_BONUS = 0.10

INTENT_KEYWORDS: Dict[str, List[str]] = {
    "pricing_inquiry": ["price", "pricing", "cost", "budget", "plan", "quote", "subscription"],
    "cost_inquiry": ["cost", "price", "fee", "budget", "expensive", "cheap", "afford"],
    "product_inquiry": ["product", "feature", "solution", "platform", "service", "offer"],
    "feature_inquiry": ["feature", "capability", "integration", "support", "functionality"],
    "company_inquiry": ["company", "team", "about", "founded", "mission", "history"],
    "business_inquiry": ["business", "partnership", "service", "company", "work with"],
    "comparison_inquiry": ["compare", "versus", "vs", "difference", "better", "alternative"],
    "competitor_inquiry": ["competitor", "alternative", "switch", "versus", "compare"],
    "demo_request": ["demo", "trial", "walkthrough", "show me", "presentation"],
    "support_request": ["help", "issue", "problem", "error", "support", "broken"],
    "qualification": ["budget", "timeline", "team", "decision", "requirements", "need"],
    "objection_handling": ["concern", "worried", "expensive", "risk", "not sure"],
    "closing": ["sign up", "purchase", "buy", "contract", "get started", "next step"],
    "faq_general": ["how", "what", "when", "where", "why"],
    "greeting": ["hello", "hi", "hey", "good morning", "good afternoon"],
}
INTENT_KEYWORD_WEIGHT = 0.2
HIGH_CONFIDENCE_THRESHOLD = 0.8
HIGH_CONFIDENCE_BONUS = 0.2

BUSINESS_PATTERNS: List[Tuple[str, Pattern[str], float]] = [
    ("budget", re.compile(r"\b(budget|cost|costs|price|pricing|spend|investment)\b|\$\s?\d", re.IGNORECASE), 0.30),
    ("authority", re.compile(
        r"\b(decision|decide|approve|approval|manager|director|ceo|cto|vp|head of|owner)\b", re.IGNORECASE
    ), 0.25),
    ("timeline", re.compile(
        r"\b(timeline|deadline|quarter|asap|urgent|urgently|soon|this month|next month|next week)\b",
        re.IGNORECASE
    ), 0.20),
    ("pain_point", re.compile(
        r"\b(problem|problems|issue|issues|challenge|challenges|struggl\w*|difficult|frustrat\w*|pain)\b",
        re.IGNORECASE
    ), 0.15),
    ("solution", re.compile(r"\b(solution|solutions|solve|fix|improve|automate)\b", re.IGNORECASE), 0.10),
    ("evaluation", re.compile(
        r"\b(compare|comparing|evaluat\w*|considering|alternatives?|options|demo|trial)\b", re.IGNORECASE
    ), 0.15),
]
QUALIFYING_PHASES = {"qualification", "evaluation"}

ENTHUSIASM_MARKERS = ["!", "great", "excellent", "perfect", "love", "amazing"]
INFORMATION_SHARING_PHRASES = [
    "we have", "our company", "i am", "i'm", "we are", "my team", "we use", "currently"
]


def _contains_phrase(text: str, phrase: str) -> bool:
    if not phrase[0].isalnum():
        return phrase in text
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def tier_for_score(score: float) -> PriorityTier:
    """Map an overall relevance score to its priority tier."""
    if score >= CRITICAL_THRESHOLD:
        return PriorityTier.CRITICAL
    if score >= HIGH_THRESHOLD:
        return PriorityTier.HIGH
    if score >= MEDIUM_THRESHOLD:
        return PriorityTier.MEDIUM
    return PriorityTier.LOW


class MessageRelevanceScorer:
    """
    Scores a single message against the per-turn relevance context.

    All component scores are clamped to [0, 1]; the overall score is a convex
    combination of them using the configured weights.
    """

    def __init__(self, config: Optional[RelevanceConfig] = None):
        self.config = config or get_relevance_config()
        self.logger = get_logger("relevance_scorer")

    def score(
        self,
        message: Optional[Message],
        context: Optional[RelevanceContext],
        position: int,
        total: int
    ) -> RelevanceScore:
        """
        Score one message.

        Args:
            message: The message to score
            context: Current intent, known entities, phase and lead score
            position: 0-based position of the message in the conversation
            total: Number of messages in the conversation

        Returns:
            RelevanceScore: Component scores, overall score and tier

        Raises:
            BusinessRuleViolationError: If message or context is missing
        """
        if message is None or context is None:
            raise BusinessRuleViolationError(
                "Message and relevance context are required for relevance scoring",
                {"message_id": message.id if message is not None else None, "position": position}
            )

        text = message.content.lower()
        reasons: List[str] = []

        recency = self.calculate_recency(position, total)
        entity_relevance, matched_entities = self.calculate_entity_relevance(text, context.business_entities)
        intent_alignment = self.calculate_intent_alignment(text, context)
        business_context, signals = self.calculate_business_context(text, context)
        engagement = self.calculate_engagement(message.content)

        weights = self.config
        overall = (
            weights.recency_weight * recency
            + weights.entity_weight * entity_relevance
            + weights.intent_weight * intent_alignment
            + weights.business_weight * business_context
            + weights.engagement_weight * engagement
        )
        total_weight = weights.total_weight
        if total_weight > 0:
            overall /= total_weight
        overall = min(max(overall, 0.0), 1.0)

        if recency >= 0.8:
            reasons.append("Recent message")
        if matched_entities:
            reasons.append(f"Mentions business entities: {', '.join(matched_entities)}")
        if intent_alignment >= 0.4:
            reasons.append(f"Aligned with current intent '{context.current_intent.primary}'")
        if signals:
            reasons.append(f"Business signals: {', '.join(signals)}")
        if engagement >= 0.6:
            reasons.append("High engagement")

        tier = tier_for_score(overall)
        self.logger.debug(
            f"Scored message {message.id}: overall={overall:.3f} tier={tier.value} "
            f"(recency={recency:.2f}, entity={entity_relevance:.2f}, intent={intent_alignment:.2f}, "
            f"business={business_context:.2f}, engagement={engagement:.2f})"
        )

        return RelevanceScore(
            recency=recency,
            entity_relevance=entity_relevance,
            intent_alignment=intent_alignment,
            business_context=business_context,
            engagement=engagement,
            overall=overall,
            tier=tier,
            reasons=reasons
        )

    def calculate_recency(self, position: int, total: int) -> float:
        """exp(-decay * distance / total); the most recent message scores 1.0."""
        if total <= 1:
            return 1.0
        distance = min(max(total - 1 - position, 0), total - 1)
        return min(1.0, math.exp(-self.config.recency_decay_rate * distance / total))

    def calculate_entity_relevance(
        self,
        text: str,
        business_entities: Dict[str, Any]
    ) -> Tuple[float, List[str]]:
        score = 0.0
        matched: List[str] = []
        for name, value in business_entities.items():
            if value is None:
                continue
            # numeric values such as team size match their printed form
            value_text = str(value).strip().lower()
            if not value_text:
                continue
            if value_text in text:
                score += ENTITY_WEIGHTS.get(name, 0.05)
                matched.append(name)

        if len(matched) > 1:
            score += MULTI_ENTITY_BONUS * (len(matched) - 1)

        return min(score, 1.0), matched

    def calculate_intent_alignment(self, text: str, context: RelevanceContext) -> float:
        intent = context.current_intent
        keywords = INTENT_KEYWORDS.get(intent.primary, [])
        matches = sum(1 for keyword in keywords if _contains_phrase(text, keyword))

        score = min(matches * INTENT_KEYWORD_WEIGHT, 1.0)
        if intent.confidence > HIGH_CONFIDENCE_THRESHOLD:
            score += HIGH_CONFIDENCE_BONUS
        return min(score, 1.0)

    def calculate_business_context(self, text: str, context: RelevanceContext) -> Tuple[float, List[str]]:
        score = 0.0
        signals: List[str] = []
        for name, pattern, weight in BUSINESS_PATTERNS:
            if pattern.search(text):
                score += weight
                signals.append(name)

        if context.lead_score > 60:
            score += 0.2
        elif context.lead_score > 40:
            score += 0.1

        if context.conversation_phase in QUALIFYING_PHASES:
            score += 0.15

        return min(score, 1.0), signals

    def calculate_engagement(self, content: str) -> float:
        score = 0.0
        length = len(content)
        if length > 100:
            score += 0.3
        elif length > 50:
            score += 0.2
        elif length > 20:
            score += 0.1

        score += min(content.count("?") * 0.1, 0.3)

        text = content.lower()
        if any(_contains_phrase(text, marker) for marker in ENTHUSIASM_MARKERS):
            score += 0.2
        if any(_contains_phrase(text, phrase) for phrase in INFORMATION_SHARING_PHRASES):
            score += 0.2

        return min(score, 1.0)
