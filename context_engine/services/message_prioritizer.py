"""
Message prioritization.

Scores every message of a conversation, ranks them, buckets them into
priority tiers and recommends which messages to retain verbatim.
"""

from typing import List, Optional, Sequence

from context_engine.exceptions import BusinessRuleViolationError
from context_engine.models.chat_models import Message
from context_engine.models.relevance_models import (
    PrioritizedMessages,
    PriorityTier,
    RelevanceContext,
    RetentionRecommendation,
    ScoredMessage,
)
from context_engine.services.relevance_scorer import MessageRelevanceScorer
from context_engine.utils.logging_config import get_logger


class MessagePrioritizer:
    """Ranks conversation messages by relevance for context retention."""

    def __init__(self, scorer: Optional[MessageRelevanceScorer] = None):
        self.scorer = scorer or MessageRelevanceScorer()
        self.logger = get_logger("message_prioritizer")

    def prioritize(self, messages: Sequence[Message], context: RelevanceContext) -> PrioritizedMessages:
        """
        Score, rank and bucket messages.

        Messages are ranked by overall score, highest first; on equal scores
        the later message ranks first. Retained and compressed lists keep the
        original conversation order.

        Raises:
            BusinessRuleViolationError: On an empty message list or a
                non-positive retention limit
        """
        if not messages:
            raise BusinessRuleViolationError(
                "Cannot prioritize an empty message list",
                {"message_count": 0}
            )
        if context.max_retention_messages <= 0:
            raise BusinessRuleViolationError(
                "Maximum retention messages must be positive",
                {
                    "max_retention_messages": context.max_retention_messages,
                    "message_count": len(messages)
                }
            )

        total = len(messages)
        scored = [
            ScoredMessage(message=message, score=self.scorer.score(message, context, position, total), position=position)
            for position, message in enumerate(messages)
        ]
        ranked = self.rank(scored)

        buckets = {tier: [] for tier in PriorityTier}
        for item in ranked:
            buckets[item.score.tier].append(item.message)

        average = sum(item.score.overall for item in scored) / total
        retention = self._recommend_retention(ranked, context.max_retention_messages)

        self.logger.debug(
            f"Prioritized {total} messages: critical={len(buckets[PriorityTier.CRITICAL])}, "
            f"high={len(buckets[PriorityTier.HIGH])}, medium={len(buckets[PriorityTier.MEDIUM])}, "
            f"low={len(buckets[PriorityTier.LOW])}, average={average:.3f}"
        )

        return PrioritizedMessages(
            critical=buckets[PriorityTier.CRITICAL],
            high=buckets[PriorityTier.HIGH],
            medium=buckets[PriorityTier.MEDIUM],
            low=buckets[PriorityTier.LOW],
            average_relevance=average,
            retention=retention,
            scores=scored
        )

    @staticmethod
    def rank(scored: List[ScoredMessage]) -> List[ScoredMessage]:
        return sorted(scored, key=lambda item: (-item.score.overall, -item.position))

    @staticmethod
    def _recommend_retention(ranked: List[ScoredMessage], max_retention: int) -> RetentionRecommendation:
        chronological = sorted(ranked, key=lambda item: item.position)
        if len(ranked) <= max_retention:
            return RetentionRecommendation(
                should_compress=False,
                messages_to_retain=[item.message for item in chronological],
                messages_to_compress=[]
            )

        retained_positions = {item.position for item in ranked[:max_retention]}
        return RetentionRecommendation(
            should_compress=True,
            messages_to_retain=[item.message for item in chronological if item.position in retained_positions],
            messages_to_compress=[item.message for item in chronological if item.position not in retained_positions]
        )
