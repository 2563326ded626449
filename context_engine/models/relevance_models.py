"""
Relevance scoring and token analysis models.

Relevance scores are derived per (message, turn) and never persisted.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from context_engine.models.chat_models import Message
from context_engine.models.intent_models import IntentResult


class PriorityTier(str, Enum):
    """Retention priority derived from the overall relevance score."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher rank means more important."""
        return _TIER_RANKS[self]


_TIER_RANKS = {
    PriorityTier.CRITICAL: 3,
    PriorityTier.HIGH: 2,
    PriorityTier.MEDIUM: 1,
    PriorityTier.LOW: 0,
}


class RelevanceScore(BaseModel):
    """Five component scores, their weighted combination and a tier."""
    model_config = ConfigDict(frozen=True)

    recency: float = Field(..., ge=0.0, le=1.0)
    entity_relevance: float = Field(..., ge=0.0, le=1.0)
    intent_alignment: float = Field(..., ge=0.0, le=1.0)
    business_context: float = Field(..., ge=0.0, le=1.0)
    engagement: float = Field(..., ge=0.0, le=1.0)
    overall: float = Field(..., ge=0.0, le=1.0)
    tier: PriorityTier
    reasons: List[str] = Field(default_factory=list)


class RelevanceContext(BaseModel):
    """Per-turn inputs to relevance scoring, built fresh from session state."""
    current_intent: IntentResult = Field(default_factory=IntentResult.unknown)
    business_entities: Dict[str, Any] = Field(default_factory=dict)
    conversation_phase: str = "discovery"
    lead_score: float = 0.0
    max_retention_messages: int = 20


class ScoredMessage(BaseModel):
    """A message with its score and original position."""
    model_config = ConfigDict(frozen=True)

    message: Message
    score: RelevanceScore
    position: int


class RetentionRecommendation(BaseModel):
    """Which messages to keep verbatim and which may be compressed."""
    should_compress: bool
    messages_to_retain: List[Message] = Field(default_factory=list)
    messages_to_compress: List[Message] = Field(default_factory=list)


class PrioritizedMessages(BaseModel):
    """Messages bucketed by tier plus the retention recommendation."""
    critical: List[Message] = Field(default_factory=list)
    high: List[Message] = Field(default_factory=list)
    medium: List[Message] = Field(default_factory=list)
    low: List[Message] = Field(default_factory=list)
    average_relevance: float = 0.0
    retention: RetentionRecommendation
    scores: List[ScoredMessage] = Field(default_factory=list, description="Scores in conversation order")

    @property
    def bucketed_count(self) -> int:
        return len(self.critical) + len(self.high) + len(self.medium) + len(self.low)

    def tier_at(self, position: int) -> PriorityTier:
        return self.scores[position].score.tier

    def tier_of(self, message_id: str) -> Optional[PriorityTier]:
        """Tier of the most recent message with this id."""
        for item in reversed(self.scores):
            if item.message.id == message_id:
                return item.score.tier
        return None


class TokenAnalysisResult(BaseModel):
    """Token cost of the message window and any existing summary."""
    message_tokens: int = Field(default=0, ge=0)
    summary_tokens: int = Field(default=0, ge=0)
    summary_text: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.message_tokens + self.summary_tokens
