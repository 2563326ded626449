"""
Session business-context models.

The business context is an immutable snapshot: every turn produces a new
snapshot through ``model_copy`` and the caller persists it before the next
turn begins.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

# Sliding window size of the per-session intent sequence
INTENT_HISTORY_CAPACITY = 15


class ConversationMode(str, Enum):
    GREETING = "greeting"
    BUSINESS = "business"
    CASUAL = "casual"
    QUALIFICATION = "qualification"


class IntentHistoryEntry(BaseModel):
    """One classified intent observed on a given turn."""
    model_config = ConfigDict(frozen=True)

    turn: int = Field(..., ge=0)
    intent: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    message_id: str


class ContextFlags(BaseModel):
    """Sticky flags; once set they stay set for the rest of the session."""
    model_config = ConfigDict(frozen=True)

    product_interest_established: bool = False
    pricing_discussed: bool = False
    comparison_mode: bool = False
    company_inquiry_made: bool = False
    knowledge_base_needed: bool = False
    last_business_question_turn: int = 0


class SessionBusinessContext(BaseModel):
    """Business memory of one conversation session."""
    model_config = ConfigDict(frozen=True)

    business_context_established: bool = False
    last_business_intent: str = ""
    last_business_turn: int = 0
    current_conversation_mode: ConversationMode = ConversationMode.GREETING
    intent_sequence: List[IntentHistoryEntry] = Field(default_factory=list)
    context_flags: ContextFlags = Field(default_factory=ContextFlags)

    @property
    def current_turn(self) -> int:
        """Turn of the most recent intent entry, 0 when none recorded."""
        if not self.intent_sequence:
            return 0
        return self.intent_sequence[-1].turn

    @property
    def turns_since_last_business(self) -> int:
        return self.current_turn - self.last_business_turn
