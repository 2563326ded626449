"""
Business context persistence across conversation turns.

Consumes one classified intent per turn and produces a new session business
context: a bounded intent history, sticky context flags, a sticky
"business context established" marker and the current conversation mode.
Business memory is never cleared within a session.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from context_engine.models.intent_models import UNKNOWN_INTENT, IntentResult
from context_engine.models.session_models import (
    INTENT_HISTORY_CAPACITY,
    ContextFlags,
    ConversationMode,
    IntentHistoryEntry,
    SessionBusinessContext,
)
from context_engine.utils.logging_config import get_logger

BUSINESS_INTENTS = frozenset({
    "company_inquiry",
    "business_inquiry",
    "product_inquiry",
    "feature_inquiry",
    "pricing_inquiry",
    "cost_inquiry",
    "comparison_inquiry",
    "competitor_inquiry",
    "faq_general",
})

PRODUCT_INTENTS = frozenset({"product_inquiry", "feature_inquiry"})
PRICING_INTENTS = frozenset({"pricing_inquiry", "cost_inquiry"})
COMPARISON_INTENTS = frozenset({"comparison_inquiry", "competitor_inquiry"})
COMPANY_INTENTS = frozenset({"company_inquiry", "business_inquiry"})

KNOWLEDGE_CARRY_OVER_TURNS = 5
STRENGTH_FLOOR = 0.3
STRENGTH_DECAY_PER_TURN = 0.15
REPEAT_BUSINESS_BONUS = 0.2

IntentData = Union[IntentResult, Mapping[str, Any], None]


def is_business_intent(intent: Optional[str]) -> bool:
    return intent in BUSINESS_INTENTS


def _intent_label(intent_data: IntentData) -> str:
    if intent_data is None:
        return UNKNOWN_INTENT
    if isinstance(intent_data, IntentResult):
        return intent_data.primary or UNKNOWN_INTENT
    return intent_data.get("primary") or UNKNOWN_INTENT


def _intent_confidence(intent_data: IntentData) -> float:
    if intent_data is None:
        return 0.0
    if isinstance(intent_data, IntentResult):
        return intent_data.confidence
    return min(max(float(intent_data.get("confidence") or 0.0), 0.0), 1.0)


class IntentPersistenceService:
    """State machine over the session business context."""

    def __init__(self):
        self.logger = get_logger("intent_persistence")

    def update_intent_history(
        self,
        session_context: Optional[SessionBusinessContext],
        intent_data: IntentData,
        message_id: str,
        turn_number: int
    ) -> SessionBusinessContext:
        """
        Apply one turn's intent and return the new business context.

        Args:
            session_context: Previous snapshot, or None on the first intent
            intent_data: Classified intent (IntentResult or a mapping with
                ``primary`` and ``confidence``)
            message_id: Originating message id
            turn_number: Turn number of the message

        Returns:
            SessionBusinessContext: New snapshot; the input is not modified
        """
        current = session_context or SessionBusinessContext()
        intent = _intent_label(intent_data)
        business = is_business_intent(intent)

        entry = IntentHistoryEntry(
            turn=turn_number,
            intent=intent,
            confidence=_intent_confidence(intent_data),
            timestamp=datetime.now(timezone.utc),
            message_id=message_id
        )
        sequence = [*current.intent_sequence, entry][-INTENT_HISTORY_CAPACITY:]

        flags = self.update_context_flags(current.context_flags, intent, turn_number)
        established = (
            current.business_context_established
            or business
            or flags.product_interest_established
            or flags.company_inquiry_made
        )
        mode = self.determine_conversation_mode(intent, flags, established)

        updated = current.model_copy(update={
            "business_context_established": established,
            "last_business_intent": intent if business else current.last_business_intent,
            "last_business_turn": turn_number if business else current.last_business_turn,
            "current_conversation_mode": mode,
            "intent_sequence": sequence,
            "context_flags": flags
        })

        self.logger.debug(
            f"Turn {turn_number}: intent={intent} mode={mode.value} "
            f"established={established} history={len(sequence)}"
        )
        return updated

    @staticmethod
    def update_context_flags(flags: ContextFlags, intent: str, turn_number: int) -> ContextFlags:
        """Flags only ever turn on."""
        changes = {}
        if intent in PRODUCT_INTENTS:
            changes.update(product_interest_established=True, knowledge_base_needed=True)
        if intent in PRICING_INTENTS:
            changes.update(pricing_discussed=True, knowledge_base_needed=True)
        if intent in COMPARISON_INTENTS:
            changes.update(comparison_mode=True, knowledge_base_needed=True)
        if intent in COMPANY_INTENTS:
            changes.update(
                company_inquiry_made=True,
                knowledge_base_needed=True,
                last_business_question_turn=turn_number
            )
        return flags.model_copy(update=changes) if changes else flags

    @staticmethod
    def determine_conversation_mode(intent: str, flags: ContextFlags, established: bool) -> ConversationMode:
        if is_business_intent(intent):
            return ConversationMode.BUSINESS
        if established and (flags.product_interest_established or flags.pricing_discussed):
            return ConversationMode.QUALIFICATION
        if established:
            return ConversationMode.CASUAL
        return ConversationMode.GREETING

    def should_inject_knowledge_base(self, session_context: Optional[SessionBusinessContext]) -> bool:
        """
        True while business context is recent (within five turns of the last
        business intent) or the conversation is in business/qualification mode.
        """
        if session_context is None:
            return False

        recent_business = (
            session_context.business_context_established
            and session_context.turns_since_last_business <= KNOWLEDGE_CARRY_OVER_TURNS
        )
        return recent_business or session_context.current_conversation_mode in (
            ConversationMode.BUSINESS,
            ConversationMode.QUALIFICATION,
        )

    def get_business_context_strength(self, session_context: Optional[SessionBusinessContext]) -> float:
        """Decaying weight of business context for prompt emphasis, in [0, 1]."""
        if session_context is None or not session_context.business_context_established:
            return 0.0

        turns_since = session_context.turns_since_last_business
        strength = max(STRENGTH_FLOOR, 1.0 - turns_since * STRENGTH_DECAY_PER_TURN)

        business_count = sum(1 for entry in session_context.intent_sequence if is_business_intent(entry.intent))
        if business_count >= 2:
            strength = min(1.0, strength + REPEAT_BUSINESS_BONUS)

        return min(strength, 1.0)
