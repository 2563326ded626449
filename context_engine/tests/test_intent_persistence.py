"""
Tests for business context persistence across conversation turns.
"""

import pytest

from context_engine.models import (
    INTENT_HISTORY_CAPACITY,
    ContextFlags,
    ConversationMode,
    IntentResult,
    SessionBusinessContext,
)
from context_engine.services.intent_persistence import IntentPersistenceService


@pytest.fixture(name="service")
def service_fixture():
    return IntentPersistenceService()


def _run_turns(service, intents):
    context = None
    for turn, intent in enumerate(intents, start=1):
        context = service.update_intent_history(
            context, IntentResult(primary=intent, confidence=0.8), f"msg-{turn}", turn
        )
    return context


class TestUpdateIntentHistory:
    """Test per-turn business context updates."""

    def test_first_pricing_inquiry(self, service, pricing_intent):
        context = service.update_intent_history(None, pricing_intent, "msg-1", 1)

        assert context.business_context_established is True
        assert context.last_business_intent == "pricing_inquiry"
        assert context.last_business_turn == 1
        assert context.current_conversation_mode == ConversationMode.BUSINESS
        assert context.context_flags.pricing_discussed is True
        assert context.context_flags.knowledge_base_needed is True
        assert len(context.intent_sequence) == 1
        assert context.intent_sequence[0].message_id == "msg-1"

    def test_greeting_only(self, service):
        context = _run_turns(service, ["greeting"])

        assert context.business_context_established is False
        assert context.current_conversation_mode == ConversationMode.GREETING
        assert context.context_flags == ContextFlags()

    def test_input_snapshot_is_not_modified(self, service, pricing_intent):
        original = SessionBusinessContext()

        service.update_intent_history(original, pricing_intent, "msg-1", 1)

        assert original.business_context_established is False
        assert original.intent_sequence == []

    def test_established_is_sticky(self, service):
        context = _run_turns(service, ["greeting", "product_inquiry", "greeting", "small_talk", "greeting"])

        assert context.business_context_established is True
        assert context.last_business_intent == "product_inquiry"
        assert context.last_business_turn == 2
        assert context.context_flags.product_interest_established is True

    def test_mode_after_business_turn(self, service):
        qualification = _run_turns(service, ["pricing_inquiry", "greeting"])
        casual = _run_turns(service, ["company_inquiry", "greeting"])

        assert qualification.current_conversation_mode == ConversationMode.QUALIFICATION
        assert casual.current_conversation_mode == ConversationMode.CASUAL

    def test_sequence_capped(self, service):
        context = _run_turns(service, ["greeting"] * (INTENT_HISTORY_CAPACITY + 5))

        assert len(context.intent_sequence) == INTENT_HISTORY_CAPACITY
        assert context.intent_sequence[0].turn == 6
        assert context.intent_sequence[-1].turn == INTENT_HISTORY_CAPACITY + 5

    def test_accepts_mapping_and_missing_intent(self, service):
        context = service.update_intent_history(None, {"primary": "comparison_inquiry", "confidence": 3}, "m1", 1)
        context = service.update_intent_history(context, None, "m2", 2)

        assert context.context_flags.comparison_mode is True
        assert context.intent_sequence[0].confidence == 1.0
        assert context.intent_sequence[1].intent == "unknown"
        assert context.business_context_established is True

    def test_company_inquiry_records_question_turn(self, service):
        context = _run_turns(service, ["greeting", "greeting", "business_inquiry"])

        assert context.context_flags.company_inquiry_made is True
        assert context.context_flags.last_business_question_turn == 3


class TestShouldInjectKnowledgeBase:
    """Test knowledge base injection decisions."""

    def test_no_context(self, service):
        assert service.should_inject_knowledge_base(None) is False

    def test_greeting_session(self, service):
        assert service.should_inject_knowledge_base(_run_turns(service, ["greeting"])) is False

    def test_recent_business_context(self, service):
        context = _run_turns(service, ["company_inquiry"] + ["greeting"] * 5)

        assert context.turns_since_last_business == 5
        assert service.should_inject_knowledge_base(context) is True

    def test_stale_casual_context(self, service):
        context = _run_turns(service, ["company_inquiry"] + ["greeting"] * 6)

        assert context.current_conversation_mode == ConversationMode.CASUAL
        assert service.should_inject_knowledge_base(context) is False

    def test_qualification_mode_keeps_injecting(self, service):
        context = _run_turns(service, ["pricing_inquiry"] + ["greeting"] * 10)

        assert context.current_conversation_mode == ConversationMode.QUALIFICATION
        assert service.should_inject_knowledge_base(context) is True


class TestBusinessContextStrength:
    """Test decaying business context strength."""

    def test_not_established(self, service):
        assert service.get_business_context_strength(None) == 0.0
        assert service.get_business_context_strength(_run_turns(service, ["greeting"])) == 0.0

    def test_fresh_business_turn(self, service):
        assert service.get_business_context_strength(_run_turns(service, ["pricing_inquiry"])) == 1.0

    def test_decay_with_floor(self, service):
        two_turns = _run_turns(service, ["pricing_inquiry", "greeting", "greeting"])
        many_turns = _run_turns(service, ["pricing_inquiry"] + ["greeting"] * 10)

        assert service.get_business_context_strength(two_turns) == pytest.approx(0.7)
        assert service.get_business_context_strength(many_turns) == pytest.approx(0.3)

    def test_repeat_business_bonus(self, service):
        context = _run_turns(service, ["pricing_inquiry", "product_inquiry", "greeting", "greeting"])

        assert service.get_business_context_strength(context) == pytest.approx(0.9)
