"""
Tests for intent and knowledge enrichment of the context analysis.
"""

from unittest.mock import AsyncMock

import pytest

from context_engine.models import (
    ChatbotProfile,
    ContextAnalysis,
    IntentResult,
    KnowledgeItem,
    MessageRole,
)
from context_engine.services.enhanced_analysis import ConversationEnhancedAnalysisService


@pytest.fixture(name="profile")
def profile_fixture():
    return ChatbotProfile(name="Sales bot")


@pytest.fixture(name="classifier")
def classifier_fixture():
    classifier = AsyncMock()
    classifier.classify.return_value = IntentResult(primary="product_inquiry", confidence=0.8)
    return classifier


@pytest.fixture(name="knowledge_search")
def knowledge_search_fixture():
    search = AsyncMock()
    search.search.return_value = [
        KnowledgeItem(id=f"k{index}", content=f"snippet {index}", relevance_score=score)
        for index, score in enumerate([0.1, 0.9, 0.15, 0.5, 0.6, 0.3, 0.7, 0.05])
    ]
    return search


class TestEnhanceAnalysis:
    """Test enrichment of a basic analysis."""

    @pytest.mark.asyncio
    async def test_no_user_messages_returns_base(self, classifier, knowledge_search, make_message,
                                                 profile, session_snapshot):
        service = ConversationEnhancedAnalysisService(classifier, knowledge_search)
        base = ContextAnalysis()

        result = await service.enhance_analysis(
            base, [make_message("Welcome!", MessageRole.BOT)], profile, session_snapshot
        )

        assert result is base
        classifier.classify.assert_not_called()
        knowledge_search.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_knowledge_filtered_sorted_and_capped(self, classifier, knowledge_search,
                                                        make_conversation, profile, session_snapshot):
        service = ConversationEnhancedAnalysisService(classifier, knowledge_search)

        result = await service.enhance_analysis(
            ContextAnalysis(), make_conversation(["Which products do you offer?"]), profile, session_snapshot
        )

        scores = [item.relevance_score for item in result.relevant_knowledge]
        assert scores == [0.9, 0.7, 0.6, 0.5, 0.3]
        assert result.knowledge_retrieval_threshold == 0.15

    @pytest.mark.asyncio
    async def test_intent_result_applied(self, classifier, make_conversation, profile, session_snapshot):
        service = ConversationEnhancedAnalysisService(intent_classifier=classifier)

        result = await service.enhance_analysis(
            ContextAnalysis(), make_conversation(["Which products do you offer?"]), profile, session_snapshot
        )

        assert result.user_intent == "product_inquiry"
        assert result.intent_result.confidence == 0.8
        assert result.relevant_knowledge is None
        text, context = classifier.classify.call_args.args
        assert text == "Which products do you offer?"
        assert context["session"] is session_snapshot

    @pytest.mark.asyncio
    async def test_classifier_needs_config_and_session(self, classifier, make_conversation):
        service = ConversationEnhancedAnalysisService(intent_classifier=classifier)

        result = await service.enhance_analysis(ContextAnalysis(), make_conversation(["Hi"]))

        assert result.intent_result is None
        classifier.classify.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_receives_recent_user_messages(self, knowledge_search, make_conversation):
        service = ConversationEnhancedAnalysisService(knowledge_search=knowledge_search)
        messages = make_conversation(["one", "a", "two", "b", "three", "c", "four"])

        await service.enhance_analysis(ContextAnalysis(), messages)

        query, intent, recent = knowledge_search.search.call_args.args
        assert query == "four"
        assert intent == "unknown"
        assert recent == ["two", "three", "four"]

    @pytest.mark.asyncio
    async def test_collaborator_failures_leave_fields_empty(self, make_conversation, profile, session_snapshot):
        classifier = AsyncMock()
        classifier.classify.side_effect = RuntimeError("classifier down")
        search = AsyncMock()
        search.search.side_effect = TimeoutError("search timeout")
        service = ConversationEnhancedAnalysisService(classifier, search)

        result = await service.enhance_analysis(
            ContextAnalysis(), make_conversation(["Pricing?"]), profile, session_snapshot
        )

        assert result.intent_result is None
        assert result.relevant_knowledge is None
        assert result.user_intent == "unknown"
