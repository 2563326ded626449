"""
Enhanced conversation analysis.

Enriches the basic context analysis with a classified intent and relevant
knowledge snippets. Both collaborators are optional and run concurrently;
a failure in either one leaves its field empty instead of failing the turn.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from context_engine.exceptions import DependencyExceptionMapper
from context_engine.models.chat_models import ContextAnalysis, Message
from context_engine.models.context_module_models import ChatbotProfile, SessionSnapshot
from context_engine.models.intent_models import IntentResult, KnowledgeItem
from context_engine.services.interfaces import IntentClassifier, KnowledgeSearch
from context_engine.utils.logging_config import get_logger, log_error_context

KNOWLEDGE_MAX_RESULTS = 5
KNOWLEDGE_MIN_RELEVANCE = 0.15
CLASSIFIER_CONTEXT_MESSAGES = 5
RECENT_USER_MESSAGES = 3


class ConversationEnhancedAnalysisService:
    """Adds intent and knowledge enrichment on top of a basic analysis."""

    def __init__(
        self,
        intent_classifier: Optional[IntentClassifier] = None,
        knowledge_search: Optional[KnowledgeSearch] = None
    ):
        self.intent_classifier = intent_classifier
        self.knowledge_search = knowledge_search
        self.logger = get_logger("enhanced_analysis")

    async def enhance_analysis(
        self,
        base_analysis: ContextAnalysis,
        messages: Sequence[Message],
        config: Optional[ChatbotProfile] = None,
        session: Optional[SessionSnapshot] = None
    ) -> ContextAnalysis:
        """
        Enrich the base analysis for the latest user message.

        Returns the base analysis unchanged when there is no user message.
        """
        user_messages = [message for message in messages if message.is_from_user()]
        if not user_messages:
            return base_analysis

        latest = user_messages[-1]
        intent_result, knowledge = await asyncio.gather(
            self._classify_intent(latest, messages, config, session),
            self._retrieve_knowledge(latest, user_messages, base_analysis, session)
        )

        return base_analysis.model_copy(
            update={
                "intent_result": intent_result,
                "relevant_knowledge": knowledge,
                "user_intent": intent_result.primary if intent_result else base_analysis.user_intent,
                "knowledge_retrieval_threshold": KNOWLEDGE_MIN_RELEVANCE
            }
        )

    async def _classify_intent(
        self,
        latest: Message,
        messages: Sequence[Message],
        config: Optional[ChatbotProfile],
        session: Optional[SessionSnapshot]
    ) -> Optional[IntentResult]:
        if self.intent_classifier is None or config is None or session is None:
            return None

        context = {
            "recent_messages": [message.content for message in messages[-CLASSIFIER_CONTEXT_MESSAGES:]],
            "chatbot_config": config,
            "session": session
        }
        try:
            return await self.intent_classifier.classify(latest.content, context)
        except Exception as e:
            error = DependencyExceptionMapper.map_dependency_exception(
                e, "intent_classifier", "Classifying intent", {"session_id": session.id}
            )
            log_error_context(self.logger, error, {"message_id": latest.id}, level=logging.WARNING)
            return None

    async def _retrieve_knowledge(
        self,
        latest: Message,
        user_messages: List[Message],
        base_analysis: ContextAnalysis,
        session: Optional[SessionSnapshot]
    ) -> Optional[List[KnowledgeItem]]:
        if self.knowledge_search is None:
            return None

        recent = [message.content for message in user_messages[-RECENT_USER_MESSAGES:]]
        try:
            items = await self.knowledge_search.search(latest.content, base_analysis.user_intent, recent)
        except Exception as e:
            error = DependencyExceptionMapper.map_dependency_exception(
                e,
                "knowledge_search",
                "Retrieving knowledge",
                {"query": latest.content[:100], "session_id": session.id if session else None}
            )
            log_error_context(self.logger, error, {"message_id": latest.id}, level=logging.WARNING)
            return None

        relevant = [item for item in items or [] if item.relevance_score >= KNOWLEDGE_MIN_RELEVANCE]
        relevant.sort(key=lambda item: item.relevance_score, reverse=True)
        self.logger.debug(f"Retrieved {len(relevant)} knowledge items for message {latest.id}")
        return relevant[:KNOWLEDGE_MAX_RESULTS]
