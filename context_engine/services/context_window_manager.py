"""
Context window manager.

Orchestrates relevance prioritization, token analysis and the compression
policy into one call that returns the messages to place in the prompt,
together with the basic and enhanced conversation analysis used for prompt
enrichment.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from context_engine.config import WindowConfig, get_window_config
from context_engine.exceptions import DependencyExceptionMapper
from context_engine.models.chat_models import (
    ApiAnalysisData,
    ContextAnalysis,
    ContextWindow,
    ContextWindowResult,
    ConversationSummary,
    Message,
    PromptMessage,
    TokenUsage,
)
from context_engine.models.context_module_models import ChatbotProfile, SessionSnapshot
from context_engine.models.intent_models import IntentResult
from context_engine.models.relevance_models import RelevanceContext
from context_engine.services.compression_policy import CompressionPolicy
from context_engine.services.enhanced_analysis import ConversationEnhancedAnalysisService
from context_engine.services.interfaces import IntentClassifier, KnowledgeSearch, TokenCounter
from context_engine.services.message_prioritizer import MessagePrioritizer
from context_engine.services.token_usage_analyzer import TokenUsageAnalyzer
from context_engine.utils.logging_config import get_logger, log_error_context

DEFAULT_CONVERSATION_PHASE = "discovery"


class ContextWindowManager:
    """
    Per-turn context window orchestration.

    Instances are meant to serve one conversation-processing context, since
    the token analyzer cache is held per instance.
    """

    def __init__(
        self,
        token_counter: TokenCounter,
        intent_classifier: Optional[IntentClassifier] = None,
        knowledge_search: Optional[KnowledgeSearch] = None,
        config: Optional[WindowConfig] = None,
        prioritizer: Optional[MessagePrioritizer] = None
    ):
        """
        Initialize the context window manager.

        Args:
            token_counter: Injected token counting capability
            intent_classifier: Optional classifier for enhanced analysis
            knowledge_search: Optional knowledge search for enhanced analysis
            config: Window configuration (defaults to the global config)
            prioritizer: Message prioritizer (defaults to a new one)
        """
        self.config = config or get_window_config()
        self.prioritizer = prioritizer or MessagePrioritizer()
        self.token_analyzer = TokenUsageAnalyzer(token_counter, self.config)
        self.compression_policy = CompressionPolicy(self.config)
        self.logger = get_logger("context_window_manager")

        self.enhanced_analysis_service: Optional[ConversationEnhancedAnalysisService] = None
        if intent_classifier is not None or knowledge_search is not None:
            self.enhanced_analysis_service = ConversationEnhancedAnalysisService(
                intent_classifier, knowledge_search
            )

    def max_retention_for(self, window: ContextWindow) -> int:
        """Available message tokens divided by the per-message proxy, at least 1."""
        return max(1, window.available_tokens_for_messages // self.config.tokens_per_retained_message)

    async def get_messages_for_context_window(
        self,
        messages: Sequence[Message],
        window: ContextWindow,
        existing_summary: Any = None,
        *,
        current_intent: Optional[IntentResult] = None,
        business_entities: Optional[Dict[str, Any]] = None,
        conversation_phase: Optional[str] = None,
        lead_score: Optional[float] = None
    ) -> ContextWindowResult:
        """
        Select the messages to keep verbatim for this turn.

        Args:
            messages: Full conversation history, oldest first
            window: Token layout of the model context window
            existing_summary: Prior summary, as text or a structured object
            current_intent: Classified intent of this turn, if known
            business_entities: Known business entities (name -> value)
            conversation_phase: Current conversation phase label
            lead_score: Current lead score

        Returns:
            ContextWindowResult: Final messages, summary text, token usage
            and whether compression happened
        """
        if not messages:
            return ContextWindowResult(
                messages=[],
                summary=None,
                token_usage=TokenUsage(message_tokens=0, summary_tokens=0, total_tokens=0),
                was_compressed=False
            )

        available_tokens = window.available_tokens_for_messages
        self.logger.debug(
            f"Context analysis: {len(messages)} messages, {window.max_tokens} max tokens, "
            f"{available_tokens} available for messages"
        )

        relevance_context = RelevanceContext(
            current_intent=current_intent or IntentResult.unknown(),
            business_entities=business_entities or {},
            conversation_phase=conversation_phase or DEFAULT_CONVERSATION_PHASE,
            lead_score=lead_score or 0.0,
            max_retention_messages=self.max_retention_for(window)
        )

        prioritized = self.prioritizer.prioritize(messages, relevance_context)
        analysis = await self.token_analyzer.analyze(messages, existing_summary)
        self.logger.debug(
            f"Token analysis: {analysis.message_tokens} msg + {analysis.summary_tokens} summary = "
            f"{analysis.total_tokens}/{available_tokens}"
        )

        decision = self.compression_policy.apply(messages, prioritized, analysis, available_tokens)

        if decision.was_compressed:
            final_message_tokens = await self.token_analyzer.count_message_tokens(decision.messages)
        else:
            final_message_tokens = analysis.message_tokens

        token_usage = TokenUsage(
            message_tokens=final_message_tokens,
            summary_tokens=analysis.summary_tokens,
            total_tokens=final_message_tokens + analysis.summary_tokens
        )

        self.logger.debug(
            f"Context window ready: {len(decision.messages)} messages, {token_usage.total_tokens} tokens, "
            f"compressed={decision.was_compressed}"
        )

        return ContextWindowResult(
            messages=[PromptMessage.from_message(message) for message in decision.messages],
            summary=analysis.summary_text,
            token_usage=token_usage,
            was_compressed=decision.was_compressed
        )

    def analyze_context(
        self,
        messages: Sequence[Message],
        session: Optional[SessionSnapshot] = None,
        api_analysis: Optional[ApiAnalysisData] = None
    ) -> ContextAnalysis:
        """Build the basic context analysis from upstream analysis data."""
        user_messages = [message for message in messages if message.is_from_user()]
        if not user_messages:
            return ContextAnalysis()

        topics = list(api_analysis.evaluation_criteria) if api_analysis else []
        interests = list(api_analysis.persona_evidence) if api_analysis else []
        urgency = api_analysis.urgency if api_analysis and api_analysis.urgency else "low"

        engagement_level = "low"
        if api_analysis and api_analysis.engagement_level:
            if api_analysis.engagement_level >= 8:
                engagement_level = "high"
            elif api_analysis.engagement_level >= 5:
                engagement_level = "medium"
        else:
            message_count = len(user_messages)
            topic_count = len(topics)
            if message_count >= 8 or (message_count >= 5 and topic_count >= 3):
                engagement_level = "high"
            elif message_count >= 4 or (message_count >= 2 and topic_count >= 2):
                engagement_level = "medium"

        return ContextAnalysis(
            topics=topics,
            interests=interests,
            sentiment="neutral",
            engagement_level=engagement_level,
            user_intent="unknown",
            urgency=urgency,
            conversation_stage=DEFAULT_CONVERSATION_PHASE
        )

    async def analyze_context_enhanced(
        self,
        messages: Sequence[Message],
        config: Optional[ChatbotProfile] = None,
        session: Optional[SessionSnapshot] = None
    ) -> ContextAnalysis:
        """
        Basic analysis enriched with intent and knowledge.

        Falls back to the basic analysis when enrichment is unavailable or fails.
        """
        base_analysis = self.analyze_context(messages, session)
        if self.enhanced_analysis_service is None:
            return base_analysis

        try:
            return await self.enhanced_analysis_service.enhance_analysis(
                base_analysis, messages, config, session
            )
        except Exception as e:
            error = DependencyExceptionMapper.handle_context_optimization_error(
                "enhanced_analysis", session.id if session else None, e
            )
            log_error_context(self.logger, error, {"message_count": len(messages)}, level=logging.WARNING)
            return self.analyze_context(messages, session)

    def generate_conversation_summary(
        self,
        messages: Sequence[Message],
        session: SessionSnapshot,
        api_analysis: Optional[ApiAnalysisData] = None
    ) -> ConversationSummary:
        """Summarize the conversation for downstream prompts and lead capture."""
        key_topics: List[str] = list(session.topics)
        if api_analysis and api_analysis.evaluation_criteria:
            key_topics = list(api_analysis.evaluation_criteria)

        return ConversationSummary(
            overview=self._create_overview(messages, session),
            key_topics=key_topics,
            user_needs=list(api_analysis.integration_needs) if api_analysis else [],
            pain_points=list(api_analysis.pain_points) if api_analysis else [],
            next_steps=(
                list(api_analysis.next_steps)
                if api_analysis and api_analysis.next_steps
                else ["Continue conversation"]
            ),
            qualification_status=(
                api_analysis.qualification_status
                if api_analysis and api_analysis.qualification_status
                else "unknown"
            )
        )

    @staticmethod
    def _create_overview(messages: Sequence[Message], session: SessionSnapshot) -> str:
        user_messages = [message for message in messages if message.is_from_user()]
        if not user_messages:
            return "No user interaction yet"

        contact = "Contact info captured. " if session.email or session.phone else ""
        topic_count = len(session.topics)
        topics = f"{topic_count} topics discussed." if topic_count > 0 else "Topics being explored."
        return (
            f"Active conversation with {len(user_messages)} user messages ({len(messages)} total). "
            f"{contact}{topics}"
        )
