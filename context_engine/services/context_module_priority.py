"""
Context module priority adjustment.

Applies session-specific multipliers to candidate module priorities and
derives the conversation phase and per-module relevance factors.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from context_engine.models.chat_models import Message
from context_engine.models.context_module_models import (
    ContextModule,
    ContextModuleType,
    ContextRelevanceFactors,
    ConversationPhase,
    EntityData,
    OperatingHours,
    SessionSnapshot,
)
from context_engine.services.context_module_generator import (
    calculate_industry_relevance,
    calculate_phase_relevance,
    is_within_business_hours,
)
from context_engine.utils.logging_config import get_logger

KNOWLEDGE_NEED_KEYWORDS = ("service", "price", "product", "company", "help")
ENTERPRISE_TEAM_SIZE = "enterprise"


def needs_knowledge_base(history: Sequence[Message]) -> bool:
    """Whether any of the last three messages asks about the business."""
    return any(
        keyword in message.content.lower()
        for message in history[-3:]
        for keyword in KNOWLEDGE_NEED_KEYWORDS
    )


class ContextModulePriorityService:
    """Session-aware priority and relevance calculations for context modules."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("context_module_priority")

    def apply_session_multipliers(
        self,
        modules: Sequence[ContextModule],
        session: SessionSnapshot,
        history: Sequence[Message],
        entity_data: Optional[EntityData] = None,
        lead_score: Optional[float] = None
    ) -> List[ContextModule]:
        """
        Return copies of the modules with ``adjusted_priority`` set to
        priority * relevance / 100 * session multiplier.
        """
        adjusted = []
        for module in modules:
            multiplier = self.get_session_multiplier(module.type, history, entity_data, lead_score)
            adjusted_priority = module.priority * (module.relevance_score / 100) * multiplier
            adjusted.append(module.with_adjusted_priority(adjusted_priority))
            self.logger.debug(
                f"Module {module.name}: priority={module.priority} relevance={module.relevance_score} "
                f"multiplier={multiplier} adjusted={adjusted_priority:.3f}"
            )
        return adjusted

    @staticmethod
    def get_session_multiplier(
        module_type: ContextModuleType,
        history: Sequence[Message],
        entity_data: Optional[EntityData] = None,
        lead_score: Optional[float] = None
    ) -> float:
        if module_type == ContextModuleType.LEAD_SCORING:
            return 1.5 if lead_score and lead_score >= 70 else 1.0
        if module_type == ContextModuleType.COMPANY_CONTEXT:
            return 1.3 if entity_data is not None and entity_data.team_size == ENTERPRISE_TEAM_SIZE else 1.0
        if module_type == ContextModuleType.KNOWLEDGE_BASE:
            return 1.4 if needs_knowledge_base(history) else 1.0
        if module_type == ContextModuleType.CONVERSATION_HISTORY:
            return 1.2 if len(history) > 10 else 1.0
        if module_type == ContextModuleType.USER_PROFILE:
            return 1.2 if entity_data is not None and entity_data.populated_count() > 3 else 1.0
        if module_type == ContextModuleType.INDUSTRY_SPECIFIC:
            return 1.1 if entity_data is not None and entity_data.industry else 0.8
        return 1.0

    @staticmethod
    def determine_conversation_phase(
        lead_score: Optional[float] = None,
        entity_data: Optional[EntityData] = None,
        history: Optional[Sequence[Message]] = None
    ) -> ConversationPhase:
        """Phase from the lead score, with confidence and indicators."""
        if not lead_score:
            return ConversationPhase(
                phase="discovery",
                confidence=0.8,
                indicators=["no_lead_score", "initial_interaction"]
            )

        indicators: List[str] = []
        phase = "discovery"
        confidence = 0.7

        if lead_score >= 80:
            phase = "closing"
            confidence = 0.9
            indicators.extend(["high_lead_score", "qualified_prospect"])
        elif lead_score >= 60:
            phase = "demonstration"
            confidence = 0.85
            indicators.extend(["medium_lead_score", "interested_prospect"])
            if entity_data is not None and entity_data.budget:
                confidence = 0.9
                indicators.append("budget_information")
        elif lead_score >= 30:
            phase = "qualification"
            confidence = 0.8
            indicators.append("basic_qualification")

        if history is not None and len(history) > 5:
            confidence = min(confidence + 0.1, 1.0)
            indicators.append("extended_conversation")

        return ConversationPhase(phase=phase, confidence=confidence, indicators=indicators)

    def calculate_relevance_factors(
        self,
        session: SessionSnapshot,
        history: Sequence[Message],
        entity_data: Optional[EntityData] = None,
        lead_score: Optional[float] = None,
        operating_hours: Optional[OperatingHours] = None
    ) -> ContextRelevanceFactors:
        """Relevance (0-100) of every module kind for this session."""
        return ContextRelevanceFactors(
            user_profile_relevance=self._user_profile_relevance(entity_data),
            company_context_relevance=self._company_context_relevance(entity_data),
            phase_relevance=calculate_phase_relevance(lead_score, entity_data),
            knowledge_base_relevance=self._knowledge_base_relevance(history),
            industry_relevance=self._industry_relevance(entity_data.industry if entity_data else None),
            history_relevance=self._history_relevance(history),
            business_hours_relevance=self._business_hours_relevance(operating_hours),
            engagement_relevance=self._engagement_relevance(session.engagement_score)
        )

    @staticmethod
    def _user_profile_relevance(entity_data: Optional[EntityData]) -> float:
        if entity_data is None:
            return 20.0
        relevance = 50.0
        if entity_data.role:
            relevance += 25
        if entity_data.company:
            relevance += 20
        if entity_data.industry:
            relevance += 15
        return min(relevance, 100.0)

    @staticmethod
    def _company_context_relevance(entity_data: Optional[EntityData]) -> float:
        if entity_data is None or not entity_data.company:
            return 30.0
        relevance = 60.0
        if entity_data.industry:
            relevance += 25
        if entity_data.team_size:
            relevance += 15
        return min(relevance, 100.0)

    @staticmethod
    def _knowledge_base_relevance(history: Sequence[Message]) -> float:
        relevance = 60.0
        if needs_knowledge_base(history):
            relevance += 30
        if len(history) <= 2:
            relevance += 20
        return min(relevance, 100.0)

    @staticmethod
    def _industry_relevance(industry: Optional[str]) -> float:
        if not industry:
            return 40.0
        return calculate_industry_relevance(industry)

    @staticmethod
    def _history_relevance(history: Sequence[Message]) -> float:
        if len(history) <= 3:
            return 30.0
        return min(len(history) * 8.0, 100.0)

    def _business_hours_relevance(self, operating_hours: Optional[OperatingHours]) -> float:
        if operating_hours is None or not operating_hours.business_hours:
            return 40.0
        return 70.0 if is_within_business_hours(operating_hours, self.clock()) else 50.0

    @staticmethod
    def _engagement_relevance(engagement_score: Optional[float]) -> float:
        if not engagement_score:
            return 40.0
        return min(engagement_score * 10, 100.0)
