"""
Context module candidate generation.

Builds the candidate list of optional context modules for a turn. Each
candidate carries cheap metadata (priority, estimated tokens, relevance);
the content string is produced lazily and only materialized for modules
selected by the budget allocator.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from context_engine.models.chat_models import Message
from context_engine.models.context_module_models import (
    CONTEXT_PRIORITY_WEIGHTS,
    CONTEXT_TOKEN_ESTIMATES,
    DEFAULT_INDUSTRY_RELEVANCE,
    INDUSTRY_RELEVANCE_MAP,
    ChatbotProfile,
    ContextGenerationOptions,
    ContextModule,
    ContextModuleType,
    EntityData,
    KnowledgeBase,
    MaterializedModule,
    OperatingHours,
    SessionSnapshot,
)
from context_engine.utils.logging_config import get_logger

KNOWLEDGE_TOPIC_KEYWORDS = ("service", "price", "product")


def determine_phase(lead_score: Optional[float]) -> str:
    """Sales phase implied by the lead score alone."""
    if not lead_score:
        return "discovery"
    if lead_score >= 80:
        return "closing"
    if lead_score >= 60:
        return "demonstration"
    if lead_score >= 30:
        return "qualification"
    return "discovery"


def calculate_phase_relevance(lead_score: Optional[float], entity_data: Optional[EntityData]) -> float:
    relevance = 85.0
    if lead_score and lead_score >= 80:
        relevance = 100.0
    if entity_data is not None and entity_data.budget:
        relevance = max(relevance, 95.0)
    return relevance


def calculate_industry_relevance(industry: str) -> float:
    return float(INDUSTRY_RELEVANCE_MAP.get(industry.lower(), DEFAULT_INDUSTRY_RELEVANCE))


def _hour_of(time_text: str) -> Optional[int]:
    try:
        return int(time_text.split(":")[0])
    except ValueError:
        return None


def is_within_business_hours(operating_hours: Optional[OperatingHours], now: datetime) -> bool:
    """Whether ``now`` falls inside today's active opening hours."""
    if operating_hours is None or not operating_hours.business_hours:
        return False

    if now.tzinfo is not None:
        try:
            now = now.astimezone(ZoneInfo(operating_hours.timezone))
        except ZoneInfoNotFoundError:
            pass

    day_of_week = now.isoweekday() % 7  # 0 = Sunday
    today = next(
        (entry for entry in operating_hours.business_hours if entry.day_of_week == day_of_week and entry.is_active),
        None
    )
    if today is None:
        return False

    start_hour = _hour_of(today.start_time)
    end_hour = _hour_of(today.end_time)
    if start_hour is None or end_hour is None:
        return False
    return start_hour <= now.hour < end_hour


def _build_content(prefix: str, parts: Sequence[Optional[str]]) -> str:
    return f"{prefix}: {', '.join(part for part in parts if part)}"


class ContextModuleGenerator:
    """Generates candidate context modules from session and conversation data."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("context_module_generator")

    def generate_candidate_modules(
        self,
        session: SessionSnapshot,
        config: ChatbotProfile,
        history: Sequence[Message],
        entity_data: Optional[EntityData] = None,
        lead_score: Optional[float] = None,
        qualification_status: Optional[str] = None,
        options: Optional[ContextGenerationOptions] = None
    ) -> List[ContextModule]:
        """
        Build every candidate module whose gating condition holds.

        Args:
            session: Session topics, interests and engagement score
            config: Chatbot knowledge base and operating hours
            history: Conversation messages so far
            entity_data: Extracted business entities
            lead_score: Current lead score (0-100)
            qualification_status: Lead qualification label
            options: Inclusion switches; every module is enabled by default

        Returns:
            List[ContextModule]: Candidates with lazy content
        """
        opts = options or ContextGenerationOptions()
        modules: List[ContextModule] = []

        if opts.include_user_profile and entity_data is not None and entity_data.role:
            modules.append(self._user_profile_module(entity_data))

        if opts.include_company_context and entity_data is not None and entity_data.company:
            modules.append(self._company_context_module(entity_data))

        if opts.include_conversation_phase:
            phase = determine_phase(lead_score)
            score_suffix = f" (Score: {lead_score:g})" if lead_score else ""
            modules.append(ContextModule(
                type=ContextModuleType.CONVERSATION_PHASE,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.CONVERSATION_PHASE],
                estimated_tokens=CONTEXT_TOKEN_ESTIMATES[ContextModuleType.CONVERSATION_PHASE]["base"],
                relevance_score=calculate_phase_relevance(lead_score, entity_data),
                content=lambda: f"Conversation Phase: {phase}{score_suffix}"
            ))

        if opts.include_lead_scoring and lead_score and lead_score > 0:
            status = qualification_status or "unknown"
            modules.append(ContextModule(
                type=ContextModuleType.LEAD_SCORING,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.LEAD_SCORING],
                estimated_tokens=CONTEXT_TOKEN_ESTIMATES[ContextModuleType.LEAD_SCORING]["base"],
                relevance_score=min(float(lead_score), 100.0),
                content=lambda: f"Lead Score: {lead_score:g}/100 (Status: {status})"
            ))

        if opts.include_knowledge_base and self._should_include_knowledge_base(session, history):
            knowledge_base = config.knowledge_base
            modules.append(ContextModule(
                type=ContextModuleType.KNOWLEDGE_BASE,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.KNOWLEDGE_BASE],
                estimated_tokens=self.estimate_knowledge_base_tokens(knowledge_base),
                relevance_score=75.0,
                content=lambda: (
                    f"Knowledge Base: "
                    f"{'Available' if knowledge_base is not None and knowledge_base.company_info else 'Limited'}"
                )
            ))

        if opts.include_industry_specific and entity_data is not None and entity_data.industry:
            industry = entity_data.industry
            modules.append(ContextModule(
                type=ContextModuleType.INDUSTRY_SPECIFIC,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.INDUSTRY_SPECIFIC],
                estimated_tokens=CONTEXT_TOKEN_ESTIMATES[ContextModuleType.INDUSTRY_SPECIFIC]["base"],
                relevance_score=calculate_industry_relevance(industry),
                content=lambda: f"Industry Focus: {industry}"
            ))

        if opts.include_conversation_history and len(history) > 3:
            recent_topics = ", ".join(session.topics[-3:]) or "None"
            modules.append(ContextModule(
                type=ContextModuleType.CONVERSATION_HISTORY,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.CONVERSATION_HISTORY],
                estimated_tokens=self.estimate_history_tokens(session),
                relevance_score=60.0,
                content=lambda: f"Recent Topics: {recent_topics}"
            ))

        if opts.include_business_hours:
            operating_hours = config.operating_hours
            modules.append(ContextModule(
                type=ContextModuleType.BUSINESS_HOURS,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.BUSINESS_HOURS],
                estimated_tokens=CONTEXT_TOKEN_ESTIMATES[ContextModuleType.BUSINESS_HOURS]["base"],
                relevance_score=50.0,
                content=lambda: (
                    f"Business Hours: "
                    f"{'Open' if is_within_business_hours(operating_hours, self.clock()) else 'Closed'}"
                )
            ))

        if opts.include_engagement_optimization and session.engagement_score:
            score = session.engagement_score
            level = "High" if score > 7 else "Medium" if score > 4 else "Low"
            modules.append(ContextModule(
                type=ContextModuleType.ENGAGEMENT_OPTIMIZATION,
                priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.ENGAGEMENT_OPTIMIZATION],
                estimated_tokens=CONTEXT_TOKEN_ESTIMATES[ContextModuleType.ENGAGEMENT_OPTIMIZATION]["base"],
                relevance_score=min(score * 10, 100.0),
                content=lambda: f"Engagement Level: {level} ({score:g}/10)"
            ))

        self.logger.debug(
            f"Generated {len(modules)} candidate modules for session {session.id}: "
            f"{[module.name for module in modules]}"
        )
        return modules

    def materialize_content(self, modules: Sequence[ContextModule]) -> List[MaterializedModule]:
        """Evaluate the content of selected modules only."""
        return [
            MaterializedModule(
                type=module.type,
                name=module.name,
                estimated_tokens=module.estimated_tokens,
                content=module.content()
            )
            for module in modules
        ]

    def _user_profile_module(self, entity_data: EntityData) -> ContextModule:
        estimates = CONTEXT_TOKEN_ESTIMATES[ContextModuleType.USER_PROFILE]
        tokens = estimates["base"]
        if entity_data.role:
            tokens += estimates["with_role"]
        if entity_data.company:
            tokens += estimates["with_company"]
        if entity_data.team_size:
            tokens += estimates["with_team_size"]
        if entity_data.industry:
            tokens += estimates["with_industry"]

        relevance = 50.0
        if entity_data.role:
            relevance += 25
        if entity_data.company:
            relevance += 20

        return ContextModule(
            type=ContextModuleType.USER_PROFILE,
            priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.USER_PROFILE],
            estimated_tokens=tokens,
            relevance_score=min(relevance, 100.0),
            content=lambda: _build_content("User Profile", [
                entity_data.role and f"Role: {entity_data.role}",
                entity_data.company and f"Company: {entity_data.company}",
                entity_data.team_size and f"Team Size: {entity_data.team_size}",
                entity_data.industry and f"Industry: {entity_data.industry}",
            ])
        )

    def _company_context_module(self, entity_data: EntityData) -> ContextModule:
        estimates = CONTEXT_TOKEN_ESTIMATES[ContextModuleType.COMPANY_CONTEXT]
        tokens = estimates["base"]
        if entity_data.industry:
            tokens += estimates["with_industry"]

        return ContextModule(
            type=ContextModuleType.COMPANY_CONTEXT,
            priority=CONTEXT_PRIORITY_WEIGHTS[ContextModuleType.COMPANY_CONTEXT],
            estimated_tokens=tokens,
            relevance_score=85.0 if entity_data.industry else 60.0,
            content=lambda: _build_content("Company Context", [
                f"Company: {entity_data.company}",
                entity_data.industry and f"Industry: {entity_data.industry}",
                entity_data.team_size and f"Size: {entity_data.team_size}",
            ])
        )

    @staticmethod
    def _should_include_knowledge_base(session: SessionSnapshot, history: Sequence[Message]) -> bool:
        needs_knowledge = any(
            keyword in topic.lower()
            for topic in session.topics
            for keyword in KNOWLEDGE_TOPIC_KEYWORDS
        )
        return needs_knowledge or len(history) <= 2

    @staticmethod
    def estimate_knowledge_base_tokens(knowledge_base: Optional[KnowledgeBase]) -> int:
        estimates = CONTEXT_TOKEN_ESTIMATES[ContextModuleType.KNOWLEDGE_BASE]
        tokens = estimates["base"]
        if knowledge_base is not None and knowledge_base.faqs:
            tokens += len(knowledge_base.faqs) * estimates["per_faq"]
        return min(tokens, estimates["max"])

    @staticmethod
    def estimate_history_tokens(session: SessionSnapshot) -> int:
        estimates = CONTEXT_TOKEN_ESTIMATES[ContextModuleType.CONVERSATION_HISTORY]
        topic_count = len(session.topics) + len(session.interests)
        return min(estimates["base"] + topic_count * estimates["per_topic"], estimates["max"])
