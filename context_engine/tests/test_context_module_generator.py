"""
Tests for context module candidate generation.
"""

from datetime import datetime, timezone

import pytest

from context_engine.models import (
    BusinessHoursEntry,
    ChatbotProfile,
    ContextGenerationOptions,
    ContextModuleType,
    EntityData,
    FrequentlyAskedQuestion,
    KnowledgeBase,
    OperatingHours,
    SessionSnapshot,
)
from context_engine.services.context_module_generator import (
    ContextModuleGenerator,
    calculate_industry_relevance,
    calculate_phase_relevance,
    determine_phase,
    is_within_business_hours,
)

# 2024-01-01 is a Monday
MONDAY_MORNING = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
MONDAY_NIGHT = datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)


@pytest.fixture(name="operating_hours")
def operating_hours_fixture():
    return OperatingHours(
        timezone="UTC",
        business_hours=[
            BusinessHoursEntry(day_of_week=day, start_time="09:00", end_time="17:00") for day in range(1, 6)
        ] + [BusinessHoursEntry(day_of_week=0, is_active=False)]
    )


@pytest.fixture(name="profile")
def profile_fixture(operating_hours):
    return ChatbotProfile(
        name="Sales bot",
        knowledge_base=KnowledgeBase(
            company_info="We build reporting software",
            faqs=[FrequentlyAskedQuestion(id=f"faq-{index}", question="q", answer="a") for index in range(3)]
        ),
        operating_hours=operating_hours
    )


@pytest.fixture(name="entities")
def entities_fixture():
    return EntityData(role="CTO", company="Acme", industry="Technology")


def _by_type(modules):
    return {module.type: module for module in modules}


class TestPhaseHelpers:
    """Test phase and relevance helpers."""

    @pytest.mark.parametrize("lead_score,phase", [
        (None, "discovery"),
        (0, "discovery"),
        (20, "discovery"),
        (30, "qualification"),
        (60, "demonstration"),
        (80, "closing"),
    ])
    def test_determine_phase(self, lead_score, phase):
        assert determine_phase(lead_score) == phase

    def test_phase_relevance(self):
        assert calculate_phase_relevance(None, None) == 85.0
        assert calculate_phase_relevance(85, None) == 100.0
        assert calculate_phase_relevance(10, EntityData(budget="$10k")) == 95.0

    def test_industry_relevance(self):
        assert calculate_industry_relevance("Technology") == 95.0
        assert calculate_industry_relevance("agriculture") == 75.0


class TestBusinessHours:
    """Test opening hours checks."""

    def test_open_during_hours(self, operating_hours):
        assert is_within_business_hours(operating_hours, MONDAY_MORNING) is True

    def test_closed_after_hours(self, operating_hours):
        assert is_within_business_hours(operating_hours, MONDAY_NIGHT) is False

    def test_closed_on_inactive_day(self, operating_hours):
        sunday = datetime(2024, 1, 7, 10, 0, tzinfo=timezone.utc)

        assert is_within_business_hours(operating_hours, sunday) is False

    def test_missing_hours(self):
        assert is_within_business_hours(None, MONDAY_MORNING) is False
        assert is_within_business_hours(OperatingHours(), MONDAY_MORNING) is False

    def test_converts_to_configured_timezone(self, operating_hours):
        new_york = operating_hours.model_copy(update={"timezone": "America/New_York"})

        # 10:00 UTC is 05:00 in New York
        assert is_within_business_hours(new_york, MONDAY_MORNING) is False
        assert is_within_business_hours(new_york, datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc)) is True

    def test_malformed_times_count_as_closed(self):
        broken = OperatingHours(business_hours=[BusinessHoursEntry(day_of_week=1, start_time="nine")])

        assert is_within_business_hours(broken, MONDAY_MORNING) is False


class TestGenerateCandidateModules:
    """Test candidate module generation."""

    def test_minimal_session(self, profile):
        generator = ContextModuleGenerator(clock=lambda: MONDAY_MORNING)

        modules = generator.generate_candidate_modules(SessionSnapshot(id="s1"), profile, [])

        assert [module.name for module in modules] == ["conversation_phase", "knowledge_base", "business_hours"]

    def test_full_session(self, profile, entities, make_conversation):
        generator = ContextModuleGenerator(clock=lambda: MONDAY_MORNING)
        session = SessionSnapshot(id="s1", topics=["product tour", "sso"], interests=["reports"], engagement_score=8)

        modules = generator.generate_candidate_modules(
            session, profile, make_conversation(["m"] * 5), entities, lead_score=85, qualification_status="qualified"
        )

        assert len(modules) == 9
        by_type = _by_type(modules)
        assert by_type[ContextModuleType.USER_PROFILE].estimated_tokens == 48
        assert by_type[ContextModuleType.COMPANY_CONTEXT].estimated_tokens == 45
        assert by_type[ContextModuleType.KNOWLEDGE_BASE].estimated_tokens == 175
        assert by_type[ContextModuleType.CONVERSATION_HISTORY].estimated_tokens == 70
        assert by_type[ContextModuleType.LEAD_SCORING].relevance_score == 85.0
        assert by_type[ContextModuleType.INDUSTRY_SPECIFIC].relevance_score == 95.0
        assert by_type[ContextModuleType.ENGAGEMENT_OPTIMIZATION].relevance_score == 80.0

    def test_module_content(self, profile, entities, make_conversation):
        generator = ContextModuleGenerator(clock=lambda: MONDAY_MORNING)
        session = SessionSnapshot(id="s1", topics=["a", "b", "c", "d"], engagement_score=5)

        by_type = _by_type(generator.generate_candidate_modules(
            session, profile, make_conversation(["m"] * 5), entities, lead_score=85, qualification_status="qualified"
        ))

        assert by_type[ContextModuleType.USER_PROFILE].content() == (
            "User Profile: Role: CTO, Company: Acme, Industry: Technology"
        )
        assert by_type[ContextModuleType.COMPANY_CONTEXT].content() == (
            "Company Context: Company: Acme, Industry: Technology"
        )
        assert by_type[ContextModuleType.CONVERSATION_PHASE].content() == "Conversation Phase: closing (Score: 85)"
        assert by_type[ContextModuleType.LEAD_SCORING].content() == "Lead Score: 85/100 (Status: qualified)"
        assert by_type[ContextModuleType.INDUSTRY_SPECIFIC].content() == "Industry Focus: Technology"
        assert by_type[ContextModuleType.CONVERSATION_HISTORY].content() == "Recent Topics: b, c, d"
        assert by_type[ContextModuleType.BUSINESS_HOURS].content() == "Business Hours: Open"
        assert by_type[ContextModuleType.ENGAGEMENT_OPTIMIZATION].content() == "Engagement Level: Medium (5/10)"

    def test_business_hours_content_uses_clock(self, profile):
        generator = ContextModuleGenerator(clock=lambda: MONDAY_NIGHT)

        by_type = _by_type(generator.generate_candidate_modules(SessionSnapshot(id="s1"), profile, []))

        assert by_type[ContextModuleType.BUSINESS_HOURS].content() == "Business Hours: Closed"

    def test_business_hours_content_with_malformed_times(self, profile):
        broken = OperatingHours(business_hours=[BusinessHoursEntry(day_of_week=1, end_time="late")])
        generator = ContextModuleGenerator(clock=lambda: MONDAY_MORNING)

        by_type = _by_type(generator.generate_candidate_modules(
            SessionSnapshot(id="s1"), profile.model_copy(update={"operating_hours": broken}), []
        ))

        assert by_type[ContextModuleType.BUSINESS_HOURS].content() == "Business Hours: Closed"

    def test_knowledge_base_limited_without_company_info(self):
        generator = ContextModuleGenerator()

        by_type = _by_type(generator.generate_candidate_modules(
            SessionSnapshot(id="s1"), ChatbotProfile(name="bot"), []
        ))

        assert by_type[ContextModuleType.KNOWLEDGE_BASE].content() == "Knowledge Base: Limited"
        assert by_type[ContextModuleType.KNOWLEDGE_BASE].estimated_tokens == 100

    def test_options_disable_modules(self, profile, entities):
        generator = ContextModuleGenerator(clock=lambda: MONDAY_MORNING)
        options = ContextGenerationOptions(include_business_hours=False, include_user_profile=False)

        modules = generator.generate_candidate_modules(
            SessionSnapshot(id="s1"), profile, [], entities, options=options
        )

        names = [module.name for module in modules]
        assert "business_hours" not in names
        assert "user_profile" not in names
        assert "company_context" in names

    def test_materialize_content(self, profile):
        generator = ContextModuleGenerator(clock=lambda: MONDAY_MORNING)
        modules = generator.generate_candidate_modules(SessionSnapshot(id="s1"), profile, [])

        materialized = generator.materialize_content(modules[:1])

        assert len(materialized) == 1
        assert materialized[0].name == "conversation_phase"
        assert materialized[0].content == "Conversation Phase: discovery"


class TestTokenEstimates:
    """Test token estimate helpers."""

    def test_knowledge_base_estimate_is_capped(self):
        knowledge_base = KnowledgeBase(
            faqs=[FrequentlyAskedQuestion(id=f"faq-{index}", question="q", answer="a") for index in range(30)]
        )

        assert ContextModuleGenerator.estimate_knowledge_base_tokens(knowledge_base) == 500
        assert ContextModuleGenerator.estimate_knowledge_base_tokens(None) == 100

    def test_history_estimate_is_capped(self):
        session = SessionSnapshot(id="s1", topics=[str(index) for index in range(30)])

        assert ContextModuleGenerator.estimate_history_tokens(session) == 200
