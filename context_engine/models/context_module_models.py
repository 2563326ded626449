"""
Context module models.

A context module is an optional prompt fragment (user profile, lead score,
knowledge base availability, ...) carrying its own token cost, base priority
and relevance. Module metadata is cheap to compute for every candidate; the
content string is only built for modules that survive budget selection.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from context_engine.models.session_models import SessionBusinessContext


class ContextModuleType(str, Enum):
    """Fixed set of context module kinds."""
    USER_PROFILE = "user_profile"
    COMPANY_CONTEXT = "company_context"
    CONVERSATION_PHASE = "conversation_phase"
    LEAD_SCORING = "lead_scoring"
    KNOWLEDGE_BASE = "knowledge_base"
    INDUSTRY_SPECIFIC = "industry_specific"
    CONVERSATION_HISTORY = "conversation_history"
    BUSINESS_HOURS = "business_hours"
    ENGAGEMENT_OPTIMIZATION = "engagement_optimization"


# Base priority weights. The user profile carries the core persona weight so it
# always leads the greedy ordering.
CONTEXT_PRIORITY_WEIGHTS: Dict[ContextModuleType, float] = {
    ContextModuleType.USER_PROFILE: 1.0,
    ContextModuleType.CONVERSATION_PHASE: 0.95,
    ContextModuleType.KNOWLEDGE_BASE: 0.9,
    ContextModuleType.COMPANY_CONTEXT: 0.85,
    ContextModuleType.LEAD_SCORING: 0.8,
    ContextModuleType.CONVERSATION_HISTORY: 0.7,
    ContextModuleType.INDUSTRY_SPECIFIC: 0.6,
    ContextModuleType.ENGAGEMENT_OPTIMIZATION: 0.5,
    ContextModuleType.BUSINESS_HOURS: 0.4,
}

CONTEXT_TOKEN_ESTIMATES: Dict[ContextModuleType, Dict[str, int]] = {
    ContextModuleType.USER_PROFILE: {
        "base": 20, "with_role": 10, "with_company": 10, "with_team_size": 8, "with_industry": 8
    },
    ContextModuleType.COMPANY_CONTEXT: {"base": 30, "with_industry": 15},
    ContextModuleType.CONVERSATION_PHASE: {"base": 40},
    ContextModuleType.LEAD_SCORING: {"base": 50},
    ContextModuleType.KNOWLEDGE_BASE: {"base": 100, "per_faq": 25, "max": 500},
    ContextModuleType.INDUSTRY_SPECIFIC: {"base": 60},
    ContextModuleType.CONVERSATION_HISTORY: {"base": 40, "per_topic": 10, "max": 200},
    ContextModuleType.BUSINESS_HOURS: {"base": 20},
    ContextModuleType.ENGAGEMENT_OPTIMIZATION: {"base": 30},
}

INDUSTRY_RELEVANCE_MAP: Dict[str, int] = {
    "technology": 95,
    "healthcare": 90,
    "financial": 90,
    "manufacturing": 85,
    "retail": 80,
}
DEFAULT_INDUSTRY_RELEVANCE = 75


@dataclass
class ContextModule:
    """
    Candidate prompt fragment.

    ``content`` is a zero-argument callable; it is only evaluated when the
    module has been selected (see ``materialize_content``).
    """
    type: ContextModuleType
    priority: float
    estimated_tokens: int
    relevance_score: float
    content: Callable[[], str] = field(repr=False)
    adjusted_priority: Optional[float] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.name is None:
            self.name = self.type.value

    @property
    def effective_priority(self) -> float:
        """Adjusted priority when set and non-zero, otherwise the base priority."""
        return self.adjusted_priority or self.priority

    def with_adjusted_priority(self, adjusted_priority: float) -> "ContextModule":
        return replace(self, adjusted_priority=adjusted_priority)


@dataclass
class MaterializedModule:
    """A selected module with its rendered content."""
    type: ContextModuleType
    name: str
    estimated_tokens: int
    content: str


class EntityData(BaseModel):
    """Business entities extracted from the conversation."""
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    company: Optional[str] = None
    team_size: Optional[str] = None
    industry: Optional[str] = None
    budget: Optional[str] = None
    timeline: Optional[str] = None
    urgency: Optional[str] = None
    contact_method: Optional[str] = None

    def populated(self) -> Dict[str, Any]:
        """Entity values that are actually known, extra keys included."""
        return {key: value for key, value in self.model_dump().items() if value not in (None, "")}

    def populated_count(self) -> int:
        return len(self.populated())

    def as_string_map(self) -> Dict[str, str]:
        """Known entities as name -> string value, for relevance scoring."""
        return {key: str(value) for key, value in self.populated().items()}


class ContextGenerationOptions(BaseModel):
    """Inclusion switches for candidate module generation."""
    include_user_profile: bool = True
    include_company_context: bool = True
    include_conversation_phase: bool = True
    include_lead_scoring: bool = True
    include_knowledge_base: bool = True
    include_industry_specific: bool = True
    include_conversation_history: bool = True
    include_business_hours: bool = True
    include_engagement_optimization: bool = True


class ContextSelectionCriteria(BaseModel):
    """Inputs the allocator uses to pick a selection strategy."""
    message_count: int = Field(..., ge=0)
    lead_score: Optional[float] = None
    entity_data: Optional[EntityData] = None


class TokenBudgetAllocation(BaseModel):
    """Token allocation across module categories."""
    total_available: int
    total_used: int = 0
    core_persona: int = 0
    high_priority_context: int = 0
    progression_modules: int = 0
    real_time_context: int = 0
    included: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)


class ModulePriority(BaseModel):
    """Priority of each module category for the current conversation."""
    core_persona: float
    high_priority_context: float
    progression_modules: float
    real_time_context: float


class BudgetValidationResult(BaseModel):
    is_valid: bool
    violations: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class RecommendedTokenBudget(BaseModel):
    recommended: int
    minimum: float
    maximum: float
    reasoning: List[str] = Field(default_factory=list)


class ConversationPhase(BaseModel):
    """Detected sales phase with confidence and the signals behind it."""
    phase: str = "discovery"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    indicators: List[str] = Field(default_factory=list)


class ContextRelevanceFactors(BaseModel):
    """Relevance (0-100) of each module kind for the current session."""
    user_profile_relevance: float
    company_context_relevance: float
    phase_relevance: float
    knowledge_base_relevance: float
    industry_relevance: float
    history_relevance: float
    business_hours_relevance: float
    engagement_relevance: float


class FrequentlyAskedQuestion(BaseModel):
    id: str
    question: str
    answer: str
    category: Optional[str] = None
    is_active: bool = True


class KnowledgeBase(BaseModel):
    company_info: str = ""
    faqs: List[FrequentlyAskedQuestion] = Field(default_factory=list)


class BusinessHoursEntry(BaseModel):
    """Opening hours for one weekday (0 = Sunday)."""
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = "09:00"
    end_time: str = "17:00"
    is_active: bool = True


class OperatingHours(BaseModel):
    timezone: str = "UTC"
    business_hours: List[BusinessHoursEntry] = Field(default_factory=list)


class ChatbotProfile(BaseModel):
    """The slice of chatbot configuration the engine reads."""
    name: str
    knowledge_base: Optional[KnowledgeBase] = None
    operating_hours: Optional[OperatingHours] = None


class SessionSnapshot(BaseModel):
    """The slice of chat session state the engine reads."""
    id: str
    topics: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    engagement_score: Optional[float] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    business_context: Optional[SessionBusinessContext] = None
