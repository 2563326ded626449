# Pydantic models package

from .intent_models import UNKNOWN_INTENT, IntentResult, KnowledgeItem
from .chat_models import (
    MessageRole,
    Message,
    ContextWindow,
    TokenUsage,
    PromptMessage,
    ContextWindowResult,
    ContextAnalysis,
    ConversationSummary,
    ApiAnalysisData,
)
from .relevance_models import (
    PriorityTier,
    RelevanceScore,
    RelevanceContext,
    ScoredMessage,
    RetentionRecommendation,
    PrioritizedMessages,
    TokenAnalysisResult,
)
from .session_models import (
    INTENT_HISTORY_CAPACITY,
    ConversationMode,
    IntentHistoryEntry,
    ContextFlags,
    SessionBusinessContext,
)
from .context_module_models import (
    ContextModuleType,
    ContextModule,
    MaterializedModule,
    EntityData,
    ContextGenerationOptions,
    ContextSelectionCriteria,
    TokenBudgetAllocation,
    ModulePriority,
    BudgetValidationResult,
    RecommendedTokenBudget,
    ConversationPhase,
    ContextRelevanceFactors,
    FrequentlyAskedQuestion,
    KnowledgeBase,
    BusinessHoursEntry,
    OperatingHours,
    ChatbotProfile,
    SessionSnapshot,
    CONTEXT_PRIORITY_WEIGHTS,
    CONTEXT_TOKEN_ESTIMATES,
    INDUSTRY_RELEVANCE_MAP,
    DEFAULT_INDUSTRY_RELEVANCE,
)

__all__ = [
    # Intent models
    "UNKNOWN_INTENT",
    "IntentResult",
    "KnowledgeItem",
    # Chat models
    "MessageRole",
    "Message",
    "ContextWindow",
    "TokenUsage",
    "PromptMessage",
    "ContextWindowResult",
    "ContextAnalysis",
    "ConversationSummary",
    "ApiAnalysisData",
    # Relevance models
    "PriorityTier",
    "RelevanceScore",
    "RelevanceContext",
    "ScoredMessage",
    "RetentionRecommendation",
    "PrioritizedMessages",
    "TokenAnalysisResult",
    # Session models
    "INTENT_HISTORY_CAPACITY",
    "ConversationMode",
    "IntentHistoryEntry",
    "ContextFlags",
    "SessionBusinessContext",
    # Context module models
    "ContextModuleType",
    "ContextModule",
    "MaterializedModule",
    "EntityData",
    "ContextGenerationOptions",
    "ContextSelectionCriteria",
    "TokenBudgetAllocation",
    "ModulePriority",
    "BudgetValidationResult",
    "RecommendedTokenBudget",
    "ConversationPhase",
    "ContextRelevanceFactors",
    "FrequentlyAskedQuestion",
    "KnowledgeBase",
    "BusinessHoursEntry",
    "OperatingHours",
    "ChatbotProfile",
    "SessionSnapshot",
    "CONTEXT_PRIORITY_WEIGHTS",
    "CONTEXT_TOKEN_ESTIMATES",
    "INDUSTRY_RELEVANCE_MAP",
    "DEFAULT_INDUSTRY_RELEVANCE",
]
