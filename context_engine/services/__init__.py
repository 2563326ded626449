# Services package

# Collaborator interfaces and adapters
from .interfaces import TokenCounter, IntentClassifier, KnowledgeSearch
from .token_counter import TiktokenTokenCounter, CharacterEstimateTokenCounter, estimate_tokens

# Context window services
from .relevance_scorer import MessageRelevanceScorer, tier_for_score
from .message_prioritizer import MessagePrioritizer
from .token_usage_analyzer import TokenUsageAnalyzer, extract_summary_text
from .compression_policy import CompressionPolicy, CompressionDecision
from .enhanced_analysis import ConversationEnhancedAnalysisService
from .context_window_manager import ContextWindowManager
from .conversation_compression import (
    ConversationCompressionService,
    CompressionContext,
    CompressionResult,
)

# Context module services
from .context_module_generator import ContextModuleGenerator
from .context_module_priority import ContextModulePriorityService
from .token_budget_allocator import (
    TokenBudgetAllocator,
    GreedyPriorityStrategy,
    EarlyConversationStrategy,
)

# Business context persistence
from .intent_persistence import IntentPersistenceService

__all__ = [
    # Interfaces and adapters
    "TokenCounter",
    "IntentClassifier",
    "KnowledgeSearch",
    "TiktokenTokenCounter",
    "CharacterEstimateTokenCounter",
    "estimate_tokens",
    # Context window services
    "MessageRelevanceScorer",
    "tier_for_score",
    "MessagePrioritizer",
    "TokenUsageAnalyzer",
    "extract_summary_text",
    "CompressionPolicy",
    "CompressionDecision",
    "ConversationEnhancedAnalysisService",
    "ContextWindowManager",
    "ConversationCompressionService",
    "CompressionContext",
    "CompressionResult",
    # Context module services
    "ContextModuleGenerator",
    "ContextModulePriorityService",
    "TokenBudgetAllocator",
    "GreedyPriorityStrategy",
    "EarlyConversationStrategy",
    # Business context persistence
    "IntentPersistenceService",
]
