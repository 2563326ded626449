"""
Token budget allocation for context modules.

Modules are picked greedily by priority, not by cost-efficiency: a
high-priority, token-expensive module may crowd out several cheaper ones.
Very early conversations use a separate minimal strategy that only admits
essential module types.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from context_engine.config import BudgetConfig, get_budget_config
from context_engine.exceptions import BusinessRuleViolationError
from context_engine.models.chat_models import Message
from context_engine.models.context_module_models import (
    BudgetValidationResult,
    ContextModule,
    ContextModuleType,
    ContextSelectionCriteria,
    EntityData,
    ModulePriority,
    RecommendedTokenBudget,
    TokenBudgetAllocation,
)
from context_engine.utils.logging_config import get_logger

ESSENTIAL_MODULE_TYPES = (
    ContextModuleType.USER_PROFILE,
    ContextModuleType.CONVERSATION_PHASE,
    ContextModuleType.BUSINESS_HOURS,
)

MODULE_CATEGORIES: Dict[ContextModuleType, str] = {
    ContextModuleType.USER_PROFILE: "core_persona",
    ContextModuleType.CONVERSATION_PHASE: "core_persona",
    ContextModuleType.COMPANY_CONTEXT: "high_priority_context",
    ContextModuleType.KNOWLEDGE_BASE: "high_priority_context",
    ContextModuleType.LEAD_SCORING: "progression_modules",
    ContextModuleType.INDUSTRY_SPECIFIC: "progression_modules",
    ContextModuleType.CONVERSATION_HISTORY: "real_time_context",
    ContextModuleType.BUSINESS_HOURS: "real_time_context",
    ContextModuleType.ENGAGEMENT_OPTIMIZATION: "real_time_context",
}


def _fill_greedily(modules: Sequence[ContextModule], available_tokens: int) -> List[ContextModule]:
    selected: List[ContextModule] = []
    used_tokens = 0
    for module in modules:
        if used_tokens + module.estimated_tokens <= available_tokens:
            selected.append(module)
            used_tokens += module.estimated_tokens
    return selected


class GreedyPriorityStrategy:
    """Accepts modules in priority order while they fit; overflowing ones are skipped."""

    name = "greedy_priority"

    def select(self, ranked: Sequence[ContextModule], available_tokens: int) -> List[ContextModule]:
        return _fill_greedily(ranked, available_tokens)


class EarlyConversationStrategy:
    """Admits only essential module types, greedily within budget."""

    name = "early_conversation"

    def __init__(self, essential_types: Sequence[ContextModuleType] = ESSENTIAL_MODULE_TYPES):
        self.essential_types = tuple(essential_types)

    def select(self, ranked: Sequence[ContextModule], available_tokens: int) -> List[ContextModule]:
        essential = [module for module in ranked if module.type in self.essential_types]
        return _fill_greedily(essential, available_tokens)


class TokenBudgetAllocator:
    """Selects context modules within a token budget."""

    def __init__(self, config: Optional[BudgetConfig] = None):
        self.config = config or get_budget_config()
        self.greedy_strategy = GreedyPriorityStrategy()
        self.early_strategy = EarlyConversationStrategy()
        self.logger = get_logger("token_budget_allocator")

    def is_early_conversation(self, message_count: int) -> bool:
        return message_count <= self.config.early_conversation_threshold

    @staticmethod
    def rank(modules: Sequence[ContextModule]) -> List[ContextModule]:
        """Highest adjusted (or base) priority first; ties keep input order."""
        return sorted(modules, key=lambda module: module.effective_priority, reverse=True)

    def select_modules_within_budget(
        self,
        modules: Sequence[ContextModule],
        available_tokens: int,
        criteria: Optional[ContextSelectionCriteria]
    ) -> Tuple[List[ContextModule], TokenBudgetAllocation]:
        """
        Pick modules that fit the budget.

        Returns:
            Tuple of the selected modules (in priority order) and the
            allocation breakdown

        Raises:
            BusinessRuleViolationError: If criteria are missing or the budget
                is negative
        """
        if criteria is None:
            raise BusinessRuleViolationError(
                "Selection criteria are required for module allocation",
                {"module_count": len(modules)}
            )
        if available_tokens < 0:
            raise BusinessRuleViolationError(
                "Available tokens cannot be negative",
                {"available_tokens": available_tokens, "module_count": len(modules)}
            )

        ranked = self.rank(modules)
        if self.is_early_conversation(criteria.message_count):
            strategy = self.early_strategy
        else:
            strategy = self.greedy_strategy

        selected = strategy.select(ranked, available_tokens)
        allocation = self.calculate_token_allocation(selected, available_tokens, candidates=ranked)

        self.logger.debug(
            f"Module allocation ({strategy.name}): {allocation.total_used}/{available_tokens} tokens, "
            f"included={allocation.included}, excluded={allocation.excluded}"
        )
        return selected, allocation

    @staticmethod
    def calculate_token_allocation(
        selected: Sequence[ContextModule],
        total_available: int,
        candidates: Optional[Sequence[ContextModule]] = None
    ) -> TokenBudgetAllocation:
        """Break down used tokens per module category."""
        totals = {
            "core_persona": 0,
            "high_priority_context": 0,
            "progression_modules": 0,
            "real_time_context": 0,
        }
        total_used = 0
        for module in selected:
            total_used += module.estimated_tokens
            category = MODULE_CATEGORIES.get(module.type)
            if category:
                totals[category] += module.estimated_tokens

        selected_ids = {id(module) for module in selected}
        excluded = [module.name for module in candidates or [] if id(module) not in selected_ids]

        return TokenBudgetAllocation(
            total_available=total_available,
            total_used=total_used,
            included=[module.name for module in selected],
            excluded=excluded,
            **totals
        )

    def validate_token_budget(
        self,
        selected: Sequence[ContextModule],
        available_tokens: int,
        min_required_tokens: Optional[int] = None
    ) -> BudgetValidationResult:
        """Check a selection against the budget and essential module rules."""
        minimum = self.config.min_required_tokens if min_required_tokens is None else min_required_tokens
        violations: List[str] = []
        recommendations: List[str] = []

        total_used = sum(module.estimated_tokens for module in selected)
        if total_used > available_tokens:
            violations.append(f"Token usage ({total_used}) exceeds budget ({available_tokens})")
            recommendations.append("Remove lower-priority modules or increase token budget")

        if total_used < minimum:
            recommendations.append("Consider adding more context modules for better responses")

        types = {module.type for module in selected}
        if ContextModuleType.USER_PROFILE not in types and ContextModuleType.CONVERSATION_PHASE not in types:
            violations.append("Missing essential context modules")
            recommendations.append("Include at least user profile or conversation phase context")

        return BudgetValidationResult(
            is_valid=not violations,
            violations=violations,
            recommendations=recommendations
        )

    def optimize_token_allocation(
        self,
        modules: Sequence[ContextModule],
        available_tokens: int,
        criteria: ContextSelectionCriteria
    ) -> List[ContextModule]:
        """Greedy selection ordered by value-to-token ratio instead of priority."""
        ordered = sorted(
            modules,
            key=lambda module: self.value_to_token_ratio(module, criteria),
            reverse=True
        )
        return _fill_greedily(ordered, available_tokens)

    @staticmethod
    def value_to_token_ratio(module: ContextModule, criteria: ContextSelectionCriteria) -> float:
        value = module.relevance_score
        if module.type == ContextModuleType.USER_PROFILE and criteria.entity_data is not None:
            value *= 1.2
        if module.type == ContextModuleType.LEAD_SCORING and criteria.lead_score and criteria.lead_score > 70:
            value *= 1.3
        if module.type == ContextModuleType.KNOWLEDGE_BASE and criteria.message_count <= 3:
            value *= 1.1
        return value / max(module.estimated_tokens, 1)

    @staticmethod
    def calculate_priority_scores(
        history: Sequence[Message],
        entity_data: Optional[EntityData] = None,
        lead_score: Optional[float] = None
    ) -> ModulePriority:
        """Category priorities; greetings get minimal context."""
        if len(history) <= 2:
            return ModulePriority(
                core_persona=1.0,
                high_priority_context=0.2,
                progression_modules=0.1,
                real_time_context=0.5
            )

        has_complex_entities = entity_data is not None and entity_data.populated_count() > 3
        is_high_value_lead = bool(lead_score and lead_score > 60)
        depth = min(len(history) / 10, 1.0)

        return ModulePriority(
            core_persona=1.0,
            high_priority_context=0.9 if has_complex_entities else 0.4,
            progression_modules=0.8 if is_high_value_lead else 0.3,
            real_time_context=0.6 + depth * 0.3
        )

    def get_recommended_token_budget(self, criteria: ContextSelectionCriteria) -> RecommendedTokenBudget:
        reasoning: List[str] = []
        recommended = self.config.module_token_budget

        if criteria.message_count <= 2:
            recommended = 800
            reasoning.append("Early conversation - minimal context needed")
        elif criteria.message_count > 10:
            recommended = 2000
            reasoning.append("Extended conversation - comprehensive context valuable")

        if criteria.lead_score and criteria.lead_score > 70:
            recommended += 300
            reasoning.append("High-value lead - enhanced context justified")

        if criteria.entity_data is not None and criteria.entity_data.populated_count() > 3:
            recommended += 200
            reasoning.append("Complex entity data - additional context valuable")

        return RecommendedTokenBudget(
            recommended=recommended,
            minimum=max(500, recommended * 0.6),
            maximum=recommended * 1.5,
            reasoning=reasoning
        )
