"""
Configuration management for the context engine.

This module provides configuration classes for the context window, relevance
scoring, module budget allocation and logging, loadable from environment
variables with validation.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from context_engine.exceptions import ConfigurationError


@dataclass
class WindowConfig:
    """Configuration for the conversation context window."""
    max_tokens: int = 16000
    system_prompt_tokens: int = 800
    response_reserved_tokens: int = 3500
    summary_tokens: int = 300
    tokens_per_retained_message: int = 100
    min_messages_for_compression: int = 5
    token_cache_capacity: int = 100

    @classmethod
    def from_env(cls) -> "WindowConfig":
        """Create WindowConfig from environment variables."""
        return cls(
            max_tokens=int(os.getenv("CONTEXT_ENGINE_MAX_TOKENS", "16000")),
            system_prompt_tokens=int(os.getenv("CONTEXT_ENGINE_SYSTEM_PROMPT_TOKENS", "800")),
            response_reserved_tokens=int(os.getenv("CONTEXT_ENGINE_RESPONSE_RESERVED_TOKENS", "3500")),
            summary_tokens=int(os.getenv("CONTEXT_ENGINE_SUMMARY_TOKENS", "300")),
            tokens_per_retained_message=int(os.getenv("CONTEXT_ENGINE_TOKENS_PER_MESSAGE", "100")),
            min_messages_for_compression=int(os.getenv("CONTEXT_ENGINE_MIN_MESSAGES_FOR_COMPRESSION", "5")),
            token_cache_capacity=int(os.getenv("CONTEXT_ENGINE_TOKEN_CACHE_CAPACITY", "100"))
        )


@dataclass
class RelevanceConfig:
    """Weights used to combine relevance dimensions into one score."""
    recency_weight: float = 0.20
    entity_weight: float = 0.25
    intent_weight: float = 0.20
    business_weight: float = 0.25
    engagement_weight: float = 0.10
    recency_decay_rate: float = 3.0

    @classmethod
    def from_env(cls) -> "RelevanceConfig":
        """Create RelevanceConfig from environment variables."""
        return cls(
            recency_weight=float(os.getenv("CONTEXT_ENGINE_RECENCY_WEIGHT", "0.20")),
            entity_weight=float(os.getenv("CONTEXT_ENGINE_ENTITY_WEIGHT", "0.25")),
            intent_weight=float(os.getenv("CONTEXT_ENGINE_INTENT_WEIGHT", "0.20")),
            business_weight=float(os.getenv("CONTEXT_ENGINE_BUSINESS_WEIGHT", "0.25")),
            engagement_weight=float(os.getenv("CONTEXT_ENGINE_ENGAGEMENT_WEIGHT", "0.10")),
            recency_decay_rate=float(os.getenv("CONTEXT_ENGINE_RECENCY_DECAY_RATE", "3.0"))
        )

    @property
    def total_weight(self) -> float:
        return (
            self.recency_weight + self.entity_weight + self.intent_weight
            + self.business_weight + self.engagement_weight
        )


@dataclass
class BudgetConfig:
    """Configuration for context module budget allocation."""
    module_token_budget: int = 1500
    early_conversation_threshold: int = 2
    min_required_tokens: int = 500

    @classmethod
    def from_env(cls) -> "BudgetConfig":
        """Create BudgetConfig from environment variables."""
        return cls(
            module_token_budget=int(os.getenv("CONTEXT_ENGINE_MODULE_TOKEN_BUDGET", "1500")),
            early_conversation_threshold=int(os.getenv("CONTEXT_ENGINE_EARLY_CONVERSATION_THRESHOLD", "2")),
            min_required_tokens=int(os.getenv("CONTEXT_ENGINE_MIN_REQUIRED_TOKENS", "500"))
        )


@dataclass
class LoggingConfig:
    """Configuration for context engine logging."""
    log_level: str = "info"
    log_file: Optional[str] = None
    enable_console: bool = True

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create LoggingConfig from environment variables."""
        return cls(
            log_level=os.getenv("CONTEXT_ENGINE_LOG_LEVEL", "info"),
            log_file=os.getenv("CONTEXT_ENGINE_LOG_FILE") or None,
            enable_console=os.getenv("CONTEXT_ENGINE_LOG_CONSOLE", "true").lower() == "true"
        )


@dataclass
class ContextEngineConfig:
    """Main configuration class for the context engine."""
    window: WindowConfig = None
    relevance: RelevanceConfig = None
    budget: BudgetConfig = None
    logging: LoggingConfig = None

    def __post_init__(self):
        """Initialize nested configurations if not provided."""
        if self.window is None:
            self.window = WindowConfig()
        if self.relevance is None:
            self.relevance = RelevanceConfig()
        if self.budget is None:
            self.budget = BudgetConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

    @classmethod
    def from_env(cls) -> "ContextEngineConfig":
        """Create ContextEngineConfig from environment variables."""
        return cls(
            window=WindowConfig.from_env(),
            relevance=RelevanceConfig.from_env(),
            budget=BudgetConfig.from_env(),
            logging=LoggingConfig.from_env()
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging/debugging."""
        return {
            "window": {
                "max_tokens": self.window.max_tokens,
                "system_prompt_tokens": self.window.system_prompt_tokens,
                "response_reserved_tokens": self.window.response_reserved_tokens,
                "summary_tokens": self.window.summary_tokens,
                "tokens_per_retained_message": self.window.tokens_per_retained_message,
                "min_messages_for_compression": self.window.min_messages_for_compression,
                "token_cache_capacity": self.window.token_cache_capacity
            },
            "relevance": {
                "recency_weight": self.relevance.recency_weight,
                "entity_weight": self.relevance.entity_weight,
                "intent_weight": self.relevance.intent_weight,
                "business_weight": self.relevance.business_weight,
                "engagement_weight": self.relevance.engagement_weight,
                "recency_decay_rate": self.relevance.recency_decay_rate
            },
            "budget": {
                "module_token_budget": self.budget.module_token_budget,
                "early_conversation_threshold": self.budget.early_conversation_threshold,
                "min_required_tokens": self.budget.min_required_tokens
            },
            "logging": {
                "log_level": self.logging.log_level,
                "log_file": self.logging.log_file,
                "enable_console": self.logging.enable_console
            }
        }

    def validate(self) -> None:
        """Validate configuration settings."""
        if self.window.max_tokens <= 0:
            raise ConfigurationError("CONTEXT_ENGINE_MAX_TOKENS must be greater than 0")

        reserved = (
            self.window.system_prompt_tokens
            + self.window.response_reserved_tokens
            + self.window.summary_tokens
        )
        if reserved >= self.window.max_tokens:
            raise ConfigurationError(
                "System prompt, response reserve and summary tokens leave no room for messages"
            )

        if self.window.tokens_per_retained_message <= 0:
            raise ConfigurationError("CONTEXT_ENGINE_TOKENS_PER_MESSAGE must be greater than 0")

        if self.window.token_cache_capacity <= 0:
            raise ConfigurationError("CONTEXT_ENGINE_TOKEN_CACHE_CAPACITY must be greater than 0")

        if abs(self.relevance.total_weight - 1.0) > 1e-6:
            raise ConfigurationError("Relevance weights must sum to 1.0")

        if self.relevance.recency_decay_rate <= 0:
            raise ConfigurationError("CONTEXT_ENGINE_RECENCY_DECAY_RATE must be greater than 0")

        if self.budget.module_token_budget <= 0:
            raise ConfigurationError("CONTEXT_ENGINE_MODULE_TOKEN_BUDGET must be greater than 0")

        if self.logging.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigurationError(f"Unknown log level '{self.logging.log_level}'")


# Global configuration instance
_engine_config: Optional[ContextEngineConfig] = None


def get_engine_config() -> ContextEngineConfig:
    """
    Get the global context engine configuration instance.

    Returns:
        ContextEngineConfig: The configuration instance
    """
    global _engine_config
    if _engine_config is None:
        _engine_config = ContextEngineConfig.from_env()
        _engine_config.validate()
    return _engine_config


def reload_engine_config() -> ContextEngineConfig:
    """
    Reload the configuration from environment variables.

    Returns:
        ContextEngineConfig: The reloaded configuration instance
    """
    global _engine_config
    _engine_config = ContextEngineConfig.from_env()
    _engine_config.validate()
    return _engine_config


def get_window_config() -> WindowConfig:
    """Get the context window configuration."""
    return get_engine_config().window


def get_relevance_config() -> RelevanceConfig:
    """Get the relevance scoring configuration."""
    return get_engine_config().relevance


def get_budget_config() -> BudgetConfig:
    """Get the module budget configuration."""
    return get_engine_config().budget
