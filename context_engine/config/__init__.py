# Configuration package for the context engine

from .engine_config import (
    ContextEngineConfig,
    WindowConfig,
    RelevanceConfig,
    BudgetConfig,
    LoggingConfig,
    get_engine_config,
    reload_engine_config,
    get_window_config,
    get_relevance_config,
    get_budget_config
)

__all__ = [
    "ContextEngineConfig",
    "WindowConfig",
    "RelevanceConfig",
    "BudgetConfig",
    "LoggingConfig",
    "get_engine_config",
    "reload_engine_config",
    "get_window_config",
    "get_relevance_config",
    "get_budget_config"
]
