"""
Exception handling package for the context engine.

Exposes the base hierarchy and the dependency/optimization errors raised
around external collaborators.
"""

from .base_exceptions import (
    ContextEngineException,
    ValidationError,
    BusinessRuleViolationError,
    ConfigurationError,
    DependencyError
)

from .context_exceptions import (
    TokenCalculationError,
    IntentClassificationError,
    KnowledgeRetrievalError,
    ContextOptimizationError,
    DependencyExceptionMapper,
    handle_dependency_exception
)

__all__ = [
    # Base exceptions
    "ContextEngineException",
    "ValidationError",
    "BusinessRuleViolationError",
    "ConfigurationError",
    "DependencyError",
    # Dependency and optimization exceptions
    "TokenCalculationError",
    "IntentClassificationError",
    "KnowledgeRetrievalError",
    "ContextOptimizationError",
    "DependencyExceptionMapper",
    "handle_dependency_exception"
]
