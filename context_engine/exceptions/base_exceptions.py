"""
Custom exception hierarchy for the context engine.

Validation and business-rule errors are raised immediately and carry a
structured context payload for diagnostics. Dependency errors wrap failures
of external collaborators and are normally caught at the call site.
"""

from typing import Any, Dict, Optional


class ContextEngineException(Exception):
    """Base exception for the context engine."""

    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        super().__init__(self.message)


class ValidationError(ContextEngineException):
    """Raised when input validation fails."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR")
        self.context = context or {}


class BusinessRuleViolationError(ValidationError):
    """Raised when an input breaks a domain rule (empty history, bad limits)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.error_code = "BUSINESS_RULE_VIOLATION"

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} {self.context}"


class ConfigurationError(ContextEngineException):
    """Raised when configuration is invalid or missing."""
    pass


class DependencyError(ContextEngineException):
    """Raised when an external collaborator (counter, classifier, search) fails."""

    def __init__(
        self,
        message: str,
        original_error: Exception = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, "DEPENDENCY_ERROR")
        self.original_error = original_error
        self.context = context or {}
