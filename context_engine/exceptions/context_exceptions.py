"""
Dependency and context-optimization exceptions for the context engine.

This module defines the errors raised around external collaborators (token
counter, intent classifier, knowledge search) and provides mapping from raw
collaborator exceptions, including LangChain ones, to the engine hierarchy.
"""

import functools
import inspect
from typing import Any, Dict, Optional

from langchain_core.exceptions import LangChainException

from .base_exceptions import ContextEngineException, DependencyError


class TokenCalculationError(DependencyError):
    """Token counter failures"""

    def __init__(self, message: str, original_error: Optional[Exception] = None,
                 message_count: Optional[int] = None, session_id: Optional[str] = None):
        context = {}
        if message_count is not None:
            context["message_count"] = message_count
        if session_id is not None:
            context["session_id"] = session_id

        super().__init__(message, original_error, context)
        self.error_code = "TOKEN_CALCULATION_ERROR"
        self.message_count = message_count


class IntentClassificationError(DependencyError):
    """Intent classifier failures"""

    def __init__(self, message: str, original_error: Optional[Exception] = None,
                 session_id: Optional[str] = None):
        context = {}
        if session_id is not None:
            context["session_id"] = session_id

        super().__init__(message, original_error, context)
        self.error_code = "INTENT_CLASSIFICATION_ERROR"
        self.session_id = session_id


class KnowledgeRetrievalError(DependencyError):
    """Knowledge search failures"""

    def __init__(self, message: str, original_error: Optional[Exception] = None,
                 query: Optional[str] = None, session_id: Optional[str] = None):
        context = {}
        if query:
            context["query"] = query[:100]
        if session_id is not None:
            context["session_id"] = session_id

        super().__init__(message, original_error, context)
        self.error_code = "KNOWLEDGE_RETRIEVAL_ERROR"
        self.query = query


class ContextOptimizationError(ContextEngineException):
    """Context window or module selection failures"""

    def __init__(self, message: str, original_error: Optional[Exception] = None,
                 session_id: Optional[str] = None, optimization_type: Optional[str] = None):
        super().__init__(message, "CONTEXT_OPTIMIZATION_ERROR")
        self.original_error = original_error
        self.session_id = session_id
        self.optimization_type = optimization_type
        self.context: Dict[str, Any] = {}
        if session_id is not None:
            self.context["session_id"] = session_id
        if optimization_type:
            self.context["optimization_type"] = optimization_type


class DependencyExceptionMapper:
    """
    Maps raw collaborator exceptions to context engine exceptions.

    Keeps callers independent of the concrete token counter, classifier or
    search backend in use.
    """

    @staticmethod
    def map_dependency_exception(
        original_error: Exception,
        dependency: str,
        context_message: str = "",
        additional_context: Optional[Dict[str, Any]] = None
    ) -> DependencyError:
        """
        Map an exception raised by a collaborator to an engine exception.

        Args:
            original_error: The exception raised by the collaborator
            dependency: Which collaborator failed ("token_counter",
                "intent_classifier" or "knowledge_search")
            context_message: Additional context about where the error occurred
            additional_context: Extra diagnostic fields

        Returns:
            DependencyError: Mapped exception with appropriate type and context
        """
        if isinstance(original_error, DependencyError):
            return original_error

        error_message = str(original_error)
        full_message = f"{context_message}: {error_message}" if context_message else error_message

        if dependency == "token_counter":
            error: DependencyError = TokenCalculationError(full_message, original_error)
        elif dependency == "intent_classifier":
            error = IntentClassificationError(full_message, original_error)
        elif dependency == "knowledge_search":
            error = KnowledgeRetrievalError(full_message, original_error)
        else:
            error = DependencyError(full_message, original_error)

        if isinstance(original_error, LangChainException):
            error.context["error_type"] = "langchain"
        elif any(term in error_message.lower() for term in ["rate", "quota", "limit", "throttle"]):
            error.context["error_type"] = "rate_limiting"
        elif any(term in error_message.lower() for term in ["network", "connection", "timeout", "unreachable"]):
            error.context["error_type"] = "connectivity"

        if additional_context:
            error.context.update(additional_context)

        return error

    @staticmethod
    def handle_context_optimization_error(
        optimization_type: str,
        session_id: Optional[str],
        original_error: Exception,
        additional_info: Optional[Dict[str, Any]] = None
    ) -> ContextOptimizationError:
        """
        Wrap an unexpected failure inside context optimization.

        Args:
            optimization_type: The stage that failed
            session_id: The session ID where the error occurred
            original_error: The original exception
            additional_info: Additional information about the error

        Returns:
            ContextOptimizationError: Detailed optimization error
        """
        if isinstance(original_error, ContextOptimizationError):
            return original_error

        message = f"Context optimization '{optimization_type}' failed"
        if session_id is not None:
            message += f" for session {session_id}"

        error = ContextOptimizationError(
            message,
            original_error,
            session_id=session_id,
            optimization_type=optimization_type
        )

        if additional_info:
            error.context.update(additional_info)

        return error


def handle_dependency_exception(dependency: str, func_name: Optional[str] = None):
    """
    Decorator mapping collaborator exceptions raised by an adapter method.

    Works for both coroutine functions and plain functions.

    Args:
        dependency: Collaborator name passed to the mapper
        func_name: Name used in the error message (defaults to the function name)

    Returns:
        Decorator function
    """
    def decorator(func):
        name = func_name or func.__name__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except ContextEngineException:
                    raise
                except Exception as e:
                    raise DependencyExceptionMapper.map_dependency_exception(
                        e, dependency, f"Error in {name}"
                    ) from e
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ContextEngineException:
                raise
            except Exception as e:
                raise DependencyExceptionMapper.map_dependency_exception(
                    e, dependency, f"Error in {name}"
                ) from e
        return wrapper
    return decorator
