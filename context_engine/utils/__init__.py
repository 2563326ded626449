# Utility helpers for the context engine

from .logging_config import get_logger, log_error_context, setup_logging

__all__ = [
    "get_logger",
    "log_error_context",
    "setup_logging",
]
