"""Utility modules for stashsync.

Provides:
- Structured logging configuration
"""

from .logging import configure_logging, get_logger, log_operation

__all__ = [
    "configure_logging",
    "get_logger",
    "log_operation",
]
