"""Structured logging configuration for stashsync.

Provides:
- structlog setup on top of the standard library
- Redaction of administrator secrets and store credentials
- Context-bound loggers
- Timed start/end events for session-level operations
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Optional

import structlog

REDACTED = "[REDACTED]"

# Event keys whose values must never reach a log sink
SENSITIVE_KEYS = frozenset({"secret", "api_key", "remote_api_key", "credential_hash"})


def redact_sensitive(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking sensitive event values."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Render events as JSON lines instead of console output
        include_timestamp: Add an ISO timestamp to every event
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )

    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_sensitive,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors.append(structlog.processors.StackInfoRenderer())
    processors.append(
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Get a logger, optionally bound to context such as an access code."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **context,
):
    """Log the start, outcome and duration of a session-level operation.

    Args:
        operation: Name of the operation
        logger: Logger to use (module default if omitted)
        **context: Context bound to both events

    Yields:
        Dict the caller fills with results; logged on completion

    Example:
        with log_operation("rotate_session", logger=logger, access_code=code) as op:
            op["new_code"] = await engine.create_session(secret)
    """
    log = (logger or get_logger(__name__)).bind(operation=operation, **context)
    log.info(f"{operation} started")

    result: dict = {"success": False, "error": None}
    started = time.perf_counter()
    try:
        yield result
    except Exception as e:
        result["error"] = str(e)
        result["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
        log.error(f"{operation} failed", **result)
        raise

    result["success"] = True
    result["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
    log.info(f"{operation} completed", **result)
