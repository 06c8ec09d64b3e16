"""Structured logging configuration for Quorum.

structlog handles event emission; the stdlib root logger only provides the
output handler (stdout or a rotating file). Request and session identifiers
travel in structlog's context variables, so any log line emitted while
serving a request or driving a session carries them.

Journal text (answers, board responses, bet wording) is personal, so by
default it never reaches the log output: the ``redact_journal_text``
processor replaces those fields with their length.

Example usage:
    >>> from quorum.config import LoggingConfig
    >>> from quorum.logging import setup_logging, get_logger, bind_session_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="console"))
    >>> logger = get_logger(__name__)
    >>> bind_session_context(session_id="8a1f...", session_type="setup")
    >>> logger.info("setup_problem_saved", index=0)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from typing import Any

import structlog

from quorum.config import LoggingConfig

JOURNAL_TEXT_FIELDS = frozenset(
    {"answer", "response", "prediction", "wrong_if", "rationale", "problem_name"}
)

# Libraries that log every request or statement at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

_REQUEST_KEYS = ("correlation_id",)
_SESSION_KEYS = ("session_id", "session_type")


def redact_journal_text(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace free-text journal fields with a length marker."""
    for key in JOURNAL_TEXT_FIELDS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str):
            event_dict[key] = f"<redacted {len(value)} chars>"
    return event_dict


def bind_request_context(correlation_id: str) -> None:
    """Attach a request's correlation ID to all logs in this context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def get_correlation_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("correlation_id")


def bind_session_context(session_id: str, session_type: str) -> None:
    """Bind a governance session to all subsequent logs in this context.

    Args:
        session_id: Governance session identifier
        session_type: Workflow type ("setup" or "quarterly")
    """
    structlog.contextvars.bind_contextvars(
        session_id=session_id, session_type=session_type
    )


def clear_session_context() -> None:
    structlog.contextvars.unbind_contextvars(*_SESSION_KEYS)


def clear_request_context() -> None:
    """Drop request and session keys once a request is finished."""
    structlog.contextvars.unbind_contextvars(*_REQUEST_KEYS, *_SESSION_KEYS)


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)
    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root handler and structlog's processor chain.

    Args:
        config: Logging configuration from QuorumConfig
    """
    log_level = getattr(logging, config.level)

    handler = _build_handler(config)
    handler.setLevel(log_level)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    library_level = log_level if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if config.redact_journal_text:
        processors.append(redact_journal_text)
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically with ``__name__``."""
    return structlog.get_logger(name)
