"""Structured logging for gangsheet (structlog over stdlib logging).

Two correlation ids tag every event logged while they are set:

    session_id  one builder store, set when a controller attaches to it
    gesture     one pointer gesture, from pointer down until it ends

Output is JSON lines for production and a console renderer for
development.
"""

import logging
import sys
import uuid
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from gangsheet.config import settings

_CORRELATION: dict[str, ContextVar[str | None]] = {
    "session_id": ContextVar("session_id", default=None),
    "gesture": ContextVar("gesture", default=None),
}

# Libraries that log every request or decoder chunk at INFO/DEBUG
_CHATTY_LOGGERS = ("httpx", "httpcore", "PIL")


def set_correlation_context(
    session_id: str | None = None,
    gesture: str | None = None,
) -> None:
    """Set correlation IDs for the current context; None leaves a value as is.

    Args:
        session_id: Identifier of the builder session.
        gesture: Identifier of the pointer gesture in progress.
    """
    for key, value in (("session_id", session_id), ("gesture", gesture)):
        if value is not None:
            _CORRELATION[key].set(value)


def new_gesture() -> str:
    """Start tagging events with a fresh gesture id and return it."""
    gesture = uuid.uuid4().hex[:8]
    _CORRELATION["gesture"].set(gesture)
    return gesture


def clear_gesture() -> None:
    """Drop the gesture id, keeping the session id."""
    _CORRELATION["gesture"].set(None)


def clear_correlation_context() -> None:
    """Forget both session and gesture ids."""
    for var in _CORRELATION.values():
        var.set(None)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Copy the active session and gesture ids onto the event."""
    del logger, method_name
    for key, var in _CORRELATION.items():
        value = var.get()
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def _output_processors(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Level name, case-insensitive; falls back to settings.LOG_LEVEL.
        log_format: "json" for JSON lines, anything else for the console
            renderer; falls back to settings.LOG_FORMAT.
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_format = log_format or settings.LOG_FORMAT
    numeric_level = getattr(logging, level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            _add_correlation_ids,
            *_output_processors(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    # basicConfig is a no-op once handlers exist; the level must still apply
    logging.getLogger().setLevel(numeric_level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger, usually for `__name__`."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
