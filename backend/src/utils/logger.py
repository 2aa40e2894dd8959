"""Structured logging setup built on structlog."""

import logging
import sys
import uuid
from typing import Any, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars


def configure_logging(log_level: str = "INFO", debug: bool = False) -> None:
    """
    Configure stdlib logging and structlog processors.

    Debug mode renders human-readable console lines; otherwise each event is
    emitted as a single JSON object.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    renderer: Any
    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to a module name."""
    return structlog.get_logger(name)


def bind_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id to the current context, generating one if absent."""
    clear_contextvars()
    rid = request_id or uuid.uuid4().hex
    bind_contextvars(request_id=rid)
    return rid


def get_request_id() -> Optional[str]:
    """Return the request id bound to the current context, if any."""
    return get_contextvars().get("request_id")


def truncate(text: Any, max_length: int = 500) -> str:
    """Truncate a value's string form for log output."""
    s = str(text)
    if len(s) <= max_length:
        return s
    return s[:max_length] + f"... [{len(s) - max_length} more chars]"
