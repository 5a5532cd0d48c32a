"""structlog setup for the CampusFix API and its scripts."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

LOG_FORMATS = ("json", "console")

# Event keys whose values never reach the log output
REDACTED_KEYS = frozenset({"authorization", "token", "access_token", "password", "jwt_secret_key"})


def redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def configure_logging(level: str = "INFO", log_format: str = "json", service: str = "campusfix") -> None:
    """
    Route structlog events to stdout as JSON lines or coloured console output.

    ``service`` is bound to every event. Raises ValueError for an unknown
    format or level so that a bad ``CAMPUSFIX_LOG_*`` value fails startup.
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level {level!r}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(**fields: Any) -> None:
    """Attach fields (e.g. the authenticated user id) to the rest of the request's events."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in fields.items() if v is not None})


@contextmanager
def request_log_context(request_id: str, **fields: Any) -> Iterator[None]:
    """Bind ``request_id`` and ``fields`` for the duration of one request."""
    with structlog.contextvars.bound_contextvars(request_id=request_id, **fields):
        yield
