"""Structured logging configuration using structlog.

Every event carries the app name and whatever context the caller bound:
- request_id and the acting account (actor_id, actor_role) per HTTP request
- subscription_id / payment_id / provider_id taken from the request path
- sweep_run_id for everything logged during one expiration sweep
- virtual_time while the control API has moved the clock away from wall time
"""

import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

import structlog
from structlog.typing import EventDict, Processor

APP_NAME = "provider-subscriptions"

# Returns the virtual time while it differs from wall time, else None
_virtual_time_source: Optional[Callable[[], Optional[datetime]]] = None


def set_virtual_time_source(source: Optional[Callable[[], Optional[datetime]]]) -> None:
    """Register (or with None, remove) the callable read by add_virtual_time."""
    global _virtual_time_source
    _virtual_time_source = source


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def add_virtual_time(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp events with the virtual clock's time when it has been moved.

    Expiration decisions are taken against virtual time, so log readers need
    it next to the wall-clock timestamp.
    """
    if _virtual_time_source is None or "virtual_time" in event_dict:
        return event_dict
    current = _virtual_time_source()
    if current is not None:
        event_dict["virtual_time"] = current.isoformat()
    return event_dict


def add_log_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to event dict if not present."""
    if "level" not in event_dict:
        event_dict["level"] = method_name.upper()
    return event_dict


def drop_debug_in_production(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    if method_name == "debug" and not is_debug_mode():
        raise structlog.DropEvent
    return event_dict


def is_debug_mode() -> bool:
    return os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG"


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    include_timestamp: bool = True,
) -> None:
    """Configure structlog for the service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, use colored console output
        include_timestamp: Include ISO8601 UTC timestamps in logs
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # structlog renders; the stdlib handler only writes the line
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )
    # redis-py logs every reconnect attempt at DEBUG
    logging.getLogger("redis").setLevel(max(numeric_level, logging.INFO))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        add_virtual_time,
        add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if numeric_level > logging.DEBUG:
        processors.append(drop_debug_in_production)

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs.

    Example:
        bind_context(request_id="abc123", payment_id="pay_0123456789abcdef")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def bind_actor(actor_id: str, role: Optional[str] = None) -> None:
    """Bind the acting account (and its role, when known) for this request."""
    if role:
        bind_context(actor_id=actor_id, actor_role=role.lower())
    else:
        bind_context(actor_id=actor_id)


@contextmanager
def bound_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of a block, restoring the previous values.

    Used by background work that runs outside any request, such as a sweep
    run on the scheduler thread.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
