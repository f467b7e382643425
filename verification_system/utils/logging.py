"""Structured logging with structlog for stores, oracle and orchestrator.

Events are snake_case names with key/value context. Context bound through
verification_context() (correlation id, entity kind and id) is merged into
every event emitted during one verification run, including store events.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars
from structlog.processors import JSONRenderer

from verification_system.config.settings import Settings, settings


def configure_structured_logging(config: Optional[Settings] = None) -> None:
    """
    Configure structlog processors, renderer and level filter.

    Console renderer (colourised) when stderr is a TTY and log_format is
    "console"; JSON renderer otherwise. Output goes to stderr.

    Args:
        config: Settings to read log_level/log_format from (module settings if None)
    """
    config = config or settings
    processors = [
        merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if sys.stderr.isatty() and config.log_format.lower() == "console":
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(JSONRenderer())

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(
    name: str,
    component: Optional[str] = None,
    **additional_context: Any,
) -> structlog.BoundLogger:
    """
    Get a structured logger with bound context.

    Args:
        name: Logger name (typically module name)
        component: Optional component name to bind
        **additional_context: Additional context to bind

    Example:
        >>> logger = get_structured_logger(__name__, component="VerificationLogStore")
        >>> logger.info("log_appended", log_id="abc-123", entity_type="school")
    """
    logger = structlog.get_logger(name)
    if component:
        logger = logger.bind(component=component)
    if additional_context:
        logger = logger.bind(**additional_context)
    return logger


def get_correlation_id() -> str:
    """Fresh correlation id for one verification run."""
    return str(uuid.uuid4())


@contextmanager
def verification_context(kind: str, entity_id: str) -> Iterator[str]:
    """
    Bind correlation id, kind and entity id to every event in the block.

    Yields:
        The correlation id bound for the block
    """
    correlation_id = get_correlation_id()
    with bound_contextvars(
        correlation_id=correlation_id,
        kind=kind,
        entity_id=entity_id,
    ):
        yield correlation_id


configure_structured_logging()


__all__ = [
    "get_structured_logger",
    "get_correlation_id",
    "verification_context",
    "configure_structured_logging",
]
