"""
Structured logging configuration using structlog.

Most modules log through stdlib ``logging.getLogger(__name__)``; the root
handler installed here renders those records with the same structlog
processors as structlog's own loggers. Context bound with ``bind_context``
(the alert job's ``sweep_id``) therefore appears on every line of a run,
whichever module emitted it.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from ar_momentum.config.settings import get_settings

QUIET_LOGGERS = ("httpx", "httpcore", "asyncpg")

_handler: logging.Handler | None = None


def _renderer(production: bool) -> list[Processor]:
    if production:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging() -> None:
    """
    Configure structured logging for the CLI and batch jobs.

    JSON lines in production, console output otherwise. Safe to call again
    (e.g. after ``--debug`` changes the level): the previous handler is
    replaced, not stacked.
    """
    global _handler
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderer(settings.is_production),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(settings.log_level)
    _handler = handler

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger (for call sites that log key-value pairs)."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind key-value pairs to every subsequent log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
