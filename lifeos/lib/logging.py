"""
Structured logging configuration for LifeOS.

The engine modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves. The host process (the app embedding the
engine, a scheduler, a script) calls ``setup_logging()`` once; stdlib records
are then rendered through structlog, as JSON in production and as colored
console lines in development.

Context bound with ``refresh_context()`` (the refresh orchestrator binds the
cycle number) is merged into every record emitted inside it, stdlib records
included.

Usage:
    from lifeos.lib.logging import setup_logging

    setup_logging()  # Call once at process start
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import structlog

NOISY_LOGGERS = ("redis", "sqlalchemy.engine", "aiosqlite", "asyncio")


def setup_logging(
    level: str | None = None,
    dev_mode: bool | None = None,
    stream: IO[str] | None = None,
) -> None:
    """
    Configure structlog and stdlib logging for the engine.

    Args:
        level: Log level name; defaults to LOG_LEVEL (INFO if unset or unknown)
        dev_mode: Console output instead of JSON; defaults to LIFEOS_DEV_MODE=1
        stream: Where records go; defaults to stderr
    """
    if dev_mode is None:
        dev_mode = os.environ.get("LIFEOS_DEV_MODE") == "1"
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if dev_mode:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


@contextmanager
def refresh_context(**values: Any) -> Iterator[None]:
    """Bind ``values`` to every log record emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
