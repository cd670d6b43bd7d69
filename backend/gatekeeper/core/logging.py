"""
Structured logging — structlog on top of the stdlib logging tree.

Every record is rendered to a single line by ``ProcessorFormatter`` and
emitted by one handler call, so concurrent requests never interleave
inside a record.  Two sinks are configured:

    - console (stdout), JSON or human-readable depending on LOG_FORMAT
    - a daily rolling file under LOG_DIR, always JSON

Usage:
    from gatekeeper.core.logging import get_logger, setup_logging

    setup_logging("INFO")          # once, at startup
    logger = get_logger(__name__)
    logger.info("Request rejected", path="/x", status=403)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

from gatekeeper.core.config import Settings, settings

_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _file_handler(config: Settings) -> logging.Handler:
    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        log_dir / config.LOG_FILE_NAME,
        when="midnight",
        backupCount=config.LOG_RETENTION_DAYS,
        encoding="utf-8",
        delay=True,
    )
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    return handler


def setup_logging(level: str | None = None, config: Settings | None = None) -> None:
    """
    Configure structlog and the root stdlib logger.

    Safe to call more than once: previously installed handlers are
    replaced, not duplicated.
    """
    config = config or settings
    level_value = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)

    if config.LOG_FORMAT.lower() == "console":
        console_renderer: Any = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        console_renderer = structlog.processors.JSONRenderer()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(console_renderer))

    handlers: list[logging.Handler] = [console]
    if config.LOG_TO_FILE:
        handlers.append(_file_handler(config))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level_value)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=False,
    )


def shutdown_logging() -> None:
    """Flush and close every handler; called once at application shutdown."""
    logging.shutdown()


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
