"""Structured logging for the workflow engine.

Every engine module logs through structlog. Run and node identifiers are
bound into context variables while a run executes, so any log line emitted
underneath (handlers, sandbox, retry wrapper) carries them automatically.
"""

import sys
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

import structlog

from core.config import Settings


def _build_handlers(settings: Settings, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def configure_logging(settings: Settings) -> None:
    """Configure stdlib logging and structlog from settings."""
    level = getattr(logging, settings.log_level)

    logging.basicConfig(
        level=level,
        handlers=_build_handlers(settings, level),
        format="%(message)s",
        force=True,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))
        processors.insert(0, structlog.stdlib.add_logger_name)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.insert(0, structlog.processors.TimeStamper(fmt="%H:%M:%S"))
        processors.append(structlog.dev.ConsoleRenderer(
            colors=False,
            pad_event=35,
            exception_formatter=structlog.dev.plain_traceback
        ))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


@contextmanager
def run_log_context(run_id: str, workflow_id: str) -> Iterator[None]:
    """Bind ``run_id``/``workflow_id`` to every log line inside the block.

    Context variables are per-task, so concurrent runs don't leak into each
    other's lines.
    """
    with structlog.contextvars.bound_contextvars(run_id=run_id, workflow_id=workflow_id):
        yield


def log_execution_time(logger: structlog.BoundLogger, operation: str,
                       start_time: float, end_time: float, **kwargs) -> None:
    """Log execution time with additional context."""
    logger.info(
        "Operation completed",
        operation=operation,
        execution_time_seconds=round(end_time - start_time, 4),
        **kwargs
    )
