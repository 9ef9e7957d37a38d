"""
Structured logging configuration for cellmotion.

Uses structlog (https://www.structlog.org/) for key/value logging. The
compiler, the collision sweep and the configuration loader log phase
boundaries as events; per-target warnings and errors stay on the Program and
are mirrored to the log at debug level only.

Usage::

    from cellmotion.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG")  # once, usually from the CLI
    logger = get_logger(__name__)
    logger.info("program_compiled", targets=42, duration_s=13.2)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the whole process.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit JSON lines instead of console-friendly lines.
        log_file: Optional path that receives the same records as stderr.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )

    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger for the given module name.

    Args:
        name: Module name, typically ``__name__``.
    """
    return structlog.get_logger(name)


@contextmanager
def program_context(program: str, robot_system: str) -> Iterator[None]:
    """Bind the program and robot system names to every event logged inside."""
    with structlog.contextvars.bound_contextvars(program=program, robot_system=robot_system):
        yield
