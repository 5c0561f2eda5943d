"""Logging configuration for dvf-metrics."""

import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import LoggerFactory

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through the stdlib root logger, on stderr.

    Stdout is left to the metrics report.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output logs as JSON
    """
    log_level = getattr(logging, level.upper())

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=_renderer(json_output),
        foreign_pre_chain=shared_processors,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structlog logger, named after ``name`` when given."""
    return structlog.get_logger(name)
