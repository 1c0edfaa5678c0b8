"""Structured logging for analysis runs, built on structlog."""

import logging
import sys
from typing import Any

import structlog

# Third-party loggers that flood the console during grid searches
NOISY_LOGGERS = ("matplotlib", "mlflow", "urllib3", "alembic", "git")


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    *,
    stream: Any = None,
) -> None:
    """
    Configure structured logging for CLI and notebook use.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit JSON lines instead of the colored console format.
        stream: Target stream (defaults to stderr so tables on stdout stay clean).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Configured structlog logger.
    """
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """
    Bind key/value pairs to every log event emitted inside the block.

    Example:
        with log_context(model="rand_forest", fold="Fold01"):
            logger.info("Fitting")  # carries model and fold

    Args:
        **kwargs: Key-value pairs to add to log context.

    Returns:
        Context manager that binds the values.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
