"""Logging setup and configuration."""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Literal, Optional

import structlog

# Handlers installed by setup_logging, removed again on reconfiguration
_installed_handlers: list[logging.Handler] = []


def setup_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "json",
    log_dir: Optional[Path] = None,
) -> None:
    """Configure structured logging with structlog.

    Safe to call more than once (CLI and API server both call it); handlers
    from a previous call are replaced rather than stacked.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
        log_dir: Directory for log files. If provided, logs are also written
            to autogeorge.log with daily rotation and 30-day retention.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
    _installed_handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        # Plain text in files, no ANSI colors
        file_handler = TimedRotatingFileHandler(
            filename=log_dir / "autogeorge.log",
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(colors=False),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    for noisy in ("httpx", "httpcore", "openai", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def bind_run_context(**values: Any) -> None:
    """Bind values (run_id, stage) to every log event of the current task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_run_context() -> None:
    """Drop values bound with bind_run_context."""
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)
