"""
observability/logger.py — MindX Structured Logger

One structlog pipeline feeding two stdlib handlers:

  - mindx.log in the configured log_dir, rotated by size, always JSON
  - stdout (optional), JSON in production or coloured key=value for local runs

Every line carries timestamp, level, logger name and event, plus whatever
bind_user() put in the context (username, screen).

Usage:
    from observability.logger import get_logger, setup_logging

    setup_logging(level="INFO", log_dir="./data/logs")   # once, from main.bootstrap()
    log = get_logger(__name__)
    log.info("chat.send.start", chars=42)
    log.warning("progress.save_failed", path="./data/mindx_user_data.json")
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILENAME = "mindx.log"

# Third-party loggers that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore")


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _formatter(renderer: Any, pre_chain: list[Any]) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=pre_chain,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Route structlog through stdlib logging into the MindX log file and,
    optionally, stdout. Replaces any handlers installed earlier.

    Args:
        level:          DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown → INFO).
        log_dir:        Created if missing; holds mindx.log and its backups.
        json_format:    Console renderer. The file is JSON either way.
        console_output: Attach a stdout handler.
        max_bytes:      Rotate mindx.log once it reaches this size.
        backup_count:   Rotated files kept next to mindx.log.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    pre_chain = _shared_processors()

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / LOG_FILENAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer(), pre_chain))
    handlers: list[logging.Handler] = [file_handler]

    if console_output:
        console_renderer = (
            structlog.processors.JSONRenderer()
            if json_format
            else structlog.dev.ConsoleRenderer(colors=True)
        )
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_formatter(console_renderer, pre_chain))
        handlers.append(console_handler)

    for handler in handlers:
        handler.setLevel(numeric_level)

    logging.basicConfig(format="%(message)s", level=numeric_level, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings(settings: Any) -> None:
    """Shorthand for setup_logging() driven by Settings.logging."""
    cfg = settings.logging
    setup_logging(
        level=cfg.level,
        log_dir=cfg.log_dir,
        json_format=cfg.json_format,
        console_output=cfg.console_output,
        max_bytes=cfg.max_file_size_mb * 1024 * 1024,
        backup_count=cfg.backup_count,
    )


def get_logger(name: str = "mindx", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a bound logger with optional initial context values.

    Example:
        log = get_logger(__name__, flow="tasks")
        log.info("tasks.verify.approved", points=50)
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_user(username: str, screen: str | None = None) -> None:
    """
    Bind user context to all subsequent log calls in this async context.

    structlog's contextvars integration attaches the values to every log line
    in this coroutine and its children, without passing them explicitly.
    """
    values: dict[str, Any] = {"username": username}
    if screen is not None:
        values["screen"] = screen
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    """Clear bound context vars."""
    structlog.contextvars.clear_contextvars()
