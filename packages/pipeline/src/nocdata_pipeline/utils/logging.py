"""
utils/logging.py — structlog configuration for the seeder.

Sets up structured logging with JSON or human-readable console output
controlled by settings.log_format. Call configure_logging() once at
process startup (done automatically by the CLI and the run coordinator).

Persistence failures are also appended to a plain-text side log
(settings.error_log_file) for offline inspection when settings.log_errors
is enabled.

Usage:
    from nocdata_pipeline.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger("nocdata_pipeline.pipelines.programs", entity="programs")
    log.info("seed_start", skip=40)
"""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from nocdata_shared.config import settings

_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")

# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog for the seeding process.

    Safe to call more than once; the CLI and the run coordinator both do.
    The HTTP client libraries underneath supabase-py log every request at
    INFO, which would drown out per-batch progress, so they are held at
    WARNING unless DEBUG is requested.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level = log_level or settings.log_level
    fmt = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    third_party_level = logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """
    Return a bound structlog logger with optional initial context values.

    Args:
        name:             Logger name (conventionally the module __name__).
        **initial_values: Key-value pairs merged into every log record.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Side error log
# ---------------------------------------------------------------------------


class ErrorLogFile:
    """Append-only text log of persistence failures."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def write(self, context: str, kind: str, message: str) -> None:
        line = f"{datetime.now(timezone.utc).isoformat()} - {kind} in {context}: {message}\n"
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
        except OSError as exc:
            structlog.get_logger(__name__).warning(
                "error_log_write_failed", path=str(self.path), error=str(exc)
            )


def default_error_log() -> ErrorLogFile | None:
    """The side error log configured in settings, or None when disabled."""
    if not settings.log_errors:
        return None
    return ErrorLogFile(settings.error_log_file)
