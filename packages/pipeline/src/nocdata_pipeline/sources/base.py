"""
sources/base.py — Abstract base class for all source file readers.

Each concrete source must implement:
  extract()    — read the raw file contents
  transform()  — turn the raw contents into a list of plain dict records

The load() method orchestrates extract → transform and handles
timing/logging automatically. The catalog calls load() rather than the
individual methods.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import structlog

log = structlog.get_logger(__name__)


class SourceError(Exception):
    """A required source file is missing or malformed."""


class BaseSource(ABC):
    """Abstract base for nocdata source file readers."""

    # Override in subclass: used for logging
    name: str = "unknown"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._log = log.bind(source_name=self.name, path=str(self.path))

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def extract(self) -> Any:
        """
        Read the raw file.

        Raises:
            SourceError: the file does not exist or cannot be parsed.
        """
        ...

    @abstractmethod
    def transform(self, raw: Any) -> list[dict[str, Any]]:
        """Convert raw file contents into ordered dict records."""
        ...

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def load(self) -> list[dict[str, Any]]:
        """
        Extract + transform with timing and structured logging.

        Raises:
            SourceError: after logging it.
        """
        t0 = time.monotonic()
        try:
            if not self.path.is_file():
                raise SourceError(f"{self.name}: source file not found: {self.path}")
            records = self.transform(self.extract())
        except SourceError as exc:
            self._log.error("source_load_failed", error=str(exc))
            raise

        self._log.info(
            "source_loaded",
            records=len(records),
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return records
