"""
utils/checkpoint.py — Seeding checkpoint file.

After every mega-batch the batch executor records which operation is
running, how far it has got, and the run-wide created/skipped totals.
Writes are best-effort: a checkpoint that cannot be written is logged
and ignored, never allowed to stop a run. The durable resume position is
the store's row counts, so the file is informational for operators
(`nocdata-seed status`, `GET /progress`).

Checkpoint file: ``settings.progress_file`` (default ``seeding-progress.json``)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from filelock import FileLock, Timeout

from nocdata_shared.config import settings

log = structlog.get_logger(__name__)


class CheckpointStore:
    """JSON checkpoint guarded by a file lock."""

    def __init__(self, path: str | Path | None = None, *, lock_timeout_s: float = 5.0) -> None:
        self.path = Path(path or settings.progress_file)
        self._lock = FileLock(f"{self.path}.lock", timeout=lock_timeout_s)

    def write(
        self,
        operation: str,
        processed: int,
        total: int,
        created_total: int,
        skipped_total: int,
    ) -> None:
        """Persist the latest progress snapshot; failures are swallowed."""
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "operation": operation,
            "processed": processed,
            "total": total,
            "created_total": created_total,
            "skipped_total": skipped_total,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                self.path.write_text(json.dumps(payload, indent=2))
        except (OSError, Timeout) as exc:
            log.warning("checkpoint_write_failed", path=str(self.path), error=str(exc))
            return
        log.debug("checkpoint_saved", operation=operation, processed=processed, total=total)

    def read(self) -> dict[str, Any] | None:
        """Return the last checkpoint, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            with self._lock:
                return json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError, Timeout) as exc:
            log.warning("checkpoint_read_failed", path=str(self.path), error=str(exc))
            return None

