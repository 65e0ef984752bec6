"""
utils/progress.py — Run-wide progress counters and totals.

One ProgressTracker is owned by the run coordinator and handed to the
batch executor and the seeders. Counter updates go through a mutex so
concurrent batch groups (and worker-thread callbacks) never lose
increments. An optional tqdm bar mirrors the counters on interactive
terminals; structured progress lines are throttled to one per second.

Usage:
    tracker = ProgressTracker(show_bar=True)
    tracker.start()
    tracker.set_total(calculate_total_records(catalog, enabled))
    tracker.add(created=1)
    tracker.log_progress("Programs", batch_num=2, total_batches=9)
    print(tracker.stats().percent_complete)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from tqdm import tqdm

from nocdata_shared.constants import FALLBACK_TOTAL_RECORDS, Entity

if TYPE_CHECKING:
    from nocdata_pipeline.sources.catalog import SourceCatalog

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProgressStats:
    total_created: int
    total_skipped: int
    total_processed: int
    elapsed_seconds: float
    rate: float
    percent_complete: float


class ProgressTracker:
    """Mutex-guarded created/skipped accumulator with timing."""

    def __init__(
        self,
        total: int = 0,
        *,
        show_bar: bool = False,
        min_interval_s: float = 1.0,
    ) -> None:
        self._lock = threading.Lock()
        self._total = total
        self._created = 0
        self._skipped = 0
        self._show_bar = show_bar
        self._min_interval_s = min_interval_s
        self._started = time.monotonic()
        self._last_logged = 0.0
        self._bar: tqdm | None = None

    def start(self) -> None:
        with self._lock:
            self._created = 0
            self._skipped = 0
            self._started = time.monotonic()
            self._last_logged = 0.0
            if self._show_bar and self._bar is None:
                self._bar = tqdm(total=self._total or None, unit="rec", desc="seeding")

    def set_total(self, total: int) -> None:
        with self._lock:
            self._total = max(0, total)
            if self._bar is not None:
                self._bar.total = self._total or None
                self._bar.refresh()

    @property
    def total(self) -> int:
        return self._total

    def add(self, created: int = 0, skipped: int = 0) -> None:
        with self._lock:
            self._created += created
            self._skipped += skipped
            if self._bar is not None:
                self._bar.update(created + skipped)

    def stats(self) -> ProgressStats:
        with self._lock:
            created, skipped, total = self._created, self._skipped, self._total
            elapsed = time.monotonic() - self._started
        processed = created + skipped
        return ProgressStats(
            total_created=created,
            total_skipped=skipped,
            total_processed=processed,
            elapsed_seconds=round(elapsed, 1),
            rate=round(processed / elapsed, 1) if elapsed > 0 else 0.0,
            percent_complete=round(processed / total * 100, 1) if total > 0 else 0.0,
        )

    def log_progress(
        self,
        operation: str,
        *,
        batch_num: int | None = None,
        total_batches: int | None = None,
        force: bool = False,
    ) -> None:
        now = time.monotonic()
        with self._lock:
            if not force and now - self._last_logged < self._min_interval_s:
                return
            self._last_logged = now
        stats = self.stats()
        log.info(
            "progress",
            operation=operation,
            batch=f"{batch_num}/{total_batches}" if batch_num and total_batches else None,
            created=stats.total_created,
            skipped=stats.total_skipped,
            percent=stats.percent_complete,
            elapsed_s=stats.elapsed_seconds,
        )

    def close(self) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.close()
                self._bar = None


def calculate_total_records(catalog: SourceCatalog, enabled: Iterable[Entity]) -> int:
    """
    Estimate how many records the enabled seeders will touch.

    Unit groups count their sections, outlooks count their economic
    regions. Falls back to a fixed estimate if a source cannot be read.
    """
    enabled = set(enabled)
    try:
        total = 0
        if Entity.PROGRAM_AREAS in enabled:
            total += len(catalog.program_areas())
        if Entity.PROGRAMS in enabled:
            total += len(catalog.programs())
        if Entity.NOC_UNIT_GROUPS in enabled:
            unit_groups = catalog.unit_groups()
            sections = sum(len(ug.get("sections") or []) for ug in unit_groups)
            total += len(unit_groups) + sections
        if Entity.OUTLOOKS in enabled:
            total += len(catalog.economic_regions()) + len(catalog.outlook_rows())
        if Entity.PROGRAM_NOC_LINKS in enabled:
            total += len(catalog.program_links())
    except Exception as exc:
        log.error("total_records_failed", error=str(exc), fallback=FALLBACK_TOTAL_RECORDS)
        return FALLBACK_TOTAL_RECORDS

    log.info("total_records_calculated", total=total)
    return total
