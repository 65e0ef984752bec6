"""
utils/batch.py — Bounded-parallel, resumable batch executor.

The executor applies an idempotent per-record processor to an ordered
collection:

  1. Drop the first ``skip`` records (resume offset).
  2. Cut the rest into groups of ``batch_size``.
  3. Run ``parallel_batches`` groups at a time (one mega-batch); records
     inside a group run strictly in order, so the number of in-flight
     store calls never exceeds ``parallel_batches``.
  4. After each mega-batch: log progress, write a checkpoint, then sleep
     ``delay_ms`` before the next one.

A group that raises mid-iteration falls back to re-attempting each
remaining record on its own; records that still raise count as skipped.

Usage:
    executor = BatchExecutor(batch_size=25, parallel_batches=2, delay_ms=100,
                             tracker=tracker, checkpoints=checkpoints)
    result = await executor.run("Programs", programs, process_program, skip=40)
    print(result.created, result.skipped)
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import structlog

from nocdata_shared.config import settings

from nocdata_pipeline.utils.checkpoint import CheckpointStore
from nocdata_pipeline.utils.progress import ProgressTracker

log = structlog.get_logger(__name__)

T = TypeVar("T")


class Outcome(str, Enum):
    CREATED = "created"
    SKIPPED = "skipped"   # invalid record, missing dependency, or benign conflict
    ERROR = "error"       # store write failed after retries


Processor = Callable[[T], Awaitable[Outcome]]


@dataclass
class BatchResult:
    """Aggregated outcome counts. ``errors`` is a subset of ``skipped``."""

    created: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.created + self.skipped

    def record(self, outcome: Outcome | str) -> None:
        outcome = Outcome(outcome)
        if outcome is Outcome.CREATED:
            self.created += 1
        else:
            self.skipped += 1
            if outcome is Outcome.ERROR:
                self.errors += 1

    def merge(self, other: "BatchResult") -> None:
        self.created += other.created
        self.skipped += other.skipped
        self.errors += other.errors

    def as_dict(self) -> dict[str, int]:
        return {"created": self.created, "skipped": self.skipped}


class BatchExecutor:
    """Applies a processor to every record after a skip offset."""

    def __init__(
        self,
        *,
        batch_size: int,
        parallel_batches: int,
        delay_ms: int = 0,
        tracker: ProgressTracker | None = None,
        checkpoints: CheckpointStore | None = None,
        max_connections: int | None = None,
    ) -> None:
        if batch_size <= 0 or parallel_batches <= 0:
            raise ValueError("batch_size and parallel_batches must be positive")
        self.batch_size = batch_size
        self.parallel_batches = parallel_batches
        self.fan_out_limit = max_connections or parallel_batches
        if max_connections is not None and parallel_batches > max_connections:
            log.warning(
                "parallel_batches_capped",
                requested=parallel_batches,
                connection_limit=max_connections,
            )
            self.parallel_batches = max_connections
        self.delay_s = max(delay_ms, 0) / 1000
        self.tracker = tracker or ProgressTracker()
        self.checkpoints = checkpoints
        # Counts of the current or most recent run(), merged after every mega-batch.
        self.last_result: BatchResult | None = None

    @classmethod
    def from_settings(
        cls,
        *,
        tracker: ProgressTracker,
        checkpoints: CheckpointStore | None,
        max_connections: int | None = None,
    ) -> "BatchExecutor":
        return cls(
            batch_size=settings.batch_size,
            parallel_batches=settings.parallel_batches,
            delay_ms=settings.batch_delay_ms,
            tracker=tracker,
            checkpoints=checkpoints,
            max_connections=max_connections or settings.db_connection_limit,
        )

    # ------------------------------------------------------------------
    # Resumable batches
    # ------------------------------------------------------------------

    async def run(
        self,
        operation: str,
        records: Sequence[T],
        processor: Processor[T],
        *,
        skip: int = 0,
        batch_size: int | None = None,
    ) -> BatchResult:
        """
        Process ``records[skip:]`` and return aggregated counts.

        Args:
            operation:  Label used for logs and checkpoints.
            records:    Ordered source records.
            processor:  Async callable returning an Outcome per record.
            skip:       Leading records to bypass (clamped to [0, len]).
            batch_size: Group size override for this run.
        """
        size = batch_size or self.batch_size
        total = len(records)
        skip = min(max(skip, 0), total)
        pending = records[skip:]
        span = size * self.parallel_batches
        total_batches = math.ceil(len(pending) / span) if pending else 0

        op_log = log.bind(operation=operation)
        op_log.info(
            "batch_run_start",
            total=total,
            skip=skip,
            pending=len(pending),
            batch_size=size,
            parallel_batches=self.parallel_batches,
        )

        result = self.last_result = BatchResult()
        processed = 0
        for batch_num, start in enumerate(range(0, len(pending), span), start=1):
            mega = pending[start : start + span]
            groups = [mega[j : j + size] for j in range(0, len(mega), size)]

            tallies = await asyncio.gather(
                *(self._run_group(operation, idx, group, processor) for idx, group in enumerate(groups))
            )
            for tally in tallies:
                result.merge(tally)
            processed += len(mega)

            self.tracker.log_progress(
                operation, batch_num=batch_num, total_batches=total_batches, force=True
            )
            if self.checkpoints is not None:
                stats = self.tracker.stats()
                self.checkpoints.write(
                    operation,
                    skip + processed,
                    total,
                    stats.total_created,
                    stats.total_skipped,
                )

            if self.delay_s > 0 and start + span < len(pending):
                await asyncio.sleep(self.delay_s)

        op_log.info(
            "batch_run_complete",
            created=result.created,
            skipped=result.skipped,
            errors=result.errors,
        )
        return result

    async def _run_group(
        self,
        operation: str,
        index: int,
        group: Sequence[T],
        processor: Processor[T],
    ) -> BatchResult:
        tally = BatchResult()
        position = 0
        try:
            for item in group:
                outcome = Outcome(await processor(item))
                tally.record(outcome)
                self._count(outcome)
                position += 1
        except Exception as exc:
            log.warning(
                "batch_group_failed",
                operation=operation,
                group=index,
                failed_at=position,
                error=str(exc),
            )
            for item in group[position:]:
                try:
                    outcome = Outcome(await processor(item))
                except Exception as item_exc:
                    log.error(
                        "record_failed",
                        operation=operation,
                        group=index,
                        error=str(item_exc),
                    )
                    outcome = Outcome.ERROR
                tally.record(outcome)
                self._count(outcome)
        return tally

    def _count(self, outcome: Outcome) -> None:
        if outcome is Outcome.CREATED:
            self.tracker.add(created=1)
        else:
            self.tracker.add(skipped=1)

    # ------------------------------------------------------------------
    # Non-resumable fan-out
    # ------------------------------------------------------------------

    async def fan_out(
        self,
        operation: str,
        items: Sequence[Any],
        processor: Callable[[Any], Awaitable[Outcome]],
        *,
        limit: int | None = None,
    ) -> BatchResult:
        """
        Apply *processor* to every item concurrently, at most *limit* at once.

        Used for nested or derived collections (sections of one unit group,
        economic regions) that are re-applied on every run and never resumed.
        Processor exceptions are logged and counted as errors.
        """
        semaphore = asyncio.Semaphore(limit or self.fan_out_limit)
        result = BatchResult()

        async def _one(item: Any) -> Outcome:
            async with semaphore:
                try:
                    return Outcome(await processor(item))
                except Exception as exc:
                    log.error("fan_out_item_failed", operation=operation, error=str(exc))
                    return Outcome.ERROR

        for outcome in await asyncio.gather(*(_one(item) for item in items)):
            result.record(outcome)
            self._count(outcome)
        return result
