"""
pipelines/base.py — Shared context handed to every entity seeder.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from nocdata_shared.config import settings

from nocdata_pipeline.loaders.supabase_store import SupabaseStore
from nocdata_pipeline.sources.catalog import SourceCatalog
from nocdata_pipeline.utils.batch import BatchExecutor, Outcome
from nocdata_pipeline.utils.logging import ErrorLogFile
from nocdata_pipeline.utils.progress import ProgressTracker
from nocdata_pipeline.utils.retry import (
    RetryPolicy,
    WriteOutcome,
    WriteResult,
    call_with_retry,
    safe_write,
)

_WRITE_OUTCOMES: dict[WriteOutcome, Outcome] = {
    WriteOutcome.SUCCESS: Outcome.CREATED,
    WriteOutcome.BENIGN: Outcome.SKIPPED,
    WriteOutcome.FAILED: Outcome.ERROR,
}


def outcome_of(result: WriteResult) -> Outcome:
    return _WRITE_OUTCOMES[result.outcome]


@dataclass
class SeedContext:
    """Collaborators shared by the seeders for one run."""

    store: SupabaseStore
    catalog: SourceCatalog
    executor: BatchExecutor
    tracker: ProgressTracker
    policy: RetryPolicy
    error_log: ErrorLogFile | None = None
    link_batch_size: int = 50

    @classmethod
    def from_settings(
        cls,
        store: SupabaseStore,
        catalog: SourceCatalog,
        executor: BatchExecutor,
        tracker: ProgressTracker,
        error_log: ErrorLogFile | None,
    ) -> "SeedContext":
        return cls(
            store=store,
            catalog=catalog,
            executor=executor,
            tracker=tracker,
            policy=RetryPolicy.from_settings(),
            error_log=error_log,
            link_batch_size=settings.link_batch_size,
        )

    async def write(self, operation: Callable[[], Awaitable[Any]], context: str) -> WriteResult:
        return await safe_write(operation, context, self.policy, self.error_log)

    async def upsert(
        self,
        table: str,
        key: dict[str, Any],
        row: dict[str, Any],
        context: str,
    ) -> WriteResult:
        """Idempotent create-or-update of *row*; non-key columns overwrite."""
        update = {k: v for k, v in row.items() if k not in key}
        return await self.write(lambda: self.store.upsert(table, key, row, update), context)

    async def lookup(self, table: str, key: dict[str, Any], context: str) -> WriteResult:
        """Find a parent row under the retry policy; ``record`` is None when absent."""
        return await self.write(lambda: self.store.find_unique(table, key), context)

    async def read(self, operation: Callable[[], Awaitable[Any]], context: str) -> Any:
        """
        Run a bulk read under the retry policy.

        Raises:
            StoreError: non-transient failure, or transient failures past
                        the last attempt.
        """
        return await call_with_retry(operation, context, self.policy)
