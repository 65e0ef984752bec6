"""
loaders/supabase_store.py — Async persistence adapter over the Supabase client.

All seeders talk to the database exclusively through this module. The store:
  - Counts rows per table (exact count, head-only request)
  - Looks up single rows by unique key and pages through filtered reads
  - Performs idempotent upserts (INSERT … ON CONFLICT DO UPDATE) keyed by
    each table's conflict columns
  - Bounds in-flight requests to the configured connection ceiling
  - Enforces a per-call timeout
  - Raises only StoreError, already classified by ErrorKind

Usage:
    from nocdata_pipeline.loaders.supabase_store import SupabaseStore

    store = SupabaseStore()
    n = await store.count("programs")
    area = await store.find_unique("program_areas", {"nid": "123"})
    row = await store.upsert(
        "programs",
        key={"nid": "456"},
        create={"title": "Welding", ...},
        update={"title": "Welding", ...},
    )
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import structlog

from nocdata_shared.config import settings
from nocdata_shared.constants import CONFLICT_KEYS, PROGRAM_AREAS_TABLE
from nocdata_shared.db import get_supabase_client

from nocdata_pipeline.loaders.errors import StoreError

log = structlog.get_logger(__name__)

PAGE_SIZE = 1000  # PostgREST max rows per response


class SupabaseStore:
    """Persistence service used by the seeders, resume calculator, and CLI."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        max_connections: int | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._client = client if client is not None else get_supabase_client()
        self._max_connections = max_connections or settings.db_connection_limit
        self._timeout_s = timeout_s or settings.db_query_timeout_s
        self._semaphore: asyncio.Semaphore | None = None

    @property
    def max_connections(self) -> int:
        return self._max_connections

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _execute(self, query: Any) -> Any:
        """Run a built postgrest query off the event loop, bounded and timed."""
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_connections)
        async with self._semaphore:
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(query.execute), timeout=self._timeout_s
                )
            except Exception as exc:
                raise StoreError.from_exception(exc) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def count(self, table: str) -> int:
        """Return the exact number of rows in *table*."""
        query = self._client.table(table).select("*", count="exact", head=True)
        result = await self._execute(query)
        return int(result.count or 0)

    async def find_unique(
        self, table: str, key: dict[str, Any], *, columns: str = "*"
    ) -> dict[str, Any] | None:
        """Return the row matching every column of *key*, or None."""
        query = self._client.table(table).select(columns)
        for column, value in key.items():
            query = query.eq(column, value)
        result = await self._execute(query.limit(1))
        rows = result.data or []
        return rows[0] if rows else None

    async def find_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        columns: str = "*",
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return all rows matching the equality *filters*, paging past 1000 rows."""
        rows: list[dict[str, Any]] = []
        start = 0
        while True:
            query = self._client.table(table).select(columns)
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if order:
                query = query.order(order)
            result = await self._execute(query.range(start, start + PAGE_SIZE - 1))
            page = result.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        log.debug("find_many_complete", table=table, rows=len(rows))
        return rows

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(
        self,
        table: str,
        key: dict[str, Any],
        create: dict[str, Any],
        update: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Create or update the row identified by *key*.

        The insert payload is ``create`` merged with ``key``; on conflict
        PostgREST overwrites every supplied non-key column, so ``update``
        values win over ``create`` values for the columns they share.

        Returns:
            The stored row.
        """
        conflict = CONFLICT_KEYS.get(table, tuple(key))
        payload = {**create, **(update or {}), **key}
        query = self._client.table(table).upsert(payload, on_conflict=",".join(conflict))
        result = await self._execute(query)
        rows = result.data or []
        return rows[0] if rows else payload

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """Round-trip a trivial read and report latency."""
        t0 = time.monotonic()
        try:
            await self._execute(
                self._client.table(PROGRAM_AREAS_TABLE).select("nid").limit(1)
            )
        except StoreError as exc:
            return {
                "status": "unhealthy",
                "error": exc.message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        return {
            "status": "healthy",
            "response_time_ms": int((time.monotonic() - t0) * 1000),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def test_connection(self) -> bool:
        log.info("testing_database_connection")
        health = await self.health_check()
        if health["status"] != "healthy":
            log.error("database_connection_failed", error=health.get("error"))
            return False
        log.info("database_connection_ok", response_time_ms=health["response_time_ms"])
        return True
