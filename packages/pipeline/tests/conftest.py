"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  store / store_factory  — in-memory FakeStore enforcing each table's conflict
                           key, with per-key failure injection
  checkpoints            — RecordingCheckpoints, keeps every snapshot
  sources()              — writes programs / unit groups JSON and an outlook
                           workbook into tmp_path, returns a SourceCatalog
  make_ctx()             — SeedContext wired to a store with zero retry delay
  store_errors           — classified StoreError factories
  sample_* fixtures      — small, internally consistent source collections
"""

from __future__ import annotations

import json
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from nocdata_shared.constants import (
    COL_LANGUAGE,
    COL_NOC_CODE,
    COL_OUTLOOK,
    COL_PROVINCE,
    COL_REGION_CODE,
    COL_REGION_NAME,
    COL_RELEASE_DATE,
    COL_TRENDS,
    CONFLICT_KEYS,
)

from nocdata_pipeline.loaders.errors import ErrorKind, StoreError
from nocdata_pipeline.pipelines.base import SeedContext
from nocdata_pipeline.sources.catalog import SourceCatalog
from nocdata_pipeline.utils.batch import BatchExecutor
from nocdata_pipeline.utils.progress import ProgressTracker
from nocdata_pipeline.utils.retry import RetryPolicy

OUTLOOK_HEADERS = [
    COL_NOC_CODE,
    "NOC Title",
    COL_REGION_CODE,
    COL_REGION_NAME,
    COL_PROVINCE,
    COL_OUTLOOK,
    COL_TRENDS,
    COL_RELEASE_DATE,
    COL_LANGUAGE,
]


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class FakeStore:
    """
    Async persistence fake with the SupabaseStore surface.

    Rows are plain dicts with an integer ``id``. Upserts honour
    CONFLICT_KEYS, so writing the same key twice updates in place.
    """

    def __init__(self, *, max_connections: int = 3, healthy: bool = True) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.max_connections = max_connections
        self.healthy = healthy
        self.upsert_calls: dict[str, int] = defaultdict(int)
        self.count_errors: dict[str, Exception] = {}
        self.find_many_errors: dict[str, list[Exception]] = defaultdict(list)
        self._failures: dict[tuple[str, tuple], list[Exception]] = defaultdict(list)
        self._next_id = 1

    # -- test helpers ---------------------------------------------------

    def _key_of(self, table: str, row: dict[str, Any]) -> tuple:
        return tuple(row.get(col) for col in CONFLICT_KEYS[table])

    def seed(self, table: str, rows: list[dict[str, Any]]) -> None:
        for row in rows:
            self.tables[table].append({"id": self._next_id, **row})
            self._next_id += 1

    def fail_upsert(self, table: str, key: dict[str, Any], *errors: Exception) -> None:
        """Raise *errors* (in order) on the next upserts of *key*."""
        self._failures[(table, self._key_of(table, key))].extend(errors)

    def fail_find_many(self, table: str, *errors: Exception) -> None:
        """Raise *errors* (in order) on the next bulk reads of *table*."""
        self.find_many_errors[table].extend(errors)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables[table]

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {table: [dict(r) for r in rows] for table, rows in self.tables.items()}

    # -- store surface --------------------------------------------------

    async def count(self, table: str) -> int:
        if table in self.count_errors:
            raise self.count_errors[table]
        return len(self.tables[table])

    async def find_unique(
        self, table: str, key: dict[str, Any], *, columns: str = "*"
    ) -> dict[str, Any] | None:
        for row in self.tables[table]:
            if all(row.get(k) == v for k, v in key.items()):
                return row
        return None

    async def find_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        columns: str = "*",
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        if self.find_many_errors[table]:
            raise self.find_many_errors[table].pop(0)
        rows = [
            row
            for row in self.tables[table]
            if all(row.get(k) == v for k, v in (filters or {}).items())
        ]
        if order:
            rows = sorted(rows, key=lambda r: r.get(order))
        return rows

    async def upsert(
        self,
        table: str,
        key: dict[str, Any],
        create: dict[str, Any],
        update: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.upsert_calls[table] += 1
        payload = {**create, **(update or {}), **key}
        row_key = self._key_of(table, payload)

        queued = self._failures.get((table, row_key))
        if queued:
            raise queued.pop(0)

        for row in self.tables[table]:
            if self._key_of(table, row) == row_key:
                row.update(payload)
                return row
        row = {"id": self._next_id, **payload}
        self._next_id += 1
        self.tables[table].append(row)
        return row

    async def health_check(self) -> dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        if not self.healthy:
            return {"status": "unhealthy", "error": "connection refused", "timestamp": now}
        return {"status": "healthy", "response_time_ms": 1, "timestamp": now}

    async def test_connection(self) -> bool:
        return self.healthy


class RecordingCheckpoints:
    """Checkpoint writer that keeps every snapshot in memory."""

    def __init__(self) -> None:
        self.writes: list[dict[str, Any]] = []

    def write(self, operation, processed, total, created_total, skipped_total) -> None:
        self.writes.append(
            {
                "operation": operation,
                "processed": processed,
                "total": total,
                "created_total": created_total,
                "skipped_total": skipped_total,
            }
        )

    def read(self) -> dict[str, Any] | None:
        return self.writes[-1] if self.writes else None


def conflict_error(message: str = "duplicate key value violates unique constraint") -> StoreError:
    return StoreError(ErrorKind.CONFLICT, message, "23505")


def transient_error(message: str = "too many connections") -> StoreError:
    return StoreError(ErrorKind.TRANSIENT, message, "53300")


# ---------------------------------------------------------------------------
# Source data
# ---------------------------------------------------------------------------

def make_programs(n: int = 10, areas: int = 3) -> list[dict[str, Any]]:
    """*n* programs spread round-robin over *areas* program areas."""
    programs = []
    for i in range(n):
        area = i % areas
        programs.append(
            {
                "nid": 100 + i,
                "title": f"Program {i}",
                "credential": ["certificate", "Diploma", "DEGREE"][i % 3],
                "duration": f"{i % 4 + 1} years",
                "program_area": {"nid": 10 + area, "title": f"Area {area}"},
                "viu_search_keywords": [f"kw{i}"],
                "noc_search_keywords": [],
                "known_noc_groups": [],
            }
        )
    return programs


@pytest.fixture
def sample_programs() -> list[dict[str, Any]]:
    programs = make_programs(4, areas=2)
    programs[0]["known_noc_groups"] = ["72310", "NOC_21231"]
    programs[1]["known_noc_groups"] = ["99999"]
    programs[3]["known_noc_groups"] = [2171]
    return programs


@pytest.fixture
def sample_unit_groups() -> list[dict[str, Any]]:
    return [
        {
            "noc_number": "72310",
            "occupation": "Welders and related machine operators",
            "sections": [
                {"title": "Main duties", "items": ["Read blueprints", "Weld parts"]},
                {"title": "Employment requirements", "items": ["Trade certification"]},
            ],
        },
        {
            "noc_number": "NOC_21231",
            "occupation": "Software engineers and designers",
            "sections": [{"title": "Main duties"}],
        },
        {"noc_number": 2171, "occupation": "Information systems analysts", "sections": []},
    ]


@pytest.fixture
def sample_outlook_rows() -> list[list[Any]]:
    return [
        ["NOC_72310", "Welders", 5910.0, "Vancouver Island and Coast", "BC", "Good",
         "Employment is expected to grow.", datetime(2024, 1, 15), "EN"],
        ["21231", "Software engineers", "5910", "Vancouver Island and Coast", "BC", "Very good",
         None, None, None],
        ["NOC_72310", "Welders", 5920, "Lower Mainland-Southwest", "BC", "Fair",
         "Stable.", "2024-01-15", "EN"],
        ["72310", "Welders", 5920, "Lower Mainland-Southwest", "BC", None,
         "Missing rating.", None, "EN"],
    ]


def write_workbook(path: Path, rows: list[list[Any]], headers: list[str] | None = None) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.append(headers or OUTLOOK_HEADERS)
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def write_sources(
    tmp_path: Path,
    programs: list[dict[str, Any]] | None = None,
    unit_groups: list[dict[str, Any]] | None = None,
    outlook_rows: list[list[Any]] | None = None,
) -> SourceCatalog:
    programs_path = tmp_path / "viu_programs.json"
    unit_groups_path = tmp_path / "unit_groups.json"
    outlooks_path = tmp_path / "outlooks.xlsx"
    programs_path.write_text(json.dumps(programs or []))
    unit_groups_path.write_text(json.dumps(unit_groups or []))
    write_workbook(outlooks_path, outlook_rows or [])
    return SourceCatalog(programs_path, unit_groups_path, outlooks_path)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def make_context(
    store: FakeStore,
    catalog: SourceCatalog,
    *,
    batch_size: int = 2,
    parallel_batches: int = 2,
    checkpoints: RecordingCheckpoints | None = None,
    error_log=None,
) -> SeedContext:
    tracker = ProgressTracker()
    tracker.start()
    executor = BatchExecutor(
        batch_size=batch_size,
        parallel_batches=parallel_batches,
        tracker=tracker,
        checkpoints=checkpoints,
    )
    return SeedContext(
        store=store,
        catalog=catalog,
        executor=executor,
        tracker=tracker,
        policy=RetryPolicy(max_attempts=3, base_delay_s=0),
        error_log=error_log,
        link_batch_size=batch_size,
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def checkpoints() -> RecordingCheckpoints:
    return RecordingCheckpoints()


@pytest.fixture
def store_factory():
    return FakeStore


@pytest.fixture
def programs_factory():
    return make_programs


@pytest.fixture
def sources(tmp_path):
    """Write source files under tmp_path and return their SourceCatalog."""

    def _write(programs=None, unit_groups=None, outlook_rows=None) -> SourceCatalog:
        return write_sources(tmp_path, programs, unit_groups, outlook_rows)

    return _write


@pytest.fixture
def workbook():
    return write_workbook


@pytest.fixture
def make_ctx():
    return make_context


@pytest.fixture
def store_errors():
    """Factories for classified store errors."""

    class _Errors:
        conflict = staticmethod(conflict_error)
        transient = staticmethod(transient_error)

        @staticmethod
        def validation(message: str = "invalid input syntax") -> StoreError:
            return StoreError(ErrorKind.VALIDATION, message, "22P02")

    return _Errors
