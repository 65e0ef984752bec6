"""
pipelines/seed_all.py — Run coordinator for a full seeding run.

Orchestrates:
  1. Pre-flight: connection test and health check, then parse every
     source file an enabled seeder needs. Either failing aborts the run
     before any entity is touched.
  2. Expected total for the progress tracker.
  3. Resume plan (per-entity skip offsets from store row counts).
  4. Enabled seeders, sequentially, in dependency order:
       program_areas → programs → noc_unit_groups → outlooks → program_noc_links
     A seeder that raises is logged and recorded; the next one still runs.
  5. Final checkpoint and summary.

Usage:
    from nocdata_pipeline.pipelines.seed_all import run
    report = await run(exclude=[Entity.OUTLOOKS])
    print(report.success, report.total_created)
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from nocdata_shared.config import settings
from nocdata_shared.constants import ENTITY_LABELS, SEED_ORDER, Entity

from nocdata_pipeline.loaders.errors import SeedAbortedError
from nocdata_pipeline.loaders.supabase_store import SupabaseStore
from nocdata_pipeline.pipelines import outlooks, program_areas, program_links, programs, unit_groups
from nocdata_pipeline.pipelines.base import SeedContext
from nocdata_pipeline.sources.base import SourceError
from nocdata_pipeline.sources.catalog import SourceCatalog
from nocdata_pipeline.utils.batch import BatchExecutor, BatchResult
from nocdata_pipeline.utils.checkpoint import CheckpointStore
from nocdata_pipeline.utils.logging import ErrorLogFile, configure_logging, default_error_log, get_logger
from nocdata_pipeline.utils.progress import ProgressTracker, calculate_total_records
from nocdata_pipeline.utils.resume import ResumeCalculator

log = get_logger(__name__, pipeline="seed_all")

SeederFn = Callable[[SeedContext, int], Awaitable[BatchResult]]


@dataclass(frozen=True)
class SeederSpec:
    entity: Entity
    label: str
    enabled: bool
    run: SeederFn
    depends_on: tuple[Entity, ...] = ()


_SEEDERS: dict[Entity, tuple[SeederFn, tuple[Entity, ...]]] = {
    Entity.PROGRAM_AREAS: (program_areas.run, ()),
    Entity.PROGRAMS: (programs.run, (Entity.PROGRAM_AREAS,)),
    Entity.NOC_UNIT_GROUPS: (unit_groups.run, ()),
    Entity.OUTLOOKS: (outlooks.run, (Entity.NOC_UNIT_GROUPS,)),
    Entity.PROGRAM_NOC_LINKS: (program_links.run, (Entity.PROGRAMS, Entity.NOC_UNIT_GROUPS)),
}


def resolve_enabled(
    only: Iterable[Entity | str] | None = None,
    exclude: Iterable[Entity | str] | None = None,
    flags: dict[str, bool] | None = None,
) -> set[Entity]:
    """
    Entities to seed this run.

    ``only`` replaces the SEED_* environment switches when given;
    ``exclude`` is applied last.
    """
    flags = flags if flags is not None else settings.seed_flags
    if only:
        enabled = {Entity(e) for e in only}
    else:
        enabled = {e for e in SEED_ORDER if flags.get(e.value, True)}
    for entity in exclude or ():
        enabled.discard(Entity(entity))
    return enabled


def build_specs(enabled: Iterable[Entity]) -> list[SeederSpec]:
    enabled = set(enabled)
    return [
        SeederSpec(
            entity=entity,
            label=ENTITY_LABELS[entity],
            enabled=entity in enabled,
            run=_SEEDERS[entity][0],
            depends_on=_SEEDERS[entity][1],
        )
        for entity in SEED_ORDER
    ]


def validate_order(specs: list[SeederSpec]) -> None:
    """
    Raise ValueError unless every dependency is listed before its dependant.

    A disabled dependency does not block its dependants; records whose
    parents are missing from the store are skipped individually.
    """
    seen: set[Entity] = set()
    for spec in specs:
        missing = [dep for dep in spec.depends_on if dep not in seen]
        if missing:
            raise ValueError(
                f"{spec.entity.value} depends on {[m.value for m in missing]}, "
                "which must be listed first"
            )
        seen.add(spec.entity)


@dataclass
class RunReport:
    success: bool
    results: dict[str, BatchResult] = field(default_factory=dict)
    elapsed_seconds: float = 0.0
    total_created: int = 0
    total_skipped: int = 0
    total_processed: int = 0
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "results": {name: r.as_dict() for name, r in self.results.items()},
            "elapsed_seconds": self.elapsed_seconds,
            "total_created": self.total_created,
            "total_skipped": self.total_skipped,
            "total_processed": self.total_processed,
            "error": self.error,
        }


class SeedRunner:
    """Sequences the enabled seeders and builds the run report."""

    def __init__(
        self,
        store: SupabaseStore,
        catalog: SourceCatalog,
        *,
        enabled: Iterable[Entity] | None = None,
        checkpoints: CheckpointStore | None = None,
        tracker: ProgressTracker | None = None,
        executor: BatchExecutor | None = None,
        error_log: ErrorLogFile | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.specs = build_specs(enabled if enabled is not None else resolve_enabled())
        validate_order(self.specs)
        self.checkpoints = checkpoints
        self.tracker = tracker or ProgressTracker(show_bar=settings.show_progress_bar)
        self.executor = executor or BatchExecutor.from_settings(
            tracker=self.tracker,
            checkpoints=checkpoints,
            max_connections=store.max_connections,
        )
        self.ctx = SeedContext.from_settings(
            store=store,
            catalog=catalog,
            executor=self.executor,
            tracker=self.tracker,
            error_log=error_log,
        )

    @property
    def enabled(self) -> list[Entity]:
        return [s.entity for s in self.specs if s.enabled]

    async def preflight(self) -> None:
        """
        Raises:
            SeedAbortedError: the store is unreachable or a required
                source file cannot be read.
        """
        if not await self.store.test_connection():
            raise SeedAbortedError("database connection test failed")
        health = await self.store.health_check()
        if health.get("status") != "healthy":
            raise SeedAbortedError(f"database health check failed: {health.get('error')}")
        log.info("database_healthy", response_time_ms=health.get("response_time_ms"))

        try:
            self.catalog.preload(self.enabled)
        except SourceError as exc:
            raise SeedAbortedError(str(exc)) from exc

    async def run(self) -> RunReport:
        t0 = time.monotonic()
        log.info(
            "seed_run_start",
            enabled=[e.value for e in self.enabled],
            batch_size=self.executor.batch_size,
            parallel_batches=self.executor.parallel_batches,
            connection_limit=self.store.max_connections,
        )

        try:
            await self.preflight()
        except SeedAbortedError as exc:
            log.error("seed_run_aborted", error=str(exc))
            return RunReport(
                success=False,
                elapsed_seconds=round(time.monotonic() - t0, 1),
                error=str(exc),
            )

        self.tracker.start()
        self.tracker.set_total(calculate_total_records(self.catalog, self.enabled))
        plan = await ResumeCalculator(self.store, self.catalog, self.enabled).calculate()

        report = RunReport(success=True)
        failures: list[str] = []
        try:
            for spec in self.specs:
                if not spec.enabled:
                    log.info("seeder_disabled", entity=spec.entity.value)
                    continue
                skip = plan.skip_for(spec.entity)
                log.info("seeder_start", entity=spec.entity.value, skip=skip)
                self.executor.last_result = None
                try:
                    result = await spec.run(self.ctx, skip)
                except Exception as exc:
                    # Keep whatever the executor had tallied before the failure.
                    partial = self.executor.last_result or BatchResult()
                    report.results[spec.entity.value] = partial
                    log.error(
                        "seeder_failed",
                        entity=spec.entity.value,
                        created=partial.created,
                        skipped=partial.skipped,
                        error=str(exc),
                        exc_info=True,
                    )
                    failures.append(f"{spec.label}: {exc}")
                    continue
                report.results[spec.entity.value] = result
                log.info(
                    "seeder_complete",
                    entity=spec.entity.value,
                    created=result.created,
                    skipped=result.skipped,
                    errors=result.errors,
                )
        finally:
            self.tracker.close()

        # Totals cover the per-entity results only; section and region
        # fan-out writes feed the progress tracker but not the report.
        report.elapsed_seconds = round(time.monotonic() - t0, 1)
        report.total_created = sum(r.created for r in report.results.values())
        report.total_skipped = sum(r.skipped for r in report.results.values())
        report.total_processed = report.total_created + report.total_skipped
        if failures:
            report.success = False
            report.error = "; ".join(failures)

        if self.checkpoints is not None:
            self.checkpoints.write(
                "COMPLETED",
                report.total_processed,
                self.tracker.total,
                report.total_created,
                report.total_skipped,
            )
        self.log_summary(report)
        return report

    @staticmethod
    def log_summary(report: RunReport) -> None:
        for entity, result in report.results.items():
            log.info("entity_summary", entity=entity, **result.as_dict(), errors=result.errors)
        log.info(
            "seed_run_complete",
            success=report.success,
            total_created=report.total_created,
            total_skipped=report.total_skipped,
            total_processed=report.total_processed,
            elapsed_s=report.elapsed_seconds,
            error=report.error,
        )


async def run(
    *,
    only: Iterable[Entity | str] | None = None,
    exclude: Iterable[Entity | str] | None = None,
    store: SupabaseStore | None = None,
    catalog: SourceCatalog | None = None,
    checkpoints: CheckpointStore | None = None,
) -> RunReport:
    """
    Seed every enabled entity.

    Args:
        only:        Restrict the run to these entities (overrides SEED_* flags).
        exclude:     Entities to leave out.
        store:       Persistence service; defaults to the Supabase service client.
        catalog:     Source collections; defaults to the files under settings.data_dir.
        checkpoints: Progress file writer; defaults to settings.progress_file.

    Returns:
        RunReport. ``success`` is False if pre-flight aborted or any seeder raised.
    """
    if not structlog.is_configured():
        configure_logging()
    try:
        store = store or SupabaseStore()
    except RuntimeError as exc:
        log.error("seed_run_aborted", error=str(exc))
        return RunReport(success=False, error=str(exc))
    runner = SeedRunner(
        store,
        catalog or SourceCatalog.from_settings(),
        enabled=resolve_enabled(only, exclude),
        checkpoints=checkpoints or CheckpointStore(),
        error_log=default_error_log(),
    )
    return await runner.run()
