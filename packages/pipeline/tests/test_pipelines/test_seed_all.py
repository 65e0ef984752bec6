"""
tests/test_pipelines/test_seed_all.py — Run coordinator, end to end on the in-memory store.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from nocdata_shared.constants import (
    COUNTED_TABLES,
    NOC_SECTIONS_TABLE,
    OUTLOOKS_TABLE,
    PROGRAM_AREAS_TABLE,
    PROGRAM_NOC_LINKS_TABLE,
    PROGRAMS_TABLE,
    SEED_ORDER,
    Entity,
)

from nocdata_pipeline.loaders.errors import ErrorKind, StoreError
from nocdata_pipeline.pipelines import seed_all
from nocdata_pipeline.pipelines.seed_all import (
    SeederSpec,
    SeedRunner,
    build_specs,
    resolve_enabled,
    validate_order,
)
from nocdata_pipeline.sources.catalog import SourceCatalog
from nocdata_pipeline.utils.batch import BatchExecutor, Outcome
from nocdata_pipeline.utils.progress import ProgressTracker
from nocdata_pipeline.utils.retry import RetryPolicy

AREAS_AND_PROGRAMS = {Entity.PROGRAM_AREAS, Entity.PROGRAMS}


def _runner(store, catalog, enabled=SEED_ORDER, checkpoints=None) -> SeedRunner:
    tracker = ProgressTracker()
    executor = BatchExecutor(batch_size=3, parallel_batches=2, tracker=tracker, checkpoints=checkpoints)
    runner = SeedRunner(
        store,
        catalog,
        enabled=enabled,
        checkpoints=checkpoints,
        tracker=tracker,
        executor=executor,
    )
    runner.ctx.policy = RetryPolicy(max_attempts=3, base_delay_s=0)
    return runner


def _stored_programs(programs, area_ids):
    return [
        {
            "nid": str(p["nid"]),
            "title": p["title"],
            "program_area_id": area_ids[str(p["program_area"]["nid"])],
        }
        for p in programs
    ]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fresh_store_creates_everything(store, sources, programs_factory):
    catalog = sources(programs=programs_factory(10, areas=3))

    report = await _runner(store, catalog, AREAS_AND_PROGRAMS).run()

    assert report.success
    assert report.results["program_areas"].as_dict() == {"created": 3, "skipped": 0}
    assert report.results["programs"].as_dict() == {"created": 10, "skipped": 0}
    assert report.total_created == 13
    assert report.total_processed == 13


@pytest.mark.asyncio
async def test_resume_skips_stored_prefix(store, sources, programs_factory):
    programs = programs_factory(10, areas=3)
    catalog = sources(programs=programs)
    store.seed(PROGRAM_AREAS_TABLE, [{"nid": str(10 + i), "title": f"Area {i}"} for i in range(3)])
    area_ids = {r["nid"]: r["id"] for r in store.rows(PROGRAM_AREAS_TABLE)}
    store.seed(PROGRAMS_TABLE, _stored_programs(programs[:4], area_ids))

    report = await _runner(store, catalog, AREAS_AND_PROGRAMS).run()

    assert report.results["program_areas"].as_dict() == {"created": 0, "skipped": 0}
    assert report.results["programs"].as_dict() == {"created": 6, "skipped": 0}
    assert store.upsert_calls[PROGRAMS_TABLE] == 6
    assert len(store.rows(PROGRAMS_TABLE)) == 10


@pytest.mark.asyncio
async def test_program_with_unknown_area_is_skipped(store, sources, programs_factory):
    programs = programs_factory(4, areas=1)
    programs[2]["program_area"] = {"nid": 99, "title": "Nowhere"}
    catalog = sources(programs=programs)
    store.seed(PROGRAM_AREAS_TABLE, [{"nid": "10", "title": "Area 0"}])

    # program areas disabled: area 99 exists neither in the store nor in this run
    report = await _runner(store, catalog, {Entity.PROGRAMS}).run()

    assert report.success
    assert report.results["programs"].as_dict() == {"created": 3, "skipped": 1}
    assert "program_areas" not in report.results
    assert all(r["nid"] != "102" for r in store.rows(PROGRAMS_TABLE))


@pytest.mark.asyncio
async def test_outlook_code_prefix_and_default_release_date(store, sources):
    rows = [["NOC_12345", "Title", 5910, "VI", "BC", "Good", None, None, None]]
    catalog = sources(outlook_rows=rows)

    report = await _runner(store, catalog, {Entity.OUTLOOKS}).run()

    assert report.results["outlooks"].as_dict() == {"created": 1, "skipped": 0}
    stored = store.rows(OUTLOOKS_TABLE)[0]
    assert stored["noc_code"] == "12345"
    assert stored["release_date"] == "2024-01-01"


@pytest.mark.asyncio
async def test_unique_violation_is_benign(store, sources, programs_factory, store_errors):
    catalog = sources(programs=programs_factory(10, areas=3))
    store.fail_upsert(PROGRAMS_TABLE, {"nid": "101"}, store_errors.conflict())

    report = await _runner(store, catalog, AREAS_AND_PROGRAMS).run()

    result = report.results["programs"]
    assert result.as_dict() == {"created": 9, "skipped": 1}
    assert result.errors == 0
    # the rest of record 101's group still ran
    assert {"100", "102"} <= {r["nid"] for r in store.rows(PROGRAMS_TABLE)}
    assert report.success


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_second_run_leaves_store_unchanged(
    store, sources, sample_programs, sample_unit_groups, sample_outlook_rows
):
    catalog = sources(sample_programs, sample_unit_groups, sample_outlook_rows)

    await _runner(store, catalog).run()
    first = store.snapshot()
    report = await _runner(store, catalog).run()

    assert report.success
    assert store.snapshot() == first


@pytest.mark.asyncio
async def test_rerun_from_scratch_converges(
    store, sources, sample_programs, sample_unit_groups, sample_outlook_rows
):
    catalog = sources(sample_programs, sample_unit_groups, sample_outlook_rows)
    await _runner(store, catalog).run()
    first = store.snapshot()

    # every count fails, so every offset is 0 and everything is re-applied
    store.count_errors = {t: StoreError(ErrorKind.TRANSIENT, "timeout") for t in COUNTED_TABLES}
    report = await _runner(store, catalog).run()

    assert report.results["programs"].processed == 4
    assert store.snapshot() == first


@pytest.mark.asyncio
async def test_processed_equals_source_minus_skip(
    store, sources, sample_programs, sample_unit_groups, sample_outlook_rows
):
    catalog = sources(sample_programs, sample_unit_groups, sample_outlook_rows)
    store.seed(OUTLOOKS_TABLE, [{"noc_code": f"{i:05d}"} for i in range(3)])

    report = await _runner(store, catalog).run()

    expected = {
        "program_areas": 2,
        "programs": 4,
        "noc_unit_groups": 3,
        "outlooks": 4 - 3,
        "program_noc_links": 4,
    }
    assert {name: r.processed for name, r in report.results.items()} == expected


@pytest.mark.asyncio
async def test_stale_rows_clamp_skip(store, sources, programs_factory):
    catalog = sources(programs=programs_factory(5, areas=1))
    store.seed(PROGRAMS_TABLE, [{"nid": str(900 + i)} for i in range(8)])

    report = await _runner(store, catalog, {Entity.PROGRAMS}).run()

    assert report.results["programs"].processed == 0
    assert report.results["programs"].as_dict() == {"created": 0, "skipped": 0}


@pytest.mark.asyncio
async def test_links_created_after_parents(store, sources, sample_programs, sample_unit_groups):
    catalog = sources(sample_programs, sample_unit_groups)

    report = await _runner(store, catalog, set(SEED_ORDER) - {Entity.OUTLOOKS}).run()

    assert report.results["program_noc_links"].as_dict() == {"created": 3, "skipped": 1}
    assert len(store.rows(PROGRAM_NOC_LINKS_TABLE)) == 3


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unreachable_store_aborts_before_seeding(store, sources, programs_factory):
    store.healthy = False
    catalog = sources(programs=programs_factory(3))

    report = await _runner(store, catalog).run()

    assert not report.success
    assert "connection" in report.error
    assert report.results == {}
    assert sum(store.upsert_calls.values()) == 0


@pytest.mark.asyncio
async def test_missing_source_aborts_before_seeding(store, tmp_path, sources, programs_factory):
    sources(programs=programs_factory(3))
    catalog = SourceCatalog(
        tmp_path / "viu_programs.json", tmp_path / "unit_groups.json", tmp_path / "absent.xlsx"
    )

    report = await _runner(store, catalog).run()

    assert not report.success
    assert "absent.xlsx" in report.error
    assert sum(store.upsert_calls.values()) == 0


@pytest.mark.asyncio
async def test_missing_source_ignored_when_entity_disabled(store, tmp_path, sources, programs_factory):
    sources(programs=programs_factory(3))
    catalog = SourceCatalog(
        tmp_path / "viu_programs.json", tmp_path / "unit_groups.json", tmp_path / "absent.xlsx"
    )

    report = await _runner(store, catalog, AREAS_AND_PROGRAMS).run()

    assert report.success


@pytest.mark.asyncio
async def test_failing_seeder_does_not_stop_the_run(
    store, sources, sample_programs, sample_unit_groups, sample_outlook_rows
):
    catalog = sources(sample_programs, sample_unit_groups, sample_outlook_rows)
    store.find_many = AsyncMock(side_effect=StoreError(ErrorKind.OTHER, "relation does not exist"))

    report = await _runner(store, catalog).run()

    assert not report.success
    assert "Program-NOC Links" in report.error
    assert set(report.results) == {e.value for e in SEED_ORDER}
    assert report.results["program_noc_links"].as_dict() == {"created": 0, "skipped": 0}
    assert report.total_created == sum(r.created for r in report.results.values())


@pytest.mark.asyncio
async def test_failed_seeder_keeps_counts_reached(store, sources, programs_factory):
    async def _created(_record):
        return Outcome.CREATED

    async def _three_then_fail(ctx, skip):
        await ctx.executor.run("Programs", [1, 2, 3], _created)
        raise RuntimeError("connection reset")

    runner = _runner(store, sources(programs=programs_factory(3)), {Entity.PROGRAMS})
    runner.specs = [SeederSpec(Entity.PROGRAMS, "Programs", True, _three_then_fail)]

    report = await runner.run()

    assert not report.success
    assert report.error == "Programs: connection reset"
    assert report.results["programs"].as_dict() == {"created": 3, "skipped": 0}
    assert report.total_created == 3


@pytest.mark.asyncio
async def test_totals_exclude_section_writes(store, sources, sample_unit_groups, checkpoints):
    catalog = sources(unit_groups=sample_unit_groups)

    report = await _runner(store, catalog, {Entity.NOC_UNIT_GROUPS}, checkpoints).run()

    # three unit groups; their three sections are written but not totalled
    assert report.results["noc_unit_groups"].as_dict() == {"created": 3, "skipped": 0}
    assert report.total_created == sum(r.created for r in report.results.values()) == 3
    assert report.total_processed == 3
    assert len(store.rows(NOC_SECTIONS_TABLE)) == 3
    assert checkpoints.writes[-1]["created_total"] == 3
    assert checkpoints.writes[-1]["processed"] == 3


@pytest.mark.asyncio
async def test_final_checkpoint_marks_completion(store, sources, programs_factory, checkpoints):
    catalog = sources(programs=programs_factory(7, areas=2))

    report = await _runner(store, catalog, AREAS_AND_PROGRAMS, checkpoints).run()

    final = checkpoints.writes[-1]
    assert final["operation"] == "COMPLETED"
    assert final["created_total"] == report.total_created == 9
    assert final["total"] == 9


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

def test_specs_follow_dependency_order():
    specs = build_specs(SEED_ORDER)
    assert [s.entity for s in specs] == list(SEED_ORDER)
    validate_order(specs)


def test_validate_order_rejects_dependant_first():
    with pytest.raises(ValueError, match="programs"):
        validate_order(list(reversed(build_specs(SEED_ORDER))))


def test_resolve_enabled_flags_only_and_exclude():
    flags = {e.value: True for e in SEED_ORDER}
    flags["outlooks"] = False

    assert resolve_enabled(flags=flags) == set(SEED_ORDER) - {Entity.OUTLOOKS}
    assert resolve_enabled(only=["outlooks"], flags=flags) == {Entity.OUTLOOKS}
    assert resolve_enabled(exclude=[Entity.PROGRAMS], flags=flags) == {
        Entity.PROGRAM_AREAS,
        Entity.NOC_UNIT_GROUPS,
        Entity.PROGRAM_NOC_LINKS,
    }


@pytest.mark.asyncio
async def test_run_entrypoint(store, sources, programs_factory, checkpoints, monkeypatch):
    monkeypatch.setattr(seed_all, "default_error_log", lambda: None)
    catalog = sources(programs=programs_factory(4, areas=2))

    report = await seed_all.run(
        only=["program_areas"], store=store, catalog=catalog, checkpoints=checkpoints
    )

    assert report.success
    assert report.as_dict()["results"] == {"program_areas": {"created": 2, "skipped": 0}}
