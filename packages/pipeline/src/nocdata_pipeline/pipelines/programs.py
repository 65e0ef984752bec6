"""
pipelines/programs.py — VIU programs seeder.

Each program must reference a program area that already exists in the
store; programs whose area cannot be found are skipped, never created.
Credentials are normalized to Certificate / Diploma / Degree and known
NOC group codes to their 5-digit stored form.
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import ENTITY_LABELS, PROGRAM_AREAS_TABLE, PROGRAMS_TABLE, Entity

from nocdata_pipeline.pipelines.base import SeedContext, outcome_of
from nocdata_pipeline.transforms.records import program_area_nid, to_program
from nocdata_pipeline.utils.batch import BatchResult, Outcome
from nocdata_pipeline.utils.logging import get_logger

log = get_logger(__name__, entity=Entity.PROGRAMS.value)


async def _process_program(ctx: SeedContext, raw: dict[str, Any]) -> Outcome:
    area_nid = program_area_nid(raw)
    if not area_nid:
        log.warning("program_without_area", nid=raw.get("nid"), title=raw.get("title"))
        return Outcome.SKIPPED

    lookup = await ctx.lookup(
        PROGRAM_AREAS_TABLE, {"nid": area_nid}, f"Program Area lookup: {area_nid}"
    )
    if not lookup.ok:
        return Outcome.ERROR
    area = lookup.record
    if area is None:
        log.warning(
            "program_area_missing",
            nid=raw.get("nid"),
            title=raw.get("title"),
            program_area_nid=area_nid,
        )
        return Outcome.SKIPPED

    program = to_program(raw, program_area_id=area["id"])
    if program is None:
        log.warning("invalid_program", nid=raw.get("nid"), title=raw.get("title"))
        return Outcome.SKIPPED

    result = await ctx.upsert(
        PROGRAMS_TABLE,
        program.key(),
        program.to_insert_dict(),
        f"Program: {program.title}",
    )
    return outcome_of(result)


async def run(ctx: SeedContext, skip: int = 0) -> BatchResult:
    programs = ctx.catalog.programs()
    log.info("programs_ready", rows=len(programs), skip=skip)
    return await ctx.executor.run(
        ENTITY_LABELS[Entity.PROGRAMS],
        programs,
        lambda raw: _process_program(ctx, raw),
        skip=skip,
    )
