"""
pipelines/program_areas.py — Program areas seeder.

Program areas are not a source file of their own: they are the unique
``program_area`` objects embedded in the VIU programs file, keyed by nid.
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import ENTITY_LABELS, PROGRAM_AREAS_TABLE, Entity

from nocdata_pipeline.pipelines.base import SeedContext, outcome_of
from nocdata_pipeline.transforms.records import to_program_area
from nocdata_pipeline.utils.batch import BatchResult, Outcome
from nocdata_pipeline.utils.logging import get_logger

log = get_logger(__name__, entity=Entity.PROGRAM_AREAS.value)


async def _process_area(ctx: SeedContext, raw: dict[str, Any]) -> Outcome:
    area = to_program_area(raw)
    if area is None:
        log.warning("invalid_program_area", record=raw)
        return Outcome.SKIPPED
    result = await ctx.upsert(
        PROGRAM_AREAS_TABLE,
        area.key(),
        area.to_insert_dict(),
        f"Program Area: {area.title}",
    )
    return outcome_of(result)


async def run(ctx: SeedContext, skip: int = 0) -> BatchResult:
    areas = ctx.catalog.program_areas()
    log.info("program_areas_ready", rows=len(areas), skip=skip)
    return await ctx.executor.run(
        ENTITY_LABELS[Entity.PROGRAM_AREAS],
        areas,
        lambda raw: _process_area(ctx, raw),
        skip=skip,
    )
