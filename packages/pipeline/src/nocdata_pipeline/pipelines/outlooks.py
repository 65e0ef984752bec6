"""
pipelines/outlooks.py — Economic regions and 3-year employment outlooks.

Outlook rows reference economic regions, so the unique regions found in
the workbook are upserted first in a single fan-out (not resumable),
then the outlook rows run through the batch executor with their own
skip offset.

Row coercion:
  - "NOC_12345" → "12345"; numeric codes are zero-padded to 5 digits
  - region codes read as floats ("5910.0") are stored as "5910"
  - missing or unparsable release dates default to 2024-01-01
  - LANG defaults to "EN"
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import (
    COL_NOC_CODE,
    COL_REGION_CODE,
    COL_REGION_NAME,
    ECONOMIC_REGIONS_TABLE,
    ENTITY_LABELS,
    OUTLOOKS_TABLE,
    Entity,
)

from nocdata_pipeline.pipelines.base import SeedContext, outcome_of
from nocdata_pipeline.transforms.records import to_economic_region, to_outlook
from nocdata_pipeline.utils.batch import BatchResult, Outcome
from nocdata_pipeline.utils.logging import get_logger

log = get_logger(__name__, entity=Entity.OUTLOOKS.value)


async def _process_region(ctx: SeedContext, raw: dict[str, Any]) -> Outcome:
    region = to_economic_region(raw)
    if region is None:
        log.warning("invalid_economic_region", region_name=raw.get(COL_REGION_NAME))
        return Outcome.SKIPPED
    result = await ctx.upsert(
        ECONOMIC_REGIONS_TABLE,
        region.key(),
        region.to_insert_dict(),
        f"Economic Region: {region.economic_region_code}",
    )
    return outcome_of(result)


async def seed_economic_regions(ctx: SeedContext) -> BatchResult:
    regions = ctx.catalog.economic_regions()
    log.info("economic_regions_ready", rows=len(regions))
    result = await ctx.executor.fan_out(
        "Economic Regions", regions, lambda raw: _process_region(ctx, raw)
    )
    log.info("economic_regions_complete", **result.as_dict(), errors=result.errors)
    return result


async def _process_outlook(ctx: SeedContext, row: dict[str, Any]) -> Outcome:
    outlook = to_outlook(row)
    if outlook is None:
        log.warning(
            "invalid_outlook_row",
            noc_code=row.get(COL_NOC_CODE),
            region_code=row.get(COL_REGION_CODE),
        )
        return Outcome.SKIPPED
    result = await ctx.upsert(
        OUTLOOKS_TABLE,
        outlook.key(),
        outlook.to_insert_dict(),
        f"Outlook: {outlook.noc_code} - {outlook.economic_region_code}",
    )
    return outcome_of(result)


async def run(ctx: SeedContext, skip: int = 0) -> BatchResult:
    await seed_economic_regions(ctx)

    rows = ctx.catalog.outlook_rows()
    log.info("outlooks_ready", rows=len(rows), skip=skip)
    return await ctx.executor.run(
        ENTITY_LABELS[Entity.OUTLOOKS],
        rows,
        lambda row: _process_outlook(ctx, row),
        skip=skip,
    )
