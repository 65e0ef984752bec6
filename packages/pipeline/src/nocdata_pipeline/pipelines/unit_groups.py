"""
pipelines/unit_groups.py — NOC unit groups and their sections.

Each unit group is upserted by its 5-digit code, then all of its sections
are upserted in one bounded fan-out keyed by (noc_code, title). Sections
are not resumable on their own: they are re-applied every time their
parent unit group is processed, whatever the unit group skip offset.
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import ENTITY_LABELS, NOC_SECTIONS_TABLE, NOC_UNIT_GROUPS_TABLE, Entity

from nocdata_pipeline.pipelines.base import SeedContext, outcome_of
from nocdata_pipeline.transforms.records import to_section, to_unit_group
from nocdata_pipeline.utils.batch import BatchResult, Outcome
from nocdata_pipeline.utils.logging import get_logger

log = get_logger(__name__, entity=Entity.NOC_UNIT_GROUPS.value)

LARGE_SECTION_COUNT = 20


async def _upsert_sections(ctx: SeedContext, noc_code: str, sections: list[Any]) -> BatchResult:
    if len(sections) > LARGE_SECTION_COUNT:
        log.info("processing_sections", noc_code=noc_code, sections=len(sections))

    async def _process_section(raw: Any) -> Outcome:
        section = to_section(noc_code, raw)
        if section is None:
            log.warning("invalid_section", noc_code=noc_code, record=raw)
            return Outcome.SKIPPED
        result = await ctx.upsert(
            NOC_SECTIONS_TABLE,
            section.key(),
            section.to_insert_dict(),
            f"NOC Section: {noc_code} / {section.title}",
        )
        return outcome_of(result)

    return await ctx.executor.fan_out(f"NOC Sections {noc_code}", sections, _process_section)


async def _process_unit_group(ctx: SeedContext, raw: dict[str, Any]) -> Outcome:
    unit_group = to_unit_group(raw)
    if unit_group is None:
        log.warning(
            "invalid_unit_group",
            noc_number=raw.get("noc_number"),
            occupation=raw.get("occupation"),
        )
        return Outcome.SKIPPED

    result = await ctx.upsert(
        NOC_UNIT_GROUPS_TABLE,
        unit_group.key(),
        unit_group.to_insert_dict(),
        f"NOC Unit Group: {unit_group.noc_code}",
    )
    outcome = outcome_of(result)
    if outcome is Outcome.ERROR:
        return outcome

    sections = raw.get("sections") or []
    if sections:
        section_result = await _upsert_sections(ctx, unit_group.noc_code, list(sections))
        if section_result.errors:
            log.warning(
                "sections_failed",
                noc_code=unit_group.noc_code,
                failed=section_result.errors,
                total=len(sections),
            )
    return outcome


async def run(ctx: SeedContext, skip: int = 0) -> BatchResult:
    unit_groups = ctx.catalog.unit_groups()
    log.info("unit_groups_ready", rows=len(unit_groups), skip=skip)
    return await ctx.executor.run(
        ENTITY_LABELS[Entity.NOC_UNIT_GROUPS],
        unit_groups,
        lambda raw: _process_unit_group(ctx, raw),
        skip=skip,
    )
