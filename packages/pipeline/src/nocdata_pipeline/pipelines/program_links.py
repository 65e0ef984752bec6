"""
pipelines/program_links.py — Program ↔ NOC unit group links.

Links are flattened from each program's known_noc_groups in source order,
so a stored link count lines up with the source positions used by the
resume offset. A link is skipped unless both its program and its NOC
unit group already exist. Smaller groups are used here because every
record costs an extra lookup.
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import (
    ENTITY_LABELS,
    NOC_UNIT_GROUPS_TABLE,
    PROGRAM_NOC_LINKS_TABLE,
    PROGRAMS_TABLE,
    Entity,
)

from nocdata_pipeline.pipelines.base import SeedContext, outcome_of
from nocdata_pipeline.transforms.records import to_program_link
from nocdata_pipeline.utils.batch import BatchResult, Outcome
from nocdata_pipeline.utils.logging import get_logger

log = get_logger(__name__, entity=Entity.PROGRAM_NOC_LINKS.value)


async def _program_ids(ctx: SeedContext) -> dict[str, Any]:
    rows = await ctx.read(
        lambda: ctx.store.find_many(PROGRAMS_TABLE, columns="id,nid", order="nid"),
        "Program id lookup",
    )
    return {str(row["nid"]): row["id"] for row in rows}


async def _process_link(ctx: SeedContext, program_ids: dict[str, Any], link: dict[str, Any]) -> Outcome:
    program_id = program_ids.get(link["program_nid"])
    if program_id is None:
        log.warning("link_program_missing", program_nid=link["program_nid"], noc_code=link["noc_code"])
        return Outcome.SKIPPED

    lookup = await ctx.lookup(
        NOC_UNIT_GROUPS_TABLE,
        {"noc_code": link["noc_code"]},
        f"NOC Unit Group lookup: {link['noc_code']}",
    )
    if not lookup.ok:
        return Outcome.ERROR
    if lookup.record is None:
        log.warning("link_noc_missing", program=link["program_title"], noc_code=link["noc_code"])
        return Outcome.SKIPPED

    row = to_program_link(program_id, link["noc_code"])
    result = await ctx.upsert(
        PROGRAM_NOC_LINKS_TABLE,
        row.key(),
        row.to_insert_dict(),
        f"Program-NOC Link: {link['program_title']} - {link['noc_code']}",
    )
    return outcome_of(result)


async def run(ctx: SeedContext, skip: int = 0) -> BatchResult:
    links = ctx.catalog.program_links()
    program_ids = await _program_ids(ctx)
    log.info("program_links_ready", rows=len(links), programs=len(program_ids), skip=skip)
    return await ctx.executor.run(
        ENTITY_LABELS[Entity.PROGRAM_NOC_LINKS],
        links,
        lambda link: _process_link(ctx, program_ids, link),
        skip=skip,
        batch_size=ctx.link_batch_size,
    )
