"""
utils/resume.py — Skip offsets derived from rows already in the store.

For every tracked entity the current row count is used directly as the
number of leading source records to skip, then capped at the size of
that entity's source collection. Sections and economic regions are
counted for diagnostics only; they are re-applied whenever their parent
collection runs.

Assumption: a count of N means source records 0..N-1 are already stored.
That holds only while the source files keep a stable order between runs
and every stored row came from a leading source record. Rows inserted by
other means, or a reordered source file, make the offsets skip the wrong
records. Nothing here verifies content; re-running with all offsets at 0
(upserts are idempotent) is always safe.

Failure policy: a failed count leaves that entity at 0; any other error
(e.g. an unreadable source file) resets every offset to 0. The run is
never aborted from here.

Usage:
    plan = await ResumeCalculator(store, catalog).calculate()
    skip = plan.skip_for(Entity.PROGRAMS)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from nocdata_shared.constants import COUNTED_TABLES, ENTITY_LABELS, ENTITY_TABLES, SEED_ORDER, Entity

from nocdata_pipeline.sources.catalog import SourceCatalog

log = structlog.get_logger(__name__)


@dataclass
class ResumePlan:
    skips: dict[Entity, int] = field(default_factory=lambda: {e: 0 for e in SEED_ORDER})
    counts: dict[str, int] = field(default_factory=dict)
    source_sizes: dict[Entity, int] = field(default_factory=dict)
    capped: dict[Entity, int] = field(default_factory=dict)
    fallback: bool = False

    @classmethod
    def from_scratch(cls) -> "ResumePlan":
        return cls(fallback=True)

    def skip_for(self, entity: Entity) -> int:
        return self.skips.get(entity, 0)

    @property
    def resuming(self) -> bool:
        return any(v > 0 for v in self.skips.values())

    def as_dict(self) -> dict[str, int]:
        return {e.value: v for e, v in self.skips.items()}


class ResumeCalculator:
    def __init__(
        self,
        store: Any,
        catalog: SourceCatalog,
        entities: Iterable[Entity] = SEED_ORDER,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._entities = [e for e in SEED_ORDER if e in set(entities)]

    async def existing_counts(self) -> dict[str, int]:
        """Row counts for every seeded table; a failed count reads as 0."""
        counts: dict[str, int] = {}
        for table in COUNTED_TABLES:
            try:
                counts[table] = await self._store.count(table)
            except Exception as exc:
                log.warning("count_failed", table=table, error=str(exc))
                counts[table] = 0
        log.info("existing_record_counts", **counts)
        return counts

    def source_sizes(self) -> dict[Entity, int]:
        return {entity: self._catalog.size_of(entity) for entity in self._entities}

    async def calculate(self) -> ResumePlan:
        log.info("resume_calculation_start", entities=[e.value for e in self._entities])
        try:
            counts = await self.existing_counts()
            sizes = self.source_sizes()

            plan = ResumePlan(counts=counts, source_sizes=sizes)
            for entity in self._entities:
                candidate = counts.get(ENTITY_TABLES[entity], 0)
                size = sizes[entity]
                if candidate > size:
                    log.warning(
                        "skip_value_capped",
                        entity=entity.value,
                        stored=candidate,
                        source_size=size,
                    )
                    plan.capped[entity] = candidate
                    candidate = size
                plan.skips[entity] = candidate
        except Exception as exc:
            log.error("resume_calculation_failed", error=str(exc), exc_info=True)
            log.warning("resume_fallback_to_zero")
            return ResumePlan.from_scratch()

        self.log_summary(plan)
        return plan

    @staticmethod
    def log_summary(plan: ResumePlan) -> None:
        if not plan.resuming:
            log.info("resume_fresh_start")
            return
        for entity, skip in plan.skips.items():
            size = plan.source_sizes.get(entity)
            log.info(
                "resume_position",
                entity=ENTITY_LABELS[entity],
                skip=skip,
                source_size=size,
                capped_from=plan.capped.get(entity),
            )
