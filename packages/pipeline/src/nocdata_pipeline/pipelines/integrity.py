"""
pipelines/integrity.py — Read-only comparison of source files against stored rows.

For every table an enabled entity writes, builds the set of unique keys
the seeders would produce from the source files and the set of keys
actually stored, then reports:
  missing — in the source, not in the store (a re-run will create them)
  extra   — in the store, not in the source (stale or foreign rows)

Nothing is written or deleted. Links are compared as (program nid,
noc_code) since stored links only carry the program row id.

Usage:
    from nocdata_pipeline.pipelines.integrity import IntegrityChecker
    reports = await IntegrityChecker(store, catalog).check()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from nocdata_shared.constants import (
    CONFLICT_KEYS,
    ECONOMIC_REGIONS_TABLE,
    NOC_SECTIONS_TABLE,
    NOC_UNIT_GROUPS_TABLE,
    OUTLOOKS_TABLE,
    PROGRAM_AREAS_TABLE,
    PROGRAM_NOC_LINKS_TABLE,
    PROGRAMS_TABLE,
    SEED_ORDER,
    Entity,
)

from nocdata_pipeline.loaders.supabase_store import SupabaseStore
from nocdata_pipeline.sources.catalog import SourceCatalog
from nocdata_pipeline.transforms.records import (
    to_economic_region,
    to_outlook,
    to_program,
    to_program_area,
    to_section,
    to_unit_group,
)
from nocdata_pipeline.utils.logging import get_logger
from nocdata_pipeline.utils.retry import RetryPolicy, call_with_retry

log = get_logger(__name__, pipeline="integrity")

Key = tuple[str, ...]

# Tables checked per entity; nested and derived tables ride with their parent.
ENTITY_CHECKS: dict[Entity, tuple[str, ...]] = {
    Entity.PROGRAM_AREAS: (PROGRAM_AREAS_TABLE,),
    Entity.PROGRAMS: (PROGRAMS_TABLE,),
    Entity.NOC_UNIT_GROUPS: (NOC_UNIT_GROUPS_TABLE, NOC_SECTIONS_TABLE),
    Entity.OUTLOOKS: (ECONOMIC_REGIONS_TABLE, OUTLOOKS_TABLE),
    Entity.PROGRAM_NOC_LINKS: (PROGRAM_NOC_LINKS_TABLE,),
}


@dataclass
class TableIntegrity:
    table: str
    source: int = 0
    stored: int = 0
    missing: list[Key] = field(default_factory=list)
    extra: list[Key] = field(default_factory=list)

    @property
    def matches(self) -> int:
        return self.source - len(self.missing)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.extra

    def as_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "source": self.source,
            "stored": self.stored,
            "matches": self.matches,
            "missing": len(self.missing),
            "extra": len(self.extra),
        }


def _row_key(table: str, row: dict[str, Any]) -> Key:
    return tuple(str(row.get(col)) for col in CONFLICT_KEYS[table])


def _model_key(table: str, model: Any) -> Key:
    key = model.key()
    return tuple(str(key[col]) for col in CONFLICT_KEYS[table])


class IntegrityChecker:
    """Compares the keys seeders derive from the sources with the stored keys."""

    def __init__(
        self,
        store: SupabaseStore,
        catalog: SourceCatalog,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.policy = policy or RetryPolicy.from_settings()

    # ------------------------------------------------------------------
    # Source keys
    # ------------------------------------------------------------------

    def source_keys(self, table: str) -> list[Key]:
        """Unique keys in first-seen order, invalid records left out."""
        keys: dict[Key, None] = {}
        for key in self._iter_source_keys(table):
            keys.setdefault(key, None)
        return list(keys)

    def _iter_source_keys(self, table: str) -> Iterable[Key]:
        if table == PROGRAM_AREAS_TABLE:
            models = (to_program_area(raw) for raw in self.catalog.program_areas())
        elif table == PROGRAMS_TABLE:
            models = (to_program(raw, program_area_id=None) for raw in self.catalog.programs())
        elif table == NOC_UNIT_GROUPS_TABLE:
            models = (to_unit_group(raw) for raw in self.catalog.unit_groups())
        elif table == NOC_SECTIONS_TABLE:
            models = self._sections()
        elif table == ECONOMIC_REGIONS_TABLE:
            models = (to_economic_region(raw) for raw in self.catalog.economic_regions())
        elif table == OUTLOOKS_TABLE:
            models = (to_outlook(row) for row in self.catalog.outlook_rows())
        elif table == PROGRAM_NOC_LINKS_TABLE:
            return (
                (link["program_nid"], link["noc_code"])
                for link in self.catalog.program_links()
                if link["program_nid"] and link["noc_code"]
            )
        else:
            raise ValueError(f"unknown table: {table}")
        return (_model_key(table, m) for m in models if m is not None)

    def _sections(self) -> Iterable[Any]:
        for raw in self.catalog.unit_groups():
            group = to_unit_group(raw)
            if group is None:
                continue
            for section in raw.get("sections") or []:
                yield to_section(group.noc_code, section)

    # ------------------------------------------------------------------
    # Stored keys
    # ------------------------------------------------------------------

    async def _read(self, table: str, columns: str, order: str) -> list[dict[str, Any]]:
        return await call_with_retry(
            lambda: self.store.find_many(table, columns=columns, order=order),
            f"Integrity read: {table}",
            self.policy,
        )

    async def stored_keys(self, table: str) -> list[Key]:
        if table != PROGRAM_NOC_LINKS_TABLE:
            rows = await self._read(table, ",".join(CONFLICT_KEYS[table]), CONFLICT_KEYS[table][0])
            return [_row_key(table, row) for row in rows]

        programs = await self._read(PROGRAMS_TABLE, "id,nid", "id")
        nid_by_id = {row["id"]: str(row["nid"]) for row in programs}
        links = await self._read(PROGRAM_NOC_LINKS_TABLE, "program_id,noc_code", "program_id")
        return [
            (nid_by_id.get(row["program_id"], f"id:{row['program_id']}"), str(row["noc_code"]))
            for row in links
        ]

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    async def check_table(self, table: str) -> TableIntegrity:
        source = self.source_keys(table)
        stored = await self.stored_keys(table)
        stored_set = set(stored)
        source_set = set(source)
        report = TableIntegrity(
            table=table,
            source=len(source),
            stored=len(stored),
            missing=[k for k in source if k not in stored_set],
            extra=[k for k in dict.fromkeys(stored) if k not in source_set],
        )
        log.info("table_checked", **report.as_dict())
        return report

    async def check(self, entities: Iterable[Entity] | None = None) -> list[TableIntegrity]:
        """
        Check every table of the given entities, in seeding order.

        Raises:
            SourceError: a source file needed by an entity cannot be read.
            StoreError:  a stored-key read failed after retries.
        """
        wanted = set(entities) if entities is not None else set(SEED_ORDER)
        reports = []
        for entity in SEED_ORDER:
            if entity not in wanted:
                continue
            for table in ENTITY_CHECKS[entity]:
                reports.append(await self.check_table(table))
        log.info(
            "integrity_check_complete",
            tables=len(reports),
            discrepancies=sum(len(r.missing) + len(r.extra) for r in reports),
        )
        return reports
