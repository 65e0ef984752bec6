"""
sources/catalog.py — Per-run cache of parsed source collections.

The catalog parses each source file at most once per run and derives the
sub-collections the seeders and the resume calculator need:

  programs()          — VIU program records, source order
  program_areas()     — unique program areas keyed by program_area.nid
  unit_groups()       — NOC unit group records (with nested sections)
  outlook_rows()      — outlook workbook rows as header-keyed dicts
  economic_regions()  — unique regions keyed by region code, first seen wins
  program_links()     — (program nid, NOC code) pairs flattened from
                        each program's known_noc_groups, source order

Usage:
    catalog = SourceCatalog.from_settings()
    catalog.preload([Entity.PROGRAMS, Entity.OUTLOOKS])   # raises SourceError
    len(catalog.program_links())
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from nocdata_shared.config import settings
from nocdata_shared.constants import COL_PROVINCE, COL_REGION_CODE, COL_REGION_NAME, Entity

from nocdata_pipeline.sources.json_files import ProgramsSource, UnitGroupsSource
from nocdata_pipeline.sources.outlooks import OutlooksSource
from nocdata_pipeline.transforms.normalize import as_identifier, as_str_list, cell_str, normalize_noc_code

log = structlog.get_logger(__name__)


class SourceCatalog:
    def __init__(
        self,
        programs_path: str | Path,
        unit_groups_path: str | Path,
        outlooks_path: str | Path,
    ) -> None:
        self._programs_source = ProgramsSource(programs_path)
        self._unit_groups_source = UnitGroupsSource(unit_groups_path)
        self._outlooks_source = OutlooksSource(outlooks_path)
        self._cache: dict[str, list[dict[str, Any]]] = {}

    @classmethod
    def from_settings(cls) -> "SourceCatalog":
        return cls(
            settings.viu_programs_path,
            settings.unit_groups_path,
            settings.outlooks_path,
        )

    def _cached(self, key: str, loader) -> list[dict[str, Any]]:
        if key not in self._cache:
            self._cache[key] = loader()
        return self._cache[key]

    # ------------------------------------------------------------------
    # Raw collections
    # ------------------------------------------------------------------

    def programs(self) -> list[dict[str, Any]]:
        return self._cached("programs", self._programs_source.load)

    def unit_groups(self) -> list[dict[str, Any]]:
        return self._cached("unit_groups", self._unit_groups_source.load)

    def outlook_rows(self) -> list[dict[str, Any]]:
        return self._cached("outlook_rows", self._outlooks_source.load)

    # ------------------------------------------------------------------
    # Derived collections
    # ------------------------------------------------------------------

    def program_areas(self) -> list[dict[str, Any]]:
        def _extract() -> list[dict[str, Any]]:
            areas: dict[str, dict[str, Any]] = {}
            for program in self.programs():
                area = program.get("program_area")
                if not isinstance(area, dict):
                    continue
                nid = as_identifier(area.get("nid"))
                if nid:
                    areas[nid] = {"nid": nid, "title": area.get("title")}
            return list(areas.values())

        return self._cached("program_areas", _extract)

    def economic_regions(self) -> list[dict[str, Any]]:
        def _extract() -> list[dict[str, Any]]:
            regions: dict[str, dict[str, Any]] = {}
            for row in self.outlook_rows():
                code = cell_str(row.get(COL_REGION_CODE))
                if code and code not in regions:
                    regions[code] = {
                        COL_REGION_CODE: code,
                        COL_REGION_NAME: row.get(COL_REGION_NAME),
                        COL_PROVINCE: row.get(COL_PROVINCE),
                    }
            return list(regions.values())

        return self._cached("economic_regions", _extract)

    def program_links(self) -> list[dict[str, Any]]:
        def _extract() -> list[dict[str, Any]]:
            links: list[dict[str, Any]] = []
            for program in self.programs():
                for code in as_str_list(program.get("known_noc_groups")):
                    links.append(
                        {
                            "program_nid": as_identifier(program.get("nid")),
                            "program_title": cell_str(program.get("title")),
                            "noc_code": normalize_noc_code(code),
                        }
                    )
            return links

        return self._cached("program_links", _extract)

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def preload(self, entities: Iterable[Entity]) -> None:
        """
        Parse every file the given entities depend on.

        Raises:
            SourceError: a required file is missing or malformed.
        """
        entities = set(entities)
        if entities & {Entity.PROGRAM_AREAS, Entity.PROGRAMS, Entity.PROGRAM_NOC_LINKS}:
            self.programs()
        if Entity.NOC_UNIT_GROUPS in entities:
            self.unit_groups()
        if Entity.OUTLOOKS in entities:
            self.outlook_rows()
        log.info("sources_preloaded", entities=sorted(e.value for e in entities))

    def size_of(self, entity: Entity) -> int:
        """Number of source records the entity's seeder iterates over."""
        sizes = {
            Entity.PROGRAM_AREAS: self.program_areas,
            Entity.PROGRAMS: self.programs,
            Entity.NOC_UNIT_GROUPS: self.unit_groups,
            Entity.OUTLOOKS: self.outlook_rows,
            Entity.PROGRAM_NOC_LINKS: self.program_links,
        }
        return len(sizes[entity]())
