"""
constants.py — shared constants used across the pipeline and the health API.

Entity names, table names, and upsert conflict keys are defined here so
the seeders, the resume calculator, and the CLI stay in sync.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Final


class Entity(str, Enum):
    """Seedable entity streams, in dependency order."""

    PROGRAM_AREAS = "program_areas"
    PROGRAMS = "programs"
    NOC_UNIT_GROUPS = "noc_unit_groups"
    OUTLOOKS = "outlooks"
    PROGRAM_NOC_LINKS = "program_noc_links"


SEED_ORDER: Final[tuple[Entity, ...]] = (
    Entity.PROGRAM_AREAS,
    Entity.PROGRAMS,
    Entity.NOC_UNIT_GROUPS,
    Entity.OUTLOOKS,
    Entity.PROGRAM_NOC_LINKS,
)

ENTITY_LABELS: Final[dict[Entity, str]] = {
    Entity.PROGRAM_AREAS: "Program Areas",
    Entity.PROGRAMS: "Programs",
    Entity.NOC_UNIT_GROUPS: "NOC Unit Groups",
    Entity.OUTLOOKS: "Outlooks",
    Entity.PROGRAM_NOC_LINKS: "Program-NOC Links",
}

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------
PROGRAM_AREAS_TABLE: Final = "program_areas"
PROGRAMS_TABLE: Final = "programs"
NOC_UNIT_GROUPS_TABLE: Final = "noc_unit_groups"
NOC_SECTIONS_TABLE: Final = "noc_sections"
ECONOMIC_REGIONS_TABLE: Final = "economic_regions"
OUTLOOKS_TABLE: Final = "outlooks"
PROGRAM_NOC_LINKS_TABLE: Final = "program_noc_links"

# All tables counted for diagnostics; sections and regions never drive a skip.
COUNTED_TABLES: Final[tuple[str, ...]] = (
    PROGRAM_AREAS_TABLE,
    PROGRAMS_TABLE,
    NOC_UNIT_GROUPS_TABLE,
    NOC_SECTIONS_TABLE,
    ECONOMIC_REGIONS_TABLE,
    OUTLOOKS_TABLE,
    PROGRAM_NOC_LINKS_TABLE,
)

ENTITY_TABLES: Final[dict[Entity, str]] = {
    Entity.PROGRAM_AREAS: PROGRAM_AREAS_TABLE,
    Entity.PROGRAMS: PROGRAMS_TABLE,
    Entity.NOC_UNIT_GROUPS: NOC_UNIT_GROUPS_TABLE,
    Entity.OUTLOOKS: OUTLOOKS_TABLE,
    Entity.PROGRAM_NOC_LINKS: PROGRAM_NOC_LINKS_TABLE,
}

CONFLICT_KEYS: Final[dict[str, tuple[str, ...]]] = {
    PROGRAM_AREAS_TABLE: ("nid",),
    PROGRAMS_TABLE: ("nid",),
    NOC_UNIT_GROUPS_TABLE: ("noc_code",),
    NOC_SECTIONS_TABLE: ("noc_code", "title"),
    ECONOMIC_REGIONS_TABLE: ("economic_region_code",),
    OUTLOOKS_TABLE: (
        "noc_code",
        "economic_region_code",
        "province",
        "release_date",
        "language",
    ),
    PROGRAM_NOC_LINKS_TABLE: ("program_id", "noc_code"),
}

# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------
NOC_CODE_WIDTH: Final = 5
NOC_CODE_PREFIX: Final = "NOC_"
DEFAULT_RELEASE_DATE: Final = date(2024, 1, 1)
DEFAULT_LANGUAGE: Final = "EN"
KNOWN_LINK_CONFIDENCE: Final = 1.0

# Outlook workbook headers
COL_NOC_CODE: Final = "NOC_Code"
COL_REGION_CODE: Final = "Economic Region Code"
COL_REGION_NAME: Final = "Economic Region"
COL_PROVINCE: Final = "Province"
COL_OUTLOOK: Final = "Outlook"
COL_TRENDS: Final = "Employment Trends"
COL_RELEASE_DATE: Final = "Release Date"
COL_LANGUAGE: Final = "LANG"

# Used when the expected total cannot be derived from the source files
FALLBACK_TOTAL_RECORDS: Final = 10_000
