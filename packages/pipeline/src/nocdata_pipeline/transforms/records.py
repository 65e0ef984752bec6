"""
transforms/records.py — Source record → row model mapping.

Each mapper validates the required fields of one source record and
returns the matching pydantic row model, or None when the record cannot
be stored. Dependency resolution (looking up parent rows) is the
seeders' job; mappers only take already-resolved ids.
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import (
    COL_LANGUAGE,
    COL_NOC_CODE,
    COL_OUTLOOK,
    COL_PROVINCE,
    COL_REGION_CODE,
    COL_REGION_NAME,
    COL_RELEASE_DATE,
    COL_TRENDS,
    DEFAULT_LANGUAGE,
    KNOWN_LINK_CONFIDENCE,
)
from nocdata_shared.models import (
    EconomicRegion,
    NocSection,
    NocUnitGroup,
    Outlook,
    Program,
    ProgramArea,
    ProgramNocLink,
)
from nocdata_shared.time_utils import parse_release_date

from nocdata_pipeline.transforms.normalize import (
    as_identifier,
    as_str_list,
    cell_str,
    normalize_credential,
    normalize_noc_code,
)


def to_program_area(raw: dict[str, Any]) -> ProgramArea | None:
    nid = as_identifier(raw.get("nid"))
    title = cell_str(raw.get("title"))
    if not nid or not title:
        return None
    return ProgramArea(nid=nid, title=title)


def program_area_nid(raw_program: dict[str, Any]) -> str:
    area = raw_program.get("program_area")
    if not isinstance(area, dict):
        return ""
    return as_identifier(area.get("nid"))


def to_program(raw: dict[str, Any], program_area_id: Any) -> Program | None:
    nid = as_identifier(raw.get("nid"))
    title = cell_str(raw.get("title"))
    if not nid or not title:
        return None
    duration = cell_str(raw.get("duration")) or None
    return Program(
        nid=nid,
        title=title,
        duration=duration,
        credential=normalize_credential(raw.get("credential")),
        viu_search_keywords=as_str_list(raw.get("viu_search_keywords")),
        noc_search_keywords=as_str_list(raw.get("noc_search_keywords")),
        known_noc_groups=[normalize_noc_code(c) for c in as_str_list(raw.get("known_noc_groups"))],
        program_area_id=program_area_id,
    )


def to_unit_group(raw: dict[str, Any]) -> NocUnitGroup | None:
    noc_code = normalize_noc_code(raw.get("noc_number"))
    occupation = cell_str(raw.get("occupation"))
    if not noc_code or not occupation:
        return None
    return NocUnitGroup(noc_code=noc_code, occupation=occupation)


def to_section(noc_code: str, raw: dict[str, Any]) -> NocSection | None:
    title = cell_str(raw.get("title")) if isinstance(raw, dict) else ""
    if not title:
        return None
    items = raw.get("items") or []
    return NocSection(noc_code=noc_code, title=title, items=list(items))


def to_economic_region(row: dict[str, Any]) -> EconomicRegion | None:
    code = cell_str(row.get(COL_REGION_CODE))
    if not code:
        return None
    return EconomicRegion(
        economic_region_code=code,
        province=cell_str(row.get(COL_PROVINCE)),
        economic_region_name=cell_str(row.get(COL_REGION_NAME)) or None,
    )


def to_outlook(row: dict[str, Any]) -> Outlook | None:
    """Map one workbook row; a missing release date defaults to 2024-01-01."""
    noc_code = normalize_noc_code(row.get(COL_NOC_CODE))
    region_code = cell_str(row.get(COL_REGION_CODE))
    province = cell_str(row.get(COL_PROVINCE))
    rating = cell_str(row.get(COL_OUTLOOK))
    if not (noc_code and region_code and province and rating):
        return None
    return Outlook(
        noc_code=noc_code,
        economic_region_code=region_code,
        province=province,
        release_date=parse_release_date(row.get(COL_RELEASE_DATE)),
        language=cell_str(row.get(COL_LANGUAGE)) or DEFAULT_LANGUAGE,
        outlook=rating,
        employment_trends=cell_str(row.get(COL_TRENDS)) or None,
    )


def to_program_link(program_id: Any, noc_code: str) -> ProgramNocLink:
    return ProgramNocLink(
        program_id=program_id,
        noc_code=noc_code,
        is_known=True,
        confidence=KNOWN_LINK_CONFIDENCE,
    )
