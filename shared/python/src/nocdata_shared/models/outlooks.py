"""
models/outlooks.py — Pydantic models for economic_regions and outlooks.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel


class EconomicRegion(BaseModel):
    """Matches the economic_regions table row."""

    economic_region_code: str
    province: str
    economic_region_name: str | None = None

    def key(self) -> dict[str, Any]:
        return {"economic_region_code": self.economic_region_code}

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "economic_region_code": self.economic_region_code,
            "province": self.province,
            "economic_region_name": self.economic_region_name,
        }


class Outlook(BaseModel):
    """
    Matches the outlooks table row.

    Unique on (noc_code, economic_region_code, province, release_date, language).
    """

    noc_code: str
    economic_region_code: str
    province: str
    release_date: date
    language: str = "EN"
    outlook: str
    employment_trends: str | None = None

    def key(self) -> dict[str, Any]:
        return {
            "noc_code": self.noc_code,
            "economic_region_code": self.economic_region_code,
            "province": self.province,
            "release_date": self.release_date.isoformat(),
            "language": self.language,
        }

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            **self.key(),
            "outlook": self.outlook,
            "employment_trends": self.employment_trends,
        }
