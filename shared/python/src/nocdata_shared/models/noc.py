"""
models/noc.py — Pydantic models for noc_unit_groups and noc_sections.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class NocUnitGroup(BaseModel):
    """Matches the noc_unit_groups table row."""

    noc_code: str
    occupation: str

    def key(self) -> dict[str, Any]:
        return {"noc_code": self.noc_code}

    def to_insert_dict(self) -> dict[str, Any]:
        return {"noc_code": self.noc_code, "occupation": self.occupation}


class NocSection(BaseModel):
    """Matches the noc_sections table row; unique on (noc_code, title)."""

    noc_code: str
    title: str
    items: list[Any] = Field(default_factory=list)

    def key(self) -> dict[str, Any]:
        return {"noc_code": self.noc_code, "title": self.title}

    def to_insert_dict(self) -> dict[str, Any]:
        return {"noc_code": self.noc_code, "title": self.title, "items": self.items}
