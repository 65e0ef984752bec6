"""
models/programs.py — Pydantic models for program_areas, programs, program_noc_links.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class CredentialKind(str, Enum):
    CERTIFICATE = "Certificate"
    DIPLOMA = "Diploma"
    DEGREE = "Degree"


class ProgramArea(BaseModel):
    """Matches the program_areas table row."""

    nid: str
    title: str

    def key(self) -> dict[str, Any]:
        return {"nid": self.nid}

    def to_insert_dict(self) -> dict[str, Any]:
        return {"nid": self.nid, "title": self.title}


class Program(BaseModel):
    """Matches the programs table row."""

    nid: str
    title: str
    duration: str | None = None
    credential: CredentialKind = CredentialKind.CERTIFICATE
    viu_search_keywords: list[str] = Field(default_factory=list)
    noc_search_keywords: list[str] = Field(default_factory=list)
    known_noc_groups: list[str] = Field(default_factory=list)
    program_area_id: Any

    def key(self) -> dict[str, Any]:
        return {"nid": self.nid}

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "nid": self.nid,
            "title": self.title,
            "duration": self.duration,
            "credential": self.credential.value,
            "viu_search_keywords": self.viu_search_keywords,
            "noc_search_keywords": self.noc_search_keywords,
            "known_noc_groups": self.known_noc_groups,
            "program_area_id": self.program_area_id,
        }


class ProgramNocLink(BaseModel):
    """Matches the program_noc_links table row."""

    program_id: Any
    noc_code: str
    is_known: bool = True
    confidence: float = 1.0

    def key(self) -> dict[str, Any]:
        return {"program_id": self.program_id, "noc_code": self.noc_code}

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "program_id": self.program_id,
            "noc_code": self.noc_code,
            "is_known": self.is_known,
            "confidence": self.confidence,
        }
