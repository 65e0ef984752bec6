"""
nocdata_shared.models — Pydantic models matching each seeded table.

These models are used by the pipeline to shape upsert payloads:
  .key()             -> dict of the unique-key columns
  .to_insert_dict()  -> full JSON-serialisable row
"""

from nocdata_shared.models.noc import NocSection, NocUnitGroup
from nocdata_shared.models.outlooks import EconomicRegion, Outlook
from nocdata_shared.models.programs import (
    CredentialKind,
    Program,
    ProgramArea,
    ProgramNocLink,
)

__all__ = [
    "ProgramArea",
    "Program",
    "CredentialKind",
    "ProgramNocLink",
    "NocUnitGroup",
    "NocSection",
    "EconomicRegion",
    "Outlook",
]
