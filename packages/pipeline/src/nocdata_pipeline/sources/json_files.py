"""
sources/json_files.py — JSON array sources (VIU programs, NOC unit groups).

Both files are a single top-level JSON array of objects:

viu_programs.json
    [{"nid": 101, "title": "...", "credential": "diploma", "duration": "2 years",
      "program_area": {"nid": 7, "title": "Trades"},
      "viu_search_keywords": [...], "noc_search_keywords": [...],
      "known_noc_groups": ["72310", ...]}, ...]

unit_groups.json
    [{"noc_number": "72310", "occupation": "Welders",
      "sections": [{"title": "Main duties", "items": [...]}, ...]}, ...]
"""

from __future__ import annotations

import json
from typing import Any

from nocdata_pipeline.sources.base import BaseSource, SourceError


class JsonArraySource(BaseSource):
    name = "json_array"

    def extract(self) -> Any:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceError(f"{self.name}: cannot parse {self.path}: {exc}") from exc

    def transform(self, raw: Any) -> list[dict[str, Any]]:
        if not isinstance(raw, list):
            raise SourceError(f"{self.name}: expected a JSON array in {self.path}")
        return [item for item in raw if isinstance(item, dict)]


class ProgramsSource(JsonArraySource):
    name = "viu_programs"


class UnitGroupsSource(JsonArraySource):
    name = "noc_unit_groups"
