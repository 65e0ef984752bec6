"""
tests/test_sources/test_source_files.py — JSON and workbook readers.
"""

from __future__ import annotations

import json
from datetime import datetime

import pytest

from nocdata_pipeline.sources import OutlooksSource, ProgramsSource, SourceError, UnitGroupsSource


class TestJsonSources:
    def test_loads_array_of_objects(self, tmp_path, sample_programs):
        path = tmp_path / "viu_programs.json"
        path.write_text(json.dumps(sample_programs))

        records = ProgramsSource(path).load()

        assert len(records) == 4
        assert records[0]["nid"] == 100

    def test_non_object_items_dropped(self, tmp_path):
        path = tmp_path / "unit_groups.json"
        path.write_text(json.dumps([{"noc_number": "72310"}, "junk", 5, None]))
        assert UnitGroupsSource(path).load() == [{"noc_number": "72310"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError, match="not found"):
            ProgramsSource(tmp_path / "absent.json").load()

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "viu_programs.json"
        path.write_text("[{")
        with pytest.raises(SourceError, match="cannot parse"):
            ProgramsSource(path).load()

    def test_top_level_object_rejected(self, tmp_path):
        path = tmp_path / "viu_programs.json"
        path.write_text(json.dumps({"programs": []}))
        with pytest.raises(SourceError, match="JSON array"):
            ProgramsSource(path).load()


class TestOutlooksSource:
    def test_rows_keyed_by_header(self, tmp_path, workbook, sample_outlook_rows):
        path = workbook(tmp_path / "outlooks.xlsx", sample_outlook_rows)

        rows = OutlooksSource(path).load()

        assert len(rows) == 4
        assert rows[0]["NOC_Code"] == "NOC_72310"
        assert rows[0]["Province"] == "BC"
        assert isinstance(rows[0]["Release Date"], datetime)
        assert rows[1]["Release Date"] is None

    def test_blank_rows_dropped(self, tmp_path, workbook):
        path = workbook(
            tmp_path / "outlooks.xlsx",
            [["72310", "Welders", 5910, "VI", "BC", "Good", None, None, "EN"],
             [None] * 9,
             ["21231", "Eng", 5910, "VI", "BC", "Fair", None, None, "EN"]],
        )
        assert len(OutlooksSource(path).load()) == 2

    def test_header_only_sheet(self, tmp_path, workbook):
        path = workbook(tmp_path / "outlooks.xlsx", [])
        assert OutlooksSource(path).load() == []

    def test_not_a_workbook(self, tmp_path):
        path = tmp_path / "outlooks.xlsx"
        path.write_text("definitely not a zip archive")
        with pytest.raises(SourceError):
            OutlooksSource(path).load()
