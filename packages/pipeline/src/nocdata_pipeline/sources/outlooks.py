"""
sources/outlooks.py — 3-year employment outlook workbook reader.

Reads the first worksheet with openpyxl in read-only mode. The first row
holds the header names; every following row is mapped positionally onto
those headers. Rows with no values at all are dropped. Cell values are
kept as openpyxl returns them (str, int, float, datetime, None); coercion
happens in transforms.

Expected headers include:
  NOC_Code, NOC Title, Economic Region Code, Economic Region, Province,
  Outlook, Employment Trends, Release Date, LANG
"""

from __future__ import annotations

from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from nocdata_pipeline.sources.base import BaseSource, SourceError


class OutlooksSource(BaseSource):
    name = "outlooks_workbook"

    def extract(self) -> list[tuple[Any, ...]]:
        try:
            workbook = load_workbook(self.path, read_only=True, data_only=True)
        except (OSError, BadZipFile, InvalidFileException, KeyError, ValueError) as exc:
            raise SourceError(f"{self.name}: cannot open {self.path}: {exc}") from exc
        try:
            sheet = workbook.worksheets[0]
            return list(sheet.iter_rows(values_only=True))
        finally:
            workbook.close()

    def transform(self, raw: list[tuple[Any, ...]]) -> list[dict[str, Any]]:
        if not raw:
            return []
        headers = [str(h).strip() if h is not None else "" for h in raw[0]]
        records: list[dict[str, Any]] = []
        for row in raw[1:]:
            if row is None or all(v is None or v == "" for v in row):
                continue
            record = {
                header: (row[idx] if idx < len(row) else None)
                for idx, header in enumerate(headers)
                if header
            }
            records.append(record)
        return records
