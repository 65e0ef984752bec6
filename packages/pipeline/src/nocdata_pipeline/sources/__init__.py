"""
nocdata_pipeline.sources — source file readers.

  ProgramsSource    — VIU programs JSON array
  UnitGroupsSource  — NOC unit groups JSON array (with nested sections)
  OutlooksSource    — 3-year outlook workbook (first sheet, header row)
  SourceCatalog     — per-run cache and derived collections
"""

from nocdata_pipeline.sources.base import SourceError
from nocdata_pipeline.sources.catalog import SourceCatalog
from nocdata_pipeline.sources.json_files import ProgramsSource, UnitGroupsSource
from nocdata_pipeline.sources.outlooks import OutlooksSource

__all__ = [
    "SourceError",
    "SourceCatalog",
    "ProgramsSource",
    "UnitGroupsSource",
    "OutlooksSource",
]
