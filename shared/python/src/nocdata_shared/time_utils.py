"""
time_utils.py — Release-date coercion for outlook rows.

The outlook workbook stores release dates in several shapes depending on
how the sheet was exported:
- real date cells (openpyxl returns datetime)
- spreadsheet serial numbers: 45292
- ISO strings: "2024-01-15"
- free-form strings: "January 15, 2024", "2024/01/15"

Usage:
    from nocdata_shared.time_utils import parse_release_date

    parse_release_date("2024-01-15")   # date(2024, 1, 15)
    parse_release_date(45292)          # date(2024, 1, 1)
    parse_release_date(None)           # date(2024, 1, 1)  (default)
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as date_parser

from nocdata_shared.constants import DEFAULT_RELEASE_DATE

# Serial day 0 in the 1900 date system (accounts for the Lotus leap-year bug)
_SPREADSHEET_EPOCH = datetime(1899, 12, 30)


def from_spreadsheet_serial(serial: float) -> date:
    """Convert a spreadsheet serial day number to a date."""
    return (_SPREADSHEET_EPOCH + timedelta(days=float(serial))).date()


def parse_release_date(value: Any, default: date = DEFAULT_RELEASE_DATE) -> date:
    """
    Coerce a workbook cell into a release date.

    Empty or unparsable values fall back to *default*.
    """
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        try:
            return from_spreadsheet_serial(value)
        except (OverflowError, ValueError):
            return default

    text = str(value).strip()
    if not text:
        return default
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return default
