"""
transforms/normalize.py — Scalar coercion for source values.

Source files are loosely typed: codes arrive as "NOC_12345", 72310,
"72310.0" or " 2171 "; credentials arrive in any case; spreadsheet cells
may be floats, datetimes, or None. Everything that feeds a unique key
goes through these helpers so the same logical value always produces the
same stored key.
"""

from __future__ import annotations

from typing import Any

from nocdata_shared.constants import NOC_CODE_PREFIX, NOC_CODE_WIDTH
from nocdata_shared.models import CredentialKind

_CREDENTIALS: dict[str, CredentialKind] = {kind.value.lower(): kind for kind in CredentialKind}


def cell_str(value: Any) -> str:
    """
    Convert a source/spreadsheet value to stripped text.

    None → "", integral floats → "5910" (not "5910.0").
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_noc_code(value: Any) -> str:
    """
    Normalize a classification code to its stored form.

    >>> normalize_noc_code("NOC_12345")
    '12345'
    >>> normalize_noc_code(2171)
    '02171'
    """
    code = cell_str(value)
    if code.upper().startswith(NOC_CODE_PREFIX):
        code = code[len(NOC_CODE_PREFIX):].strip()
    if code.endswith(".0") and code[:-2].isdigit():
        code = code[:-2]
    if code.isdigit():
        code = code.zfill(NOC_CODE_WIDTH)
    return code


def normalize_credential(value: Any) -> CredentialKind:
    """Map a free-text credential onto CredentialKind (default Certificate)."""
    return _CREDENTIALS.get(cell_str(value).lower(), CredentialKind.CERTIFICATE)


def as_str_list(value: Any) -> list[str]:
    """Coerce a keyword field into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [s for s in (cell_str(v) for v in value) if s]
    text = cell_str(value)
    return [text] if text else []


def as_identifier(value: Any) -> str:
    """Coerce an external id (int or str) to its text key."""
    return cell_str(value)
