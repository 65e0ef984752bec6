"""
loaders/errors.py — Store error taxonomy and classification.

Every failure raised by the persistence layer is mapped onto a closed set
of kinds so retry and reporting logic never inspect library-specific
codes or messages. `classify_error()` is the only place that knows about
postgrest / PostgreSQL codes and httpx transport exceptions.

Usage:
    from nocdata_pipeline.loaders.errors import ErrorKind, StoreError, classify_error

    try:
        ...
    except Exception as exc:
        raise StoreError.from_exception(exc) from exc
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

import httpx
from postgrest.exceptions import APIError


class ErrorKind(str, Enum):
    TRANSIENT = "transient"     # retry with backoff
    CONFLICT = "conflict"       # unique violation, benign for upserts
    NOT_FOUND = "not_found"
    VALIDATION = "validation"   # bad input, retrying cannot help
    OTHER = "other"


RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({ErrorKind.TRANSIENT})

# PostgreSQL SQLSTATE codes
_UNIQUE_VIOLATION = "23505"
_TRANSIENT_SQLSTATES = {
    "40001",  # serialization_failure (transaction conflict)
    "40P01",  # deadlock_detected
    "53300",  # too_many_connections
    "57014",  # query_canceled (statement timeout)
    "08000",  # connection_exception
    "08003",
    "08006",
}
_VALIDATION_PREFIXES = ("22", "23")  # data exception / integrity (non-unique)
# PostgREST codes
_NOT_FOUND_CODES = {"PGRST116", "PGRST205", "42P01"}

_TRANSIENT_HTTP_STATUSES = {408, 429, 502, 503, 504}
_TRANSIENT_MESSAGES = ("too many connections", "connection limit", "rate limit")


class StoreError(Exception):
    """A persistence failure tagged with its ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @classmethod
    def from_exception(cls, exc: BaseException) -> "StoreError":
        if isinstance(exc, StoreError):
            return exc
        return cls(classify_error(exc), str(exc) or type(exc).__name__, _error_code(exc))

    def __repr__(self) -> str:
        return f"StoreError(kind={self.kind.value!r}, code={self.code!r}, message={self.message!r})"


class SeedAbortedError(RuntimeError):
    """A pre-flight condition failed; no entity processing was attempted."""


def _error_code(exc: BaseException) -> str | None:
    if isinstance(exc, APIError):
        return exc.code
    if isinstance(exc, httpx.HTTPStatusError):
        return str(exc.response.status_code)
    code: Any = getattr(exc, "code", None)
    return str(code) if code is not None else None


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a raw persistence exception onto an ErrorKind."""
    if isinstance(exc, StoreError):
        return exc.kind

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TRANSIENT

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in _TRANSIENT_HTTP_STATUSES:
            return ErrorKind.TRANSIENT
        if status == 404:
            return ErrorKind.NOT_FOUND
        if status == 409:
            return ErrorKind.CONFLICT
        if status in (400, 422):
            return ErrorKind.VALIDATION
        return ErrorKind.OTHER

    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return ErrorKind.TRANSIENT

    message = str(exc).lower()
    if isinstance(exc, APIError):
        code = (exc.code or "").upper()
        if code == _UNIQUE_VIOLATION:
            return ErrorKind.CONFLICT
        if code in _TRANSIENT_SQLSTATES:
            return ErrorKind.TRANSIENT
        if code in _NOT_FOUND_CODES:
            return ErrorKind.NOT_FOUND
        if code.startswith(_VALIDATION_PREFIXES) or code.startswith("PGRST1"):
            return ErrorKind.VALIDATION
        message = f"{message} {(exc.message or '').lower()}"

    if any(marker in message for marker in _TRANSIENT_MESSAGES):
        return ErrorKind.TRANSIENT
    if "invalid input" in message:
        return ErrorKind.VALIDATION
    return ErrorKind.OTHER
