"""Structured request logging middleware."""

from __future__ import annotations

import time

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = structlog.get_logger()

# Polled by orchestrators; logged at debug to keep the seeding log readable.
_PROBE_PATHS = frozenset({"/health", "/ready"})


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        path = request.url.path
        log = logger.bind(method=request.method, path=path)

        try:
            response = await call_next(request)
        except Exception as exc:
            log.error(
                "request_failed",
                error=str(exc),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise

        emit = log.debug if path in _PROBE_PATHS and response.status_code < 400 else log.info
        emit(
            "request_completed",
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return response
