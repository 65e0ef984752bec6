"""
utils/retry.py — Retry and error-classification policy for store writes.

Uses tenacity under the hood. Transient failures (transaction conflicts,
connection or rate-limit exhaustion, timeouts) are retried with linearly
increasing delays; every other StoreError is returned immediately because
retrying cannot change the outcome.

Usage:
    from nocdata_pipeline.utils.retry import RetryPolicy, WriteOutcome, safe_write

    result = await safe_write(
        lambda: store.upsert("programs", key, create, update),
        context=f"Program: {title}",
        policy=RetryPolicy(max_attempts=3, base_delay_s=1.0),
    )
    if result.outcome is WriteOutcome.SUCCESS:
        ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from nocdata_shared.config import settings

from nocdata_pipeline.loaders.errors import ErrorKind, StoreError
from nocdata_pipeline.utils.logging import ErrorLogFile

log = structlog.get_logger(__name__)


class WriteOutcome(str, Enum):
    SUCCESS = "success"
    BENIGN = "benign"   # unique violation; the row already exists
    FAILED = "failed"


@dataclass
class WriteResult:
    outcome: WriteOutcome
    record: Any = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is WriteOutcome.SUCCESS


@dataclass(frozen=True)
class RetryPolicy:
    """Total attempts and the linear backoff step (delay = step * attempt)."""

    max_attempts: int = 3
    base_delay_s: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_retries,
            base_delay_s=settings.retry_delay_ms / 1000,
        )


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, StoreError) and exc.retryable


async def call_with_retry(
    operation: Callable[[], Awaitable[Any]],
    context: str,
    policy: RetryPolicy,
) -> Any:
    """
    Await *operation*, retrying transient StoreErrors.

    Raises:
        StoreError: non-retryable failure, or the last transient failure
                    once attempts are exhausted.
    """

    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            "retry_attempt",
            context=context,
            attempt=state.attempt_number,
            max_attempts=policy.max_attempts,
            delay_s=state.next_action.sleep if state.next_action else None,
            error=str(exc),
            code=getattr(exc, "code", None),
        )

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_incrementing(start=policy.base_delay_s, increment=policy.base_delay_s),
        retry=retry_if_exception(_is_retryable),
        before_sleep=_before_sleep,
        reraise=True,
    ):
        with attempt:
            return await operation()


async def safe_write(
    operation: Callable[[], Awaitable[Any]],
    context: str,
    policy: RetryPolicy | None = None,
    error_log: ErrorLogFile | None = None,
) -> WriteResult:
    """
    Run a store write under the retry policy without ever raising StoreError.

    Unique violations come back as BENIGN; exhausted transient failures and
    terminal failures come back as FAILED. Every failure is logged with
    *context* and, for non-benign failures, appended to *error_log* when one is given.
    """
    policy = policy or RetryPolicy.from_settings()
    try:
        record = await call_with_retry(operation, context, policy)
    except StoreError as exc:
        details = {"context": context, "kind": exc.kind.value, "code": exc.code, "error": exc.message}
        if exc.kind is ErrorKind.CONFLICT:
            log.debug("record_already_exists", **details)
            return WriteResult(WriteOutcome.BENIGN, error=exc)

        if exc.kind is ErrorKind.TRANSIENT:
            log.warning("write_retries_exhausted", **details)
        else:
            log.error("write_failed", **details)
        if error_log is not None:
            error_log.write(context, exc.kind.value, exc.message)
        return WriteResult(WriteOutcome.FAILED, error=exc)

    return WriteResult(WriteOutcome.SUCCESS, record=record)
