"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from nocdata_pipeline.loaders.supabase_store import SupabaseStore
from nocdata_pipeline.utils.checkpoint import CheckpointStore


@lru_cache(maxsize=1)
def get_store() -> SupabaseStore:
    return SupabaseStore()


def get_checkpoints() -> CheckpointStore:
    return CheckpointStore()
