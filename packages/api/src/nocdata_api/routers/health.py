"""Health, readiness and seeding progress endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from nocdata_api import __version__
from nocdata_api.dependencies import get_checkpoints, get_store
from nocdata_pipeline.loaders.supabase_store import SupabaseStore
from nocdata_pipeline.utils.checkpoint import CheckpointStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(store: SupabaseStore = Depends(get_store)) -> JSONResponse:
    result = await store.health_check()
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse({**result, "version": __version__}, status_code=status_code)


@router.get("/ready")
async def ready() -> dict:
    return {"status": "ready"}


@router.get("/progress")
async def progress(checkpoints: CheckpointStore = Depends(get_checkpoints)) -> dict[str, Any]:
    checkpoint = checkpoints.read()
    if checkpoint is None:
        return {"status": "idle", "checkpoint": None}
    total = checkpoint.get("total") or 0
    percent = round(checkpoint.get("processed", 0) / total * 100, 1) if total else None
    status = "completed" if checkpoint.get("operation") == "COMPLETED" else "running"
    return {"status": status, "percent_complete": percent, "checkpoint": checkpoint}
