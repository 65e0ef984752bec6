"""
db.py — Supabase client singleton.

Usage:
    from nocdata_shared.db import get_supabase_client

    supabase = get_supabase_client()    # service key (seeding writes)
"""

from __future__ import annotations

import threading
from typing import Optional

import structlog
from supabase import Client, create_client

from nocdata_shared.config import settings

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Supabase: one client per process, guarded by a lock
# ---------------------------------------------------------------------------
_supabase_lock = threading.Lock()
_supabase_service: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the singleton service-role Supabase client.

    The seeder writes every table, so only the service role key is used.

    Raises:
        RuntimeError: SUPABASE_SERVICE_KEY is not configured.
    """
    global _supabase_service

    with _supabase_lock:
        if _supabase_service is None:
            if not settings.supabase_service_key:
                raise RuntimeError(
                    "SUPABASE_SERVICE_KEY is not set. "
                    "Set it in .env before seeding."
                )
            _supabase_service = create_client(
                settings.supabase_url,
                settings.supabase_service_key,
            )
            logger.info("supabase_client_created", url=settings.supabase_url)
        return _supabase_service


def reset_supabase_client() -> None:
    """Reset the singleton client (useful in tests)."""
    global _supabase_service
    with _supabase_lock:
        _supabase_service = None
