"""
nocdata_pipeline.loaders — persistence adapter and its error taxonomy.
"""

from nocdata_pipeline.loaders.errors import ErrorKind, SeedAbortedError, StoreError, classify_error
from nocdata_pipeline.loaders.supabase_store import SupabaseStore

__all__ = ["ErrorKind", "SeedAbortedError", "StoreError", "SupabaseStore", "classify_error"]
