"""
nocdata_shared — shared settings, models, and constants for the nocdata seeder.

Usage:
    from nocdata_shared.config import settings
    from nocdata_shared.db import get_supabase_client
    from nocdata_shared.models import Program, Outlook
    from nocdata_shared.constants import Entity, SEED_ORDER, CONFLICT_KEYS
"""

__version__ = "0.1.0"
