"""
nocdata_pipeline — resumable seeding pipeline for NOC occupations,
3-year employment outlooks, and VIU program records.

Architecture:
  sources/     — JSON and workbook readers plus the per-run SourceCatalog
  transforms/  — NOC code normalization and source → model mapping
  loaders/     — async Supabase store (count / find / upsert) and error taxonomy
  pipelines/   — one seeder per entity family, the run coordinator and the
                 read-only integrity check
  utils/       — batch executor, resume offsets, progress, checkpoints,
                 retry policy, structlog configuration

Quick start:
    from nocdata_pipeline.pipelines.seed_all import run
    import asyncio
    report = asyncio.run(run())

CLI:
    nocdata-seed run
    nocdata-seed run --only programs --only program_noc_links
    nocdata-seed status
    nocdata-seed counts

Shared code from nocdata_shared:
    from nocdata_shared.config import settings
    from nocdata_shared.db import get_supabase_client
    from nocdata_shared.models import Program, NocUnitGroup, Outlook
    from nocdata_shared.constants import Entity, SEED_ORDER, CONFLICT_KEYS
"""

__version__ = "0.1.0"
