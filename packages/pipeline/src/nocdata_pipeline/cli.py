"""
cli.py — Click CLI entrypoint for the seeder.

Usage:
    nocdata-seed run
    nocdata-seed run --only programs --exclude outlooks
    nocdata-seed status
    nocdata-seed counts
    nocdata-seed health
    nocdata-seed validate --only outlooks
    nocdata-seed serve --port 3000
"""

from __future__ import annotations

import asyncio
import sys

import click
import structlog

from nocdata_shared.config import settings
from nocdata_shared.constants import COUNTED_TABLES, SEED_ORDER, Entity

from nocdata_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)

ENTITY_CHOICE = click.Choice([e.value for e in SEED_ORDER], case_sensitive=False)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
def main(log_level: str) -> None:
    """nocdata database seeder."""
    configure_logging(log_level=log_level)


@main.command()
@click.option("--only", "only", multiple=True, type=ENTITY_CHOICE, help="Seed only these entities.")
@click.option("--exclude", "exclude", multiple=True, type=ENTITY_CHOICE, help="Skip these entities.")
def run(only: tuple[str, ...], exclude: tuple[str, ...]) -> None:
    """Seed all enabled entities, resuming from existing row counts."""
    from nocdata_pipeline.pipelines.seed_all import run as run_seed

    report = asyncio.run(run_seed(only=list(only) or None, exclude=list(exclude)))

    click.echo("Seeding summary:")
    for entity, result in report.results.items():
        click.echo(f"  {entity:20s} created {result.created:6d}  skipped {result.skipped:6d}")
    click.echo(
        f"  {'total':20s} created {report.total_created:6d}  skipped {report.total_skipped:6d}"
        f"  ({report.elapsed_seconds}s)"
    )
    if not report.success:
        click.echo(f"Seeding failed: {report.error}", err=True)
        sys.exit(1)


@main.command()
def status() -> None:
    """Show the last seeding checkpoint."""
    from nocdata_pipeline.utils.checkpoint import CheckpointStore

    checkpoint = CheckpointStore().read()
    if checkpoint is None:
        click.echo("No checkpoint found.")
        return
    total = checkpoint.get("total") or 0
    processed = checkpoint.get("processed") or 0
    percent = f" ({processed / total * 100:.1f}%)" if total else ""
    click.echo(f"Operation:  {checkpoint.get('operation')}")
    click.echo(f"Progress:   {processed}/{total}{percent}")
    click.echo(
        f"Run totals: created {checkpoint.get('created_total', 0)}, "
        f"skipped {checkpoint.get('skipped_total', 0)}"
    )
    click.echo(f"Updated:    {checkpoint.get('timestamp', '')[:19]}")


@main.command()
def counts() -> None:
    """Show row counts for every seeded table."""
    from nocdata_pipeline.loaders.errors import StoreError
    from nocdata_pipeline.loaders.supabase_store import SupabaseStore

    async def _counts() -> dict[str, int]:
        store = SupabaseStore()
        return {table: await store.count(table) for table in COUNTED_TABLES}

    try:
        rows = asyncio.run(_counts())
    except StoreError as exc:
        click.echo(f"Error fetching counts: {exc.message}", err=True)
        sys.exit(1)
    for table, n in rows.items():
        click.echo(f"  {table:20s} {n:8d}")
    click.echo(f"  {'total':20s} {sum(rows.values()):8d}")


@main.command()
def health() -> None:
    """Check database connectivity."""
    from nocdata_pipeline.loaders.supabase_store import SupabaseStore

    result = asyncio.run(SupabaseStore().health_check())
    if result["status"] == "healthy":
        click.echo(f"healthy ({result['response_time_ms']} ms)")
        return
    click.echo(f"unhealthy: {result.get('error')}", err=True)
    sys.exit(1)


@main.command()
@click.option("--only", "only", multiple=True, type=ENTITY_CHOICE, help="Check only these entities.")
@click.option("--show", default=3, show_default=True, type=int, help="Example keys listed per table.")
def validate(only: tuple[str, ...], show: int) -> None:
    """Compare source files with stored rows and report missing or extra keys."""
    from nocdata_pipeline.loaders.errors import StoreError
    from nocdata_pipeline.loaders.supabase_store import SupabaseStore
    from nocdata_pipeline.pipelines.integrity import IntegrityChecker
    from nocdata_pipeline.sources.base import SourceError
    from nocdata_pipeline.sources.catalog import SourceCatalog

    entities = [Entity(e) for e in only] or None
    try:
        checker = IntegrityChecker(SupabaseStore(), SourceCatalog.from_settings())
        reports = asyncio.run(checker.check(entities))
    except (SourceError, StoreError, RuntimeError) as exc:
        click.echo(f"Validation failed: {exc}", err=True)
        sys.exit(1)

    discrepancies = 0
    for report in reports:
        click.echo(
            f"  {report.table:20s} source {report.source:6d}  stored {report.stored:6d}  "
            f"missing {len(report.missing):6d}  extra {len(report.extra):6d}"
        )
        for kind, keys in (("missing", report.missing), ("extra", report.extra)):
            for key in keys[:show]:
                click.echo(f"      {kind}: {' / '.join(key)}")
            if len(keys) > show:
                click.echo(f"      ... and {len(keys) - show} more {kind}")
        discrepancies += len(report.missing) + len(report.extra)

    if discrepancies:
        click.echo(f"{discrepancies} discrepancies found.", err=True)
        sys.exit(1)
    click.echo("No discrepancies found.")


@main.command()
@click.option("--host", default=settings.health_host, show_default=True)
@click.option("--port", default=settings.health_port, show_default=True, type=int)
def serve(host: str, port: int) -> None:
    """Run the HTTP health server."""
    import uvicorn

    from nocdata_api.app import create_app

    log.info("health_server_start", host=host, port=port)
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
