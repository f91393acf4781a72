"""CLI commands for CaseVault API."""

import sys

import click
import uvicorn

from casevault_api.db.seed import seed_all
from casevault_api.db.session import SessionLocal
from casevault_api.ledger.export import actor_names, write_audit_csv
from casevault_api.ledger.service import LedgerService
from casevault_api.models import Case
from casevault_api.settings import get_settings


@click.group()
def cli():
    """CaseVault API CLI."""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to API_HOST).")
@click.option("--port", type=int, default=None, help="Port (defaults to API_PORT).")
@click.option("--reload", is_flag=True, help="Reload on code changes (development only).")
def serve(host, port, reload):
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "casevault_api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command()
def seed():
    """Seed demo users and a demo case."""
    click.echo("Seeding initial data...")
    db = SessionLocal()
    try:
        seed_all(db)
        click.echo("✓ Seed data created.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


@cli.command("verify-chain")
@click.argument("case_id", type=int)
def verify_chain(case_id: int):
    """Verify a case's audit chain. Exits 1 if the chain is broken."""
    db = SessionLocal()
    try:
        if not db.query(Case).filter(Case.id == case_id).first():
            click.echo(f"✗ Case {case_id} not found", err=True)
            sys.exit(2)

        result = LedgerService(db).verify_chain(case_id)
        if result.valid:
            click.echo(
                f"✓ Case {case_id}: chain intact ({result.entries_checked} entries, "
                f"head {result.head_hash[:16]})"
            )
            return

        click.echo(
            f"✗ Case {case_id}: chain broken at position {result.broken_at} "
            f"({result.reason.value}): {result.detail}",
            err=True,
        )
        sys.exit(1)
    finally:
        db.close()


@cli.command("export-audit")
@click.argument("case_id", type=int)
@click.option(
    "--output",
    "-o",
    type=click.File("w"),
    default="-",
    help="Write CSV to this file instead of stdout.",
)
def export_audit(case_id: int, output):
    """Export a case's audit log as CSV."""
    db = SessionLocal()
    try:
        entries = LedgerService(db).get_entries(case_id)
        rows = write_audit_csv(output, entries, actor_names(db, entries))
        click.echo(f"Exported {rows} entries for case {case_id}", err=True)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
