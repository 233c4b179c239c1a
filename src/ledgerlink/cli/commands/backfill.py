"""Backfill command linking imported records to provider transactions."""

import json

import click

from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.config import parse_environment
from ledgerlink.domain.backfill import BackfillReport, BackfillService
from ledgerlink.domain.entity_resolver import MatchThresholds
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.token_manager import TokenManager, load_active_connection
from ledgerlink.provider.client import AccountingClient


def print_report(report: BackfillReport) -> None:
    """Print a human-readable backfill summary."""
    mode = "Dry run" if report.dry_run else "Backfill"
    click.echo(f"\n{mode} complete ({report.duration_ms} ms):")
    for entity_type, count in report.fetched.items():
        click.echo(f"  Fetched {count} {entity_type} records")
    click.echo(
        f"  Expenses: {report.expenses_matched} matched, "
        f"{report.unmatched_expenses} unmatched"
    )
    click.echo(
        f"  Revenues: {report.revenues_matched} matched, "
        f"{report.unmatched_revenues} unmatched"
    )
    if not report.dry_run:
        click.echo(
            f"  Updated: {report.expenses_updated} expenses, "
            f"{report.revenues_updated} revenues"
        )

    for label, matches in (
        ("Expense", report.expense_matches),
        ("Revenue", report.revenue_matches),
    ):
        for match in matches:
            click.echo(
                f"  {label} {match.record_id} -> {match.external_id} "
                f"({match.name} ~ {match.provider_name}, {match.match_type.value})"
            )

    if report.errors:
        click.echo(f"\nErrors: {len(report.errors)}")
        for error in report.errors:
            click.echo(f"  {error}", err=True)
    if report.dry_run:
        click.echo("\nNothing was written. Re-run with --commit to apply.")


@click.command("backfill")
@click.option("--commit", is_flag=True, help="Write the matched IDs (default is a dry run)")
@click.option(
    "--environment",
    type=click.Choice(["sandbox", "production"], case_sensitive=False),
    help="Provider environment (defaults to QUICKBOOKS_ENVIRONMENT)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the full report as JSON")
@click.pass_context
def backfill(ctx, commit: bool, environment: str | None, as_json: bool):
    """Link imported expenses and revenues to accounting transactions.

    Records are matched on date and amount, then confirmed by name.
    Existing links are never overwritten.

    Examples:
        ledgerlink backfill
        ledgerlink backfill --commit --environment production
    """
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]

    try:
        env = parse_environment(environment) if environment else settings.environment
        connection = load_active_connection(db, env)
        client = AccountingClient(settings, db=db)
        service = BackfillService(
            db,
            client,
            TokenManager(db, client),
            MatchThresholds.from_settings(settings),
        )
        report = service.run(connection, dry_run=not commit)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        print_report(report)


def register_commands(cli):
    """Register backfill command with main CLI."""
    cli.add_command(backfill)
