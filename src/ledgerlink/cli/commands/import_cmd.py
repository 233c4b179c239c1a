"""Export file import command."""

import json

import click

from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.entity_resolver import MatchThresholds
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.transaction_import import ImportReport, TransactionImportService


def print_report(report: ImportReport) -> None:
    """Print a human-readable import summary."""
    click.echo("\nImport complete:")
    click.echo(f"  Transactions: {report.total}")
    click.echo(
        f"  Expenses: {report.successful_expenses} imported, "
        f"{report.failed_expenses} failed"
    )
    click.echo(
        f"  Revenues: {report.successful_revenues} imported, "
        f"{report.failed_revenues} failed"
    )

    click.echo("\nCategory mapping:")
    for tier, count in report.mapping_stats.items():
        click.echo(f"  {tier.value:18s} {count}")

    if report.duplicates:
        click.echo(f"\nDuplicates skipped: {len(report.duplicates)}")
        for duplicate in report.duplicates:
            click.echo(f"  Row {duplicate.transaction.row_number}: {duplicate.reason}")
        click.echo(f"  Warning: {report.duplicate_warning}")

    if report.database_duplicates:
        click.echo(f"\nAlready imported (skipped): {len(report.database_duplicates)}")
        for duplicate in report.database_duplicates:
            click.echo(f"  Row {duplicate.transaction.row_number}: {duplicate.reason}")

    if report.unmatched_projects:
        click.echo("\nUnmatched projects (assigned to the default project):")
        for unmatched in report.unmatched_projects.values():
            click.echo(
                f"  {unmatched.reference}: {unmatched.transaction_count} transactions, "
                f"${unmatched.total_amount:.2f}"
            )
            for project, confidence in unmatched.suggestions:
                click.echo(f"    did you mean {project.project_number} ({confidence:.0f}%)?")

    if report.unmapped_accounts:
        click.echo("\nUnmapped accounts:")
        for account in report.unmapped_accounts.values():
            suggestion = (
                f" (suggested: {account.suggested_category.value})"
                if account.suggested_category
                else ""
            )
            click.echo(
                f"  {account.account_path}: {account.transaction_count} transactions"
                f"{suggestion}"
            )

    if report.auto_created_payees:
        click.echo("\nCreated payees:")
        for payee in report.auto_created_payees:
            click.echo(f"  {payee.name} ({payee.payee_type.value})")

    low_confidence = report.low_confidence_payee_matches + report.low_confidence_client_matches
    if low_confidence:
        click.echo("\nNeeds review (low confidence matches):")
        for result in low_confidence:
            options = ", ".join(
                f"{s.candidate_name} ({s.confidence:.0f}%)" for s in result.suggestions
            )
            click.echo(f"  {result.name}: {options}")

    if report.unmatched_clients:
        click.echo("\nUnmatched clients:")
        for name in report.unmatched_clients:
            click.echo(f"  {name}")

    if report.date_review:
        click.echo("\nDates needing review:")
        for review in report.date_review:
            click.echo(
                f"  Row {review.row_number}: '{review.raw_date}' recorded as "
                f"{review.substituted_date.isoformat()}"
            )

    if report.errors:
        click.echo(f"\nErrors: {len(report.errors)}")
        for error in report.errors:
            click.echo(f"  {error}", err=True)


@click.command("import")
@click.argument("export_file", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print the full report as JSON")
@click.pass_context
def import_export(ctx, export_file: str, as_json: bool):
    """Import transactions from an accounting export file.

    Examples:
        ledgerlink import transactions.csv
        ledgerlink import transactions.csv --json
    """
    db = ctx.obj["db"]
    service = TransactionImportService(
        db, MatchThresholds.from_settings(ctx.obj["settings"])
    )

    try:
        report = service.import_file(export_file)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        print_report(report)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_export)
