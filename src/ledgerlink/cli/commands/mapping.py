"""Account mapping commands."""

import click

from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.entities import Category
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.reference_data import ReferenceDataService


@click.group()
def mapping_group():
    """Manage account path to category mappings."""
    pass


@mapping_group.command("add")
@click.argument("account_path")
@click.argument(
    "category",
    type=click.Choice([c.value for c in Category], case_sensitive=False),
)
@click.pass_context
def add_mapping(ctx, account_path: str, category: str):
    """Map an account path to a category.

    Mappings take priority over the built-in account rules.

    Examples:
        ledgerlink mapping add "Job Expenses:Job Materials:Dumpster" materials
    """
    service = ReferenceDataService(ctx.obj["db"])

    try:
        mapping_id = service.add_account_mapping(account_path, category)
        click.echo(f"Mapped '{account_path}' to {category.lower()} (ID: {mapping_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@mapping_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include disabled mappings")
@click.pass_context
def list_mappings(ctx, show_all: bool):
    """List account mappings."""
    service = ReferenceDataService(ctx.obj["db"])

    mappings = service.list_account_mappings(include_inactive=show_all)
    if not mappings:
        click.echo("No account mappings found.")
        return

    click.echo("\nAccount mappings:")
    click.echo("-" * 60)
    for mapping in mappings:
        status = "" if mapping.is_active else " (disabled)"
        click.echo(
            f"ID: {mapping.id:3d} | {mapping.qb_account_full_path} -> "
            f"{mapping.internal_category.value}{status}"
        )


@mapping_group.command("disable")
@click.argument("mapping_id", type=int)
@click.pass_context
def disable_mapping(ctx, mapping_id: int):
    """Disable a mapping."""
    service = ReferenceDataService(ctx.obj["db"])

    try:
        service.disable_account_mapping(mapping_id)
        click.echo(f"Disabled mapping {mapping_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register mapping commands with main CLI."""
    cli.add_command(mapping_group, name="mapping")
