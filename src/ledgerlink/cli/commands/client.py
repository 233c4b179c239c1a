"""Client and payee commands."""

import click

from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.reference_data import ReferenceDataService


@click.group()
def client_group():
    """Manage clients."""
    pass


@client_group.command("add")
@click.argument("name")
@click.option("--company", help="Company name, also used when matching invoices")
@click.pass_context
def add_client(ctx, name: str, company: str | None):
    """Add a client."""
    service = ReferenceDataService(ctx.obj["db"])

    try:
        client_id = service.create_client(name, company_name=company)
        click.echo(f"Created client '{name}' (ID: {client_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@client_group.command("list")
@click.pass_context
def list_clients(ctx):
    """List all clients."""
    service = ReferenceDataService(ctx.obj["db"])

    clients = service.list_clients()
    if not clients:
        click.echo("No clients found.")
        return

    click.echo("\nClients:")
    click.echo("-" * 60)
    for client in clients:
        company = f" | {client.alternate_name}" if client.alternate_name else ""
        click.echo(f"ID: {client.id:3d} | {client.name}{company}")


@click.group()
def payee_group():
    """Inspect payees."""
    pass


@payee_group.command("list")
@click.pass_context
def list_payees(ctx):
    """List all payees, including ones created by imports."""
    service = ReferenceDataService(ctx.obj["db"])

    payees = service.list_payees()
    if not payees:
        click.echo("No payees found.")
        return

    click.echo("\nPayees:")
    click.echo("-" * 60)
    for payee in payees:
        click.echo(f"ID: {payee.id:3d} | {payee.name:30s} | {payee.payee_type.value}")


def register_commands(cli):
    """Register client and payee commands with main CLI."""
    cli.add_command(client_group, name="client")
    cli.add_command(payee_group, name="payee")
