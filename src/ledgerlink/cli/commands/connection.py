"""Provider connection commands."""

import click

from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.config import parse_environment
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.reference_data import ReferenceDataService

ENVIRONMENT_CHOICE = click.Choice(["sandbox", "production"], case_sensitive=False)


@click.group()
def connection_group():
    """Manage the accounting provider connection."""
    pass


@connection_group.command("set")
@click.option("--realm-id", required=True, help="Provider company (realm) ID")
@click.option("--access-token", required=True, help="OAuth access token")
@click.option("--refresh-token", required=True, help="OAuth refresh token")
@click.option("--expires-in", type=int, default=3600, show_default=True,
              help="Access token lifetime in seconds")
@click.option("--environment", type=ENVIRONMENT_CHOICE,
              help="Provider environment (defaults to QUICKBOOKS_ENVIRONMENT)")
@click.pass_context
def set_connection(
    ctx,
    realm_id: str,
    access_token: str,
    refresh_token: str,
    expires_in: int,
    environment: str | None,
):
    """Store tokens from a completed OAuth authorization."""
    service = ReferenceDataService(ctx.obj["db"])

    try:
        env = parse_environment(environment) if environment else ctx.obj["settings"].environment
        connection_id = service.save_connection(
            realm_id=realm_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            environment=env,
        )
        click.echo(f"Saved {env.value} connection for realm {realm_id} (ID: {connection_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@connection_group.command("show")
@click.option("--environment", type=ENVIRONMENT_CHOICE,
              help="Provider environment (defaults to QUICKBOOKS_ENVIRONMENT)")
@click.pass_context
def show_connection(ctx, environment: str | None):
    """Show the active connection (tokens are not printed)."""
    service = ReferenceDataService(ctx.obj["db"])

    try:
        env = parse_environment(environment) if environment else ctx.obj["settings"].environment
        connection = service.get_connection(env)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Environment: {connection.environment.value}")
    click.echo(f"Realm ID:    {connection.realm_id}")
    click.echo(f"Expires at:  {connection.token_expires_at.isoformat()}")


def register_commands(cli):
    """Register connection commands with main CLI."""
    cli.add_command(connection_group, name="connection")
