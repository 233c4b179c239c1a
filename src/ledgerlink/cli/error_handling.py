"""CLI error handling helpers."""

import click

from ledgerlink.domain.errors import AuthenticationError, DomainError

AUTH_EXIT_CODE = 2


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, AuthenticationError):
        click.echo(
            "Reconnect the accounting integration and store the new tokens with "
            "'ledgerlink connection set'.",
            err=True,
        )
        ctx.exit(AUTH_EXIT_CODE)
    ctx.exit(1)
