"""Main CLI entry point."""

import logging

import click

from ledgerlink.config import load_settings
from ledgerlink.database.factories import create_sqlite_database
from ledgerlink.domain.errors import DomainError
from ledgerlink.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from ledgerlink.cli.commands import (
    backfill,
    client,
    connection,
    import_cmd,
    mapping,
    project,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbosity: int) -> None:
    """WARNING by default, INFO with -v, DEBUG with -vv."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERLINK_DB_PATH environment variable)",
    envvar="LEDGERLINK_DB_PATH",
)
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug)")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: int):
    """ledgerlink - Reconcile accounting exports with project costs.

    Import transaction exports into project expenses and revenues, then
    link the imported records back to the accounting system's transactions.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            ctx.obj["settings"] = load_settings()
        except DomainError as e:
            handle_domain_error(ctx, e)
        db = create_sqlite_database(database_path=db_path, settings=ctx.obj["settings"])
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
import_cmd.register_commands(cli)
backfill.register_commands(cli)
project.register_commands(cli)
client.register_commands(cli)
mapping.register_commands(cli)
connection.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
