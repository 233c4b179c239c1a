"""Project management commands."""

import click

from ledgerlink.cli.error_handling import handle_domain_error
from ledgerlink.domain.errors import DomainError
from ledgerlink.domain.reference_data import ReferenceDataService


@click.group()
def project_group():
    """Manage projects."""
    pass


@project_group.command("add")
@click.argument("project_number")
@click.argument("project_name")
@click.pass_context
def add_project(ctx, project_number: str, project_name: str):
    """Add a project.

    Examples:
        ledgerlink project add 125-244 "Smith Kitchen Remodel"
        ledgerlink project add 000-MISC "General / Misc"
    """
    service = ReferenceDataService(ctx.obj["db"])

    try:
        project_id = service.create_project(project_number, project_name)
        click.echo(f"Created project '{project_number}' (ID: {project_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@project_group.command("list")
@click.pass_context
def list_projects(ctx):
    """List all projects."""
    service = ReferenceDataService(ctx.obj["db"])

    projects = service.list_projects()
    if not projects:
        click.echo("No projects found.")
        return

    click.echo("\nProjects:")
    click.echo("-" * 60)
    for project in projects:
        click.echo(f"ID: {project.id:3d} | {project.project_number:12s} | {project.project_name}")


def register_commands(cli):
    """Register project commands with main CLI."""
    cli.add_command(project_group, name="project")
