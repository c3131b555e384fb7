"""Command line interface for infrastructure reconciliation.

Commands:
    refresh   Detect drift between cloud and state and resolve it
    scan      List the project's cloud resources
    validate  Check declared resource names before deploying
"""

import asyncio
import functools
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config import ProjectSettings, load_config, load_config_from_dir
from .deleters import CloudDeleter, StateRemovalDeleter
from .exceptions import ConfigError, InvalidResolutionError
from .executor import planned_commands
from .logging_config import configure_logging
from .models import (
    Conflict,
    ConflictType,
    OperationResult,
    ResolutionAction,
    ResolutionChoice,
)
from .reconciler import Reconciler, ReconciliationRun
from .scanner import ResourceScanner
from .validation import NamingValidator, declared_resources_from_config

console = Console()

MAX_ITEMS_PER_KIND = 3


def async_command(f):
    """Decorator to run async command handlers."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False),
    default=".",
    help="Project directory holding the stack config and state",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, project_dir: str) -> None:
    """Reconcile Terraform state with the resources in a Google Cloud project."""
    load_dotenv()
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["project_dir"] = Path(project_dir)


def _load_project(ctx: click.Context, config_path: Optional[str]) -> ProjectSettings:
    project_dir: Path = ctx.obj["project_dir"]
    try:
        if config_path:
            return load_config(config_path).project
        return load_config_from_dir(project_dir).project
    except ConfigError as e:
        click.echo(f"Error: {e.message}", err=True)
        if e.recovery_suggestion:
            click.echo(f"  {e.recovery_suggestion}", err=True)
        sys.exit(1)


def _display_conflicts(run: ReconciliationRun) -> None:
    table = Table(title="Conflicts")
    table.add_column("Status")
    table.add_column("Kind", style="cyan")
    table.add_column("Name")
    table.add_column("Location")
    table.add_column("Created", style="dim")

    for conflict in run.conflicts:
        if conflict.conflict_type == ConflictType.EXISTS_NOT_IN_STATE:
            status = "[yellow]not in state[/yellow]"
        else:
            status = "[red]not in cloud[/red]"
        table.add_row(
            status,
            conflict.resource.kind.label,
            conflict.resource.name,
            conflict.resource.location or "",
            conflict.resource.created_at or "",
        )
    console.print(table)

    for note in run.classification.match_notes:
        console.print(f"[dim]  note ({note.kind.value}): {note.resource_name}: {note.detail}[/dim]")


def _display_plan(run: ReconciliationRun) -> None:
    """Summarize what import_all would do, grouped by kind."""
    groups: Dict[str, List[Conflict]] = {}
    for conflict in run.classification.to_import:
        groups.setdefault(conflict.resource.kind.label, []).append(conflict)

    if groups:
        console.print(f"\n[bold]Will import {len(run.classification.to_import)} resources:[/bold]")
        for label, conflicts in groups.items():
            console.print(f"  {label} ({len(conflicts)}):")
            for conflict in conflicts[:MAX_ITEMS_PER_KIND]:
                console.print(f"    - {conflict.resource.name}")
            if len(conflicts) > MAX_ITEMS_PER_KIND:
                console.print(f"    ... and {len(conflicts) - MAX_ITEMS_PER_KIND} more")

    if run.classification.to_prune:
        console.print(
            f"\n[bold]Will remove {len(run.classification.to_prune)} stale state entries:[/bold]"
        )
        for conflict in run.classification.to_prune:
            console.print(f"    - {conflict.state_address}")


def _prompt_choice(reconciler: Reconciler, run: ReconciliationRun, delete_mode: str) -> ResolutionChoice:
    """Ask until the operator makes a choice the planner accepts."""
    actions = [action.value for action in ResolutionAction]
    while True:
        action = ResolutionAction(
            click.prompt(
                "How do you want to resolve these conflicts?",
                type=click.Choice(actions),
                default=ResolutionAction.IMPORT_ALL.value,
            )
        )
        new_prefix = None
        if action == ResolutionAction.CHANGE_PREFIX:
            new_prefix = click.prompt("New project prefix")
        if action == ResolutionAction.DELETE_ALL:
            target = "the cloud resources" if delete_mode == "cloud" else "their state entries"
            if not click.confirm(f"This will delete {target}. Continue?", default=False):
                action = ResolutionAction.CANCEL

        try:
            return reconciler.choose(run, ResolutionChoice(action=action, new_prefix=new_prefix))
        except InvalidResolutionError as e:
            click.echo(f"Error: {e.message}", err=True)


def _display_renames(reconciler: Reconciler, run: ReconciliationRun, new_prefix: str) -> None:
    previews = reconciler.planner.preview_renames(run.conflicts, new_prefix)
    if not previews:
        return
    table = Table(title=f"Names under prefix '{new_prefix}'")
    table.add_column("Kind", style="cyan")
    table.add_column("Current")
    table.add_column("New", style="green")
    for preview in previews:
        table.add_row(preview.kind.label, preview.old_name, preview.new_name)
    console.print(table)


def _display_result(result: OperationResult) -> None:
    for line in result.details:
        console.print(line)
    if result.message:
        console.print(f"\n{result.message}")
    for warning in result.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    if not result.action.is_mutating:
        return

    console.print(f"\n[green]Succeeded: {len(result.succeeded)}[/green]")
    if result.failed:
        console.print(f"[red]Failed: {len(result.failed)}[/red]")
        for failure in result.failed:
            console.print(f"  [red]- {failure.name}: {failure.error}[/red]")


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Stack config file")
@click.option("--dry-run", is_flag=True, help="Show the commands without running them")
@click.option("--yes", "-y", is_flag=True, help="Import all conflicts without prompting")
@click.option(
    "--delete-mode",
    type=click.Choice(["state", "cloud"]),
    default="state",
    help="What delete_all removes: state entries only, or the cloud resources",
)
@click.pass_context
@async_command
async def refresh(
    ctx: click.Context,
    config_path: Optional[str],
    dry_run: bool,
    yes: bool,
    delete_mode: str,
) -> None:
    """Detect and resolve drift between the cloud and Terraform state.

    Examples:
        infra-reconcile refresh --dry-run
        infra-reconcile refresh --yes
    """
    project = _load_project(ctx, config_path)
    reconciler = Reconciler(project, ctx.obj["project_dir"])

    with console.status(f"Scanning {project.gcp_project_id}..."):
        run = await reconciler.detect()

    for warning in run.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    if not run.conflicts:
        console.print("[green]No conflicts. State and cloud are in sync.[/green]")
        return

    _display_conflicts(run)
    _display_plan(run)

    if dry_run:
        console.print("\n[bold]Dry run, commands that would run:[/bold]")
        for command in planned_commands(run.conflicts, project):
            console.print(f"  {command}", highlight=False, markup=False)
        return

    work_dir = reconciler.work_dir(run)
    if delete_mode == "cloud":
        reconciler.executor.delete_callback = CloudDeleter(work_dir=work_dir)
    else:
        reconciler.executor.delete_callback = StateRemovalDeleter(work_dir)

    if yes:
        choice = reconciler.choose(run, reconciler.planner.default_choice())
    else:
        choice = _prompt_choice(reconciler, run, delete_mode)

    if choice.action == ResolutionAction.CHANGE_PREFIX:
        _display_renames(reconciler, run, choice.new_prefix)

    with console.status(f"Running {choice.action.value}..."):
        result = await reconciler.execute(run)

    _display_result(result)
    if result.failed:
        sys.exit(1)


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Stack config file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
@async_command
async def scan(ctx: click.Context, config_path: Optional[str], output_json: bool) -> None:
    """List the cloud resources that belong to the project."""
    project = _load_project(ctx, config_path)
    result = await ResourceScanner().scan(project.gcp_project_id, project.region, project.name)

    if output_json:
        click.echo(
            json.dumps(
                {
                    "resources": [asdict(r) for r in result.resources],
                    "errors": result.errors,
                },
                indent=2,
                default=str,
            )
        )
        return

    table = Table(title=f"Resources for '{project.name}' in {project.gcp_project_id}")
    table.add_column("Kind", style="cyan")
    table.add_column("Name")
    table.add_column("Location")
    table.add_column("Created", style="dim")
    for resource in result.resources:
        table.add_row(
            resource.kind.label, resource.name, resource.location or "", resource.created_at or ""
        )
    console.print(table)

    for error in result.errors:
        console.print(f"[yellow]Warning: {error}[/yellow]")


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Stack config file")
@click.pass_context
def validate(ctx: click.Context, config_path: Optional[str]) -> None:
    """Validate declared resource names before deploying."""
    project = _load_project(ctx, config_path)
    report = NamingValidator().validate(declared_resources_from_config(project))

    if report.errors or report.warnings:
        table = Table(title="Naming issues")
        table.add_column("Severity")
        table.add_column("Code", style="cyan")
        table.add_column("Resource")
        table.add_column("Message")
        for issue in report.errors + report.warnings:
            severity = (
                "[red]error[/red]" if issue in report.errors else "[yellow]warning[/yellow]"
            )
            table.add_row(
                severity,
                issue.code,
                f"{issue.resource.kind.value} '{issue.resource.name}'",
                issue.message,
            )
        console.print(table)

    if report.valid:
        console.print(f"[green]All {report.resources_checked} resource names are valid.[/green]")
    else:
        console.print(f"[red]{len(report.errors)} naming errors found.[/red]")
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
