"""codebrain projects — register and list project sources."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from codebrain import projects
from codebrain.cli import common
from codebrain.cli.common import console

projects_app = typer.Typer(help="Register and list projects.", no_args_is_help=True)

DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the codebrain database (default from config)."),
]


@projects_app.command("add")
def add_cmd(
    source: Annotated[str, typer.Argument(help="Local path or git URL (https://, git@).")],
    db: DbOption = None,
) -> None:
    """Register a project. A source that is already registered is reported, not duplicated."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    project, created = projects.create_project(database, source)
    if created:
        console.print(f"[green]✓[/] Registered project [bold]{project.id}[/]: {project.name}")
    else:
        console.print(f"[yellow]Already registered[/] as project [bold]{project.id}[/]: {project.name}")
    console.print(f"  Next:  codebrain ingest --project {project.id}")


@projects_app.command("list")
def list_cmd(db: DbOption = None) -> None:
    """List registered projects, newest first."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    rows = projects.list_projects(database)
    if not rows:
        console.print("[yellow]No projects registered.[/]  Run:  codebrain projects add <path-or-url>")
        return

    table = Table(title="Projects", show_lines=False)
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Source")
    table.add_column("Created")
    for p in rows:
        table.add_row(str(p.id), p.name, p.source, p.created_at or "")
    console.print(table)
