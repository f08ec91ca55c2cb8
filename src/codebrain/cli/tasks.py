"""codebrain tasks — manage a project's tasks and inspect their context."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from codebrain import tasks
from codebrain.cli import common
from codebrain.cli.common import console
from codebrain.cli.errors import err_invalid_status, err_task_not_found
from codebrain.errors import InvalidTaskStatusError, TaskNotFoundError

tasks_app = typer.Typer(help="Create, update and inspect project tasks.", no_args_is_help=True)

ProjectOption = Annotated[int, typer.Option("--project", "-p", help="Project ID.")]
DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the codebrain database (default from config)."),
]

_STATUS_STYLE = {"open": "yellow", "in_progress": "cyan", "done": "green"}


@tasks_app.command("list")
def list_cmd(
    project: ProjectOption,
    status: Annotated[
        str | None, typer.Option("--status", help="Only tasks with this status.")
    ] = None,
    db: DbOption = None,
) -> None:
    """List tasks ordered by number."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        rows = tasks.list_tasks(database, project, status)
    except InvalidTaskStatusError:
        console.print(err_invalid_status(status or ""))
        raise typer.Exit(1) from None

    if not rows:
        console.print("[yellow]No tasks.[/]  Add one:  codebrain tasks add -p <id> \"<title>\"")
        return

    table = Table(title=f"Tasks (project {project})")
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Category")
    table.add_column("Title", style="bold")
    for t in rows:
        style = _STATUS_STYLE.get(t.status, "white")
        table.add_row(
            str(t.task_number), f"[{style}]{t.status}[/]", t.category or "", escape(t.title)
        )
    console.print(table)


@tasks_app.command("add")
def add_cmd(
    project: ProjectOption,
    title: Annotated[str, typer.Argument(help="Task title.")],
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Longer description.")
    ] = None,
    db: DbOption = None,
) -> None:
    """Create an open task."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    gateway = common.build_gateway(cfg)
    task = tasks.create_task(database, project, gateway, title, description)
    console.print(f"[green]✓[/] Created task [bold]#{task.task_number}[/]: {task.title}")


@tasks_app.command("update")
def update_cmd(
    project: ProjectOption,
    number: Annotated[int, typer.Argument(help="Task number.")],
    title: Annotated[str | None, typer.Option("--title", help="New title.")] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="New description.")
    ] = None,
    status: Annotated[
        str | None, typer.Option("--status", help="open, in_progress or done.")
    ] = None,
    db: DbOption = None,
) -> None:
    """Update a task's title, description or status."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    gateway = common.build_gateway(cfg) if (title or description) else None
    try:
        task = tasks.update_task(database, project, gateway, number, title, description, status)
    except InvalidTaskStatusError:
        console.print(err_invalid_status(status or ""))
        raise typer.Exit(1) from None
    except TaskNotFoundError:
        console.print(err_task_not_found(number))
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/] Task [bold]#{task.task_number}[/] is now {task.status}: {task.title}")


@tasks_app.command("delete")
def delete_cmd(
    project: ProjectOption,
    number: Annotated[int, typer.Argument(help="Task number.")],
    db: DbOption = None,
) -> None:
    """Delete a task. Its number is never reused."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        tasks.delete_task(database, project, number)
    except TaskNotFoundError:
        console.print(err_task_not_found(number))
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/] Deleted task #{number}")


@tasks_app.command("context")
def context_cmd(
    project: ProjectOption,
    number: Annotated[int, typer.Argument(help="Task number.")],
    db: DbOption = None,
) -> None:
    """Show the tasks, commits, documents and code related to a task."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        bundle = tasks.task_context(database, project, number)
    except TaskNotFoundError:
        console.print(err_task_not_found(number))
        raise typer.Exit(1) from None

    task = bundle.task
    console.print(
        Panel(
            escape(task.description) if task.description else "[dim](no description)[/]",
            title=f"[bold]Task #{task.task_number}[/] ({task.status}) {escape(task.title)}",
            expand=False,
        )
    )

    lines = [f"  #{t.task_number} ({t.status}) {t.title}" for t in bundle.related_tasks]
    _section("Related tasks", lines)
    lines = [
        f"  {c.commit_hash[:7]} {c.message.splitlines()[0] if c.message else ''}"
        for c in bundle.related_commits
    ]
    _section("Related commits", lines)
    lines = [f"  {d.file_name}: {_preview(d.content)}" for d in bundle.related_documents]
    _section("Related documents", lines)
    lines = [
        f"  {hit.file.path}:{hit.chunk.start_line}-{hit.chunk.end_line} ({hit.chunk.name})"
        for hit in bundle.related_code
    ]
    _section("Related code", lines)


def _section(title: str, lines: list[str]) -> None:
    console.print(f"[bold]{title}[/]")
    console.print(escape("\n".join(lines)) if lines else "  [dim]none[/]", highlight=False)


def _preview(text: str, width: int = 70) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 3] + "..."
