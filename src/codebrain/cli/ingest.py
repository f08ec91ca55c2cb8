"""codebrain ingest — sync a project's files and git history into the index.

The job runs on the ingestion queue's worker thread; this command relays
its progress lines until the job finishes. Re-running on an unchanged
project does nothing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from codebrain import projects
from codebrain.cli import common
from codebrain.cli.common import console
from codebrain.cli.errors import err_project_not_found, err_source_unreachable
from codebrain.errors import CodebrainError, ProjectNotFoundError
from codebrain.ingest.git_client import GitError
from codebrain.ingest.pipeline import IngestionQueue


def ingest_cmd(
    project: Annotated[int, typer.Option("--project", "-p", help="Project ID to ingest.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the codebrain database (default from config)."),
    ] = None,
) -> None:
    """Ingest (or incrementally re-ingest) a registered project."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        target = projects.get_project(database, project)
    except ProjectNotFoundError:
        console.print(err_project_not_found(project))
        raise typer.Exit(1) from None

    gateway = common.build_gateway(cfg)
    queue = IngestionQueue()
    console.print(f"[bold]→ {escape(target.name)}[/] ({escape(target.source)})")
    job, future = projects.start_ingestion(database, target, gateway, cfg.ingestion, queue)

    try:
        for line in job.log:
            style = "red" if "Failed" in line or "failed:" in line else "dim"
            console.print(f"  [{style}]{escape(line)}[/]", highlight=False)
    except KeyboardInterrupt:
        # Stop relaying; the job finishes on its own.
        job.log.close()
        console.print("[yellow]Detached from ingestion; waiting for the current job to finish...[/]")

    try:
        result = future.result()
    except (GitError, CodebrainError, ValueError) as exc:
        console.print(err_source_unreachable(target.source, str(exc)))
        raise typer.Exit(1) from None
    finally:
        queue.shutdown()

    files = result.files
    console.print(
        f"[green]✓[/] Files: {files.processed} indexed, {files.skipped} unchanged, "
        f"{files.pruned} pruned, {files.failed} failed"
    )
    if result.git is not None:
        g = result.git
        console.print(
            f"[green]✓[/] Commits: {g.processed} recorded, {g.failed} failed; "
            f"tasks {g.tasks_created} created, {g.tasks_closed} closed"
        )
    if result.failed:
        raise typer.Exit(1)
