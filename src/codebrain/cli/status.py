"""codebrain status — index overview for every registered project."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from codebrain.cli import common
from codebrain.cli.common import console
from codebrain.db.repository import Repository


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the codebrain database (default from config)."),
    ] = None,
) -> None:
    """Show database location and per-project index counts."""
    cfg = common.load_cli_config()
    db_path = db or Path(cfg.database.path)
    database = common.open_database(cfg, db_path)

    size_mb = db_path.stat().st_size / (1024 * 1024) if db_path.exists() else 0.0
    lines = [
        f"Database:    {db_path} ({size_mb:.1f} MB)",
        f"Embeddings:  {cfg.embedding.model} ({cfg.embedding.dimensions} dims)",
        f"Generation:  {cfg.generation.model}",
        f"Documents:   {'enabled' if cfg.documents.enabled else 'disabled'}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]codebrain[/]", expand=False))

    with database.connection() as conn:
        repo = Repository(conn)
        rows = [(p, repo.project_stats(p.id)) for p in repo.list_projects()]

    if not rows:
        console.print("[yellow]No projects registered.[/]  Run:  codebrain projects add <path-or-url>")
        return

    table = Table(title="Projects")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    for heading in ("Files", "Chunks", "Commits", "Open tasks", "Done", "Docs", "Notes"):
        table.add_column(heading, justify="right")
    for project, stats in rows:
        docs = "-" if stats["documents"] is None else str(stats["documents"])
        table.add_row(
            str(project.id),
            project.name,
            str(stats["files"]),
            str(stats["chunks"]),
            str(stats["commits"]),
            str(stats["tasks_open"]),
            str(stats["tasks_done"]),
            docs,
            str(stats["notes"]),
        )
    console.print(table)
