"""codebrain docs — attach reference documents (PDF, DOCX, text) to a project."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from codebrain import documents
from codebrain.cli import common
from codebrain.cli.common import console
from codebrain.cli.errors import err_documents_disabled, err_unsupported_file
from codebrain.db.connection import is_missing_table
from codebrain.errors import CodebrainError, UnsupportedFileTypeError

docs_app = typer.Typer(help="Attach and list project documents.", no_args_is_help=True)

ProjectOption = Annotated[int, typer.Option("--project", "-p", help="Project ID.")]
DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the codebrain database (default from config)."),
]


@docs_app.command("add")
def add_cmd(
    project: ProjectOption,
    path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="Document to attach.")
    ],
    name: Annotated[
        str | None, typer.Option("--name", help="Stored name (defaults to the file name).")
    ] = None,
    db: DbOption = None,
) -> None:
    """Attach a document; one with the same name is replaced."""
    cfg = common.load_cli_config()
    if not cfg.documents.enabled:
        console.print(err_documents_disabled())
        raise typer.Exit(1)
    database = common.open_database(cfg, db)
    gateway = common.build_gateway(cfg)
    try:
        result = documents.add_document(database, project, path, name or path.name, gateway)
    except UnsupportedFileTypeError:
        console.print(
            err_unsupported_file(name or path.name, sorted(documents.SUPPORTED_EXTENSIONS))
        )
        raise typer.Exit(1) from None
    except sqlite3.OperationalError as exc:
        if not is_missing_table(exc):
            raise
        console.print(err_documents_disabled())
        raise typer.Exit(1) from None
    except CodebrainError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1) from None

    verb = "Replaced" if result.replaced else "Added"
    console.print(
        f"[green]✓[/] {verb} [bold]{result.document.file_name}[/] ({result.chunks} chunks)"
    )


@docs_app.command("list")
def list_cmd(project: ProjectOption, db: DbOption = None) -> None:
    """List a project's documents."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        rows = documents.list_documents(database, project)
    except sqlite3.OperationalError as exc:
        if not is_missing_table(exc):
            raise
        console.print(err_documents_disabled())
        raise typer.Exit(1) from None

    if not rows:
        console.print("[yellow]No documents.[/]  Add one:  codebrain docs add -p <id> <file>")
        return
    table = Table(title=f"Documents (project {project})")
    table.add_column("Name", style="bold")
    table.add_column("Added")
    for d in rows:
        table.add_row(d.file_name, d.created_at or "")
    console.print(table)
