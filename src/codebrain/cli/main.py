"""codebrain CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from codebrain.cli.ask import ask_cmd
from codebrain.cli.capture import capture_cmd
from codebrain.cli.docs import docs_app
from codebrain.cli.ingest import ingest_cmd
from codebrain.cli.projects import projects_app
from codebrain.cli.status import status_cmd
from codebrain.cli.tasks import tasks_app


def _version() -> str:
    try:
        return importlib.metadata.version("codebrain")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"codebrain {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="codebrain",
    help=(
        "codebrain — ask questions about a codebase, its history and its tasks.\n\n"
        "  codebrain ingest   Index files and git history (incremental).\n"
        "  codebrain ask      Answer a question from the index, with sources."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """codebrain — project knowledge index."""


app.command("ingest")(ingest_cmd)
app.command("ask")(ask_cmd)
app.command("capture")(capture_cmd)
app.command("status")(status_cmd)
app.add_typer(projects_app, name="projects")
app.add_typer(tasks_app, name="tasks")
app.add_typer(docs_app, name="docs")


@app.command("version")
def version_cmd() -> None:
    """Show the installed codebrain version."""
    typer.echo(f"codebrain {_version()}")


if __name__ == "__main__":
    app()
