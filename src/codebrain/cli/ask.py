"""codebrain ask — answer a question about a project, streaming the reply.

Each ask is one turn of a conversation: pass --conversation to continue an
earlier one so its history informs the answer.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from codebrain import conversations, projects
from codebrain.cli import common
from codebrain.cli.common import console
from codebrain.cli.errors import (
    err_conversation_not_found,
    err_insufficient_context,
    err_project_not_found,
)
from codebrain.db.models import Source
from codebrain.errors import (
    ConversationNotFoundError,
    InsufficientContextError,
    ProjectNotFoundError,
)
from codebrain.rag.answer import get_answer


def ask_cmd(
    question: Annotated[str, typer.Argument(help="The question to answer.")],
    project: Annotated[int, typer.Option("--project", "-p", help="Project ID to ask about.")],
    conversation: Annotated[
        int | None,
        typer.Option("--conversation", "-c", help="Continue an existing conversation."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the codebrain database (default from config)."),
    ] = None,
) -> None:
    """Ask a question; the answer streams as it is generated."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        projects.get_project(database, project)
    except ProjectNotFoundError:
        console.print(err_project_not_found(project))
        raise typer.Exit(1) from None

    history: list[dict] = []
    if conversation is not None:
        try:
            existing = conversations.get_conversation(database, conversation)
        except ConversationNotFoundError:
            console.print(err_conversation_not_found(conversation))
            raise typer.Exit(1) from None
        if existing.project_id != project:
            console.print(err_conversation_not_found(conversation))
            raise typer.Exit(1)
        history = conversations.history(conversations.get_messages(database, conversation))

    gateway = common.build_gateway(cfg)
    try:
        answer = get_answer(database, project, question, history, gateway, cfg.retrieval)
    except InsufficientContextError:
        console.print(err_insufficient_context())
        raise typer.Exit(1) from None

    if conversation is None:
        conversation = conversations.create_conversation(database, project, question).id
    else:
        conversations.add_user_message(database, conversation, question)

    parts: list[str] = []
    for delta in answer.stream:
        parts.append(delta)
        console.print(delta, end="", markup=False, highlight=False)
    console.print()

    conversations.add_assistant_message(database, conversation, "".join(parts), answer.sources)

    if answer.sources:
        console.print(_sources_table(answer.sources))
    console.print(
        f"[dim]Conversation {conversation}. Continue with:  "
        f"codebrain ask -p {project} -c {conversation} \"...\"[/]"
    )


def _sources_table(sources: list[Source]) -> Table:
    table = Table(title="Sources", show_header=True)
    table.add_column("Type")
    table.add_column("ID")
    table.add_column("Title")
    for source in sources:
        table.add_row(source.type, escape(str(source.id)), escape(source.title))
    return table
