"""codebrain capture — distil a conversation into a knowledge note."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from codebrain import conversations
from codebrain.cli import common
from codebrain.cli.common import console
from codebrain.cli.errors import err_conversation_not_found
from codebrain.errors import ConversationNotFoundError
from codebrain.knowledge import capture_knowledge


def capture_cmd(
    conversation: Annotated[int, typer.Argument(help="Conversation ID to capture.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the codebrain database (default from config)."),
    ] = None,
) -> None:
    """Save the conversation's key decision so later questions can retrieve it."""
    cfg = common.load_cli_config()
    database = common.open_database(cfg, db)
    try:
        conv = conversations.get_conversation(database, conversation)
    except ConversationNotFoundError:
        console.print(err_conversation_not_found(conversation))
        raise typer.Exit(1) from None

    gateway = common.build_gateway(cfg)
    note = capture_knowledge(database, conv.project_id, conv.id, gateway)
    if note is None:
        console.print("[yellow]Nothing worth keeping[/] in this conversation; no note saved.")
        return
    console.print(f"[green]✓[/] Captured note {note.id}: {escape(note.note_summary)}")
