"""Conversations: Q&A turns with the sources each answer cited."""

from __future__ import annotations

from typing import TYPE_CHECKING

from codebrain.db.models import Conversation, ConversationMessage, Source
from codebrain.db.repository import Repository
from codebrain.errors import ConversationNotFoundError

if TYPE_CHECKING:
    from codebrain.db.connection import Database

_TITLE_LIMIT = 80


def conversation_title(first_message: str) -> str:
    text = first_message.strip()
    if len(text) > _TITLE_LIMIT:
        return text[: _TITLE_LIMIT - 3] + "..."
    return text


def create_conversation(db: Database, project_id: int, first_message: str) -> Conversation:
    """Create a conversation titled after *first_message* and store that message."""
    with db.connection() as conn:
        repo = Repository(conn)
        with conn:
            conversation = repo.add_conversation(project_id, conversation_title(first_message))
            repo.add_message(conversation.id, "user", first_message)
        return conversation


def get_conversation(db: Database, conversation_id: int) -> Conversation:
    with db.connection() as conn:
        conversation = Repository(conn).get_conversation(conversation_id)
    if conversation is None:
        raise ConversationNotFoundError(f"Conversation {conversation_id} does not exist")
    return conversation


def add_user_message(db: Database, conversation_id: int, content: str) -> None:
    with db.connection() as conn:
        repo = Repository(conn)
        if repo.get_conversation(conversation_id) is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} does not exist")
        with conn:
            repo.add_message(conversation_id, "user", content)


def add_assistant_message(
    db: Database, conversation_id: int, content: str, sources: list[Source]
) -> None:
    """Store the reply with its sources and bump the conversation's ``updated_at``."""
    with db.connection() as conn:
        repo = Repository(conn)
        with conn:
            repo.add_message(
                conversation_id, "assistant", content, [s.to_dict() for s in sources]
            )
            repo.touch_conversation(conversation_id)


def list_conversations(db: Database, project_id: int) -> list[Conversation]:
    with db.connection() as conn:
        return Repository(conn).list_conversations(project_id)


def get_messages(db: Database, conversation_id: int) -> list[ConversationMessage]:
    with db.connection() as conn:
        return Repository(conn).list_messages(conversation_id)


def history(messages: list[ConversationMessage]) -> list[dict]:
    """Chat-completion history (role + content) from stored messages."""
    return [{"role": m.role, "content": m.content} for m in messages]
