"""Knowledge capture: distil a finished conversation into one linked note.

The note is embedded like every other entity, so later questions retrieve
it as a "past decision", and it is linked to the files, tasks and commits
the conversation's answers cited.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from codebrain.db.models import ConversationMessage, KnowledgeNote, Source
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob
from codebrain.errors import ConversationNotFoundError
from codebrain.rag.assembler import SourceList

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)

NULL_SENTINEL = "NULL"

_SYSTEM_PROMPT = (
    "You are an AI assistant that distills key decisions and summaries from engineering "
    "conversations. Analyze the following transcript and extract the single most important "
    "decision, technical summary, or architectural choice. The summary MUST be a concise, "
    "one-sentence statement. If no clear decision was made or the conversation is trivial, "
    'respond with the exact string "NULL".\n\n'
    "Example outputs:\n"
    '- "Decision: The JWT expiration will be changed from 1 hour to 24 hours to improve '
    'user experience."\n'
    '- "Conclusion: The ingestion pipeline performance issue is caused by a missing index '
    "on the 'commits' table.\""
)


def transcript(messages: list[ConversationMessage]) -> str:
    return "\n\n---\n\n".join(f"{m.role.upper()}:\n{m.content}" for m in messages)


def cited_sources(messages: list[ConversationMessage]) -> list[Source]:
    """Sources of every assistant message, first occurrence of each ``(type, id)`` kept."""
    sources = SourceList()
    for message in messages:
        if message.role != "assistant":
            continue
        for raw in message.sources:
            try:
                sources.add(Source.from_dict(raw))
            except (KeyError, TypeError):
                logger.debug("Ignoring malformed source %r", raw)
    return sources.to_list()


def capture_knowledge(
    db: Database,
    project_id: int,
    conversation_id: int,
    gateway: ModelGateway,
) -> KnowledgeNote | None:
    """Distil *conversation_id* into a knowledge note.

    Returns ``None`` when the conversation holds no complete user/assistant
    exchange or the model finds nothing worth keeping. Sources that no longer
    resolve (a deleted file or task) are not linked.

    Raises:
        ConversationNotFoundError: *conversation_id* does not exist in
            *project_id*.
    """
    with db.connection() as conn:
        repo = Repository(conn)
        conversation = repo.get_conversation(conversation_id)
        if conversation is None or conversation.project_id != project_id:
            raise ConversationNotFoundError(f"Conversation {conversation_id} does not exist")
        messages = repo.list_messages(conversation_id)
        if not {"user", "assistant"} <= {m.role for m in messages}:
            return None

        summary = gateway.complete(
            [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": f"CONVERSATION TRANSCRIPT:\n\n{transcript(messages)}"},
            ]
        ).strip()
        if not summary or summary.strip('"').upper() == NULL_SENTINEL:
            logger.info("No knowledge captured from conversation %d", conversation_id)
            return None

        embedding = to_blob(gateway.embed(summary))
        with conn:
            note = repo.add_knowledge_note(project_id, summary, embedding, conversation_id)
            linked = 0
            for source in cited_sources(messages):
                if _link_source(repo, project_id, note.id, source):
                    linked += 1

    logger.info(
        "Captured knowledge note %d from conversation %d (%d link(s))",
        note.id,
        conversation_id,
        linked,
    )
    return note


def _link_source(repo: Repository, project_id: int, note_id: int, source: Source) -> bool:
    """Link one cited source to the note. Returns False if it does not resolve."""
    if source.type == "code":
        file_id = repo.get_file_id(project_id, str(source.id))
        if file_id is not None:
            repo.add_knowledge_link(note_id, file_id=file_id)
            return True
    elif source.type == "task":
        try:
            number = int(source.id)
        except (TypeError, ValueError):
            return False
        task_id = repo.get_task_id(project_id, number)
        if task_id is not None:
            repo.add_knowledge_link(note_id, task_id=task_id)
            return True
    elif source.type == "commit":
        commit_id = repo.get_commit_id_by_prefix(project_id, str(source.id))
        if commit_id is not None:
            repo.add_knowledge_link(note_id, commit_id=commit_id)
            return True
    return False
