"""Tests for knowledge capture."""

from __future__ import annotations

import pytest
from conftest import axis

from codebrain import conversations
from codebrain.db.models import CommitInfo, ConversationMessage, Source
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob
from codebrain.errors import ConversationNotFoundError
from codebrain.knowledge import capture_knowledge, cited_sources, transcript

DECISION = "Decision: sessions now last 24 hours."


def _conversation(db, project_id, sources):
    conv = conversations.create_conversation(db, project_id, "How long do sessions last?")
    conversations.add_assistant_message(db, conv.id, "One hour; we agreed on 24.", sources)
    return conv


def _message(role, content, sources=()):
    return ConversationMessage(id=0, conversation_id=1, role=role, content=content, sources=list(sources))


def test_transcript_format():
    text = transcript([_message("user", "Q?"), _message("assistant", "A.")])
    assert text == "USER:\nQ?\n\n---\n\nASSISTANT:\nA."


def test_cited_sources_dedupes_and_skips_malformed():
    messages = [
        _message("user", "q", [{"type": "code", "id": "a.py", "title": "a.py"}]),
        _message("assistant", "a", [{"type": "task", "id": 2, "title": "t"}, {"id": "x"}]),
        _message("assistant", "b", [{"type": "task", "id": "2", "title": "t"}]),
    ]

    assert cited_sources(messages) == [Source("task", 2, "t")]


def test_capture_knowledge_links_resolvable_sources(db, project, gateway):
    with db.connection() as conn, conn:
        repo = Repository(conn)
        file_id = repo.add_file(project.id, "src/session.py", "h", "Sessions.", to_blob(axis(0)))
        task = repo.add_task(project.id, "Extend sessions", to_blob(axis(1)))
        commit_id = repo.add_commit(
            project.id,
            CommitInfo("b" * 40, "Dev", "dev@example.com", "2024-01-01T00:00:00+00:00", "Longer sessions"),
            to_blob(axis(2)),
        )
    conv = _conversation(
        db,
        project.id,
        [
            Source("code", "src/session.py", "src/session.py"),
            Source("task", task.task_number, task.title),
            Source("commit", "bbbbbbb", "Longer sessions"),
            Source("code", "src/deleted.py", "src/deleted.py"),
            Source("task", 99, "gone"),
        ],
    )
    gateway.script(gateway.generation_model, f"  {DECISION}\n")
    gateway.vectors[DECISION] = axis(4)

    note = capture_knowledge(db, project.id, conv.id, gateway)

    assert note.note_summary == DECISION
    assert note.conversation_id == conv.id
    with db.connection() as conn:
        repo = Repository(conn)
        links = [tuple(row) for row in repo.list_knowledge_links(note.id)]
        hits = repo.search_knowledge(project.id, to_blob(axis(4)), 1)
    assert links == [(file_id, None, None), (None, task.id, None), (None, None, commit_id)]
    assert hits[0][0].id == note.id
    model, messages = gateway.completions[-1]
    assert model == gateway.generation_model
    assert "ASSISTANT:\nOne hour; we agreed on 24." in messages[1]["content"]


def test_capture_knowledge_null_reply(db, project, gateway):
    conv = _conversation(db, project.id, [])
    gateway.script(gateway.generation_model, '"NULL"')

    assert capture_knowledge(db, project.id, conv.id, gateway) is None
    assert gateway.embedded == []


def test_capture_knowledge_needs_two_messages(db, project, gateway):
    conv = conversations.create_conversation(db, project.id, "Hello?")

    assert capture_knowledge(db, project.id, conv.id, gateway) is None
    assert gateway.completions == []


def test_capture_knowledge_needs_an_assistant_reply(db, project, gateway):
    conv = conversations.create_conversation(db, project.id, "How long do sessions last?")
    conversations.add_user_message(db, conv.id, "Anyone?")

    assert capture_knowledge(db, project.id, conv.id, gateway) is None
    assert gateway.completions == []


def test_capture_knowledge_rejects_conversation_of_other_project(db, project, gateway):
    with db.connection() as conn, conn:
        other = Repository(conn).add_project("other", "/src/other")
    conv = _conversation(db, other.id, [])

    with pytest.raises(ConversationNotFoundError):
        capture_knowledge(db, project.id, conv.id, gateway)
    assert gateway.completions == []


def test_capture_knowledge_unknown_conversation(db, project, gateway):
    with pytest.raises(ConversationNotFoundError):
        capture_knowledge(db, project.id, 99, gateway)
