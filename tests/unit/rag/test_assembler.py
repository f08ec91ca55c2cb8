"""Tests for the context assembler and provenance list."""

from __future__ import annotations

from codebrain.db.models import (
    CodeChunk,
    Commit,
    DocumentChunk,
    IndexedFile,
    KnowledgeNote,
    Source,
    Task,
)
from codebrain.rag.assembler import SourceList, assemble
from codebrain.rag.retriever import CodeHit, RetrievalHits


def _file(fid, path):
    return IndexedFile(id=fid, project_id=1, path=path, content_hash="h", summary="s")


def _hit(file, name, content="pass"):
    chunk = CodeChunk(name=name, chunk_type="function", content=content, start_line=1, end_line=2, file_id=file.id)
    return CodeHit(chunk=chunk, file=file, distance=0.1)


def _task(number, title, status="open"):
    return Task(id=number, project_id=1, task_number=number, title=title, status=status)


def _commit(message="Fix login redirect\n\nDetails."):
    return Commit(
        id=1,
        project_id=1,
        commit_hash="abc1234def5678" + "0" * 26,
        author_name="Ana",
        author_email="ana@x.io",
        commit_date="2024-01-01",
        message=message,
    )


def test_empty_hits_give_empty_context():
    ctx = assemble(RetrievalHits())
    assert ctx.is_empty
    assert ctx.sources == []


def test_file_with_two_chunks_is_cited_once():
    a, b = _file(1, "src/a.py"), _file(2, "src/b.py")
    hits = RetrievalHits(code=[_hit(a, "one"), _hit(a, "two"), _hit(b, "three")])
    ctx = assemble(hits)
    assert [(s.type, s.id) for s in ctx.sources] == [("code", "src/a.py"), ("code", "src/b.py")]
    assert ctx.text.count("--- FILE: src/a.py") == 2


def test_block_order_and_formats():
    hits = RetrievalHits(
        notes=[(KnowledgeNote(id=4, project_id=1, note_summary="Use WAL."), 0.1)],
        tasks=[(_task(7, "Login broken", "in_progress"), 0.1)],
        commits=[(_commit(), 0.1)],
        documents=[(DocumentChunk(document_id=1, content="Deploy nightly.", file_name="ops.md"), 0.1)],
        code=[_hit(_file(1, "app.py"), "main", "def main(): ...")],
    )
    text = assemble(hits).text
    headers = [
        "Relevant Past Decisions/Summaries:",
        "Relevant Tasks:",
        "Relevant Commits:",
        "Relevant Project Documents:",
        "Relevant Code Snippets:",
    ]
    positions = [text.index(h) for h in headers]
    assert positions == sorted(positions)
    assert "- Use WAL." in text
    assert "- Task #7 [IN_PROGRESS]: Login broken" in text
    assert "- Commit abc1234 by Ana: Fix login redirect" in text
    assert "--- FROM DOCUMENT: ops.md ---\n\nDeploy nightly." in text
    assert "--- FILE: app.py (Chunk: main) ---\n\ndef main(): ..." in text


def test_source_ids_use_natural_keys():
    hits = RetrievalHits(
        notes=[(KnowledgeNote(id=4, project_id=1, note_summary="Use WAL."), 0.1)],
        tasks=[(_task(7, "Login broken"), 0.1)],
        commits=[(_commit(), 0.1)],
        documents=[
            (DocumentChunk(document_id=1, content="a", file_name="ops.md"), 0.1),
            (DocumentChunk(document_id=1, content="b", file_name="ops.md"), 0.2),
        ],
    )
    sources = assemble(hits).sources
    assert [(s.type, s.id) for s in sources] == [
        ("knowledge", 4),
        ("task", 7),
        ("commit", "abc1234"),
        ("document", "ops.md"),
    ]


def test_missing_author_is_unknown():
    commit = _commit()
    commit.author_name = None
    assert "by unknown:" in assemble(RetrievalHits(commits=[(commit, 0.1)])).text


def test_source_list_dedupes_by_type_and_id():
    sources = SourceList()
    sources.add(Source("task", 7, "#7: a"))
    sources.add(Source("task", "7", "#7: renamed"))
    sources.add(Source("code", "7", "7"))
    assert len(sources) == 2
    assert [s.title for s in sources] == ["#7: a", "7"]
