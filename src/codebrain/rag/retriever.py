"""Multi-source retriever: independent vector searches over one query vector.

Sources, each ranked by ascending cosine distance:
  - knowledge notes        (notes_k)
  - tasks                  (tasks_k)
  - commits                (commits_k)
  - document chunks        (documents_k)
  - code, two-stage        top files_k files by summary vector, then the
                           top chunks_k chunks restricted to those files

Sub-searches run concurrently, each on its own connection. A sub-search
whose table does not exist (optional feature not migrated) is skipped with a
warning; any other error propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from codebrain.config import RetrievalCfg
from codebrain.db.connection import is_missing_table
from codebrain.db.models import CodeChunk, Commit, DocumentChunk, IndexedFile, KnowledgeNote, Task
from codebrain.db.repository import Repository

if TYPE_CHECKING:
    from codebrain.db.connection import Database

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_WORKERS = 5


@dataclass
class CodeHit:
    """A code chunk together with the file it belongs to."""

    chunk: CodeChunk
    file: IndexedFile
    distance: float


@dataclass
class RetrievalHits:
    """Ranked results of every sub-search, best first within each list."""

    notes: list[tuple[KnowledgeNote, float]] = field(default_factory=list)
    tasks: list[tuple[Task, float]] = field(default_factory=list)
    commits: list[tuple[Commit, float]] = field(default_factory=list)
    documents: list[tuple[DocumentChunk, float]] = field(default_factory=list)
    files: list[tuple[IndexedFile, float]] = field(default_factory=list)
    code: list[CodeHit] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.notes or self.tasks or self.commits or self.documents or self.code)


def retrieve(
    db: Database,
    project_id: int,
    embedding: bytes,
    limits: RetrievalCfg | None = None,
    exclude_task: int | None = None,
) -> RetrievalHits:
    """Run every sub-search for *embedding* and collect the hits.

    Args:
        db: Database to search (one connection per sub-search).
        project_id: Project scope.
        embedding: Query vector, already serialised (see ``to_blob``).
        limits: Per-source K values; a K of 0 skips that source.
        exclude_task: Task number left out of the task search.
    """
    limits = limits or RetrievalCfg()

    searches: dict[str, Callable[[Repository], list]] = {}
    if limits.notes_k > 0:
        searches["notes"] = lambda r: r.search_knowledge(project_id, embedding, limits.notes_k)
    if limits.tasks_k > 0:
        searches["tasks"] = lambda r: r.search_tasks(
            project_id, embedding, limits.tasks_k, exclude_number=exclude_task
        )
    if limits.commits_k > 0:
        searches["commits"] = lambda r: r.search_commits(project_id, embedding, limits.commits_k)
    if limits.documents_k > 0:
        searches["documents"] = lambda r: r.search_document_chunks(
            project_id, embedding, limits.documents_k
        )
    if limits.files_k > 0 and limits.chunks_k > 0:
        searches["code"] = lambda r: _search_code(
            r, project_id, embedding, limits.files_k, limits.chunks_k
        )

    hits = RetrievalHits()
    if not searches:
        return hits

    with ThreadPoolExecutor(max_workers=min(_MAX_WORKERS, len(searches))) as pool:
        futures = {name: pool.submit(_run_search, db, name, fn) for name, fn in searches.items()}
        results = {name: f.result() for name, f in futures.items()}

    hits.notes = results.get("notes", [])
    hits.tasks = results.get("tasks", [])
    hits.commits = results.get("commits", [])
    hits.documents = results.get("documents", [])
    files, code = results.get("code", ([], []))
    hits.files = files
    hits.code = code
    return hits


def _run_search(db: Database, name: str, fn: Callable[[Repository], T]) -> T | list:
    """Run one sub-search on its own connection; a missing table yields no hits."""
    try:
        with db.connection() as conn:
            return fn(Repository(conn))
    except Exception as exc:
        if is_missing_table(exc):
            logger.warning("Skipping %s search: %s. Run migrations to enable it.", name, exc)
            return ([], []) if name == "code" else []
        raise


def _search_code(
    repo: Repository,
    project_id: int,
    embedding: bytes,
    files_k: int,
    chunks_k: int,
) -> tuple[list[tuple[IndexedFile, float]], list[CodeHit]]:
    """Two-stage code search: rank files by summary, then chunks within them."""
    files = repo.search_files(project_id, embedding, files_k)
    if not files:
        return [], []
    by_id = {f.id: f for f, _ in files}
    chunks = repo.search_chunks(list(by_id), embedding, chunks_k)
    return files, [CodeHit(chunk=c, file=by_id[c.file_id], distance=d) for c, d in chunks]
