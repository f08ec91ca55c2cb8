"""Task management and per-task context bundles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codebrain.config import RetrievalCfg
from codebrain.db.models import TASK_STATUSES, Commit, DocumentChunk, Task
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob
from codebrain.errors import InvalidTaskStatusError, TaskNotFoundError
from codebrain.rag.retriever import CodeHit, retrieve

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

# Related-entity limits for a task's context bundle.
TASK_CONTEXT_LIMITS = RetrievalCfg(
    notes_k=0, tasks_k=3, commits_k=5, documents_k=3, files_k=5, chunks_k=10
)


@dataclass
class ContextBundle:
    """Everything in the index related to one task, ranked by the task's own vector."""

    task: Task
    related_tasks: list[Task] = field(default_factory=list)
    related_commits: list[Commit] = field(default_factory=list)
    related_documents: list[DocumentChunk] = field(default_factory=list)
    related_code: list[CodeHit] = field(default_factory=list)


def task_embedding_text(title: str, description: str | None) -> str:
    return f"{title}\n\n{description}" if description else title


def _check_status(status: str) -> None:
    if status not in TASK_STATUSES:
        raise InvalidTaskStatusError(
            f"Invalid task status '{status}'. Expected one of: {', '.join(TASK_STATUSES)}"
        )


def list_tasks(db: Database, project_id: int, status: str | None = None) -> list[Task]:
    if status is not None:
        _check_status(status)
    with db.connection() as conn:
        return Repository(conn).list_tasks(project_id, status)


def get_task(db: Database, project_id: int, number: int) -> Task:
    with db.connection() as conn:
        task = Repository(conn).get_task(project_id, number)
    if task is None:
        raise TaskNotFoundError(f"Task #{number} not found in project {project_id}")
    return task


def create_task(
    db: Database,
    project_id: int,
    gateway: ModelGateway,
    title: str,
    description: str | None = None,
) -> Task:
    """Create an open task with the next per-project number."""
    embedding = to_blob(gateway.embed(task_embedding_text(title, description)))
    with db.connection() as conn, conn:
        return Repository(conn).add_task(
            project_id, title, embedding, description=description or None
        )


def update_task(
    db: Database,
    project_id: int,
    gateway: ModelGateway,
    number: int,
    title: str | None = None,
    description: str | None = None,
    status: str | None = None,
) -> Task:
    """Update a task; a new title or description re-embeds it.

    Raises:
        TaskNotFoundError: No task with that number.
        InvalidTaskStatusError: *status* is not open, in_progress or done.
    """
    if status is not None:
        _check_status(status)

    with db.connection() as conn:
        repo = Repository(conn)
        current = repo.get_task(project_id, number)
        if current is None:
            raise TaskNotFoundError(f"Task #{number} not found in project {project_id}")

        fields: dict[str, object] = {}
        if status is not None:
            fields["status"] = status
        if title:
            fields["title"] = title
        if description:
            fields["description"] = description
        if title or description:
            text = task_embedding_text(title or current.title, description or current.description)
            fields["embedding"] = to_blob(gateway.embed(text))
        if not fields:
            return current

        with conn:
            repo.update_task(project_id, number, **fields)
        return repo.get_task(project_id, number)


def delete_task(db: Database, project_id: int, number: int) -> None:
    with db.connection() as conn, conn:
        deleted = Repository(conn).delete_task(project_id, number)
    if not deleted:
        raise TaskNotFoundError(f"Task #{number} not found in project {project_id}")


def task_context(
    db: Database,
    project_id: int,
    number: int,
    limits: RetrievalCfg = TASK_CONTEXT_LIMITS,
) -> ContextBundle:
    """Related tasks, commits, documents and code for task *number*.

    Ranked by the task's stored embedding; the task itself is excluded from
    its related tasks.
    """
    with db.connection() as conn:
        repo = Repository(conn)
        task = repo.get_task(project_id, number)
        if task is None:
            raise TaskNotFoundError(f"Task #{number} not found in project {project_id}")
        embedding = repo.get_task_embedding(project_id, number)

    bundle = ContextBundle(task=task)
    if embedding is None:
        return bundle

    hits = retrieve(db, project_id, embedding, limits, exclude_task=number)
    bundle.related_tasks = [t for t, _ in hits.tasks]
    bundle.related_commits = [c for c, _ in hits.commits]
    bundle.related_documents = [d for d, _ in hits.documents]
    bundle.related_code = hits.code
    return bundle
