"""Git history sync engine — record new commits oldest first, exactly once.

Per unseen commit: embed the message and, unless it closes a task
("fixes #7"), draft a retrospective task from its diff. Then, in one
transaction, insert the commit, link the files it touched that are currently
indexed, and either close the referenced task or store the drafted one. The
two outcomes are mutually exclusive. Model calls never run while the write
lock is held.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from codebrain.db.models import CommitInfo
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob
from codebrain.ingest.progress import LogChannel
from codebrain.ingest.retrospective import (
    TaskDraft,
    TaskDraftError,
    draft_task,
    find_closed_task,
    is_trivial,
)

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.ingest.git_client import GitRepository
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)

DEFAULT_MIN_PATCH_CHARS = 200


@dataclass
class GitSyncResult:
    processed: int = 0
    failed: int = 0
    tasks_closed: int = 0
    tasks_created: int = 0


def sync_git_history(
    db: Database,
    project_id: int,
    git: GitRepository,
    gateway: ModelGateway,
    log: LogChannel | None = None,
    min_patch_chars: int = DEFAULT_MIN_PATCH_CHARS,
) -> GitSyncResult:
    """Record every commit of *git* not yet stored for *project_id*.

    Commits are processed oldest first so that a task created by an early
    commit can be closed by a later one in the same run.
    """
    log = log or LogChannel.detached()
    result = GitSyncResult()
    log.emit("[git] Starting git history sync")

    with db.connection() as conn:
        repo = Repository(conn)
        known = repo.list_commit_hashes(project_id)
        log.emit(f"[git] {len(known)} commit(s) already recorded")

        # git log is newest first.
        history = list(reversed(git.log()))
        new_commits = [c for c in history if c.hash not in known]
        if not new_commits:
            log.emit("[git] Git history is already up-to-date")
            return result
        log.emit(f"[git] Found {len(new_commits)} new commit(s) to process")

        for info in new_commits:
            log.emit(f"[git] Processing commit {info.short_hash}: {info.subject}")
            try:
                prepared = _prepare_commit(info, git, gateway, log, min_patch_chars)
                with conn:
                    closed, created = _store_commit(repo, project_id, prepared, log)
            except Exception as exc:
                result.failed += 1
                logger.exception("Failed to process commit %s", info.hash)
                log.error(f"[git] Failed to process commit {info.short_hash}: {exc}")
                continue
            result.processed += 1
            result.tasks_closed += closed
            result.tasks_created += created

    log.emit(
        f"[git] Git history sync complete: {result.processed} processed, {result.failed} failed, "
        f"{result.tasks_closed} task(s) closed, {result.tasks_created} task(s) created"
    )
    return result


@dataclass
class _PreparedCommit:
    info: CommitInfo
    embedding: bytes
    changed_files: list[tuple[str, str]]
    closes_task: int | None = None
    draft: TaskDraft | None = None
    draft_embedding: bytes | None = None


def _prepare_commit(
    info: CommitInfo,
    git: GitRepository,
    gateway: ModelGateway,
    log: LogChannel,
    min_patch_chars: int,
) -> _PreparedCommit:
    """Read the commit from git and make every model call it needs. Writes nothing."""
    prepared = _PreparedCommit(
        info=info,
        embedding=to_blob(gateway.embed(info.message)),
        changed_files=git.changed_files(info.hash),
        closes_task=find_closed_task(info.message),
    )
    # A closing reference rules out a retrospective task.
    if prepared.closes_task is not None:
        return prepared

    patch = git.patch(info.hash)
    if is_trivial(patch, min_patch_chars):
        log.emit("[git]   -> Diff too small, no task generated")
        return prepared

    try:
        draft = draft_task(gateway, info.message, patch)
    except TaskDraftError as exc:
        log.error(f"[git]   -> Could not parse generated task for {info.short_hash}: {exc}")
        return prepared
    if draft is None:
        log.emit("[git]   -> Commit judged trivial, no task generated")
        return prepared

    prepared.draft = draft
    prepared.draft_embedding = to_blob(gateway.embed(draft.embedding_text))
    return prepared


def _store_commit(
    repo: Repository, project_id: int, prepared: _PreparedCommit, log: LogChannel
) -> tuple[int, int]:
    """Insert one commit and its side effects inside the caller's transaction.

    Returns (tasks_closed, tasks_created).
    """
    info = prepared.info
    commit_id = repo.add_commit(project_id, info, prepared.embedding)

    for change_type, path in prepared.changed_files:
        file_id = repo.get_file_id(project_id, path)
        if file_id is not None:
            repo.add_commit_file(commit_id, file_id, change_type)

    task_number = prepared.closes_task
    if task_number is not None:
        if repo.close_task(project_id, task_number):
            log.emit(f"[git]   -> Closed task #{task_number}")
            return 1, 0
        logger.debug("Commit %s references task #%d, nothing to close", info.short_hash, task_number)
        return 0, 0

    draft = prepared.draft
    if draft is None:
        return 0, 0
    task = repo.add_task(
        project_id,
        draft.title,
        prepared.draft_embedding,
        description=draft.description,
        status="done",
        category=draft.category,
        created_at=info.date,
    )
    log.emit(f"[git]   -> Created task #{task.task_number} [{task.category}]: {task.title}")
    return 0, 1
