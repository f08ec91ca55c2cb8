"""Ingestion pipeline — file sync then git sync, run one job at a time.

``run_ingestion`` is idempotent: re-running it on an unchanged tree and
history does no model calls and no writes. ``IngestionQueue`` serialises
jobs on a single worker thread, and ``exclusive_ingestion`` keeps ingestions
in other processes sharing the database from interleaving with them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from filelock import FileLock, Timeout

from codebrain.config import IngestionCfg
from codebrain.ingest.file_sync import FileSyncResult, sync_files
from codebrain.ingest.git_client import GitRepository
from codebrain.ingest.git_sync import GitSyncResult, sync_git_history
from codebrain.ingest.progress import LogChannel

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "IngestionJob",
    "IngestionQueue",
    "IngestionResult",
    "LogChannel",
    "default_queue",
    "exclusive_ingestion",
    "run_ingestion",
]


@dataclass
class IngestionResult:
    files: FileSyncResult
    git: GitSyncResult | None = None

    @property
    def failed(self) -> int:
        return self.files.failed + (self.git.failed if self.git else 0)


def run_ingestion(
    db: Database,
    project_id: int,
    path: Path,
    gateway: ModelGateway,
    log: LogChannel | None = None,
    ingestion: IngestionCfg | None = None,
) -> IngestionResult:
    """Sync files, then git history, for the working tree at *path*.

    Git sync runs after file sync because it links commits to indexed files
    by path. A tree that is not a git repository gets file sync only.
    """
    ingestion = ingestion or IngestionCfg()
    log = log or LogChannel.detached()
    path = Path(path)

    files = sync_files(db, project_id, path, gateway, log, ingestion)

    git = GitRepository(path)
    if not git.is_repository():
        log.emit(f"[git] {path} is not a git repository, skipping history sync")
        return IngestionResult(files=files)

    history = sync_git_history(
        db, project_id, git, gateway, log, min_patch_chars=ingestion.min_patch_chars
    )
    return IngestionResult(files=files, git=history)


# ------------------------------------------------------------------
# Cross-process exclusion
# ------------------------------------------------------------------


def ingestion_lock_path(db_path: Path | str) -> Path:
    return Path(f"{db_path}.ingest.lock")


@contextmanager
def exclusive_ingestion(db_path: Path | str, log: LogChannel) -> Iterator[None]:
    """Hold the ingestion lock of the database at *db_path*.

    The lock is a file beside the database, so it excludes ingestions in
    other processes as well as other queues in this one. Waits for a running
    ingestion to finish, telling the listener so.
    """
    lock = FileLock(ingestion_lock_path(db_path))
    try:
        lock.acquire(timeout=0)
    except Timeout:
        log.emit("Another ingestion is running on this database; waiting for it to finish...")
        lock.acquire()
    try:
        yield
    finally:
        lock.release()


# ------------------------------------------------------------------
# Job queue
# ------------------------------------------------------------------


@dataclass
class IngestionJob:
    """One queued ingestion: which project, from where, and where progress goes."""

    project_id: int
    source: str
    log: LogChannel = field(default_factory=LogChannel)


class IngestionQueue:
    """Runs ingestion jobs one at a time on a dedicated worker thread.

    The job's channel is always finished when the job ends, successfully or
    not, so a listener iterating it never blocks forever.
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="codebrain-ingest")

    def submit(self, job: IngestionJob, work: Callable[[IngestionJob], T]) -> Future[T]:
        logger.info("Queued ingestion for project %d (%s)", job.project_id, job.source)
        return self._executor.submit(self._run, job, work)

    @staticmethod
    def _run(job: IngestionJob, work: Callable[[IngestionJob], T]) -> T:
        try:
            return work(job)
        except Exception as exc:
            logger.exception("Ingestion failed for project %d", job.project_id)
            job.log.error(f"Ingestion failed: {exc}")
            raise
        finally:
            job.log.finish()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


_default_queue: IngestionQueue | None = None
_default_lock = threading.Lock()


def default_queue() -> IngestionQueue:
    """The process-wide ingestion queue, created on first use."""
    global _default_queue
    with _default_lock:
        if _default_queue is None:
            _default_queue = IngestionQueue()
        return _default_queue
