"""Project management: register sources and queue their ingestion."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from codebrain.config import IngestionCfg
from codebrain.db.models import Project
from codebrain.db.repository import Repository
from codebrain.errors import CodebrainError, ProjectNotFoundError
from codebrain.ingest.git_client import GitRepository, is_remote
from codebrain.ingest.pipeline import (
    IngestionJob,
    IngestionQueue,
    IngestionResult,
    default_queue,
    exclusive_ingestion,
    run_ingestion,
)
from codebrain.ingest.progress import LogChannel

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)


def project_name(source: str) -> str:
    """Basename of *source* without its extension (``.../app.git`` → ``app``)."""
    trimmed = source.rstrip("/")
    if trimmed.startswith("git@") and ":" in trimmed:
        trimmed = trimmed.split(":", 1)[1]
    return PurePosixPath(trimmed).stem or trimmed


def normalise_source(source: str) -> str:
    """Remote URLs are kept verbatim; local paths become absolute."""
    if is_remote(source):
        return source
    return str(Path(source).expanduser().resolve())


def create_project(db: Database, source: str) -> tuple[Project, bool]:
    """Register *source*, or return the project already registered for it.

    Returns:
        ``(project, created)``; ``created`` is False for a known source.
    """
    source = normalise_source(source)
    with db.connection() as conn:
        repo = Repository(conn)
        existing = repo.get_project_by_source(source)
        if existing is not None:
            return existing, False
        with conn:
            project = repo.add_project(project_name(source), source)
    logger.info("Registered project %d (%s)", project.id, source)
    return project, True


def list_projects(db: Database) -> list[Project]:
    with db.connection() as conn:
        return Repository(conn).list_projects()


def get_project(db: Database, project_id: int) -> Project:
    with db.connection() as conn:
        project = Repository(conn).get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(f"Project {project_id} does not exist")
    return project


def resolve_working_tree(
    source: str, ingestion: IngestionCfg, log: LogChannel | None = None
) -> Path:
    """Local path for *source*: clone or pull remotes into the workspace."""
    if is_remote(source):
        progress = log.emit if log is not None else None
        return GitRepository.clone_or_pull(source, Path(ingestion.workspace_dir), progress).path
    path = Path(source)
    if not path.is_dir():
        raise CodebrainError(f"Project path does not exist: {source}")
    return path


def start_ingestion(
    db: Database,
    project: Project,
    gateway: ModelGateway,
    ingestion: IngestionCfg | None = None,
    queue: IngestionQueue | None = None,
) -> tuple[IngestionJob, Future[IngestionResult]]:
    """Queue an ingestion of *project*; progress lines arrive on ``job.log``.

    The working tree is resolved inside the job, so a slow clone never blocks
    the caller. The job waits for any other ingestion on the same database,
    in this process or another, to finish first.
    """
    ingestion = ingestion or IngestionCfg()
    queue = queue or default_queue()
    job = IngestionJob(project_id=project.id, source=project.source)

    def _work(job: IngestionJob) -> IngestionResult:
        with exclusive_ingestion(db.db_path, job.log):
            job.log.emit(f"[project {job.project_id}] Ingestion running...")
            root = resolve_working_tree(job.source, ingestion, job.log)
            result = run_ingestion(db, job.project_id, root, gateway, job.log, ingestion)
        job.log.emit(f"[project {job.project_id}] Ingestion complete.")
        return result

    return job, queue.submit(job, _work)
