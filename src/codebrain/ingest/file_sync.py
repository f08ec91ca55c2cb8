"""File sync engine — prune deleted files, re-index changed ones.

Each changed file is summarised, chunked and embedded first; then, in its own
transaction, the old row is deleted (its chunks and commit links cascade) and
the new file row and chunks are inserted. Model calls never run while the
write lock is held. A failure rolls back that file only and the run continues.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from codebrain.config import IngestionCfg
from codebrain.db.models import CodeChunk
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob
from codebrain.ingest.dispatch import chunk_file
from codebrain.ingest.ignore import IgnorePolicy, walk_files
from codebrain.ingest.progress import LogChannel
from codebrain.ingest.summarizer import FileSummarizer

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)


@dataclass
class FileSyncResult:
    pruned: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0


def content_hash(content: str) -> str:
    """SHA-256 hex digest of the decoded file content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def sync_files(
    db: Database,
    project_id: int,
    root: Path,
    gateway: ModelGateway,
    log: LogChannel | None = None,
    ingestion: IngestionCfg | None = None,
) -> FileSyncResult:
    """Bring the file index of *project_id* in line with the tree at *root*.

    Args:
        db: Database holding the index.
        project_id: Project whose files are synced.
        root: Working tree to read.
        gateway: Model gateway for summaries and embeddings.
        log: Progress sink; a private channel is used when omitted.
        ingestion: Ignore lists; config defaults when omitted.

    Returns:
        Counts of pruned, processed (re-indexed), skipped (unchanged or blank)
        and failed files.
    """
    ingestion = ingestion or IngestionCfg()
    log = log or LogChannel.detached()
    root = Path(root)
    result = FileSyncResult()
    summarizer = FileSummarizer(gateway)
    policy = IgnorePolicy(root, ingestion.ignored_extensions, ingestion.ignored_filenames)

    log.emit(f"[files] Starting file sync for {root}")
    disk_paths = list(walk_files(root))

    with db.connection() as conn:
        repo = Repository(conn)
        stored = repo.list_file_hashes(project_id)

        # -- prune -----------------------------------------------------
        disk_set = set(disk_paths)
        missing = [p for p in stored if p not in disk_set]
        # A file may have reappeared since the walk; never prune it.
        missing = [p for p in missing if not (root / p).exists()]
        if missing:
            with conn:
                result.pruned = repo.delete_files(project_id, missing)
            log.emit(f"[files] Pruned {result.pruned} deleted file(s): {', '.join(sorted(missing))}")
        else:
            log.emit("[files] No files to prune")

        # -- diff & reindex --------------------------------------------
        to_index = [p for p in disk_paths if policy.accepts(p)]
        log.emit(f"[files] {len(to_index)} file(s) to check for changes")

        for rel_path in to_index:
            try:
                content = (root / rel_path).read_bytes().decode("utf-8", errors="replace")
            except OSError as exc:
                result.failed += 1
                log.error(f"[files] Could not read {rel_path}: {exc}")
                continue

            if not content.strip():
                result.skipped += 1
                continue

            digest = content_hash(content)
            if stored.get(rel_path) == digest:
                result.skipped += 1
                continue

            log.emit(f"[files] Processing changed file: {rel_path}")
            try:
                indexed = _prepare_file(rel_path, content, gateway, summarizer)
                with conn:
                    _store_file(repo, project_id, rel_path, digest, indexed)
            except Exception as exc:
                result.failed += 1
                logger.exception("Failed to index %s", rel_path)
                log.error(f"[files] Failed to process {rel_path}: {exc}")
                continue
            result.processed += 1
            logger.debug("Indexed %s (%d chunks)", rel_path, len(indexed.chunks))

    log.emit(
        f"[files] File sync complete: {result.processed} processed, {result.skipped} unchanged, "
        f"{result.pruned} pruned, {result.failed} failed"
    )
    return result


@dataclass
class _IndexedFile:
    summary: str
    summary_embedding: bytes
    chunks: list[tuple[CodeChunk, bytes]]


def _prepare_file(
    rel_path: str, content: str, gateway: ModelGateway, summarizer: FileSummarizer
) -> _IndexedFile:
    """Summarise, chunk and embed one file. Makes every model call, writes nothing."""
    summary = summarizer.summarize(rel_path, content)
    return _IndexedFile(
        summary=summary,
        summary_embedding=to_blob(gateway.embed(summary)),
        chunks=[
            (chunk, to_blob(gateway.embed(chunk.content)))
            for chunk in chunk_file(rel_path, content)
        ],
    )


def _store_file(
    repo: Repository, project_id: int, rel_path: str, digest: str, indexed: _IndexedFile
) -> None:
    """Replace the stored row and chunks of one file. Runs inside the caller's transaction."""
    repo.delete_file(project_id, rel_path)
    file_id = repo.add_file(project_id, rel_path, digest, indexed.summary, indexed.summary_embedding)
    for chunk, embedding in indexed.chunks:
        repo.add_chunk(file_id, chunk, embedding)
