"""codebrain ingestion: chunkers, file sync, git history sync."""

from codebrain.ingest.dispatch import ContentCategory, categorize, chunk_file
from codebrain.ingest.file_sync import FileSyncResult, sync_files
from codebrain.ingest.git_sync import GitSyncResult, sync_git_history
from codebrain.ingest.pipeline import IngestionJob, IngestionQueue, IngestionResult, run_ingestion
from codebrain.ingest.progress import LogChannel

__all__ = [
    "ContentCategory",
    "FileSyncResult",
    "GitSyncResult",
    "IngestionJob",
    "IngestionQueue",
    "IngestionResult",
    "LogChannel",
    "categorize",
    "chunk_file",
    "run_ingestion",
    "sync_files",
    "sync_git_history",
]
