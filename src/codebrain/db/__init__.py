"""codebrain database layer."""

from codebrain.db.connection import Database, is_missing_table
from codebrain.db.migrations import MIGRATIONS, run_migrations
from codebrain.db.vectors import DISTANCE_FN, to_blob

__all__ = [
    "Database",
    "is_missing_table",
    "run_migrations",
    "MIGRATIONS",
    "DISTANCE_FN",
    "to_blob",
]
