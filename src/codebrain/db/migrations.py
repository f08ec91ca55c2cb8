"""Forward-only migration runner for the codebrain schema.

Version 2 (uploaded documents) is optional: ``run_migrations(conn,
include_documents=False)`` leaves those tables out and every reader of them
degrades gracefully (see ``codebrain.db.connection.is_missing_table``).
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id                  INTEGER PRIMARY KEY,
    name                TEXT NOT NULL,
    source              TEXT NOT NULL UNIQUE,
    next_task_number    INTEGER NOT NULL DEFAULT 1,
    created_at          DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS indexed_files (
    id                  INTEGER PRIMARY KEY,
    project_id          INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    path                TEXT NOT NULL,
    content_hash        TEXT NOT NULL,
    summary             TEXT,
    summary_embedding   BLOB,
    last_indexed_at     DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (project_id, path)
);

CREATE TABLE IF NOT EXISTS code_chunks (
    id              INTEGER PRIMARY KEY,
    file_id         INTEGER NOT NULL REFERENCES indexed_files(id) ON DELETE CASCADE,
    chunk_name      TEXT,
    chunk_type      TEXT,
    content         TEXT NOT NULL,
    start_line      INTEGER,
    end_line        INTEGER,
    embedding       BLOB NOT NULL
);

CREATE TABLE IF NOT EXISTS commits (
    id              INTEGER PRIMARY KEY,
    project_id      INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    commit_hash     TEXT NOT NULL,
    author_name     TEXT,
    author_email    TEXT,
    commit_date     DATETIME NOT NULL,
    message         TEXT NOT NULL,
    embedding       BLOB,
    UNIQUE (project_id, commit_hash)
);

CREATE TABLE IF NOT EXISTS commit_files (
    id              INTEGER PRIMARY KEY,
    commit_id       INTEGER NOT NULL REFERENCES commits(id) ON DELETE CASCADE,
    file_id         INTEGER NOT NULL REFERENCES indexed_files(id) ON DELETE CASCADE,
    change_type     TEXT NOT NULL,
    UNIQUE (commit_id, file_id)
);

CREATE TABLE IF NOT EXISTS tasks (
    id              INTEGER PRIMARY KEY,
    project_id      INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    task_number     INTEGER NOT NULL,
    title           TEXT NOT NULL,
    description     TEXT,
    status          TEXT NOT NULL DEFAULT 'open'
                    CHECK (status IN ('open', 'in_progress', 'done')),
    category        TEXT,
    embedding       BLOB,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (project_id, task_number)
);

CREATE TABLE IF NOT EXISTS conversations (
    id              INTEGER PRIMARY KEY,
    project_id      INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    title           TEXT NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS conversation_messages (
    id              INTEGER PRIMARY KEY,
    conversation_id INTEGER NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
    role            TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    content         TEXT NOT NULL,
    sources         TEXT,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS knowledge_notes (
    id              INTEGER PRIMARY KEY,
    project_id      INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    conversation_id INTEGER REFERENCES conversations(id) ON DELETE SET NULL,
    note_summary    TEXT NOT NULL,
    embedding       BLOB,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS knowledge_note_links (
    id                  INTEGER PRIMARY KEY,
    knowledge_note_id   INTEGER NOT NULL REFERENCES knowledge_notes(id) ON DELETE CASCADE,
    file_id             INTEGER REFERENCES indexed_files(id) ON DELETE CASCADE,
    task_id             INTEGER REFERENCES tasks(id) ON DELETE CASCADE,
    commit_id           INTEGER REFERENCES commits(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_indexed_files_project_id ON indexed_files (project_id);
CREATE INDEX IF NOT EXISTS idx_code_chunks_file_id ON code_chunks (file_id);
CREATE INDEX IF NOT EXISTS idx_commits_project_id ON commits (project_id);
CREATE INDEX IF NOT EXISTS idx_commit_files_commit_id ON commit_files (commit_id);
CREATE INDEX IF NOT EXISTS idx_commit_files_file_id ON commit_files (file_id);
CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks (project_id);
CREATE INDEX IF NOT EXISTS idx_messages_conversation_id ON conversation_messages (conversation_id);
"""

_V2_DOCUMENTS_SQL = """
CREATE TABLE IF NOT EXISTS project_documents (
    id              INTEGER PRIMARY KEY,
    project_id      INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    file_name       TEXT NOT NULL,
    file_path       TEXT NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (project_id, file_name)
);

CREATE TABLE IF NOT EXISTS document_chunks (
    id              INTEGER PRIMARY KEY,
    document_id     INTEGER NOT NULL REFERENCES project_documents(id) ON DELETE CASCADE,
    content         TEXT NOT NULL,
    embedding       BLOB NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_project_documents_project_id ON project_documents (project_id);
"""

DOCUMENTS_VERSION = 2

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (DOCUMENTS_VERSION, _V2_DOCUMENTS_SQL),
]


def applied_versions(conn: sqlite3.Connection) -> set[int]:
    """Return the set of migration versions already applied."""
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()
    return {r[0] for r in conn.execute("SELECT version FROM schema_version").fetchall()}


def run_migrations(conn: sqlite3.Connection, include_documents: bool = True) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version. Applied versions
    are tracked individually so a skipped optional migration can be applied
    by a later run.
    """
    done = applied_versions(conn)

    for version, sql in MIGRATIONS:
        if version in done:
            continue
        if version == DOCUMENTS_VERSION and not include_documents:
            continue
        conn.executescript(sql)
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        conn.commit()
