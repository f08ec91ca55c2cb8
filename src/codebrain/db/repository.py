"""Repository pattern for all codebrain database operations.

Single interface for projects, indexed files and chunks, commits, tasks,
documents, conversations, knowledge notes and vector search.

Write methods never commit: callers scope every unit of work (one file, one
commit, one conversation turn) in ``with conn:`` so it commits or rolls back
as a whole.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable

from codebrain.db.models import (
    CodeChunk,
    Commit,
    CommitInfo,
    Conversation,
    ConversationMessage,
    DocumentChunk,
    IndexedFile,
    KnowledgeNote,
    Project,
    ProjectDocument,
    Task,
)
from codebrain.db.connection import is_missing_table
from codebrain.db.vectors import DISTANCE_FN


class Repository:
    """Data access layer for all codebrain entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and
                migrations applied (see codebrain.db.migrations.run_migrations).
        """
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def add_project(self, name: str, source: str) -> Project:
        cur = self._conn.execute(
            "INSERT INTO projects (name, source) VALUES (?, ?)", (name, source)
        )
        return self.get_project(cur.lastrowid)

    def get_project(self, project_id: int) -> Project | None:
        row = self._conn.execute(
            "SELECT id, name, source, created_at FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return _row_to_project(row) if row else None

    def get_project_by_source(self, source: str) -> Project | None:
        row = self._conn.execute(
            "SELECT id, name, source, created_at FROM projects WHERE source = ?", (source,)
        ).fetchone()
        return _row_to_project(row) if row else None

    def list_projects(self) -> list[Project]:
        rows = self._conn.execute(
            "SELECT id, name, source, created_at FROM projects ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [_row_to_project(r) for r in rows]

    def allocate_task_number(self, project_id: int) -> int:
        """Reserve and return the next task number for *project_id*.

        Numbers come from a per-project counter, so they keep increasing even
        after tasks are deleted. Must run inside the caller's transaction.
        """
        self._conn.execute(
            "UPDATE projects SET next_task_number = next_task_number + 1 WHERE id = ?",
            (project_id,),
        )
        row = self._conn.execute(
            "SELECT next_task_number FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        if row is None:
            raise ValueError(f"Unknown project id {project_id}")
        return row[0] - 1

    # ------------------------------------------------------------------
    # Indexed files + code chunks
    # ------------------------------------------------------------------

    def list_file_hashes(self, project_id: int) -> dict[str, str]:
        """Return {path: content_hash} for every indexed file of the project."""
        rows = self._conn.execute(
            "SELECT path, content_hash FROM indexed_files WHERE project_id = ?", (project_id,)
        ).fetchall()
        return {r["path"]: r["content_hash"] for r in rows}

    def get_file(self, project_id: int, path: str) -> IndexedFile | None:
        row = self._conn.execute(
            """
            SELECT id, project_id, path, content_hash, summary, last_indexed_at
            FROM indexed_files WHERE project_id = ? AND path = ?
            """,
            (project_id, path),
        ).fetchone()
        return _row_to_file(row) if row else None

    def get_file_id(self, project_id: int, path: str) -> int | None:
        row = self._conn.execute(
            "SELECT id FROM indexed_files WHERE project_id = ? AND path = ?", (project_id, path)
        ).fetchone()
        return row[0] if row else None

    def add_file(
        self,
        project_id: int,
        path: str,
        content_hash: str,
        summary: str,
        summary_embedding: bytes,
    ) -> int:
        """Insert an indexed file row and return its id."""
        cur = self._conn.execute(
            """
            INSERT INTO indexed_files
                (project_id, path, content_hash, summary, summary_embedding, last_indexed_at)
            VALUES (?, ?, ?, ?, ?, datetime('now'))
            """,
            (project_id, path, content_hash, summary, summary_embedding),
        )
        return cur.lastrowid

    def delete_file(self, project_id: int, path: str) -> int:
        """Delete one file row (chunks and commit links cascade). Returns rows deleted."""
        cur = self._conn.execute(
            "DELETE FROM indexed_files WHERE project_id = ? AND path = ?", (project_id, path)
        )
        return cur.rowcount

    def delete_files(self, project_id: int, paths: Iterable[str]) -> int:
        """Delete many file rows in a single statement. Returns rows deleted."""
        paths = list(paths)
        if not paths:
            return 0
        placeholders = ",".join("?" * len(paths))
        cur = self._conn.execute(
            f"DELETE FROM indexed_files WHERE project_id = ? AND path IN ({placeholders})",  # noqa: S608
            [project_id, *paths],
        )
        return cur.rowcount

    def add_chunk(self, file_id: int, chunk: CodeChunk, embedding: bytes) -> int:
        cur = self._conn.execute(
            """
            INSERT INTO code_chunks
                (file_id, chunk_name, chunk_type, content, start_line, end_line, embedding)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                file_id,
                chunk.name,
                chunk.chunk_type,
                chunk.content,
                chunk.start_line,
                chunk.end_line,
                embedding,
            ),
        )
        return cur.lastrowid

    def list_chunks(self, file_id: int) -> list[CodeChunk]:
        rows = self._conn.execute(
            """
            SELECT id, file_id, chunk_name, chunk_type, content, start_line, end_line
            FROM code_chunks WHERE file_id = ? ORDER BY id
            """,
            (file_id,),
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def count_chunks(self, project_id: int) -> int:
        return self._conn.execute(
            """
            SELECT COUNT(*) FROM code_chunks c
            JOIN indexed_files f ON c.file_id = f.id
            WHERE f.project_id = ?
            """,
            (project_id,),
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def list_commit_hashes(self, project_id: int) -> set[str]:
        rows = self._conn.execute(
            "SELECT commit_hash FROM commits WHERE project_id = ?", (project_id,)
        ).fetchall()
        return {r[0] for r in rows}

    def add_commit(self, project_id: int, info: CommitInfo, embedding: bytes) -> int:
        cur = self._conn.execute(
            """
            INSERT INTO commits
                (project_id, commit_hash, author_name, author_email, commit_date, message, embedding)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project_id,
                info.hash,
                info.author_name,
                info.author_email,
                info.date,
                info.message,
                embedding,
            ),
        )
        return cur.lastrowid

    def add_commit_file(self, commit_id: int, file_id: int, change_type: str) -> None:
        # A path can appear twice in one name-status listing (e.g. copy + modify).
        self._conn.execute(
            """
            INSERT OR IGNORE INTO commit_files (commit_id, file_id, change_type)
            VALUES (?, ?, ?)
            """,
            (commit_id, file_id, change_type),
        )

    def list_commits(self, project_id: int) -> list[Commit]:
        """Return commits in insertion order (oldest processed first)."""
        rows = self._conn.execute(
            """
            SELECT id, project_id, commit_hash, author_name, author_email, commit_date, message
            FROM commits WHERE project_id = ? ORDER BY id
            """,
            (project_id,),
        ).fetchall()
        return [_row_to_commit(r) for r in rows]

    def get_commit_id_by_prefix(self, project_id: int, prefix: str) -> int | None:
        if not prefix:
            return None
        row = self._conn.execute(
            "SELECT id FROM commits WHERE project_id = ? AND commit_hash LIKE ? ORDER BY id LIMIT 1",
            (project_id, f"{prefix}%"),
        ).fetchone()
        return row[0] if row else None

    def list_commit_file_paths(self, commit_id: int) -> list[tuple[str, str]]:
        """Return [(change_type, path), ...] linked to *commit_id*."""
        rows = self._conn.execute(
            """
            SELECT cf.change_type, f.path FROM commit_files cf
            JOIN indexed_files f ON cf.file_id = f.id
            WHERE cf.commit_id = ? ORDER BY f.path
            """,
            (commit_id,),
        ).fetchall()
        return [(r[0], r[1]) for r in rows]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        project_id: int,
        title: str,
        embedding: bytes,
        description: str | None = None,
        status: str = "open",
        category: str | None = None,
        created_at: str | None = None,
    ) -> Task:
        """Insert a task with the next per-project number.

        *created_at* backdates retrospective tasks to their commit timestamp.
        """
        number = self.allocate_task_number(project_id)
        cur = self._conn.execute(
            """
            INSERT INTO tasks
                (project_id, task_number, title, description, status, category, embedding,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?,
                    COALESCE(?, datetime('now')), COALESCE(?, datetime('now')))
            """,
            (
                project_id,
                number,
                title,
                description,
                status,
                category,
                embedding,
                created_at,
                created_at,
            ),
        )
        return self._get_task_by_id(cur.lastrowid)

    def get_task(self, project_id: int, task_number: int) -> Task | None:
        row = self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE project_id = ? AND task_number = ?",
            (project_id, task_number),
        ).fetchone()
        return _row_to_task(row) if row else None

    def get_task_embedding(self, project_id: int, task_number: int) -> bytes | None:
        row = self._conn.execute(
            "SELECT embedding FROM tasks WHERE project_id = ? AND task_number = ?",
            (project_id, task_number),
        ).fetchone()
        return row[0] if row else None

    def list_tasks(self, project_id: int, status: str | None = None) -> list[Task]:
        sql = f"SELECT {_TASK_COLUMNS} FROM tasks WHERE project_id = ?"
        params: list = [project_id]
        if status:
            sql += " AND status = ?"
            params.append(status)
        sql += " ORDER BY task_number ASC"
        return [_row_to_task(r) for r in self._conn.execute(sql, params).fetchall()]

    def update_task(self, project_id: int, task_number: int, **fields: object) -> int:
        """Update the given columns of one task and bump updated_at. Returns rowcount."""
        allowed = {"title", "description", "status", "category", "embedding"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update task columns: {sorted(unknown)}")
        if not fields:
            return 0
        assignments = ", ".join(f"{k} = ?" for k in fields)
        cur = self._conn.execute(
            f"UPDATE tasks SET {assignments}, updated_at = datetime('now') "  # noqa: S608
            "WHERE project_id = ? AND task_number = ?",
            [*fields.values(), project_id, task_number],
        )
        return cur.rowcount

    def close_task(self, project_id: int, task_number: int) -> int:
        """Mark a task done unless it already is. Returns rows changed (0 if missing)."""
        cur = self._conn.execute(
            """
            UPDATE tasks SET status = 'done', updated_at = datetime('now')
            WHERE project_id = ? AND task_number = ? AND status != 'done'
            """,
            (project_id, task_number),
        )
        return cur.rowcount

    def delete_task(self, project_id: int, task_number: int) -> int:
        cur = self._conn.execute(
            "DELETE FROM tasks WHERE project_id = ? AND task_number = ?",
            (project_id, task_number),
        )
        return cur.rowcount

    def get_task_id(self, project_id: int, task_number: int) -> int | None:
        row = self._conn.execute(
            "SELECT id FROM tasks WHERE project_id = ? AND task_number = ?",
            (project_id, task_number),
        ).fetchone()
        return row[0] if row else None

    def _get_task_by_id(self, task_id: int) -> Task:
        row = self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
        ).fetchone()
        return _row_to_task(row)

    # ------------------------------------------------------------------
    # Documents (optional tables)
    # ------------------------------------------------------------------

    def get_document(self, project_id: int, file_name: str) -> ProjectDocument | None:
        row = self._conn.execute(
            """
            SELECT id, project_id, file_name, file_path, created_at
            FROM project_documents WHERE project_id = ? AND file_name = ?
            """,
            (project_id, file_name),
        ).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self, project_id: int) -> list[ProjectDocument]:
        rows = self._conn.execute(
            """
            SELECT id, project_id, file_name, file_path, created_at
            FROM project_documents WHERE project_id = ? ORDER BY file_name
            """,
            (project_id,),
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def delete_document(self, project_id: int, file_name: str) -> int:
        cur = self._conn.execute(
            "DELETE FROM project_documents WHERE project_id = ? AND file_name = ?",
            (project_id, file_name),
        )
        return cur.rowcount

    def add_document(self, project_id: int, file_name: str, file_path: str) -> int:
        cur = self._conn.execute(
            "INSERT INTO project_documents (project_id, file_name, file_path) VALUES (?, ?, ?)",
            (project_id, file_name, file_path),
        )
        return cur.lastrowid

    def add_document_chunk(self, document_id: int, content: str, embedding: bytes) -> int:
        cur = self._conn.execute(
            "INSERT INTO document_chunks (document_id, content, embedding) VALUES (?, ?, ?)",
            (document_id, content, embedding),
        )
        return cur.lastrowid

    def count_document_chunks(self, document_id: int) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM document_chunks WHERE document_id = ?", (document_id,)
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def add_conversation(self, project_id: int, title: str) -> Conversation:
        cur = self._conn.execute(
            "INSERT INTO conversations (project_id, title) VALUES (?, ?)", (project_id, title)
        )
        return self.get_conversation(cur.lastrowid)

    def get_conversation(self, conversation_id: int) -> Conversation | None:
        row = self._conn.execute(
            "SELECT id, project_id, title, created_at, updated_at FROM conversations WHERE id = ?",
            (conversation_id,),
        ).fetchone()
        return _row_to_conversation(row) if row else None

    def list_conversations(self, project_id: int) -> list[Conversation]:
        rows = self._conn.execute(
            """
            SELECT id, project_id, title, created_at, updated_at FROM conversations
            WHERE project_id = ? ORDER BY updated_at DESC, id DESC
            """,
            (project_id,),
        ).fetchall()
        return [_row_to_conversation(r) for r in rows]

    def add_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        sources: list[dict] | None = None,
    ) -> int:
        cur = self._conn.execute(
            """
            INSERT INTO conversation_messages (conversation_id, role, content, sources)
            VALUES (?, ?, ?, ?)
            """,
            (conversation_id, role, content, json.dumps(sources) if sources is not None else None),
        )
        return cur.lastrowid

    def touch_conversation(self, conversation_id: int) -> None:
        self._conn.execute(
            "UPDATE conversations SET updated_at = datetime('now') WHERE id = ?",
            (conversation_id,),
        )

    def list_messages(self, conversation_id: int) -> list[ConversationMessage]:
        rows = self._conn.execute(
            """
            SELECT id, conversation_id, role, content, sources, created_at
            FROM conversation_messages WHERE conversation_id = ? ORDER BY id ASC
            """,
            (conversation_id,),
        ).fetchall()
        return [_row_to_message(r) for r in rows]

    # ------------------------------------------------------------------
    # Knowledge notes
    # ------------------------------------------------------------------

    def add_knowledge_note(
        self,
        project_id: int,
        note_summary: str,
        embedding: bytes,
        conversation_id: int | None = None,
    ) -> KnowledgeNote:
        cur = self._conn.execute(
            """
            INSERT INTO knowledge_notes (project_id, conversation_id, note_summary, embedding)
            VALUES (?, ?, ?, ?)
            """,
            (project_id, conversation_id, note_summary, embedding),
        )
        row = self._conn.execute(
            """
            SELECT id, project_id, note_summary, conversation_id, created_at
            FROM knowledge_notes WHERE id = ?
            """,
            (cur.lastrowid,),
        ).fetchone()
        return _row_to_note(row)

    def add_knowledge_link(
        self,
        note_id: int,
        *,
        file_id: int | None = None,
        task_id: int | None = None,
        commit_id: int | None = None,
    ) -> int:
        if file_id is None and task_id is None and commit_id is None:
            raise ValueError("A knowledge link needs a file, task or commit")
        cur = self._conn.execute(
            """
            INSERT INTO knowledge_note_links (knowledge_note_id, file_id, task_id, commit_id)
            VALUES (?, ?, ?, ?)
            """,
            (note_id, file_id, task_id, commit_id),
        )
        return cur.lastrowid

    def list_knowledge_links(self, note_id: int) -> list[sqlite3.Row]:
        return self._conn.execute(
            """
            SELECT file_id, task_id, commit_id FROM knowledge_note_links
            WHERE knowledge_note_id = ? ORDER BY id
            """,
            (note_id,),
        ).fetchall()

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def project_stats(self, project_id: int) -> dict[str, int | None]:
        """Row counts per entity for *project_id*.

        ``documents`` is None when the optional documents tables are absent.
        """
        def one(sql: str) -> int:
            return self._conn.execute(sql, (project_id,)).fetchone()[0]

        stats: dict[str, int | None] = {
            "files": one("SELECT COUNT(*) FROM indexed_files WHERE project_id = ?"),
            "chunks": self.count_chunks(project_id),
            "commits": one("SELECT COUNT(*) FROM commits WHERE project_id = ?"),
            "tasks_open": one(
                "SELECT COUNT(*) FROM tasks WHERE project_id = ? AND status != 'done'"
            ),
            "tasks_done": one(
                "SELECT COUNT(*) FROM tasks WHERE project_id = ? AND status = 'done'"
            ),
            "conversations": one("SELECT COUNT(*) FROM conversations WHERE project_id = ?"),
            "notes": one("SELECT COUNT(*) FROM knowledge_notes WHERE project_id = ?"),
        }
        try:
            stats["documents"] = one(
                "SELECT COUNT(*) FROM project_documents WHERE project_id = ?"
            )
        except sqlite3.OperationalError as exc:
            if not is_missing_table(exc):
                raise
            stats["documents"] = None
        return stats

    # ------------------------------------------------------------------
    # Vector search (ascending cosine distance)
    # ------------------------------------------------------------------

    def search_knowledge(
        self, project_id: int, embedding: bytes, limit: int
    ) -> list[tuple[KnowledgeNote, float]]:
        rows = self._conn.execute(
            f"""
            SELECT id, project_id, note_summary, conversation_id, created_at,
                   {DISTANCE_FN}(embedding, ?) AS distance
            FROM knowledge_notes
            WHERE project_id = ? AND embedding IS NOT NULL
            ORDER BY distance LIMIT ?
            """,
            (embedding, project_id, limit),
        ).fetchall()
        return [(_row_to_note(r), r["distance"]) for r in rows]

    def search_tasks(
        self,
        project_id: int,
        embedding: bytes,
        limit: int,
        exclude_number: int | None = None,
    ) -> list[tuple[Task, float]]:
        sql = (
            f"SELECT {_TASK_COLUMNS}, {DISTANCE_FN}(embedding, ?) AS distance FROM tasks "
            "WHERE project_id = ? AND embedding IS NOT NULL"
        )
        params: list = [embedding, project_id]
        if exclude_number is not None:
            sql += " AND task_number != ?"
            params.append(exclude_number)
        sql += " ORDER BY distance LIMIT ?"
        params.append(limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [(_row_to_task(r), r["distance"]) for r in rows]

    def search_commits(
        self, project_id: int, embedding: bytes, limit: int
    ) -> list[tuple[Commit, float]]:
        rows = self._conn.execute(
            f"""
            SELECT id, project_id, commit_hash, author_name, author_email, commit_date, message,
                   {DISTANCE_FN}(embedding, ?) AS distance
            FROM commits
            WHERE project_id = ? AND embedding IS NOT NULL
            ORDER BY distance LIMIT ?
            """,
            (embedding, project_id, limit),
        ).fetchall()
        return [(_row_to_commit(r), r["distance"]) for r in rows]

    def search_document_chunks(
        self, project_id: int, embedding: bytes, limit: int
    ) -> list[tuple[DocumentChunk, float]]:
        rows = self._conn.execute(
            f"""
            SELECT dc.id, dc.document_id, dc.content, pd.file_name,
                   {DISTANCE_FN}(dc.embedding, ?) AS distance
            FROM document_chunks dc
            JOIN project_documents pd ON dc.document_id = pd.id
            WHERE pd.project_id = ?
            ORDER BY distance LIMIT ?
            """,
            (embedding, project_id, limit),
        ).fetchall()
        return [
            (
                DocumentChunk(
                    id=r["id"],
                    document_id=r["document_id"],
                    content=r["content"],
                    file_name=r["file_name"],
                ),
                r["distance"],
            )
            for r in rows
        ]

    def search_files(
        self, project_id: int, embedding: bytes, limit: int
    ) -> list[tuple[IndexedFile, float]]:
        """Rank files by the distance of their summary vector."""
        rows = self._conn.execute(
            f"""
            SELECT id, project_id, path, content_hash, summary, last_indexed_at,
                   {DISTANCE_FN}(summary_embedding, ?) AS distance
            FROM indexed_files
            WHERE project_id = ? AND summary_embedding IS NOT NULL
            ORDER BY distance LIMIT ?
            """,
            (embedding, project_id, limit),
        ).fetchall()
        return [(_row_to_file(r), r["distance"]) for r in rows]

    def search_chunks(
        self, file_ids: list[int], embedding: bytes, limit: int
    ) -> list[tuple[CodeChunk, float]]:
        """Rank code chunks restricted to *file_ids*."""
        if not file_ids:
            return []
        placeholders = ",".join("?" * len(file_ids))
        rows = self._conn.execute(
            f"""
            SELECT id, file_id, chunk_name, chunk_type, content, start_line, end_line,
                   {DISTANCE_FN}(embedding, ?) AS distance
            FROM code_chunks
            WHERE file_id IN ({placeholders})
            ORDER BY distance LIMIT ?
            """,  # noqa: S608
            [embedding, *file_ids, limit],
        ).fetchall()
        return [(_row_to_chunk(r), r["distance"]) for r in rows]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

_TASK_COLUMNS = (
    "id, project_id, task_number, title, description, status, category, created_at, updated_at"
)


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"], name=row["name"], source=row["source"], created_at=row["created_at"]
    )


def _row_to_file(row: sqlite3.Row) -> IndexedFile:
    return IndexedFile(
        id=row["id"],
        project_id=row["project_id"],
        path=row["path"],
        content_hash=row["content_hash"],
        summary=row["summary"],
        last_indexed_at=row["last_indexed_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> CodeChunk:
    return CodeChunk(
        id=row["id"],
        file_id=row["file_id"],
        name=row["chunk_name"],
        chunk_type=row["chunk_type"],
        content=row["content"],
        start_line=row["start_line"],
        end_line=row["end_line"],
    )


def _row_to_commit(row: sqlite3.Row) -> Commit:
    return Commit(
        id=row["id"],
        project_id=row["project_id"],
        commit_hash=row["commit_hash"],
        author_name=row["author_name"],
        author_email=row["author_email"],
        commit_date=row["commit_date"],
        message=row["message"],
    )


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        project_id=row["project_id"],
        task_number=row["task_number"],
        title=row["title"],
        description=row["description"],
        status=row["status"],
        category=row["category"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_document(row: sqlite3.Row) -> ProjectDocument:
    return ProjectDocument(
        id=row["id"],
        project_id=row["project_id"],
        file_name=row["file_name"],
        file_path=row["file_path"],
        created_at=row["created_at"],
    )


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_message(row: sqlite3.Row) -> ConversationMessage:
    return ConversationMessage(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=row["role"],
        content=row["content"],
        sources=json.loads(row["sources"]) if row["sources"] else [],
        created_at=row["created_at"],
    )


def _row_to_note(row: sqlite3.Row) -> KnowledgeNote:
    return KnowledgeNote(
        id=row["id"],
        project_id=row["project_id"],
        note_summary=row["note_summary"],
        conversation_id=row["conversation_id"],
        created_at=row["created_at"],
    )
