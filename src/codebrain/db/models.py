"""Domain models for the codebrain database layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

TASK_STATUSES = ("open", "in_progress", "done")
TASK_CATEGORIES = ("feature", "fix", "refactor", "chore", "docs", "test")
CHUNK_TYPES = ("function", "class", "method", "arrow", "block", "section")
SOURCE_TYPES = ("knowledge", "task", "commit", "document", "code")


@dataclass
class Project:
    id: int
    name: str
    source: str
    created_at: str | None = None


@dataclass
class IndexedFile:
    id: int
    project_id: int
    path: str
    content_hash: str
    summary: str | None = None
    last_indexed_at: str | None = None


@dataclass
class CodeChunk:
    """A semantically bounded piece of a file, the unit that gets its own vector.

    ``file_id`` and ``id`` stay ``None`` until the chunk is persisted.
    """

    name: str
    chunk_type: str
    content: str
    start_line: int
    end_line: int
    file_id: int | None = None
    id: int | None = None


@dataclass
class CommitInfo:
    """One entry of the git log, as reported by the version-control collaborator."""

    hash: str
    author_name: str
    author_email: str
    date: str
    message: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


@dataclass
class Commit:
    id: int
    project_id: int
    commit_hash: str
    author_name: str | None
    author_email: str | None
    commit_date: str
    message: str


@dataclass
class Task:
    id: int
    project_id: int
    task_number: int
    title: str
    description: str | None = None
    status: str = "open"
    category: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class ProjectDocument:
    id: int
    project_id: int
    file_name: str
    file_path: str
    created_at: str | None = None


@dataclass
class Conversation:
    id: int
    project_id: int
    title: str
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class ConversationMessage:
    id: int
    conversation_id: int
    role: str
    content: str
    sources: list[dict] = field(default_factory=list)
    created_at: str | None = None


@dataclass
class KnowledgeNote:
    id: int
    project_id: int
    note_summary: str
    conversation_id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Source:
    """Provenance record for one stored entity that contributed to an answer.

    ``id`` is the natural key shown to users: file path for code, file name
    for documents, 7-char hash for commits, task number for tasks, note id
    for knowledge notes.
    """

    type: str
    id: str | int
    title: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, str(self.id))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Source:
        return cls(type=str(data["type"]), id=data["id"], title=str(data.get("title", "")))


@dataclass
class DocumentChunk:
    document_id: int
    content: str
    file_name: str = ""
    id: int | None = None
