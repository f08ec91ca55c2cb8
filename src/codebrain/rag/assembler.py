"""Context assembler: labelled context blocks and deduplicated provenance.

One block per source type, in a fixed order (past decisions, tasks,
commits, documents, code). Every contributing entity is recorded once as a
``Source``; duplicates by ``(type, id)`` are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from codebrain.db.models import Source
from codebrain.rag.retriever import RetrievalHits


@dataclass
class AssembledContext:
    text: str = ""
    sources: list[Source] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class SourceList:
    """Ordered provenance list that ignores repeats of the same ``(type, id)``."""

    def __init__(self) -> None:
        self._items: list[Source] = []
        self._seen: set[tuple[str, str]] = set()

    def add(self, source: Source) -> None:
        if source.key in self._seen:
            return
        self._seen.add(source.key)
        self._items.append(source)

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> list[Source]:
        return list(self._items)


def assemble(hits: RetrievalHits) -> AssembledContext:
    """Render *hits* into one context string plus its provenance list."""
    blocks: list[str] = []
    sources = SourceList()

    if hits.notes:
        lines = [f"- {note.note_summary}" for note, _ in hits.notes]
        blocks.append("Relevant Past Decisions/Summaries:\n" + "\n".join(lines))
        for note, _ in hits.notes:
            sources.add(Source(type="knowledge", id=note.id, title=note.note_summary))

    if hits.tasks:
        lines = [
            f"- Task #{t.task_number} [{t.status.upper()}]: {t.title}" for t, _ in hits.tasks
        ]
        blocks.append("Relevant Tasks:\n" + "\n".join(lines))
        for t, _ in hits.tasks:
            sources.add(Source(type="task", id=t.task_number, title=f"#{t.task_number}: {t.title}"))

    if hits.commits:
        lines = []
        for c, _ in hits.commits:
            short, subject = c.commit_hash[:7], c.message.split("\n", 1)[0]
            lines.append(f"- Commit {short} by {c.author_name or 'unknown'}: {subject}")
            sources.add(Source(type="commit", id=short, title=f"{short}: {subject}"))
        blocks.append("Relevant Commits:\n" + "\n".join(lines))

    if hits.documents:
        parts = [f"--- FROM DOCUMENT: {d.file_name} ---\n\n{d.content}" for d, _ in hits.documents]
        blocks.append("Relevant Project Documents:\n" + "\n\n".join(parts))
        for d, _ in hits.documents:
            sources.add(Source(type="document", id=d.file_name, title=d.file_name))

    if hits.code:
        parts = [
            f"--- FILE: {h.file.path} (Chunk: {h.chunk.name}) ---\n\n{h.chunk.content}"
            for h in hits.code
        ]
        blocks.append("Relevant Code Snippets:\n" + "\n\n".join(parts))
        for h in hits.code:
            sources.add(Source(type="code", id=h.file.path, title=h.file.path))

    return AssembledContext(text="\n\n".join(blocks), sources=sources.to_list())
