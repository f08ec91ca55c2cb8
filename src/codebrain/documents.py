"""Uploaded project documents: text extraction, chunking and indexing.

Supported: ``.pdf`` (pypdf), ``.docx`` (python-docx) and plain-text formats
read as UTF-8. Anything else raises ``UnsupportedFileTypeError``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import docx
import pypdf

from codebrain.db.models import ProjectDocument
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob
from codebrain.errors import CodebrainError, UnsupportedFileTypeError
from codebrain.ingest.text_chunker import chunk_texts

if TYPE_CHECKING:
    from codebrain.db.connection import Database
    from codebrain.rag.llm_client import ModelGateway

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = frozenset(
    {".txt", ".md", ".markdown", ".json", ".ts", ".js", ".py", ".html", ".css", ".rst"}
)
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {".pdf", ".docx"}

_BLANK_RUN_RE = re.compile(r"(\s*\n){3,}")
_HEADING_STYLE_RE = re.compile(r"^Heading (\d)$")


@dataclass
class DocumentResult:
    document: ProjectDocument
    chunks: int
    replaced: bool


def extract_text(path: Path, original_name: str) -> str:
    """Return the text of the file at *path*, typed by *original_name*'s extension.

    Raises:
        UnsupportedFileTypeError: If the extension is not supported.
    """
    extension = Path(original_name).suffix.lower()
    if extension == ".pdf":
        return _pdf_text(path)
    if extension == ".docx":
        return _docx_text(path)
    if extension in TEXT_EXTENSIONS:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    raise UnsupportedFileTypeError(
        f'File type "{extension or original_name}" is not supported for document ingestion.'
    )


def _pdf_text(path: Path) -> str:
    reader = pypdf.PdfReader(str(path))
    pages = [(page.extract_text() or "").strip() for page in reader.pages]
    text = "\n\n".join(p for p in pages if p)
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


def _docx_text(path: Path) -> str:
    """Paragraph text; Word heading styles become Markdown headings."""
    document = docx.Document(str(path))
    parts: list[str] = []
    for paragraph in document.paragraphs:
        text = paragraph.text.strip()
        if not text:
            continue
        style = paragraph.style.name if paragraph.style is not None else ""
        match = _HEADING_STYLE_RE.match(style or "")
        if match:
            text = "#" * min(int(match.group(1)), 6) + " " + text
        parts.append(text)
    return "\n\n".join(parts)


def add_document(
    db: Database,
    project_id: int,
    path: Path,
    original_name: str,
    gateway: ModelGateway,
) -> DocumentResult:
    """Extract, chunk and embed a document, replacing one with the same name.

    The replace and insert happen in one transaction. If the documents
    tables were never migrated, the underlying ``no such table`` error
    propagates.

    Raises:
        UnsupportedFileTypeError: Unknown extension.
        CodebrainError: No text could be extracted.
    """
    file_name = Path(original_name).name
    text = extract_text(Path(path), file_name)
    chunks = chunk_texts(text)
    if not chunks:
        raise CodebrainError(f"No text could be extracted from {file_name}")

    vectors = [to_blob(gateway.embed(chunk)) for chunk in chunks]

    with db.connection() as conn:
        repo = Repository(conn)
        with conn:
            replaced = repo.delete_document(project_id, file_name) > 0
            document_id = repo.add_document(project_id, file_name, str(path))
            for chunk, vector in zip(chunks, vectors):
                repo.add_document_chunk(document_id, chunk, vector)
        document = repo.get_document(project_id, file_name)

    logger.info(
        "%s document %s (%d chunks)", "Replaced" if replaced else "Added", file_name, len(chunks)
    )
    return DocumentResult(document=document, chunks=len(chunks), replaced=replaced)


def list_documents(db: Database, project_id: int) -> list[ProjectDocument]:
    with db.connection() as conn:
        return Repository(conn).list_documents(project_id)
