"""Content-category dispatch: extension → category → chunker.

Adding a category means adding one entry to ``_CHUNKERS``; files whose
extension is not listed fall into ``UNSUPPORTED`` and become one whole-file
chunk.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import PurePosixPath

from codebrain.db.models import CodeChunk
from codebrain.ingest.code_chunker import EXTENSION_LANGUAGES, chunk_code, whole_file_chunk
from codebrain.ingest.text_chunker import chunk_markdown, chunk_paragraphs


class ContentCategory(str, Enum):
    CODE = "code"
    MARKDOWN = "markdown"
    PLAINTEXT = "plaintext"
    UNSUPPORTED = "unsupported"


_MARKDOWN_EXTENSIONS = frozenset({".md", ".markdown", ".mdx"})
_PLAINTEXT_EXTENSIONS = frozenset({".txt", ".rst", ".text"})


def categorize(path: str) -> ContentCategory:
    """Return the content category for *path* based on its extension."""
    suffix = PurePosixPath(path).suffix.lower()
    if suffix in EXTENSION_LANGUAGES:
        return ContentCategory.CODE
    if suffix in _MARKDOWN_EXTENSIONS:
        return ContentCategory.MARKDOWN
    if suffix in _PLAINTEXT_EXTENSIONS:
        return ContentCategory.PLAINTEXT
    return ContentCategory.UNSUPPORTED


def _chunk_source(path: str, content: str) -> list[CodeChunk]:
    suffix = PurePosixPath(path).suffix.lower()
    return chunk_code(content, EXTENSION_LANGUAGES.get(suffix))


def _chunk_unsupported(path: str, content: str) -> list[CodeChunk]:
    return [whole_file_chunk(content)]


_CHUNKERS: dict[ContentCategory, Callable[[str, str], list[CodeChunk]]] = {
    ContentCategory.CODE: _chunk_source,
    ContentCategory.MARKDOWN: lambda path, content: chunk_markdown(content),
    ContentCategory.PLAINTEXT: lambda path, content: chunk_paragraphs(content),
    ContentCategory.UNSUPPORTED: _chunk_unsupported,
}


def chunk_file(path: str, content: str) -> list[CodeChunk]:
    """Chunk *content* with the chunker for *path*'s category.

    Never returns an empty list for non-blank content: a chunker that finds
    nothing is replaced by the whole-file ``file_content`` chunk.
    """
    if not content.strip():
        return []
    chunks = _CHUNKERS[categorize(path)](path, content)
    return chunks or [whole_file_chunk(content)]
