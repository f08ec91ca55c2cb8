"""Markdown and plain-text chunker: heading-aware sections with paragraph fallback.

Strategy:
- Parse with markdown-it-py and walk the top-level block tokens.
- Every H1/H2/H3 heading starts a new section; everything else (including
  deeper headings) accumulates into the current section.
- Content before the first heading is its own section.
- If that leaves a single section and the document has non-heading content,
  re-split it on blank lines, dropping fragments of 20 characters or fewer.
- Plain text goes straight to the paragraph splitter.
"""

from __future__ import annotations

from markdown_it import MarkdownIt

from codebrain.db.models import CodeChunk

_MAX_SECTION_DEPTH = 3
_MIN_PARAGRAPH_CHARS = 20
_NAME_LIMIT = 80

_md = MarkdownIt("commonmark")


def chunk_markdown(content: str) -> list[CodeChunk]:
    """Split Markdown *content* into ``section`` chunks (1-indexed line spans)."""
    if not content.strip():
        return []

    lines = content.split("\n")
    blocks = _top_level_blocks(content)
    if not blocks:
        return chunk_paragraphs(content)

    # [start_line, end_line, heading_text]; 0-indexed, end exclusive
    sections: list[list] = []
    for start, end, depth, heading in blocks:
        if depth is not None and depth <= _MAX_SECTION_DEPTH:
            sections.append([start, end, heading])
        elif sections:
            sections[-1][1] = end
        else:
            sections.append([start, end, None])

    has_body = any(depth is None for _, _, depth, _ in blocks)
    if len(sections) == 1 and has_body:
        start, end, _ = sections[0]
        return _paragraphs(lines[start:end], offset=start)

    chunks: list[CodeChunk] = []
    for start, end, heading in sections:
        text = "\n".join(lines[start:end]).strip()
        if not text:
            continue
        chunks.append(
            CodeChunk(
                name=_truncate(heading or "preamble"),
                chunk_type="section",
                content=text,
                start_line=start + 1,
                end_line=end,
            )
        )
    return chunks


def chunk_paragraphs(content: str) -> list[CodeChunk]:
    """Split plain text on blank lines, dropping fragments of 20 chars or fewer."""
    if not content.strip():
        return []
    return _paragraphs(content.split("\n"), offset=0)


def chunk_texts(content: str) -> list[str]:
    """Markdown chunking reduced to the chunk texts (used for uploaded documents)."""
    return [c.content for c in chunk_markdown(content.strip())]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _top_level_blocks(content: str) -> list[tuple[int, int, int | None, str | None]]:
    """Return (start, end, heading_depth, heading_text) for each top-level block.

    ``heading_depth`` is ``None`` for non-heading blocks. Line numbers come
    from the token ``map`` (0-indexed, end exclusive).
    """
    tokens = _md.parse(content)
    blocks: list[tuple[int, int, int | None, str | None]] = []
    for i, tok in enumerate(tokens):
        if tok.level != 0 or tok.map is None or tok.nesting == -1:
            continue
        start, end = tok.map
        if tok.type == "heading_open":
            inline = tokens[i + 1] if i + 1 < len(tokens) else None
            text = inline.content.strip() if inline is not None else ""
            blocks.append((start, end, int(tok.tag[1:]), text))
        else:
            blocks.append((start, end, None, None))
    return blocks


def _paragraphs(lines: list[str], offset: int) -> list[CodeChunk]:
    chunks: list[CodeChunk] = []
    run_start: int | None = None

    def _flush(end: int) -> None:
        text = "\n".join(lines[run_start:end]).strip()
        if len(text) > _MIN_PARAGRAPH_CHARS:
            chunks.append(
                CodeChunk(
                    name=f"paragraph {len(chunks) + 1}",
                    chunk_type="section",
                    content=text,
                    start_line=offset + run_start + 1,
                    end_line=offset + end,
                )
            )

    for idx, line in enumerate(lines):
        if line.strip():
            if run_start is None:
                run_start = idx
        elif run_start is not None:
            _flush(idx)
            run_start = None
    if run_start is not None:
        _flush(len(lines))
    return chunks


def _truncate(text: str) -> str:
    text = text.strip()
    return text if len(text) <= _NAME_LIMIT else text[: _NAME_LIMIT - 3] + "..."
