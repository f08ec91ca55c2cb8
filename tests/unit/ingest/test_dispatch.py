"""Tests for content-category dispatch."""

from __future__ import annotations

import pytest

from codebrain.ingest.code_chunker import FALLBACK_CHUNK_NAME
from codebrain.ingest.dispatch import ContentCategory, categorize, chunk_file


@pytest.mark.parametrize(
    "path,category",
    [
        ("src/app.py", ContentCategory.CODE),
        ("src/App.TSX", ContentCategory.CODE),
        ("docs/guide.md", ContentCategory.MARKDOWN),
        ("docs/page.mdx", ContentCategory.MARKDOWN),
        ("NOTES.txt", ContentCategory.PLAINTEXT),
        ("docs/index.rst", ContentCategory.PLAINTEXT),
        ("config.yaml", ContentCategory.UNSUPPORTED),
        ("Dockerfile", ContentCategory.UNSUPPORTED),
    ],
)
def test_categorize(path, category):
    assert categorize(path) is category


def test_code_goes_to_code_chunker():
    chunks = chunk_file("a.py", "def f():\n    return 1\n")
    assert [(c.name, c.chunk_type) for c in chunks] == [("f", "function")]


def test_unsupported_is_one_whole_file_chunk():
    chunks = chunk_file("config.yaml", "a: 1\nb: 2\n")
    assert len(chunks) == 1
    assert chunks[0].name == FALLBACK_CHUNK_NAME


def test_never_empty_for_non_blank_content():
    # Too short for a paragraph, so the markdown chunker finds nothing.
    chunks = chunk_file("tiny.md", "hi")
    assert [c.name for c in chunks] == [FALLBACK_CHUNK_NAME]


def test_blank_content_yields_nothing():
    assert chunk_file("a.py", "\n\n") == []
