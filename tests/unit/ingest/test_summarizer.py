"""Tests for FileSummarizer."""

from __future__ import annotations

import pytest
from conftest import FakeGateway

from codebrain.ingest.summarizer import FileSummarizer


def test_summarize_returns_model_reply():
    gateway = FakeGateway()
    gateway.script(gateway.summary_model, "  Parses config files.  ")
    assert FileSummarizer(gateway).summarize("cfg.py", "x = 1") == "Parses config files."


def test_summarize_uses_summary_model_and_file_path():
    gateway = FakeGateway()
    FileSummarizer(gateway).summarize("src/app.py", "print('hi')")
    model, messages = gateway.completions[-1]
    assert model == gateway.summary_model
    assert "File Path: src/app.py" in messages[0]["content"]
    assert "print('hi')" in messages[0]["content"]


def test_summarize_truncates_long_files():
    gateway = FakeGateway()
    FileSummarizer(gateway).summarize("big.py", "y" * 100_000)
    _, messages = gateway.completions[-1]
    assert "y" * 24_000 in messages[0]["content"]
    assert "y" * 24_001 not in messages[0]["content"]


def test_empty_reply_gets_placeholder():
    gateway = FakeGateway()
    gateway.script(gateway.summary_model, "   ")
    assert FileSummarizer(gateway).summarize("a.py", "x") == "Could not generate a summary."


def test_model_errors_propagate():
    class Broken(FakeGateway):
        def complete(self, messages, model=None, max_tokens=2048):
            raise RuntimeError("rate limited")

    with pytest.raises(RuntimeError):
        FileSummarizer(Broken()).summarize("a.py", "x")
