"""Tests for codebrain rich error messages."""

from __future__ import annotations

import pytest

from codebrain.cli.errors import (
    err_config,
    err_conversation_not_found,
    err_documents_disabled,
    err_insufficient_context,
    err_invalid_status,
    err_no_api_key,
    err_project_not_found,
    err_source_unreachable,
    err_task_not_found,
    err_unsupported_file,
)


def _has_action(msg: str) -> bool:
    """Every error must tell the user what to do next."""
    lower = msg.lower()
    return any(
        kw in lower
        for kw in ["run:", "set:", "set ", "use one of", "export ", "codebrain ", "supported", "fix "]
    )


ALL_ERRORS = [
    err_no_api_key("openai"),
    err_config("bad value"),
    err_project_not_found(3),
    err_task_not_found(4),
    err_invalid_status("later"),
    err_conversation_not_found(5),
    err_unsupported_file("logo.png", [".md", ".pdf"]),
    err_documents_disabled(),
    err_insufficient_context(),
    err_source_unreachable("https://example.com/a.git", "clone failed"),
]


@pytest.mark.parametrize("msg", ALL_ERRORS)
def test_every_error_is_actionable(msg: str) -> None:
    assert _has_action(msg)


def test_no_api_key_names_env_var() -> None:
    assert "OPENAI_API_KEY" in err_no_api_key("openai")
    assert "ANTHROPIC_API_KEY" in err_no_api_key("anthropic")
    assert "ACME_API_KEY" in err_no_api_key("acme")


def test_messages_carry_identifiers() -> None:
    assert "Project 3" in err_project_not_found(3)
    assert "#4" in err_task_not_found(4)
    assert "'later'" in err_invalid_status("later")
    assert "Conversation 5" in err_conversation_not_found(5)
    assert ".md, .pdf" in err_unsupported_file("logo.png", [".md", ".pdf"])
    assert "clone failed" in err_source_unreachable("https://example.com/a.git", "clone failed")
