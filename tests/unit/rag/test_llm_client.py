"""Tests for the LiteLLM client wrapper and ModelGateway."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from codebrain.config import BrainConfig
from codebrain.rag.llm_client import (
    ModelGateway,
    complete,
    complete_stream,
    embed,
    validate_api_key,
)


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o")


def test_validate_api_key_gemini(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="GEMINI_API_KEY"):
        validate_api_key("gemini/gemini-1.5-flash")


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama3")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError):
        validate_api_key("gpt-4o")


# ------------------------------------------------------------------
# complete() / complete_stream()
# ------------------------------------------------------------------


def test_complete_returns_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "Hello!"
    with patch("codebrain.rag.llm_client.litellm.completion", return_value=mock_response) as m:
        result = complete("openai/gpt-4o", [{"role": "user", "content": "Hi"}], max_tokens=50)
    assert result == "Hello!"
    kwargs = m.call_args.kwargs
    assert kwargs["model"] == "openai/gpt-4o"
    assert kwargs["max_tokens"] == 50
    assert kwargs["num_retries"] == 3


def test_complete_none_content_is_empty_string():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = None
    with patch("codebrain.rag.llm_client.litellm.completion", return_value=mock_response):
        assert complete("openai/gpt-4o", []) == ""


def _delta(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def test_complete_stream_yields_non_empty_deltas():
    chunks = [_delta("Hel"), _delta(None), _delta("lo"), SimpleNamespace(choices=[]), _delta("")]
    with patch("codebrain.rag.llm_client.litellm.completion", return_value=iter(chunks)) as m:
        assert list(complete_stream("openai/gpt-4o", [])) == ["Hel", "lo"]
    assert m.call_args.kwargs["stream"] is True


def test_complete_stream_is_lazy():
    with patch("codebrain.rag.llm_client.litellm.completion") as m:
        stream = complete_stream("openai/gpt-4o", [])
        m.assert_not_called()
        m.return_value = iter([_delta("x")])
        assert list(stream) == ["x"]


# ------------------------------------------------------------------
# embed()
# ------------------------------------------------------------------


def test_embed_flattens_newlines():
    response = MagicMock()
    response.data = [{"embedding": [0.1, 0.2]}]
    with patch("codebrain.rag.llm_client.litellm.embedding", return_value=response) as m:
        assert embed("openai/text-embedding-3-small", "a\nb") == [0.1, 0.2]
    assert m.call_args.kwargs["input"] == ["a b"]


# ------------------------------------------------------------------
# ModelGateway
# ------------------------------------------------------------------


def test_gateway_from_config():
    cfg = BrainConfig()
    gw = ModelGateway.from_config(cfg)
    assert gw.embedding_model == cfg.embedding.model
    assert gw.summary_model == cfg.generation.summary_model
    assert gw.task_model == cfg.generation.task_model
    assert gw.dimensions == cfg.embedding.dimensions


def test_gateway_defaults_secondary_models_to_generation_model():
    gw = ModelGateway("openai/e", "openai/g")
    assert gw.summary_model == gw.task_model == "openai/g"


def test_gateway_embed_checks_dimensions():
    gw = ModelGateway("openai/e", "openai/g", dimensions=3)
    with patch("codebrain.rag.llm_client.embed", return_value=[0.1, 0.2]):
        with pytest.raises(ValueError, match="expected 3"):
            gw.embed("text")


def test_gateway_complete_uses_override_model():
    gw = ModelGateway("openai/e", "openai/g", summary_model="openai/s")
    with patch("codebrain.rag.llm_client.complete", return_value="ok") as m:
        gw.complete([{"role": "user", "content": "x"}], model=gw.summary_model, max_tokens=10)
    assert m.call_args.args[0] == "openai/s"
    assert m.call_args.kwargs["max_tokens"] == 10
