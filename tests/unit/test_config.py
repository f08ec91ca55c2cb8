"""Tests for the codebrain config loader."""

from __future__ import annotations

import stat
import warnings
from pathlib import Path

import pytest
import yaml

from codebrain.config import (
    DEFAULT_IGNORED_EXTENSIONS,
    BrainConfig,
    ConfigError,
    ensure_global_config,
    load_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CODEBRAIN_GENERATION_MODEL", "CODEBRAIN_EMBEDDING_MODEL", "CODEBRAIN_DB"):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _load(tmp_path: Path, global_cfg: Path | None = None) -> BrainConfig:
    return load_config(
        project_dir=tmp_path,
        global_config_path=global_cfg or tmp_path / "nonexistent" / "config.yaml",
    )


# ---------------------------------------------------------------------------
# Defaults with no config files present
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    cfg = _load(tmp_path)

    assert cfg.embedding.model == "openai/text-embedding-3-small"
    assert cfg.embedding.dimensions == 1536
    assert cfg.generation.model == "openai/gpt-4o"
    assert cfg.generation.summary_model == "openai/gpt-4o-mini"
    assert cfg.retrieval.notes_k == 2
    assert cfg.retrieval.tasks_k == 3
    assert cfg.retrieval.files_k == 5
    assert cfg.retrieval.chunks_k == 10
    assert cfg.ingestion.min_patch_chars == 200
    assert cfg.ingestion.ignored_extensions == list(DEFAULT_IGNORED_EXTENSIONS)
    assert "package-lock.json" in cfg.ingestion.ignored_filenames
    assert cfg.documents.enabled is True
    assert cfg.database.path == ".codebrain.db"
    assert cfg.logging.level == "INFO"


def test_required_models_lists_every_configured_model() -> None:
    cfg = BrainConfig()
    cfg.generation.task_model = "anthropic/claude-3-haiku"

    models = cfg.required_models()

    assert "openai/text-embedding-3-small" in models
    assert "openai/gpt-4o" in models
    assert "anthropic/claude-3-haiku" in models


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_load_config_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"generation": {"model": "anthropic/claude-3-5-sonnet-20241022"}})

    cfg = _load(tmp_path, global_cfg)

    assert cfg.generation.model == "anthropic/claude-3-5-sonnet-20241022"
    # Untouched keys keep their defaults
    assert cfg.generation.summary_model == "openai/gpt-4o-mini"
    assert cfg.embedding.model == "openai/text-embedding-3-small"


def test_load_config_global_empty_file(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("", encoding="utf-8")

    cfg = _load(tmp_path, global_cfg)

    assert cfg.generation.model == "openai/gpt-4o"


def test_load_config_null_section(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("retrieval:\n", encoding="utf-8")

    cfg = _load(tmp_path, global_cfg)

    assert cfg.retrieval.tasks_k == 3


def test_load_config_project_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"generation": {"model": "openai/gpt-4o", "task_model": "x/task"}})
    _write_yaml(tmp_path / "codebrain.yaml", {"generation": {"model": "openai/gpt-4o-mini"}})

    cfg = _load(tmp_path, global_cfg)

    assert cfg.generation.model == "openai/gpt-4o-mini"
    # Deep merge keeps the global key the project file does not mention
    assert cfg.generation.task_model == "x/task"


def test_load_config_all_sections(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "codebrain.yaml",
        {
            "embedding": {"model": "ollama/nomic-embed-text", "dimensions": 768},
            "retrieval": {"notes_k": 0, "chunks_k": 4},
            "ingestion": {
                "workspace_dir": "/tmp/ws",
                "min_patch_chars": 50,
                "ignored_extensions": [".LOG"],
                "ignored_filenames": ["Gemfile.lock"],
            },
            "documents": {"enabled": False},
            "database": {"path": "brain.db"},
            "logging": {"level": "debug", "file": "codebrain.log"},
        },
    )

    cfg = _load(tmp_path)

    assert cfg.embedding.dimensions == 768
    assert cfg.retrieval.notes_k == 0
    assert cfg.retrieval.chunks_k == 4
    assert cfg.retrieval.files_k == 5
    assert cfg.ingestion.workspace_dir == "/tmp/ws"
    assert cfg.ingestion.min_patch_chars == 50
    assert cfg.ingestion.ignored_extensions == [".log"]
    assert cfg.ingestion.ignored_filenames == ["Gemfile.lock"]
    assert cfg.documents.enabled is False
    assert cfg.database.path == "brain.db"
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.file == "codebrain.log"


def test_load_config_rejects_non_positive_dimensions(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "codebrain.yaml", {"embedding": {"dimensions": 0}})

    with pytest.raises(ConfigError, match="dimensions"):
        _load(tmp_path)


# ---------------------------------------------------------------------------
# API key validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "bad_key",
    ["api_key", "apikey", "OPENAI_API_KEY", "secret", "password", "token", "api-key"],
)
def test_global_config_rejects_api_key_fields(tmp_path: Path, bad_key: str) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text(f"{bad_key}: sk-abc123\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="forbidden key"):
        _load(tmp_path, global_cfg)


def test_global_config_rejects_nested_api_key(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"generation": {"api_key": "sk-secret"}})

    with pytest.raises(ConfigError, match="generation.api_key"):
        _load(tmp_path, global_cfg)


def test_config_keys_are_not_mistaken_for_secrets(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"ingestion": {"min_patch_chars": 10}, "retrieval": {"notes_k": 1}})

    cfg = _load(tmp_path, global_cfg)

    assert cfg.ingestion.min_patch_chars == 10


# ---------------------------------------------------------------------------
# Unknown key warnings
# ---------------------------------------------------------------------------


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"unknown_section": {"foo": "bar"}})

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        cfg = _load(tmp_path, global_cfg)

    assert any("unknown_section" in str(w.message) for w in caught)
    assert cfg.generation.model == "openai/gpt-4o"


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


def test_env_var_generation_model_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_yaml(tmp_path / "codebrain.yaml", {"generation": {"model": "openai/gpt-4o-mini"}})
    monkeypatch.setenv("CODEBRAIN_GENERATION_MODEL", "anthropic/claude-3-5-sonnet-20241022")

    cfg = _load(tmp_path)

    assert cfg.generation.model == "anthropic/claude-3-5-sonnet-20241022"


def test_env_var_embedding_model_and_db_override(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CODEBRAIN_EMBEDDING_MODEL", "openai/text-embedding-3-large")
    monkeypatch.setenv("CODEBRAIN_DB", "/data/brain.db")

    cfg = _load(tmp_path)

    assert cfg.embedding.model == "openai/text-embedding-3-large"
    assert cfg.database.path == "/data/brain.db"


# ---------------------------------------------------------------------------
# ensure_global_config
# ---------------------------------------------------------------------------


def test_ensure_global_config_creates_file(tmp_path: Path) -> None:
    target = tmp_path / ".codebrain" / "config.yaml"

    result = ensure_global_config(global_config_path=target)

    assert result == target
    parsed = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert parsed["embedding"]["dimensions"] == 1536
    assert "api_key" not in str(parsed)
    # The generated file must itself pass the forbidden-key check
    cfg = load_config(project_dir=tmp_path, global_config_path=target)
    assert cfg.generation.task_model == "openai/gpt-4o-mini"


def test_ensure_global_config_file_mode(tmp_path: Path) -> None:
    target = tmp_path / ".codebrain" / "config.yaml"
    ensure_global_config(global_config_path=target)

    assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_ensure_global_config_idempotent(tmp_path: Path) -> None:
    target = tmp_path / ".codebrain" / "config.yaml"
    ensure_global_config(global_config_path=target)
    target.write_text("# custom\ngeneration:\n  model: openai/gpt-4o-mini\n", encoding="utf-8")

    ensure_global_config(global_config_path=target)

    assert "custom" in target.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# yaml.safe_load enforcement
# ---------------------------------------------------------------------------


def test_config_does_not_execute_yaml_load(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("!!python/object/apply:os.system ['echo pwned']\n", encoding="utf-8")

    with pytest.raises(yaml.YAMLError):
        _load(tmp_path, global_cfg)
