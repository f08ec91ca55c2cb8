"""codebrain configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (CODEBRAIN_GENERATION_MODEL, CODEBRAIN_EMBEDDING_MODEL, CODEBRAIN_DB)
  3. Per-project codebrain.yaml  (current working directory)
  4. Global ~/.codebrain/config.yaml  (model defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".codebrain"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "codebrain.yaml"

# Matches api_key, api-key, api_secret, *_token, token, *_secret, secret,
# password, passwd, credential(s). Does NOT match min_patch_chars, notes_k etc.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "generation", "retrieval", "ingestion", "documents", "database", "logging"]
)

DEFAULT_IGNORED_EXTENSIONS: tuple[str, ...] = (
    ".lock", ".svg", ".png", ".jpg", ".jpeg", ".gif", ".ico", ".pdf", ".zip", ".gz",
    ".woff", ".woff2", ".ttf", ".eot", ".mp3", ".mp4", ".exe", ".dll", ".so", ".pyc", ".bin",
)
DEFAULT_IGNORED_FILENAMES: tuple[str, ...] = (
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "poetry.lock", "Cargo.lock", ".DS_Store",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (codebrain.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536


@dataclass
class GenerationCfg:
    """Completion models (codebrain.yaml: generation:).

    Attributes:
        model: Answers questions and distills knowledge notes.
        summary_model: One-sentence file summaries during file sync.
        task_model: Retrospective task generation from commit diffs.
    """

    model: str = "openai/gpt-4o"
    summary_model: str = "openai/gpt-4o-mini"
    task_model: str = "openai/gpt-4o-mini"


@dataclass
class RetrievalCfg:
    """Per-source top-K limits for the retrieval engine (codebrain.yaml: retrieval:)."""

    notes_k: int = 2
    tasks_k: int = 3
    commits_k: int = 3
    documents_k: int = 3
    files_k: int = 5
    chunks_k: int = 10


@dataclass
class IngestionCfg:
    """File and git sync settings (codebrain.yaml: ingestion:)."""

    workspace_dir: str = str(Path.home() / ".codebrain" / "workspace")
    min_patch_chars: int = 200
    ignored_extensions: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORED_EXTENSIONS)
    )
    ignored_filenames: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORED_FILENAMES)
    )


@dataclass
class DocumentsCfg:
    """Uploaded-document feature toggle (codebrain.yaml: documents:)."""

    enabled: bool = True


@dataclass
class DatabaseCfg:
    path: str = ".codebrain.db"


@dataclass
class LoggingCfg:
    level: str = "INFO"
    file: str | None = None


@dataclass
class BrainConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    ingestion: IngestionCfg = field(default_factory=IngestionCfg)
    documents: DocumentsCfg = field(default_factory=DocumentsCfg)
    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)

    def required_models(self) -> list[str]:
        """Every model string that needs a provider credential at startup."""
        return [
            self.embedding.model,
            self.generation.model,
            self.generation.summary_model,
            self.generation.task_model,
        ]


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> BrainConfig:
    """Build a *BrainConfig* from a merged raw YAML dict."""
    cfg = BrainConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
        )
        if cfg.embedding.dimensions < 1:
            raise ConfigError(
                f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}"
            )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            summary_model=str(g.get("summary_model", cfg.generation.summary_model)),
            task_model=str(g.get("task_model", cfg.generation.task_model)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        d = cfg.retrieval
        cfg.retrieval = RetrievalCfg(
            notes_k=int(r.get("notes_k", d.notes_k)),
            tasks_k=int(r.get("tasks_k", d.tasks_k)),
            commits_k=int(r.get("commits_k", d.commits_k)),
            documents_k=int(r.get("documents_k", d.documents_k)),
            files_k=int(r.get("files_k", d.files_k)),
            chunks_k=int(r.get("chunks_k", d.chunks_k)),
        )

    if "ingestion" in data:
        i = data["ingestion"] or {}
        d = cfg.ingestion
        cfg.ingestion = IngestionCfg(
            workspace_dir=str(i.get("workspace_dir", d.workspace_dir)),
            min_patch_chars=int(i.get("min_patch_chars", d.min_patch_chars)),
            ignored_extensions=[
                str(x).lower() for x in i.get("ignored_extensions", d.ignored_extensions)
            ],
            ignored_filenames=[str(x) for x in i.get("ignored_filenames", d.ignored_filenames)],
        )

    if "documents" in data:
        doc = data["documents"] or {}
        cfg.documents = DocumentsCfg(enabled=bool(doc.get("enabled", cfg.documents.enabled)))

    if "database" in data:
        db = data["database"] or {}
        cfg.database = DatabaseCfg(path=str(db.get("path", cfg.database.path)))

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)).upper(),
            file=lg.get("file") or cfg.logging.file,
        )

    return cfg


def _apply_env_overrides(cfg: BrainConfig) -> BrainConfig:
    """Apply CODEBRAIN_* environment variable overrides."""
    if model := os.environ.get("CODEBRAIN_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("CODEBRAIN_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("CODEBRAIN_DB"):
        cfg.database.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> BrainConfig:
    """Load and return a merged *BrainConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *codebrain.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If the global config contains API-key-like fields or a
            value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    return _apply_env_overrides(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.codebrain/config.yaml`` with defaults if it does not exist.

    The parent directory gets mode 0o700 and the file mode 0o600.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# codebrain global configuration: model defaults only.\n"
            "# NEVER store API keys here. Use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "  dimensions: 1536\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o\n"
            "  summary_model: openai/gpt-4o-mini\n"
            "  task_model: openai/gpt-4o-mini\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
