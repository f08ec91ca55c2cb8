"""Shared CLI plumbing: config, database and model gateway setup."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from codebrain.cli.errors import err_config, err_no_api_key
from codebrain.config import BrainConfig, ConfigError, load_config
from codebrain.db.connection import Database
from codebrain.db.migrations import run_migrations
from codebrain.logging_config import setup_logging
from codebrain.rag.llm_client import ModelGateway, validate_api_key

console = Console()


def load_cli_config() -> BrainConfig:
    """Load config and configure logging; a bad config aborts the command."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from None
    setup_logging(cfg.logging.level, cfg.logging.file)
    return cfg


def open_database(cfg: BrainConfig, db_path: Path | None = None) -> Database:
    """Return the database with all enabled migrations applied."""
    db = Database(db_path or Path(cfg.database.path))
    with db.connection() as conn:
        run_migrations(conn, include_documents=cfg.documents.enabled)
    return db


def build_gateway(cfg: BrainConfig) -> ModelGateway:
    """Validate provider credentials for every configured model, then build the gateway."""
    for model in cfg.required_models():
        try:
            validate_api_key(model)
        except EnvironmentError:
            provider = model.split("/")[0] if "/" in model else "openai"
            console.print(err_no_api_key(provider))
            raise typer.Exit(1) from None
    return ModelGateway.from_config(cfg)
