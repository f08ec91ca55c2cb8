"""Centralized logging configuration for codebrain."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the ``codebrain`` logger once per process.

    Console output goes to stderr through rich; ``log_file`` adds a plain
    file handler. ``CODEBRAIN_LOG_LEVEL`` and ``CODEBRAIN_LOG_FILE`` override
    the arguments.
    """
    global _configured
    if _configured:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    env_level = os.getenv("CODEBRAIN_LOG_LEVEL")
    if env_level:
        log_level = getattr(logging, env_level.upper(), log_level)

    env_file = os.getenv("CODEBRAIN_LOG_FILE")
    if env_file is not None:
        log_file = env_file

    root = logging.getLogger("codebrain")
    root.setLevel(log_level)
    root.handlers.clear()
    root.propagate = False

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(log_level)
    root.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
            root.addHandler(file_handler)
        except OSError:
            root.warning("Could not open log file %s, logging to console only", log_file)

    _configured = True
