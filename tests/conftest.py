"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import sqlite3
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest

from codebrain import config
from codebrain.cli import common
from codebrain.db.connection import Database
from codebrain.db.migrations import run_migrations
from codebrain.db.repository import Repository
from codebrain.db.vectors import to_blob

DIMS = 8


class FakeGateway:
    """Deterministic stand-in for ModelGateway.

    ``embed`` returns a fixed vector per text (``vectors`` overrides the hash
    default); ``complete`` pops scripted replies per model, falling back to
    ``defaults``. Every call is recorded.
    """

    def __init__(self, dimensions: int = DIMS) -> None:
        self.dimensions = dimensions
        self.embedding_model = "fake/embed"
        self.generation_model = "fake/generate"
        self.summary_model = "fake/summary"
        self.task_model = "fake/task"
        self.vectors: dict[str, list[float]] = {}
        self.replies: dict[str, list[str]] = {}
        self.defaults = {
            self.generation_model: "Answer.",
            self.summary_model: "Does something useful.",
            self.task_model: "NULL",
        }
        self.fail_embed_on: str | None = None
        self.embedded: list[str] = []
        self.completions: list[tuple[str, list[dict]]] = []

    def script(self, model: str, *replies: str) -> None:
        self.replies.setdefault(model, []).extend(replies)

    def embed(self, text: str) -> list[float]:
        if self.fail_embed_on is not None and self.fail_embed_on in text:
            raise RuntimeError("embedding service unavailable")
        self.embedded.append(text)
        if text in self.vectors:
            return list(self.vectors[text])
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(b + 1) / 256 for b in digest[: self.dimensions]]

    def complete(self, messages: list[dict], model: str | None = None, max_tokens: int = 2048) -> str:
        model = model or self.generation_model
        self.completions.append((model, messages))
        queue = self.replies.get(model)
        if queue:
            return queue.pop(0)
        return self.defaults.get(model, "")

    def complete_stream(self, messages: list[dict], model: str | None = None) -> Iterator[str]:
        reply = self.complete(messages, model)
        for i, word in enumerate(reply.split(" ")):
            yield word if i == 0 else " " + word


class ConcurrentWriterGateway(FakeGateway):
    """FakeGateway that adds a user task from a second connection on every model call.

    ``blocked`` collects the errors of writes that could not get the lock.
    """

    def __init__(self, db: Database, project_id: int) -> None:
        super().__init__()
        self.db = db
        self.project_id = project_id
        self.written = 0
        self.blocked: list[str] = []

    def _write_task(self) -> None:
        conn = self.db.connect()
        conn.execute("PRAGMA busy_timeout = 200")
        try:
            with conn:
                Repository(conn).add_task(self.project_id, "User task", to_blob(axis(0)))
            self.written += 1
        except sqlite3.OperationalError as exc:
            self.blocked.append(str(exc))
        finally:
            conn.close()

    def embed(self, text: str) -> list[float]:
        self._write_task()
        return super().embed(text)

    def complete(self, messages: list[dict], model: str | None = None, max_tokens: int = 2048) -> str:
        self._write_task()
        return super().complete(messages, model, max_tokens)


def axis(i: int, dims: int = DIMS) -> list[float]:
    """Unit vector along axis *i*, with a small constant floor so no vector is zero."""
    return [1.0 if j == i else 0.01 for j in range(dims)]


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args], check=True, capture_output=True, text=True
    )
    return result.stdout


def commit_all(repo: Path, message: str) -> None:
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)


@pytest.fixture
def make_git_repo(tmp_path):
    """Factory for an initialised, empty git repository under tmp_path."""

    def _make(name: str = "repo") -> Path:
        repo = tmp_path / name
        repo.mkdir()
        subprocess.run(["git", "init", "-q", str(repo)], check=True, capture_output=True)
        git(repo, "config", "user.email", "dev@example.com")
        git(repo, "config", "user.name", "Dev")
        git(repo, "config", "commit.gpgsign", "false")
        return repo

    return _make


@pytest.fixture
def db(tmp_path):
    """File-based Database in tmp_path with all migrations applied."""
    database = Database(tmp_path / ".codebrain.db")
    with database.connection() as conn:
        run_migrations(conn)
    return database


@pytest.fixture
def conn(db):
    """Open connection on the migrated test database, closed after the test."""
    with db.connection() as connection:
        yield connection


@pytest.fixture
def repo(conn):
    return Repository(conn)


@pytest.fixture
def project(db):
    with db.connection() as c, c:
        return Repository(c).add_project("app", "/src/app")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def cli_env(tmp_path, monkeypatch, gateway):
    """Run CLI commands from tmp_path with default config and the fake gateway.

    The default database path then resolves to the ``db`` fixture's file.
    """
    monkeypatch.chdir(tmp_path)
    for name in ("CODEBRAIN_GENERATION_MODEL", "CODEBRAIN_EMBEDDING_MODEL", "CODEBRAIN_DB"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global-config.yaml")
    monkeypatch.setattr(common, "setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(common, "build_gateway", lambda cfg: gateway)
    monkeypatch.setattr(common.console, "width", 200)
    return tmp_path
