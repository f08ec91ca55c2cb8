"""Tests for the Database connection layer."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from codebrain.db.connection import Database, is_missing_table


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / ".codebrain.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_sqlite_vec_loads(tmp_path):
    with Database(tmp_path / ".codebrain.db") as conn:
        version = conn.execute("SELECT vec_version()").fetchone()[0]
    assert version.startswith("v")


def test_foreign_keys_enabled(tmp_path):
    with Database(tmp_path / ".codebrain.db") as conn:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1


def test_wal_journal_mode(tmp_path):
    with Database(tmp_path / ".codebrain.db") as conn:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"


def test_row_factory_set(tmp_path):
    with Database(tmp_path / ".codebrain.db") as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.execute("INSERT INTO t VALUES (42)")
        row = conn.execute("SELECT x FROM t").fetchone()
    assert row["x"] == 42


def test_context_manager_closes_connection(tmp_path):
    db = Database(tmp_path / ".codebrain.db")
    with db as conn:
        conn.execute("SELECT 1")
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


def test_connection_yields_fresh_connection_and_closes_it(tmp_path):
    db = Database(str(tmp_path / ".codebrain.db"))
    assert isinstance(db.db_path, Path)
    with db.connection() as first, db.connection() as second:
        assert first is not second
        assert first.execute("SELECT 1").fetchone()[0] == 1
    with pytest.raises(sqlite3.ProgrammingError):
        first.execute("SELECT 1")


def test_transaction_block_rolls_back_on_error(tmp_path):
    db = Database(tmp_path / ".codebrain.db")
    with db.connection() as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.commit()
        with pytest.raises(RuntimeError):
            with conn:
                conn.execute("INSERT INTO t VALUES (1)")
                raise RuntimeError("boom")
        assert conn.execute("SELECT COUNT(*) FROM t").fetchone()[0] == 0


# ------------------------------------------------------------------
# is_missing_table
# ------------------------------------------------------------------


def test_is_missing_table_detects_no_such_table(tmp_path):
    with Database(tmp_path / ".codebrain.db") as conn:
        with pytest.raises(sqlite3.OperationalError) as info:
            conn.execute("SELECT * FROM project_documents")
    assert is_missing_table(info.value)


def test_is_missing_table_ignores_other_errors(tmp_path):
    with Database(tmp_path / ".codebrain.db") as conn:
        with pytest.raises(sqlite3.OperationalError) as info:
            conn.execute("SELEC 1")
    assert not is_missing_table(info.value)
    assert not is_missing_table(ValueError("no such table: x"))
