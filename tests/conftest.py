"""Pytest configuration and shared fixtures for memos_store tests."""

import sqlite3
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Optional

import pytest

from memos_store.catalog import ScriptCatalog
from memos_store.database import get_connection
from memos_store.logging_setup import setup_logging


MINIMAL_PROD_SCHEMA = """
CREATE TABLE IF NOT EXISTS migration_history (
  version TEXT NOT NULL PRIMARY KEY,
  created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS applied_log (
  seq INTEGER PRIMARY KEY AUTOINCREMENT,
  entry TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS memo (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  content TEXT NOT NULL DEFAULT ''
);
"""

MINIMAL_DEV_SCHEMA = """
DROP TABLE IF EXISTS memo;
CREATE TABLE memo (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  content TEXT NOT NULL DEFAULT ''
);
"""


@pytest.fixture(autouse=True, scope="session")
def isolated_log_file() -> Generator[Path, None, None]:
    """Send log output to a throwaway file for the whole test session."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_path = Path(tmpdir) / "memos_store.log"
        setup_logging(str(log_path), debug=True)
        yield log_path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path: Temporary directory path
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    return temp_dir / "memos_prod.db"


@pytest.fixture
def conn(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """Connection to a fresh database file with store settings applied."""
    connection = get_connection(db_path)
    yield connection
    connection.close()


@pytest.fixture
def make_catalog(temp_dir: Path) -> Callable[..., ScriptCatalog]:
    """Factory building a script tree on disk and loading it as a catalog.

    Args (of the returned factory):
        buckets: {"0.10": {"01__a.sql": "..."}}
        prod_schema: prod LATEST__SCHEMA.sql text (None to omit)
        dev_schema: dev LATEST__SCHEMA.sql text (None to omit)
        seeds: {"10__user.sql": "..."}

    The same tree is rewritten on every call, so a test can "fix" a
    broken script and load the catalog again.
    """
    root = temp_dir / "catalog"

    def build(
        buckets: Optional[Dict[str, Dict[str, str]]] = None,
        prod_schema: Optional[str] = MINIMAL_PROD_SCHEMA,
        dev_schema: Optional[str] = MINIMAL_DEV_SCHEMA,
        seeds: Optional[Dict[str, str]] = None,
    ) -> ScriptCatalog:
        for kind, text in (("prod", prod_schema), ("dev", dev_schema)):
            kind_dir = root / "migration" / kind
            kind_dir.mkdir(parents=True, exist_ok=True)
            schema_file = kind_dir / "LATEST__SCHEMA.sql"
            if text is None:
                schema_file.unlink(missing_ok=True)
            else:
                schema_file.write_text(text, encoding="utf-8")

        for minor, files in (buckets or {}).items():
            bucket_dir = root / "migration" / "prod" / minor
            bucket_dir.mkdir(parents=True, exist_ok=True)
            for name, text in files.items():
                (bucket_dir / name).write_text(text, encoding="utf-8")

        if seeds:
            seed_dir = root / "seed"
            seed_dir.mkdir(parents=True, exist_ok=True)
            for name, text in seeds.items():
                (seed_dir / name).write_text(text, encoding="utf-8")

        return ScriptCatalog(root)

    return build


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Reset environment variables before each test.

    This ensures tests don't interfere with each other through env vars.
    """
    monkeypatch.delenv("MEMOS_MODE", raising=False)
    monkeypatch.delenv("MEMOS_DATA", raising=False)
    monkeypatch.delenv("MEMOS_DSN", raising=False)


def logged_entries(connection: sqlite3.Connection) -> list:
    """Entries written to applied_log by bucket scripts, in execution order."""
    return [row[0] for row in connection.execute("SELECT entry FROM applied_log ORDER BY seq")]


def recorded_versions(connection: sqlite3.Connection) -> list:
    return [row[0] for row in connection.execute("SELECT version FROM migration_history ORDER BY rowid")]
