"""Persisted migration history.

One `migration_history` row per applied version. Rows are only ever
inserted: by a production bootstrap (current application version) or by a
completed incremental bucket (`<major>.<minor>.0`).
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from .database import db_transaction, query_all, query_one, table_exists
from .errors import HistoryPersistenceFailure
from .logging_setup import log_debug, log_error

HISTORY_TABLE = "migration_history"


@dataclass(frozen=True)
class MigrationHistory:
    """An applied schema version."""

    version: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> MigrationHistory:
        """Create MigrationHistory from database row.

        Args:
            row: SQLite row

        Returns:
            MigrationHistory instance
        """
        return cls(version=row["version"], created_at=row["created_at"])


@dataclass(frozen=True)
class MigrationHistoryFind:
    """Filter for MigrationHistoryStore.list (all fields optional)."""

    version: Optional[str] = None


class MigrationHistoryStore:
    """Reads and writes migration_history on one connection.

    Nothing is cached: every call goes to the database.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list(self, find: Optional[MigrationHistoryFind] = None) -> list[MigrationHistory]:
        """List recorded versions.

        A database without the history table (never bootstrapped) has no
        history rather than an error.

        Args:
            find: Optional filter

        Returns:
            Matching records in insertion order

        Raises:
            HistoryPersistenceFailure: On any database error
        """
        find = find or MigrationHistoryFind()
        try:
            if not table_exists(self.conn, HISTORY_TABLE):
                return []

            query = f"SELECT version, created_at FROM {HISTORY_TABLE}"
            params: tuple = ()
            if find.version is not None:
                query += " WHERE version = ?"
                params = (find.version,)
            rows = query_all(self.conn, query + " ORDER BY rowid", params)
        except sqlite3.Error as e:
            log_error(f"Failed to list migration history: {e}")
            raise HistoryPersistenceFailure("failed to find migration history") from e

        return [MigrationHistory.from_row(row) for row in rows]

    def upsert(self, version: str) -> MigrationHistory:
        """Record a version; recording an existing version is a no-op.

        Joins the caller's open transaction if there is one.

        Args:
            version: Version string to record

        Returns:
            The stored record (existing or new)

        Raises:
            HistoryPersistenceFailure: On any database error
        """
        try:
            with db_transaction(self.conn) as c:
                c.execute(
                    f"INSERT OR IGNORE INTO {HISTORY_TABLE} (version) VALUES (?)",
                    (version,),
                )
                row = query_one(
                    c,
                    f"SELECT version, created_at FROM {HISTORY_TABLE} WHERE version = ?",
                    (version,),
                )
        except sqlite3.Error as e:
            log_error(f"Failed to upsert migration history {version}: {e}")
            raise HistoryPersistenceFailure(
                f"failed to upsert migration history with version: {version}"
            ) from e

        log_debug(f"Recorded migration history {version}")
        return MigrationHistory.from_row(row)
