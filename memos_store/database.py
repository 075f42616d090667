"""SQLite connection management for memos_store.

This module provides SQLite connection setup, transaction helpers, statement
execution with diagnostics, and integrity checks shared by the migration
engine, the backup engine and the vacuum pass.

Connections are opened in autocommit mode (isolation_level=None) so that
`db_transaction` controls BEGIN/COMMIT explicitly. That keeps DDL inside
the transaction; the sqlite3 module would otherwise only open implicit
transactions before DML.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Iterable, Optional, Union

from .config import DEFAULT_BUSY_TIMEOUT_MS
from .context import Context
from .errors import ConnectionAcquisitionFailure, StatementExecutionFailure
from .logging_setup import log_debug, log_error


# ========== Connection Management ==========

def get_connection(
    database_path: Union[str, Path],
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> sqlite3.Connection:
    """Get SQLite connection with the store's required settings.

    Args:
        database_path: Path to database file
        busy_timeout_ms: How long to wait on a locked database

    Returns:
        SQLite connection with foreign keys off, bounded busy timeout and WAL

    Raises:
        ConnectionAcquisitionFailure: If no path is given or the file cannot be opened
    """
    if not database_path:
        raise ConnectionAcquisitionFailure("dsn required")

    db_path = Path(database_path)
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(db_path),
            timeout=busy_timeout_ms / 1000.0,
            isolation_level=None,
        )
    except (OSError, sqlite3.Error) as e:
        log_error(f"Failed to open database {db_path}: {e}")
        raise ConnectionAcquisitionFailure(f"failed to open db with dsn: {db_path}") from e

    conn.row_factory = sqlite3.Row  # Enable dict-like access

    try:
        # Explicitly off: the schema does not rely on SQLite FK enforcement
        conn.execute("PRAGMA foreign_keys=OFF")
        conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        conn.execute("PRAGMA journal_mode=WAL")  # Avoids reader/writer lock contention
    except sqlite3.Error as e:
        conn.close()
        log_error(f"Failed to configure database {db_path}: {e}")
        raise ConnectionAcquisitionFailure(f"failed to configure db: {db_path}") from e

    return conn


@contextmanager
def db_transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database transactions with auto-commit/rollback.

    The outermost block issues BEGIN and owns COMMIT/ROLLBACK; nested blocks
    join the open transaction and leave the outcome to it.

    Args:
        conn: Connection opened by get_connection

    Yields:
        The same connection

    Example:
        with db_transaction(conn):
            conn.execute("ALTER TABLE memo ADD COLUMN ...")
            conn.execute("INSERT INTO migration_history ...")
        # Committed on success, rolled back on exception
    """
    if conn.in_transaction:
        yield conn
        return

    conn.execute("BEGIN")
    try:
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        log_error(f"Database transaction rolled back: {e}")
        raise


def execute_statements(
    conn: sqlite3.Connection,
    statements: Iterable[str],
    ctx: Optional[Context] = None,
    script: Optional[str] = None,
) -> int:
    """Execute statements one at a time, checking cancellation in between.

    Args:
        conn: Database connection
        statements: Individual SQL statements (already split)
        ctx: Cancellation context
        script: Script name reported on failure

    Returns:
        Number of statements executed

    Raises:
        StatementExecutionFailure: On the first failing statement
        OperationCancelled: If ctx is cancelled between statements
    """
    count = 0
    for statement in statements:
        if ctx is not None:
            ctx.check(f"executing {script or 'statements'}")
        try:
            conn.execute(statement)
        except sqlite3.Error as e:
            log_error(f"Statement failed in {script or '<inline>'}: {e}")
            raise StatementExecutionFailure(f"failed to exec SQL ({e})", statement, script) from e
        count += 1
    log_debug(f"Executed {count} statement(s) from {script or '<inline>'}")
    return count


# ========== Query Helpers ==========

def query_one(
    conn: sqlite3.Connection,
    query: str,
    params: tuple[Any, ...] = ()
) -> Optional[sqlite3.Row]:
    """Execute query and return single row.

    Args:
        conn: Database connection
        query: SQL query
        params: Query parameters

    Returns:
        Single row or None if no results
    """
    cursor = conn.execute(query, params)
    return cursor.fetchone()


def query_all(
    conn: sqlite3.Connection,
    query: str,
    params: tuple[Any, ...] = ()
) -> list[sqlite3.Row]:
    """Execute query and return all rows.

    Args:
        conn: Database connection
        query: SQL query
        params: Query parameters

    Returns:
        List of rows
    """
    cursor = conn.execute(query, params)
    return cursor.fetchall()


def table_exists(conn: sqlite3.Connection, table_name: str) -> bool:
    row = query_one(
        conn,
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table_name,),
    )
    return row is not None


# ========== Database Health Checks ==========

def integrity_check(database_path: Union[str, Path]) -> Optional[str]:
    """Run PRAGMA integrity_check on a database file.

    Opens its own short-lived connection without touching journal settings,
    so it can be pointed at freshly written backup files.

    Args:
        database_path: Path to database file

    Returns:
        None if the database is healthy, otherwise the first reported problem
    """
    conn = sqlite3.connect(str(database_path))
    try:
        result = conn.execute("PRAGMA integrity_check").fetchone()
    finally:
        conn.close()

    if result and result[0] != "ok":
        log_error(f"Database integrity check failed for {database_path}: {result[0]}")
        return result[0]
    return None
