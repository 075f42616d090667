"""Error kinds raised by the memos_store persistence subsystem.

Every failure aborts the current top-level call and reaches the caller as
one of these exceptions, chained to the underlying sqlite3/OS error.
Nothing here is retried internally.
"""

from __future__ import annotations

from typing import Any, Optional


class StoreError(RuntimeError):
    """Base class for memos_store errors."""


class InvalidVersionFormat(StoreError, ValueError):
    """Raised when a version string is not <uint>.<uint>.<uint>."""


class ScriptReadFailure(StoreError):
    """Raised when a bundled SQL script is missing or unreadable.

    Always a packaging defect: the catalog is fixed at build time.
    """


class StatementExecutionFailure(StoreError):
    """Raised when a SQL statement fails; aborts the current unit of work."""

    def __init__(self, message: str, statement: str, script: Optional[str] = None):
        super().__init__(message)
        self.statement = statement
        self.script = script

    def __str__(self) -> str:
        where = f" in {self.script}" if self.script else ""
        return f"{self.args[0]}{where}: {self.statement.strip()}"


class ConnectionAcquisitionFailure(StoreError):
    """Raised when a dedicated database connection cannot be opened."""


class BackupSessionFailure(StoreError):
    """Raised when the online backup protocol fails at any step."""


class HistoryPersistenceFailure(StoreError):
    """Raised when migration history cannot be read or written."""


class CompactionFailure(StoreError):
    """Raised when file compaction fails after row cleanup was committed.

    Attributes:
        report: The committed cleanup report (rows are already deleted)
    """

    def __init__(self, message: str, report: Any):
        super().__init__(message)
        self.report = report


class OperationCancelled(StoreError):
    """Raised when a caller's deadline passes or cancellation is requested."""
