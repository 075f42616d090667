"""Online backup of a live SQLite database.

Pages are streamed from a dedicated source connection into a temporary file
next to the destination through SQLite's backup API. Other connections keep
reading and writing throughout; SQLite restarts the copy if the source
changes between steps, so the result is consistent as of one point in time.
The copy is integrity-checked and then renamed into place, so a failed
backup never leaves a file at the destination path.
"""

from __future__ import annotations

import os
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from .context import Context
from .database import integrity_check
from .errors import BackupSessionFailure, ConnectionAcquisitionFailure, OperationCancelled
from .logging_setup import log_debug, log_error, log_info, log_timing


@runtime_checkable
class SupportsOnlineBackup(Protocol):
    """Connection capability: step-wise page copy into another connection."""

    def backup(
        self,
        target: Any,
        *,
        pages: int = -1,
        progress: Optional[Callable[[int, int, int], object]] = None,
        name: str = "main",
        sleep: float = 0.250,
    ) -> None:
        ...


class BackupEngine:
    """Copies the database behind `connect` to a file."""

    def __init__(self, connect: Callable[[], sqlite3.Connection], pages_per_step: int = -1):
        """
        Args:
            connect: Opens a new dedicated connection to the source database
            pages_per_step: Pages copied per step; -1 copies everything in one step
        """
        if pages_per_step == 0:
            raise ValueError("pages_per_step must be positive or -1")
        self._connect = connect
        self.pages_per_step = pages_per_step

    @log_timing
    def backup_to(self, target_path: Union[str, Path], ctx: Optional[Context] = None) -> Path:
        """Write a consistent snapshot of the database to target_path.

        Args:
            target_path: Destination file; replaced atomically on success
            ctx: Cancellation context, checked after every copy step

        Returns:
            The destination path

        Raises:
            ConnectionAcquisitionFailure: If no dedicated source connection can be opened
            BackupSessionFailure: If any copy step, the final check or the rename fails
            OperationCancelled: If ctx is cancelled mid-copy
        """
        ctx = ctx or Context.background()
        ctx.check("backup")
        target = Path(target_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupSessionFailure(f"fail to create backup directory {target.parent}") from e
        tmp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")

        source = self._acquire()
        try:
            log_info(f"Starting online backup to {target}")
            self._copy(source, tmp_path, ctx)

            problem = integrity_check(tmp_path)
            if problem is not None:
                raise BackupSessionFailure(f"backup failed integrity check: {problem}")

            # A stale WAL beside the target would be replayed onto the new snapshot
            for side_file in _side_files(target):
                side_file.unlink(missing_ok=True)
            os.replace(tmp_path, target)
        except sqlite3.Error as e:
            log_error(f"Backup to {target} failed: {e}")
            raise BackupSessionFailure(f"fail to execute sqlite backup: {e}") from e
        except OSError as e:
            log_error(f"Backup to {target} failed: {e}")
            raise BackupSessionFailure(f"fail to publish backup file {target}") from e
        finally:
            source.close()
            _remove_quietly(tmp_path)

        log_info(f"Backup written to {target}")
        return target

    def _acquire(self) -> sqlite3.Connection:
        try:
            conn = self._connect()
        except ConnectionAcquisitionFailure:
            raise
        except (OSError, sqlite3.Error) as e:
            raise ConnectionAcquisitionFailure("fail to open new connection") from e
        if not isinstance(conn, SupportsOnlineBackup):
            conn.close()
            raise BackupSessionFailure("db connection does not support online backup")
        return conn

    def _copy(self, source: sqlite3.Connection, tmp_path: Path, ctx: Context) -> None:
        def on_step(status: int, remaining: int, total: int) -> None:
            log_debug(f"Backup step: {total - remaining}/{total} pages copied")
            ctx.check("backup")

        dest = sqlite3.connect(str(tmp_path))
        try:
            source.backup(dest, pages=self.pages_per_step, progress=on_step)
        except OperationCancelled:
            log_error("Backup cancelled; discarding partial copy")
            raise
        finally:
            dest.close()


def _side_files(path: Path) -> tuple[Path, ...]:
    return (Path(f"{path}-wal"), Path(f"{path}-shm"), Path(f"{path}-journal"))


def _remove_quietly(path: Path) -> None:
    """Remove a temporary backup file and its journal side files if present."""
    for candidate in (path, *_side_files(path)):
        try:
            candidate.unlink(missing_ok=True)
        except OSError as e:
            log_debug(f"Could not remove {candidate}: {e}")
