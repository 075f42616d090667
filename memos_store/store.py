"""Operator-facing entry point for the persistence subsystem.

Example:
    with Store(load_config()) as store:
        store.migrate()
        store.backup_to("/backups/memos.db")
        store.vacuum()
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Sequence, Union

from .backup import BackupEngine, SupportsOnlineBackup
from .catalog import ScriptCatalog
from .config import StoreConfig
from .context import Context
from .database import get_connection
from .enums import MigrationPath
from .errors import BackupSessionFailure
from .history import MigrationHistoryStore
from .logging_setup import log_info, setup_logging
from .migrator import MigrationObserver, Migrator
from .vacuum import DEFAULT_VACUUM_RULES, Vacuum, VacuumReport, VacuumRule


class Store:
    """Owns the main connection and the engines that share it."""

    def __init__(
        self,
        profile: StoreConfig,
        catalog: Optional[ScriptCatalog] = None,
        observer: Optional[MigrationObserver] = None,
        vacuum_rules: Sequence[VacuumRule] = DEFAULT_VACUUM_RULES,
    ):
        """Open the database described by profile.

        Raises:
            ConnectionAcquisitionFailure: If the database cannot be opened
            ScriptReadFailure: If the bundled script catalog is broken
        """
        self.profile = profile
        if profile.log_path or profile.debug_logging:
            setup_logging(profile.log_path, profile.debug_logging)

        catalog = catalog or ScriptCatalog()
        self.dsn = profile.resolve_dsn()
        self.conn = get_connection(self.dsn, profile.busy_timeout_ms)

        self.history = MigrationHistoryStore(self.conn)
        self.migrator = Migrator(
            self.conn, profile, catalog=catalog, history=self.history, observer=observer
        )
        self._vacuum = Vacuum(self.conn, vacuum_rules)

        # Backup strategy is fixed here, not probed per call
        self._backup: Optional[BackupEngine] = None
        if isinstance(self.conn, SupportsOnlineBackup):
            self._backup = BackupEngine(self._connect, profile.backup_pages_per_step)

        log_info(f"Opened {profile.mode} database at {self.dsn}")

    def _connect(self) -> sqlite3.Connection:
        return get_connection(self.dsn, self.profile.busy_timeout_ms)

    @property
    def supports_online_backup(self) -> bool:
        return self._backup is not None

    def migrate(self, ctx: Optional[Context] = None) -> MigrationPath:
        """Bring the schema up to the application version."""
        return self.migrator.migrate(ctx)

    def backup_to(self, path: Union[str, Path], ctx: Optional[Context] = None) -> Path:
        """Write a consistent online snapshot of the database to path."""
        if self._backup is None:
            raise BackupSessionFailure("db connection is not a sqlite backuper")
        return self._backup.backup_to(path, ctx)

    def vacuum(self, ctx: Optional[Context] = None) -> VacuumReport:
        """Delete orphaned rows and compact the database file."""
        return self._vacuum.run(ctx)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
