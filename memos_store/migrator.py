"""Version-ordered schema migration engine.

## How a migrate call decides what to do

1. **Development** (`dev`/`demo` mode): run the dev full-schema script, which
   drops and recreates every table, then seed demo data in `demo` mode.
   History is ignored.
2. **Production, no history**: run the prod full-schema script and record
   the current application version, in one transaction.
3. **Production, up to date**: the schema version of the application
   (`major.minor.0`) is not newer than the latest recorded version. Nothing
   runs; patch releases never carry schema changes.
4. **Production, behind**: apply every bucket newer than the latest recorded
   version and not newer than the application version, ascending.

## Buckets

A bucket is the `migration/prod/<major>.<minor>/` directory of the script
catalog. Its scripts run in file-name order and, together with the history
row for `<major>.<minor>.0`, inside one transaction. A failing bucket leaves
no trace; buckets applied before it stay recorded, so the next call resumes
from there.

## Design Decisions

- **One-way migrations**: no downgrade support
- **No caching**: history is re-read on every call
- **Single writer**: no locking against other migrating processes
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from .catalog import Script, ScriptCatalog
from .config import StoreConfig
from .context import Context
from .database import db_transaction, execute_statements
from .enums import MigrationPath, SchemaKind
from .errors import StoreError
from .history import MigrationHistoryStore
from .logging_setup import log_debug, log_error, log_info, log_timing, log_warning
from .seed_loader import SeedLoader
from .versioning import (
    Version,
    bucket_version,
    is_version_greater,
    is_version_greater_or_equal,
    latest_version,
    parse_version,
    schema_version,
)


# ========== Observability ==========

class MigrationObserver:
    """Progress callbacks for incremental migration; default methods do nothing."""

    def on_bucket_start(self, version: str) -> None:
        pass

    def on_bucket_done(self, version: str) -> None:
        pass


class LoggingObserver(MigrationObserver):
    """Reports bucket progress to the log file."""

    def on_bucket_start(self, version: str) -> None:
        log_info(f"  Applying migration for {version}")

    def on_bucket_done(self, version: str) -> None:
        log_info(f"  [OK] Migration {version} completed successfully")


# ========== Buckets ==========

@dataclass(frozen=True)
class MigrationBucket:
    """Incremental scripts for one minor version."""

    minor: str
    scripts: tuple[Script, ...]

    @property
    def version(self) -> str:
        return str(self.parsed_version)

    @property
    def parsed_version(self) -> Version:
        return bucket_version(self.minor)

    @property
    def description(self) -> str:
        names = ", ".join(s.name.rsplit("/", 1)[-1] for s in self.scripts) or "no scripts"
        return f"{self.minor} ({names})"

    def upgrade(self, conn: sqlite3.Connection, ctx: Context) -> int:
        """Execute every statement of every script in order.

        Returns:
            Number of statements executed
        """
        total = 0
        for script in self.scripts:
            total += execute_statements(conn, script.statements(), ctx, script.name)
        return total


def get_all_buckets(catalog: ScriptCatalog) -> List[MigrationBucket]:
    """Get all buckets in version order.

    Returns:
        List of MigrationBucket sorted by minor version
    """
    return [MigrationBucket(minor, catalog.scripts_for(minor)) for minor in catalog.minor_buckets()]


def get_pending_buckets(
    catalog: ScriptCatalog, latest_recorded: str, current: str
) -> List[MigrationBucket]:
    """Buckets newer than latest_recorded and not newer than current."""
    return [
        bucket for bucket in get_all_buckets(catalog)
        if is_version_greater(bucket.parsed_version, latest_recorded)
        and is_version_greater_or_equal(current, bucket.parsed_version)
    ]


# ========== Engine ==========

class Migrator:
    """Brings one database connection to the application's schema version."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        profile: StoreConfig,
        catalog: Optional[ScriptCatalog] = None,
        history: Optional[MigrationHistoryStore] = None,
        observer: Optional[MigrationObserver] = None,
    ):
        self.conn = conn
        self.profile = profile
        self.catalog = catalog or ScriptCatalog()
        self.history = history or MigrationHistoryStore(conn)
        self.observer = observer or LoggingObserver()

    @log_timing
    def migrate(self, ctx: Optional[Context] = None) -> MigrationPath:
        """Run whichever migration path the database needs.

        Args:
            ctx: Cancellation context, checked between statements

        Returns:
            The path taken

        Raises:
            StoreError: Any failure; earlier completed buckets stay recorded
        """
        ctx = ctx or Context.background()
        try:
            if self.profile.is_dev():
                return self._non_prod_migrate(ctx)
            return self._prod_migrate(ctx)
        except StoreError as e:
            log_error(f"Migration failed: {e}")
            raise
        except sqlite3.Error as e:
            log_error(f"Migration failed: {e}")
            raise StoreError(f"migration transaction failed: {e}") from e

    def _non_prod_migrate(self, ctx: Context) -> MigrationPath:
        schema = self.catalog.latest_schema_script(SchemaKind.DEV)
        log_info(f"Rebuilding {self.profile.mode} database from latest schema")
        execute_statements(self.conn, schema.statements(), ctx, schema.name)

        if self.profile.is_demo():
            SeedLoader(self.conn, self.catalog).seed(ctx)
        return MigrationPath.DEV_BOOTSTRAP

    def _prod_migrate(self, ctx: Context) -> MigrationPath:
        current = self.profile.current_version()
        parse_version(current)

        history = self.history.list()
        if not history:
            self._bootstrap(current, ctx)
            return MigrationPath.PROD_BOOTSTRAP

        latest = latest_version(h.version for h in history)
        log_info(f"Current database schema version: {latest}")
        if not is_version_greater(schema_version(current), latest):
            log_info(f"Database schema is up to date (application version {current})")
            return MigrationPath.NOOP

        pending = get_pending_buckets(self.catalog, latest, current)
        log_info(f"Running {len(pending)} pending database migration(s)...")
        for bucket in pending:
            self._apply_bucket(bucket, ctx)

        if pending:
            log_info(f"Database schema updated to version {pending[-1].version}")
        else:
            log_warning(f"No migration bucket for {current}; history stays at {latest}")
        return MigrationPath.PROD_INCREMENTAL

    def _bootstrap(self, current: str, ctx: Context) -> None:
        schema = self.catalog.latest_schema_script(SchemaKind.PROD)
        log_info(f"Bootstrapping database schema at version {current}")
        with db_transaction(self.conn):
            execute_statements(self.conn, schema.statements(), ctx, schema.name)
            self.history.upsert(current)
        log_info(f"Database schema initialized (version {current})")

    def _apply_bucket(self, bucket: MigrationBucket, ctx: Context) -> None:
        self.observer.on_bucket_start(bucket.version)
        log_debug(f"  Bucket {bucket.description}")
        try:
            with db_transaction(self.conn):
                bucket.upgrade(self.conn, ctx)
                self.history.upsert(bucket.version)
        except StoreError as e:
            log_error(f"  [FAILED] Migration {bucket.version} failed: {e}")
            log_error(f"  Stopping at migration {bucket.version}. Previous migrations were applied successfully.")
            raise
        self.observer.on_bucket_done(bucket.version)
