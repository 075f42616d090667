"""Demo data loader.

Seeding is not idempotent: the migration engine runs it only right after
a development bootstrap in demo mode, when every table is freshly created.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from .catalog import ScriptCatalog
from .context import Context
from .database import db_transaction, execute_statements
from .logging_setup import log_info


class SeedLoader:
    """Applies the catalog's seed scripts to a connection."""

    def __init__(self, conn: sqlite3.Connection, catalog: ScriptCatalog):
        self.conn = conn
        self.catalog = catalog

    def seed(self, ctx: Optional[Context] = None) -> int:
        """Execute every seed statement in file-name order, in one transaction.

        Args:
            ctx: Cancellation context

        Returns:
            Number of statements executed

        Raises:
            StatementExecutionFailure: If a seed statement fails (nothing is kept)
        """
        ctx = ctx or Context.background()
        total = 0
        with db_transaction(self.conn):
            for script in self.catalog.seed_scripts():
                total += execute_statements(self.conn, script.statements(), ctx, script.name)
        log_info(f"Seeded database with {total} statement(s)")
        return total
