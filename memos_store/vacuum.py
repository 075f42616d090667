"""Orphan cleanup and file compaction.

A vacuum pass has two independent failure domains:

1. Row cleanup: every VacuumRule deletes rows whose owner no longer exists.
   All rules run in one transaction; any failure rolls all of them back.
2. Compaction: SQLite `VACUUM` rewrites the file to reclaim free pages. It
   cannot run inside a transaction, so it runs only after step 1 committed;
   a failure here leaves the committed cleanup in place.

Rules run in order and each one sees the deletions of the ones before it.
The default order removes parents (memos, resources) before the tables
that point at them, so a memo dropped for a missing creator takes its pins,
relations and attachments with it in the same pass.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .context import Context
from .database import db_transaction
from .errors import CompactionFailure, StatementExecutionFailure
from .logging_setup import log_error, log_info, log_timing


@dataclass(frozen=True)
class VacuumRule:
    """One orphan cleanup: a DELETE statement and a name for reporting."""

    name: str
    statement: str


DEFAULT_VACUUM_RULES: tuple[VacuumRule, ...] = (
    VacuumRule(
        "memo",
        "DELETE FROM memo WHERE creator_id NOT IN (SELECT id FROM user)",
    ),
    VacuumRule(
        "resource",
        "DELETE FROM resource WHERE creator_id NOT IN (SELECT id FROM user)",
    ),
    VacuumRule(
        "user_setting",
        "DELETE FROM user_setting WHERE user_id NOT IN (SELECT id FROM user)",
    ),
    VacuumRule(
        "memo_organizer",
        "DELETE FROM memo_organizer "
        "WHERE memo_id NOT IN (SELECT id FROM memo) OR user_id NOT IN (SELECT id FROM user)",
    ),
    VacuumRule(
        "memo_relation",
        "DELETE FROM memo_relation "
        "WHERE memo_id NOT IN (SELECT id FROM memo) OR related_memo_id NOT IN (SELECT id FROM memo)",
    ),
    VacuumRule(
        "memo_resource",
        "DELETE FROM memo_resource "
        "WHERE memo_id NOT IN (SELECT id FROM memo) OR resource_id NOT IN (SELECT id FROM resource)",
    ),
    VacuumRule(
        "tag",
        "DELETE FROM tag WHERE creator_id NOT IN (SELECT id FROM user)",
    ),
)
"""Cleanup rules for the bundled schema, parents first."""


@dataclass
class VacuumReport:
    """Outcome of one vacuum pass."""

    deleted: dict[str, int] = field(default_factory=dict)
    """Rows deleted per rule name."""

    compacted: bool = False
    """Whether the file compaction step succeeded."""

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())


class Vacuum:
    """Runs cleanup rules and compaction on one connection."""

    def __init__(self, conn: sqlite3.Connection, rules: Sequence[VacuumRule] = DEFAULT_VACUUM_RULES):
        self.conn = conn
        self.rules = tuple(rules)

    @log_timing
    def run(self, ctx: Optional[Context] = None) -> VacuumReport:
        """Delete orphaned rows, commit, then compact the database file.

        Args:
            ctx: Cancellation context, checked between rules

        Returns:
            VacuumReport with per-rule deletion counts

        Raises:
            StatementExecutionFailure: If a rule fails (no rows are deleted)
            OperationCancelled: If ctx is cancelled before compaction (no rows are deleted)
            CompactionFailure: If VACUUM fails (cleanup stays committed)
        """
        ctx = ctx or Context.background()
        report = VacuumReport()

        with db_transaction(self.conn):
            for rule in self.rules:
                ctx.check("vacuum")
                try:
                    cursor = self.conn.execute(rule.statement)
                except sqlite3.Error as e:
                    log_error(f"Vacuum rule {rule.name} failed: {e}")
                    raise StatementExecutionFailure(f"vacuum {rule.name} failed ({e})", rule.statement) from e
                report.deleted[rule.name] = max(cursor.rowcount, 0)
            ctx.check("vacuum")

        log_info(f"Vacuum removed {report.total_deleted} orphaned row(s)")

        try:
            self._compact()
        except sqlite3.Error as e:
            log_error(f"Database file compaction failed: {e}")
            raise CompactionFailure(f"failed to compact database file: {e}", report) from e

        report.compacted = True
        return report

    def _compact(self) -> None:
        self.conn.execute("VACUUM")
