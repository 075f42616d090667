"""Bundled SQL script catalog.

Scripts ship inside the package and are laid out as:

    migration/dev/LATEST__SCHEMA.sql        full schema, rebuilt on every dev start
    migration/prod/LATEST__SCHEMA.sql       full schema for first production start
    migration/prod/<major>.<minor>/*.sql    incremental bucket per minor version
    seed/*.sql                              demo data

Everything is read once when the catalog is built and handed out as bytes
and tuples afterwards. File names control execution order (`00__x.sql`,
`01__y.sql`, ...); scripts hold `;`-separated statements.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from .enums import SchemaKind
from .errors import ScriptReadFailure
from .logging_setup import log_debug, log_error
from .versioning import bucket_version

LATEST_SCHEMA_FILE_NAME = "LATEST__SCHEMA.sql"
MIGRATION_DIR = "migration"
SEED_DIR = "seed"
MINOR_DIR_RE = re.compile(r"[0-9]+\.[0-9]+")

# Comments only matter for deciding whether a segment is empty
_LINE_COMMENT_RE = re.compile(r"--[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def default_catalog_root() -> Path:
    """Directory holding the bundled migration/ and seed/ trees."""
    return Path(__file__).resolve().parent


def split_statements(text: str) -> list[str]:
    """Split a script into statements on `;`.

    Segments that are empty once whitespace and SQL comments are removed
    are skipped. A `;` inside a string literal, a comment or a trigger
    body is not supported; bundled scripts avoid all three.

    Args:
        text: Script text

    Returns:
        Non-empty statements in script order
    """
    statements = []
    for segment in text.split(";"):
        bare = _BLOCK_COMMENT_RE.sub("", segment)
        bare = _LINE_COMMENT_RE.sub("", bare)
        if not bare.strip():
            continue
        statements.append(segment.strip())
    return statements


@dataclass(frozen=True)
class Script:
    """One bundled SQL file."""

    name: str
    body: bytes

    @property
    def text(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ScriptReadFailure(f"script {self.name} is not valid UTF-8") from e

    def statements(self) -> list[str]:
        return split_statements(self.text)


def _read_script(path: Path, root: Path) -> Script:
    try:
        body = path.read_bytes()
    except OSError as e:
        log_error(f"Failed to read script {path}: {e}")
        raise ScriptReadFailure(f"failed to read script file {path}") from e
    return Script(name=path.relative_to(root).as_posix(), body=body)


def _read_sorted(directory: Path, root: Path) -> tuple[Script, ...]:
    paths = sorted(directory.glob("*.sql"), key=lambda p: p.name)
    return tuple(_read_script(p, root) for p in paths)


class ScriptCatalog:
    """Read-only view over a migration/seed script tree."""

    def __init__(self, root: Optional[Path] = None):
        """Load every script under root.

        Args:
            root: Directory containing migration/ and seed/ (default: bundled)

        Raises:
            ScriptReadFailure: If the migration tree is missing or a file is unreadable
        """
        self.root = Path(root) if root is not None else default_catalog_root()
        migration_root = self.root / MIGRATION_DIR
        if not migration_root.is_dir():
            raise ScriptReadFailure(f"migration directory not found: {migration_root}")

        schemas: dict[SchemaKind, Script] = {}
        for kind in SchemaKind:
            path = migration_root / kind.value / LATEST_SCHEMA_FILE_NAME
            if path.is_file():
                schemas[kind] = _read_script(path, self.root)
        self._schemas: Mapping[SchemaKind, Script] = MappingProxyType(schemas)

        buckets: dict[str, tuple[Script, ...]] = {}
        prod_root = migration_root / SchemaKind.PROD.value
        if prod_root.is_dir():
            for entry in prod_root.iterdir():
                if entry.is_dir() and MINOR_DIR_RE.fullmatch(entry.name):
                    buckets[entry.name] = _read_sorted(entry, self.root)
        self._bucket_keys = tuple(sorted(buckets, key=bucket_version))
        self._buckets: Mapping[str, tuple[Script, ...]] = MappingProxyType(buckets)

        seed_root = self.root / SEED_DIR
        self._seeds = _read_sorted(seed_root, self.root) if seed_root.is_dir() else ()

        log_debug(
            f"Loaded script catalog from {self.root}: "
            f"{len(self._bucket_keys)} bucket(s), {len(self._seeds)} seed script(s)"
        )

    def latest_full_schema(self, kind: SchemaKind) -> bytes:
        """Get the create-everything script for dev or prod.

        Raises:
            ScriptReadFailure: If the snapshot is not bundled
        """
        return self.latest_schema_script(kind).body

    def latest_schema_script(self, kind: SchemaKind) -> Script:
        """Same as latest_full_schema, with the file name kept for diagnostics."""
        kind = SchemaKind(kind)
        try:
            return self._schemas[kind]
        except KeyError:
            raise ScriptReadFailure(
                f"failed to read latest schema file: {MIGRATION_DIR}/{kind.value}/{LATEST_SCHEMA_FILE_NAME}"
            ) from None

    def minor_buckets(self) -> tuple[str, ...]:
        """Minor keys of all incremental buckets, ascending by version."""
        return self._bucket_keys

    def scripts_for(self, minor: str) -> tuple[Script, ...]:
        """Scripts of one bucket in file-name order.

        Raises:
            ScriptReadFailure: If the bucket does not exist
        """
        try:
            return self._buckets[minor]
        except KeyError:
            raise ScriptReadFailure(f"no migration bucket for minor version {minor}") from None

    def seed_scripts(self) -> tuple[Script, ...]:
        """Seed scripts in file-name order."""
        return self._seeds
