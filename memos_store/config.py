"""Store configuration (profile) for memos_store.

This module loads the persistence profile from ~/.memos/config.yaml.
The file is optional in spirit: it is auto-created with defaults on first
load, and a few environment variables override it:
  - MEMOS_MODE: run mode (prod, dev, demo)
  - MEMOS_DATA: data directory holding the database file
  - MEMOS_DSN: explicit database file path
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import yaml

from ._version import __version__
from .enums import Mode
from .logging_setup import log_error


DEFAULT_BUSY_TIMEOUT_MS = 10_000
"""Bounded wait on a locked database before SQLITE_BUSY is raised."""


@dataclass
class StoreConfig:
    """Persistence profile for one process.

    All settings except mode fall back to application defaults if unset.
    """

    mode: str = Mode.PROD.value
    """Run mode: prod bootstraps/migrates, dev rebuilds, demo rebuilds and seeds."""

    data_dir: Optional[str] = None
    """Directory holding the database file (default: ~/.memos)."""

    dsn: Optional[str] = None
    """Database file path (default: <data_dir>/memos_<mode>.db)."""

    version: Optional[str] = None
    """Application version to migrate to (default: package version)."""

    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
    """SQLite busy timeout applied to every connection."""

    backup_pages_per_step: int = -1
    """Pages copied per online backup step (-1 copies everything in one step)."""

    log_path: Optional[str] = None
    """Path to log file (default: ~/.memos/memos_store.log)."""

    debug_logging: bool = False
    """Enable DEBUG level logging (default: False)."""

    def __post_init__(self) -> None:
        if isinstance(self.mode, Mode):
            self.mode = self.mode.value
        valid = {m.value for m in Mode}
        if self.mode not in valid:
            raise ValueError(f"invalid mode {self.mode!r}, expected one of {sorted(valid)}")

    def is_dev(self) -> bool:
        """Return True for every non-production mode."""
        return self.mode != Mode.PROD.value

    def is_demo(self) -> bool:
        return self.mode == Mode.DEMO.value

    def resolve_data_dir(self) -> Path:
        return Path(self.data_dir).expanduser() if self.data_dir else Path.home() / ".memos"

    def resolve_dsn(self) -> str:
        """Get the database file path for this profile."""
        if self.dsn:
            return self.dsn
        return str(self.resolve_data_dir() / f"memos_{self.mode}.db")

    def current_version(self) -> str:
        """Get the application version the schema must match."""
        return self.version or __version__


def get_config_path() -> Path:
    """Get the path to the user's config file.

    Returns:
        Path to ~/.memos/config.yaml
    """
    return Path.home() / ".memos" / "config.yaml"


def apply_env_overrides(config: StoreConfig) -> StoreConfig:
    """Apply MEMOS_* environment overrides on top of file values."""
    mode = os.environ.get("MEMOS_MODE")
    data_dir = os.environ.get("MEMOS_DATA")
    dsn = os.environ.get("MEMOS_DSN")

    if mode:
        config.mode = mode
        config.__post_init__()
    if data_dir:
        config.data_dir = data_dir
    if dsn:
        config.dsn = dsn
    return config


def load_config(config_path: Optional[Path] = None) -> StoreConfig:
    """Load the store profile from ~/.memos/config.yaml.

    Auto-creates the config file with defaults if it doesn't exist. A file
    that cannot be read or parsed is logged and replaced by defaults; an
    invalid mode value is an error.

    Args:
        config_path: Alternate config file location

    Returns:
        StoreConfig with environment overrides applied
    """
    path = config_path or get_config_path()

    if not path.exists():
        create_example_config(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        log_error(f"Failed to read config {path}: {e}; using defaults")
        data = None

    if data and not isinstance(data, dict):
        log_error(f"Config {path} is not a mapping; using defaults")
        data = None

    if not data:
        return apply_env_overrides(StoreConfig())

    config = StoreConfig(
        mode=data.get("mode", Mode.PROD.value),
        data_dir=data.get("data_dir"),
        dsn=data.get("dsn"),
        version=data.get("version"),
        busy_timeout_ms=data.get("busy_timeout_ms", DEFAULT_BUSY_TIMEOUT_MS),
        backup_pages_per_step=data.get("backup_pages_per_step", -1),
        log_path=data.get("log_path"),
        debug_logging=data.get("debug_logging", False),
    )
    return apply_env_overrides(config)


def save_config(config: StoreConfig, config_path: Optional[Path] = None) -> bool:
    """Save the store profile to ~/.memos/config.yaml.

    Args:
        config: Configuration object to save
        config_path: Alternate config file location

    Returns:
        True if successful, False otherwise
    """
    path = config_path or get_config_path()

    # Exclude None values for cleaner YAML
    data = {k: v for k, v in asdict(config).items() if v is not None}

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        log_error(f"Failed to save config {path}: {e}")
        return False

    return True


def create_example_config(config_path: Optional[Path] = None) -> bool:
    """Create config file with all defaults.

    Returns:
        True if successful, False otherwise
    """
    return save_config(StoreConfig(), config_path)
