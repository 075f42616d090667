"""Version management for the memos_store package.

The package version doubles as the application version that the migration
engine brings the database schema up to. It is read from:
1. importlib.metadata (for installed packages)
2. pyproject.toml (for development checkouts)
3. "unknown" if both fail; the migration engine rejects that value
"""

from pathlib import Path
from typing import Optional

DISTRIBUTION_NAME = "memos-store"


def _get_version_from_metadata() -> Optional[str]:
    """Attempt to get version from installed package metadata.

    Returns:
        Version string if package is installed, None otherwise
    """
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return None


def _get_version_from_pyproject() -> Optional[str]:
    """Attempt to read version from pyproject.toml.

    Returns:
        Version string if pyproject.toml exists and is parseable, None otherwise
    """
    try:
        import tomllib
    except ModuleNotFoundError:
        # Python < 3.11 has no tomllib; installed metadata covers that case
        return None

    pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
    if not pyproject_path.exists():
        return None

    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


def get_version() -> str:
    """Get memos_store version from the best available source.

    Priority:
    1. Installed package metadata (importlib.metadata)
    2. pyproject.toml parsing (development mode)
    3. "unknown" (fallback)

    Returns:
        Version string (e.g., "0.13.2" or "unknown")
    """
    version = _get_version_from_metadata()
    if version:
        return version

    version = _get_version_from_pyproject()
    if version:
        return version

    return "unknown"


# Cache the version for performance (read once per process)
__version__ = get_version()
