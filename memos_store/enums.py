"""Enums for type-safe choices."""

from enum import Enum, IntEnum


class Mode(str, Enum):
    """Process run mode."""
    PROD = "prod"
    DEV = "dev"
    DEMO = "demo"


class SchemaKind(str, Enum):
    """Which full-schema snapshot to bootstrap from."""
    DEV = "dev"
    PROD = "prod"


class Ordering(IntEnum):
    """Result of comparing two versions."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


class MigrationPath(str, Enum):
    """Branch taken by a single migrate call."""
    DEV_BOOTSTRAP = "dev_bootstrap"
    PROD_BOOTSTRAP = "prod_bootstrap"
    PROD_INCREMENTAL = "prod_incremental"
    NOOP = "noop"
