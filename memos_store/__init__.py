"""Schema migration, online backup and vacuum for the memos SQLite store."""
from ._version import __version__
from .logging_setup import setup_logging, log_info, log_error
from .enums import Mode, SchemaKind, Ordering, MigrationPath
from .errors import (
    StoreError,
    InvalidVersionFormat,
    ScriptReadFailure,
    StatementExecutionFailure,
    ConnectionAcquisitionFailure,
    BackupSessionFailure,
    HistoryPersistenceFailure,
    CompactionFailure,
    OperationCancelled,
)
from .versioning import (
    Version,
    parse_version, bucket_version,
    compare_versions, is_version_greater, is_version_greater_or_equal,
    minor_key, schema_version, sort_versions, latest_version,
)
from .config import (
    StoreConfig,
    load_config,
    save_config,
    get_config_path,
    create_example_config,
)
from .context import Context
from .database import (
    get_connection,
    db_transaction,
    execute_statements,
    integrity_check,
)
from .catalog import ScriptCatalog, Script, split_statements
from .history import MigrationHistory, MigrationHistoryFind, MigrationHistoryStore
from .seed_loader import SeedLoader
from .migrator import (
    Migrator,
    MigrationBucket,
    MigrationObserver,
    LoggingObserver,
)
from .backup import BackupEngine, SupportsOnlineBackup
from .vacuum import Vacuum, VacuumRule, VacuumReport, DEFAULT_VACUUM_RULES
from .store import Store
