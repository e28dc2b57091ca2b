"""Core module exports."""

from rxmigrate.core.errors import (
    ConfigError,
    ErrorCode,
    FileAccessError,
    InternalError,
    MigrationError,
    PatternError,
    RunAbortedError,
    ScanError,
)
from rxmigrate.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from rxmigrate.core.progress import pluralize, status

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "FileAccessError",
    "InternalError",
    "MigrationError",
    "PatternError",
    "RunAbortedError",
    "ScanError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "pluralize",
    "status",
]
