"""Migrate module - batch orchestration, backups and reporting."""

from rxmigrate.migrate.files import backup_path_for, discover_store_files
from rxmigrate.migrate.ops import RunContext, run_migration
from rxmigrate.migrate.report import (
    ExcludedFile,
    ManualReviewItem,
    MigrationReport,
    MigrationStats,
    MigrationSummary,
)

__all__ = [
    "ExcludedFile",
    "ManualReviewItem",
    "MigrationReport",
    "MigrationStats",
    "MigrationSummary",
    "RunContext",
    "backup_path_for",
    "discover_store_files",
    "run_migration",
]
