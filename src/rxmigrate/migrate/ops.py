"""Migration orchestrator.

A run moves through fixed phases:

    Discover -> PreValidate -> Backup -> Convert -> PostValidate
             -> HandleFailures -> Report

All mutable run state lives on a ``RunContext`` created per call, so two
runs never share backups or counters. Any exception that escapes a phase
restores every backup taken so far before it propagates.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from rxmigrate.config.models import MigrationConfig
from rxmigrate.core.errors import FileAccessError, MigrationError, RunAbortedError
from rxmigrate.core.excludes import is_excluded
from rxmigrate.core.logging import clear_run_id, configure_logging, get_logger, set_run_id
from rxmigrate.core.progress import pluralize, status
from rxmigrate.generate.models import GenerationResult
from rxmigrate.generate.ops import AssemblyOptions, convert_source
from rxmigrate.migrate.files import (
    create_backup,
    discover_store_files,
    read_text,
    restore_backup,
    write_text,
)
from rxmigrate.migrate.report import ExcludedFile, MigrationReport
from rxmigrate.validate.models import ValidationResult
from rxmigrate.validate.ops import check_program, validate_post_conversion, validate_pre_conversion

log = get_logger(__name__)

HIGH_FAILURE_RATIO = 0.5
NO_METHODS_WARNING = "No async methods found to convert"


@dataclass
class RunContext:
    """State for one migration run."""

    config: MigrationConfig
    run_id: str
    options: AssemblyOptions
    report: MigrationReport
    backups: dict[Path, Path] = field(default_factory=dict)

    @property
    def writes_enabled(self) -> bool:
        return not self.config.preview_only

    def display(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.root_directory).as_posix()
        except ValueError:
            return str(path)


# =============================================================================
# Phases
# =============================================================================


def _discover(ctx: RunContext) -> list[Path]:
    config = ctx.config
    root = config.root_directory
    files: list[Path] = []
    if config.target_files:
        for target in config.target_files:
            path = target if target.is_absolute() else root / target
            if is_excluded(ctx.display(path), config.exclude_patterns):
                log.info("target_excluded", path=str(path))
                continue
            files.append(path)
    else:
        files = discover_store_files(root, config.exclude_patterns, config.file_pattern)
    ctx.report.stats.total_files = len(files)
    status(f"Found {pluralize(len(files), 'store file')} under {root}")
    log.info("files_discovered", count=len(files), root=str(root))
    return files


def _batches(paths: list[Path], size: int) -> list[list[Path]]:
    return [paths[offset : offset + size] for offset in range(0, len(paths), size)]


async def _pre_validate(ctx: RunContext, files: list[Path]) -> list[Path]:
    results: list[ValidationResult] = []
    for batch in _batches(files, ctx.config.max_parallel_files):
        results.extend(
            await asyncio.gather(
                *(asyncio.to_thread(validate_pre_conversion, path, ctx.config) for path in batch)
            )
        )
    targets: list[Path] = []
    for path, result in zip(files, results, strict=True):
        if result.is_valid:
            targets.append(path)
            continue
        reasons = tuple(str(issue) for issue in result.errors)
        ctx.report.excluded.append(ExcludedFile(ctx.display(path), reasons))
        ctx.report.stats.excluded_files += 1
        log.warning("file_excluded", path=str(path), reasons=list(reasons))
        if ctx.config.stop_on_first_error:
            raise RunAbortedError.stopped_on_error(str(path), reasons[0])
    if ctx.report.excluded:
        status(f"Excluded {pluralize(len(ctx.report.excluded), 'file')}", style="warning")
    return targets


async def _backup(ctx: RunContext, targets: list[Path]) -> None:
    if not (ctx.config.create_backups and ctx.writes_enabled):
        return
    for batch in _batches(targets, ctx.config.max_parallel_files):
        backups = await asyncio.gather(*(create_backup(path) for path in batch))
        ctx.backups.update(zip(batch, backups, strict=True))
    log.info("backups_created", count=len(ctx.backups))


async def _convert_file(ctx: RunContext, path: Path) -> GenerationResult:
    """Convert one file; problems are recorded on the result, never raised."""
    label = ctx.display(path)
    try:
        text = await read_text(path)
    except MigrationError as e:
        result = GenerationResult(path=label, success=False, original_code="", converted_code="")
        result.errors.append(e.message)
        return result

    result = convert_source(text, label, ctx.options)
    if not result.conversions and not result.failures:
        result.warnings.append(NO_METHODS_WARNING)
        return result

    if result.methods_converted:
        validation = validate_post_conversion(label, result.converted_code, result.conversions)
        result.validation = validation
        result.warnings.extend(str(issue) for issue in validation.warnings)
        for issue in validation.errors:
            result.mark_failed(str(issue))

    if result.success and result.changed and ctx.writes_enabled:
        try:
            await write_text(path, result.converted_code)
        except MigrationError as e:
            result.mark_failed(e.message)
    return result


def _record(ctx: RunContext, result: GenerationResult) -> None:
    stats = ctx.report.stats
    ctx.report.results.append(result)
    stats.processed_files += 1
    stats.total_methods += result.methods_converted + result.methods_skipped
    stats.converted_methods += result.methods_converted
    stats.skipped_methods += result.methods_skipped
    stats.wrappers_generated += result.wrappers_generated
    if result.success:
        stats.successful_files += 1
        converted = pluralize(result.methods_converted, "method")
        status(f"{result.path}: {converted} converted", indent=2)
    else:
        stats.failed_files += 1
        status(f"{result.path}: {result.errors[0]}", style="error", indent=2)


async def _convert(ctx: RunContext, targets: list[Path]) -> None:
    size = ctx.config.max_parallel_files
    for batch in _batches(targets, size):
        results = await asyncio.gather(*(_convert_file(ctx, path) for path in batch))
        for path, result in zip(batch, results, strict=True):
            _record(ctx, result)
            if not result.success and ctx.config.stop_on_first_error:
                raise RunAbortedError.stopped_on_error(str(path), result.errors[0])


async def _handle_failures(ctx: RunContext, targets: list[Path]) -> None:
    stats = ctx.report.stats
    if stats.processed_files and stats.failed_files / stats.processed_files > HIGH_FAILURE_RATIO:
        log.error(
            "high_failure_rate",
            failed=stats.failed_files,
            processed=stats.processed_files,
        )
    if not ctx.writes_enabled:
        return
    for path, result in zip(targets, ctx.report.results, strict=True):
        backup = ctx.backups.get(path)
        if not result.success and backup is not None:
            await restore_backup(path, backup)
            ctx.report.restored_files.append(ctx.display(path))
            log.info("file_restored", path=str(path), backup=str(backup))


async def _restore_all(ctx: RunContext) -> None:
    for path, backup in ctx.backups.items():
        try:
            await restore_backup(path, backup)
        except MigrationError as e:
            log.error("restore_failed", path=str(path), error=str(e))
            continue
        ctx.report.restored_files.append(ctx.display(path))
    if ctx.backups:
        status(f"Restored {pluralize(len(ctx.backups), 'file')} from backup", style="warning")


def _finish(ctx: RunContext, started: float) -> None:
    report = ctx.report
    report.stats.duration_seconds = time.monotonic() - started
    summary = report.summary
    log.info(
        "migration_finished",
        overall_success=summary.overall_success,
        **report.stats.to_dict(),
    )
    output = ctx.config.report_output_path
    if output is None:
        return
    try:
        report.write(output, ctx.config.report_format)
    except FileAccessError as e:
        log.error("report_write_failed", path=str(output), error=str(e))
        status(f"Could not write report to {output}: {e.message}", style="error")
        return
    status(f"Report written to {output}", style="success")


# =============================================================================
# Public API
# =============================================================================


async def run_migration(config: MigrationConfig) -> MigrationReport:
    """Migrate every store file ``config`` selects.

    Returns the report for the run. Discovery or backup failures, and an
    abort under ``stop_on_first_error``, propagate after all backups taken
    so far are restored; the report is still persisted when an output path
    is configured.
    """
    configure_logging(config=config.logging, verbose=config.verbose_logging)
    run_id = set_run_id()
    started = time.monotonic()
    ctx = RunContext(
        config=config,
        run_id=run_id,
        options=AssemblyOptions.from_config(config),
        report=MigrationReport(
            run_id=run_id,
            started_at=datetime.now(UTC),
            preview_only=config.preview_only,
        ),
    )
    log.info("migration_started", root=str(config.root_directory), preview=config.preview_only)

    try:
        files = _discover(ctx)
        targets = await _pre_validate(ctx, files)
        await _backup(ctx, targets)
        status(f"Converting {pluralize(len(targets), 'file')}")
        await _convert(ctx, targets)
        await _handle_failures(ctx, targets)
        if config.validation.check_program:
            ctx.report.program_check = await check_program(config.root_directory, config)
    except Exception as e:
        ctx.report.aborted = str(e)
        log.error("migration_aborted", error=str(e))
        await _restore_all(ctx)
        raise
    finally:
        _finish(ctx, started)
        clear_run_id()

    return ctx.report
