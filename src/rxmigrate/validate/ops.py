"""Validation checkpoints around a conversion.

Three checkpoints share one result shape:

- ``validate_pre_conversion``: is this file worth converting at all?
- ``validate_post_conversion``: does the converted text hold together?
- ``check_program``: does the whole project still type-check?

Errors block a file; warnings and info are reported only.
"""

from __future__ import annotations

import asyncio
import json
import re
import shutil
import time
from collections.abc import Sequence
from pathlib import Path

from rxmigrate.config import constants as c
from rxmigrate.config.models import MigrationConfig, ValidationConfig
from rxmigrate.core.errors import ErrorCode, MigrationError
from rxmigrate.core.logging import get_logger
from rxmigrate.generate.models import ConversionRecord
from rxmigrate.imports.ops import parse_imports, validate_imports
from rxmigrate.scan.models import PatternType
from rxmigrate.scan.ops import count_async_methods, read_source, validate_store_structure
from rxmigrate.scan.parser import parse_typescript
from rxmigrate.validate.models import ValidationResult
from rxmigrate.validate.parsers import parse_tsc

log = get_logger(__name__)

_LOADING_REFERENCE = re.compile(r"loading", re.IGNORECASE)
_ERROR_RECOVERY = (
    "catchError",
    c.OPTIMISTIC_HELPER,
    c.BULK_HELPER,
)


# =============================================================================
# Pre-conversion
# =============================================================================


def _find_manifest(start: Path, name: str, stop: Path | None) -> Path | None:
    """Walk up from ``start`` until ``name`` is found or ``stop`` is passed."""
    current = start if start.is_dir() else start.parent
    stop_resolved = stop.resolve() if stop is not None else None
    for candidate in (current, *current.parents):
        manifest = candidate / name
        if manifest.is_file():
            return manifest
        if stop_resolved is not None and candidate.resolve() == stop_resolved:
            break
    return None


def _check_dependencies(
    path: Path, root: Path | None, settings: ValidationConfig, result: ValidationResult
) -> None:
    manifest = _find_manifest(path, settings.manifest_name, root)
    if manifest is None:
        result.warn(
            "dependency-error",
            f"No {settings.manifest_name} found; cannot confirm required dependencies",
            path=str(path),
            code=ErrorCode.DEPENDENCY_MISSING.name,
        )
        return

    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        result.warn(
            "dependency-error",
            f"Could not read {manifest}: {e}",
            path=str(manifest),
            code=ErrorCode.FILE_UNREADABLE.name,
        )
        return
    if not isinstance(data, dict):
        result.warn("dependency-error", f"{manifest} is not a JSON object", path=str(manifest))
        return

    declared: set[str] = set()
    for section in ("dependencies", "devDependencies", "peerDependencies"):
        block = data.get(section)
        if isinstance(block, dict):
            declared.update(block)
    for dependency in settings.required_dependencies:
        if dependency not in declared:
            result.error(
                "dependency-error",
                f"Required dependency '{dependency}' is not declared in {manifest.name}",
                path=str(manifest),
                code=ErrorCode.DEPENDENCY_MISSING.name,
                suggestion=f"npm install {dependency}",
            )


def validate_pre_conversion(path: Path, config: MigrationConfig) -> ValidationResult:
    """Decide whether ``path`` can be converted.

    Checks, in order: the file exists and is a regular file, carries the
    store suffix, is not oversized, parses cleanly, contains async methods,
    and lives in a project that declares the reactive dependencies.
    """
    started = time.perf_counter()
    settings = config.validation
    result = ValidationResult()
    where = str(path)

    if not path.exists():
        result.error(
            "file-error", "File does not exist", path=where, code=ErrorCode.FILE_NOT_FOUND.name
        )
        result.duration_seconds = time.perf_counter() - started
        return result
    if not path.is_file():
        result.error(
            "file-error", "Not a regular file", path=where, code=ErrorCode.FILE_UNREADABLE.name
        )
        result.duration_seconds = time.perf_counter() - started
        return result

    if not path.name.endswith(c.STORE_FILE_SUFFIX):
        result.warn(
            "file-error",
            f"File name does not end with {c.STORE_FILE_SUFFIX}",
            path=where,
        )
    size = path.stat().st_size
    if size > settings.max_file_bytes:
        result.warn(
            "file-error",
            f"Large file ({size // 1024} KB); conversion may be slow",
            path=where,
        )

    try:
        text = read_source(path)
    except MigrationError as e:
        result.error("file-error", e.message, path=where, code=e.error_name)
        result.duration_seconds = time.perf_counter() - started
        return result

    if settings.check_syntax:
        parsed = parse_typescript(text)
        for problem in parsed.problems:
            result.error(
                "syntax-error",
                problem.message,
                path=where,
                line=problem.line,
                column=problem.column,
                code=ErrorCode.SYNTAX_PARSE_FAILED.name,
                suggestion="Fix the syntax error before migrating",
            )

    candidates = count_async_methods(text)
    if candidates == 0:
        result.warn("pattern-error", "No async methods found to convert", path=where)
    else:
        result.note("pattern-error", f"Found {candidates} async method(s) to convert", path=where)

    structure = validate_store_structure(text)
    for problem in structure.problems:
        result.note("pattern-error", problem, path=where)

    if settings.check_dependencies:
        _check_dependencies(path, config.root_directory, settings, result)

    result.duration_seconds = time.perf_counter() - started
    log.debug(
        "pre_validation_done",
        path=where,
        errors=len(result.errors),
        warnings=len(result.warnings),
    )
    return result


# =============================================================================
# Post-conversion
# =============================================================================


def validate_post_conversion(
    path: Path | str,
    converted_text: str,
    conversions: Sequence[ConversionRecord],
) -> ValidationResult:
    """Check converted text and the generated members it contains."""
    started = time.perf_counter()
    result = ValidationResult()
    where = str(path)

    parsed = parse_typescript(converted_text)
    for problem in parsed.problems:
        result.error(
            "syntax-error",
            f"Converted code does not parse: {problem.message}",
            path=where,
            line=problem.line,
            column=problem.column,
            code=ErrorCode.SYNTAX_PARSE_FAILED.name,
        )

    entries = parse_imports(parsed.root)
    for problem in validate_imports(entries):
        result.warn("import-error", problem, path=where, code=ErrorCode.IMPORT_CONFLICT.name)

    bound = {name for entry in entries for name in entry.bindings()}
    if conversions and any(f"{c.REACTIVE_MARKER}<" in conv.body for conv in conversions):
        if c.REACTIVE_MARKER not in bound:
            result.warn(
                "import-error",
                f"{c.REACTIVE_MARKER} is used but not imported",
                path=where,
                suggestion=f"import {{ {c.REACTIVE_MARKER} }} from '{c.RXMETHOD_MODULE}'",
            )

    for conv in conversions:
        if c.REACTIVE_MARKER not in conv.body:
            result.error(
                "pattern-error",
                f"{conv.method_name}: generated body does not mention {c.REACTIVE_MARKER}",
                path=where,
                line=conv.start_line or None,
                code=ErrorCode.PATTERN_TEMPLATE_INVALID.name,
            )
        if not any(marker in conv.body for marker in _ERROR_RECOVERY):
            result.warn(
                "pattern-error",
                f"{conv.method_name}: no error recovery in generated body",
                path=where,
                line=conv.start_line or None,
            )
        if conv.pattern is PatternType.SIMPLE_LOAD and not _LOADING_REFERENCE.search(conv.body):
            result.warn(
                "pattern-error",
                f"{conv.method_name}: simple-load body does not touch a loading flag",
                path=where,
                line=conv.start_line or None,
            )
        if conv.wrapper is not None and c.COMPLETION_CALL not in conv.wrapper:
            result.error(
                "pattern-error",
                f"{conv.method_name}: compatibility wrapper does not await {c.COMPLETION_CALL}",
                path=where,
                line=conv.start_line or None,
                code=ErrorCode.PATTERN_TEMPLATE_INVALID.name,
            )
        if conv.requires_manual_review:
            result.note(
                "pattern-error",
                f"{conv.method_name}: requires manual review ({conv.confidence}% confidence)",
                path=where,
            )

    result.duration_seconds = time.perf_counter() - started
    return result


# =============================================================================
# Full-program check
# =============================================================================


async def check_program(root: Path, config: MigrationConfig) -> ValidationResult:
    """Run the TypeScript compiler over ``root``.

    A missing compiler, a disabled check or a timeout produce warnings; the
    call never hangs past ``validation.timeout_sec``.
    """
    started = time.monotonic()
    settings = config.validation
    result = ValidationResult()

    if not settings.check_program:
        result.warn("configuration-error", "Full-program check disabled")
        return result

    executable = shutil.which(settings.tsc_executable)
    if executable is None:
        result.warn(
            "typescript-error",
            f"Executable not found: {settings.tsc_executable}",
            code=ErrorCode.DEPENDENCY_MISSING.name,
            suggestion="npm install --save-dev typescript",
        )
        result.duration_seconds = time.monotonic() - started
        return result

    cmd = [executable, *settings.tsc_args]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=root,
        )
    except OSError as e:
        result.warn("typescript-error", f"Could not start {settings.tsc_executable}: {e}")
        result.duration_seconds = time.monotonic() - started
        return result

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(), timeout=settings.timeout_sec
        )
    except TimeoutError:
        proc.kill()
        await proc.wait()
        log.warning("program_check_timeout", timeout_sec=settings.timeout_sec)
        result.warn(
            "typescript-error",
            f"Compiler did not finish within {settings.timeout_sec:g}s",
        )
        result.duration_seconds = time.monotonic() - started
        return result

    stdout = stdout_bytes.decode(errors="replace")
    stderr = stderr_bytes.decode(errors="replace")
    issues = parse_tsc(stdout, stderr).issues
    for issue in issues[: settings.max_errors]:
        result.add(issue)
    if len(issues) > settings.max_errors:
        result.note(
            "typescript-error",
            f"{len(issues) - settings.max_errors} further compiler diagnostics omitted",
        )
    if proc.returncode != 0 and not issues:
        result.warn(
            "typescript-error",
            f"{settings.tsc_executable} exited with {proc.returncode}: {stderr.strip() or stdout.strip()}",
        )

    result.duration_seconds = time.monotonic() - started
    log.info(
        "program_checked",
        returncode=proc.returncode,
        errors=len(result.errors),
        duration_seconds=round(result.duration_seconds, 2),
    )
    return result
