"""Async file access for the migration run.

Reads, writes and copies are blocking calls handed to a worker thread so a
batch of files can be processed concurrently on one event loop.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from datetime import UTC, datetime
from pathlib import Path

from rxmigrate.config.constants import STORE_FILE_GLOB
from rxmigrate.core.errors import FileAccessError
from rxmigrate.core.excludes import PRUNABLE_DIRS, is_excluded, matches_glob
from rxmigrate.scan.ops import read_source


async def read_text(path: Path) -> str:
    """Read a UTF-8 source file.

    Raises:
        ScanError: The file is unreadable or not UTF-8.
    """
    return await asyncio.to_thread(read_source, path)


def _write(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileAccessError.write_failed(str(path), str(e)) from e


async def write_text(path: Path, content: str) -> None:
    await asyncio.to_thread(_write, path, content)


def backup_path_for(path: Path, now: datetime | None = None) -> Path:
    """``foo.store.ts`` -> ``foo.store.ts.<timestamp>.backup`` in the same directory."""
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%S%fZ")
    return path.with_name(f"{path.name}.{stamp}.backup")


def _copy(source: Path, destination: Path) -> None:
    try:
        shutil.copy2(source, destination)
    except OSError as e:
        raise FileAccessError.backup_failed(str(source), str(e)) from e


async def create_backup(path: Path) -> Path:
    """Copy ``path`` to a timestamped sibling and return the backup path."""
    backup = backup_path_for(path)
    await asyncio.to_thread(_copy, path, backup)
    return backup


async def restore_backup(original: Path, backup: Path) -> None:
    """Copy ``backup`` back over ``original``. The backup is kept."""
    try:
        await asyncio.to_thread(shutil.copy2, backup, original)
    except OSError as e:
        raise FileAccessError.write_failed(str(original), str(e)) from e


def discover_store_files(
    root: Path,
    exclude_patterns: list[str] | tuple[str, ...] = (),
    file_pattern: str = STORE_FILE_GLOB,
) -> list[Path]:
    """Recursively find store files under ``root``, sorted by path.

    Prunable directories are never entered. ``exclude_patterns`` are matched
    against the POSIX path relative to ``root``.

    Raises:
        FileAccessError: ``root`` is missing or cannot be listed.
    """
    if not root.is_dir():
        raise FileAccessError.discovery_failed(str(root), "not a directory")

    found: list[Path] = []

    def _on_error(error: OSError) -> None:
        raise FileAccessError.discovery_failed(str(root), str(error)) from error

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if d not in PRUNABLE_DIRS)
        for filename in filenames:
            if not matches_glob(filename, file_pattern):
                continue
            path = Path(dirpath) / filename
            rel = path.relative_to(root).as_posix()
            if is_excluded(rel, exclude_patterns):
                continue
            found.append(path)
    return sorted(found)
