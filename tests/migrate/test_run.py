"""Tests for the migration run and its report."""

from __future__ import annotations

import asyncio
import json
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from rxmigrate.config.models import MigrationConfig
from rxmigrate.core.errors import ErrorCode, RunAbortedError
from rxmigrate.migrate import run_migration
from rxmigrate.migrate import ops as migrate_ops
from rxmigrate.migrate.files import create_backup
from rxmigrate.migrate.ops import NO_METHODS_WARNING
from rxmigrate.validate.ops import validate_pre_conversion

WriteStore = Callable[[str, str], Path]

SHARED_LINE = """\
export const S = signalStore(
  withMethods((store, todoService = inject(TodoService)) => ({
    async a(): Promise<void> { await todoService.x(); }, async b(): Promise<void> { await todoService.y(); },
  })),
);
"""


def _backups(path: Path) -> list[Path]:
    return sorted(path.parent.glob(f"{path.name}.*.backup"))


class TestRunMigration:
    """Phases of a full run against a project on disk."""

    @pytest.mark.asyncio
    async def test_converts_and_backs_up(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        path = write_store("user.store.ts", user_store_source)

        report = await run_migration(MigrationConfig(root_directory=project))

        assert report.summary.overall_success
        assert "loadUsers: rxMethod<void>(" in path.read_text()
        (backup,) = _backups(path)
        assert backup.read_text() == user_store_source
        stats = report.stats
        assert (stats.total_files, stats.processed_files, stats.successful_files) == (1, 1, 1)
        assert (stats.converted_methods, stats.wrappers_generated) == (1, 1)
        assert report.results[0].path == "src/app/stores/user.store.ts"

    @pytest.mark.asyncio
    async def test_preview_writes_nothing(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        path = write_store("user.store.ts", user_store_source)

        report = await run_migration(MigrationConfig(root_directory=project, preview_only=True))

        assert report.preview_only
        assert report.results[0].changed
        assert path.read_text() == user_store_source
        assert _backups(path) == []

    @pytest.mark.asyncio
    async def test_backups_can_be_disabled(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        path = write_store("user.store.ts", user_store_source)

        await run_migration(MigrationConfig(root_directory=project, create_backups=False))

        assert "rxMethod" in path.read_text()
        assert _backups(path) == []

    @pytest.mark.asyncio
    async def test_target_files(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        chosen = write_store("user.store.ts", user_store_source)
        other = write_store("other.store.ts", user_store_source)

        report = await run_migration(
            MigrationConfig(
                root_directory=project,
                target_files=[Path("src/app/stores/user.store.ts")],
            )
        )

        assert report.stats.total_files == 1
        assert "rxMethod" in chosen.read_text()
        assert other.read_text() == user_store_source

    @pytest.mark.asyncio
    async def test_target_files_honour_exclude_patterns(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        spec = write_store("user.spec.ts", user_store_source)
        chosen = write_store("user.store.ts", user_store_source)

        report = await run_migration(
            MigrationConfig(
                root_directory=project,
                target_files=[
                    Path("src/app/stores/user.spec.ts"),
                    project / "src" / "app" / "stores" / "user.store.ts",
                ],
            )
        )

        assert report.stats.total_files == 1
        assert [r.path for r in report.results] == ["src/app/stores/user.store.ts"]
        assert spec.read_text() == user_store_source
        assert _backups(spec) == []
        assert "rxMethod" in chosen.read_text()

    @pytest.mark.asyncio
    async def test_backups_run_in_bounded_batches(
        self,
        project: Path,
        write_store: WriteStore,
        user_store_source: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        for i in range(5):
            write_store(f"s{i}.store.ts", user_store_source)
        active = 0
        peak = 0

        async def tracked_backup(path: Path) -> Path:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await create_backup(path)

        monkeypatch.setattr(migrate_ops, "create_backup", tracked_backup)

        report = await run_migration(MigrationConfig(root_directory=project, max_parallel_files=2))

        assert peak == 2
        assert report.stats.successful_files == 5
        stores = project / "src" / "app" / "stores"
        assert all(len(_backups(p)) == 1 for p in stores.glob("*.store.ts"))

    @pytest.mark.asyncio
    async def test_pre_validation_runs_in_bounded_batches(
        self,
        project: Path,
        write_store: WriteStore,
        user_store_source: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        for i in range(5):
            write_store(f"s{i}.store.ts", user_store_source)
        lock = threading.Lock()
        active = 0
        peak = 0

        def tracked_validation(path: Path, config: MigrationConfig):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return validate_pre_conversion(path, config)

        monkeypatch.setattr(migrate_ops, "validate_pre_conversion", tracked_validation)

        report = await run_migration(
            MigrationConfig(root_directory=project, max_parallel_files=2, preview_only=True)
        )

        assert peak <= 2
        assert report.stats.processed_files == 5

    @pytest.mark.asyncio
    async def test_invalid_file_is_excluded(
        self,
        project: Path,
        write_store: WriteStore,
        user_store_source: str,
        unbalanced_store_source: str,
    ) -> None:
        good = write_store("user.store.ts", user_store_source)
        broken = write_store("broken.store.ts", unbalanced_store_source)

        report = await run_migration(MigrationConfig(root_directory=project))

        assert [e.file for e in report.excluded] == ["src/app/stores/broken.store.ts"]
        assert report.stats.excluded_files == 1
        assert not report.summary.overall_success
        assert "rxMethod" in good.read_text()
        assert broken.read_text() == unbalanced_store_source
        assert _backups(broken) == []

    @pytest.mark.asyncio
    async def test_file_without_methods(
        self, project: Path, write_store: WriteStore, no_async_store_source: str
    ) -> None:
        path = write_store("counter.store.ts", no_async_store_source)

        report = await run_migration(MigrationConfig(root_directory=project))

        (result,) = report.results
        assert result.success
        assert NO_METHODS_WARNING in result.warnings
        assert path.read_text() == no_async_store_source
        assert report.summary.overall_success

    @pytest.mark.asyncio
    async def test_failed_file_is_restored(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        good = write_store("user.store.ts", user_store_source)
        bad = write_store("shared.store.ts", SHARED_LINE)

        report = await run_migration(MigrationConfig(root_directory=project))

        assert report.restored_files == ["src/app/stores/shared.store.ts"]
        assert report.stats.failed_files == 1
        assert report.summary.files_with_errors == ["src/app/stores/shared.store.ts"]
        assert not report.summary.overall_success
        assert bad.read_text() == SHARED_LINE
        assert "rxMethod" in good.read_text()

    @pytest.mark.asyncio
    async def test_stop_on_first_error_restores_everything(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        good = write_store("user.store.ts", user_store_source)
        write_store("shared.store.ts", SHARED_LINE)
        output = project / "reports" / "run.json"

        with pytest.raises(RunAbortedError) as exc_info:
            await run_migration(
                MigrationConfig(
                    root_directory=project,
                    stop_on_first_error=True,
                    report_output_path=output,
                    report_format="json",
                )
            )

        assert exc_info.value.code == ErrorCode.RUN_ABORTED
        assert good.read_text() == user_store_source
        data = json.loads(output.read_text())
        assert "Stopping at first error" in data["aborted"]
        assert data["summary"]["overall_success"] is False

    @pytest.mark.asyncio
    async def test_stop_on_first_error_at_pre_validation(
        self,
        project: Path,
        write_store: WriteStore,
        user_store_source: str,
        unbalanced_store_source: str,
    ) -> None:
        good = write_store("user.store.ts", user_store_source)
        write_store("broken.store.ts", unbalanced_store_source)

        with pytest.raises(RunAbortedError):
            await run_migration(MigrationConfig(root_directory=project, stop_on_first_error=True))

        assert good.read_text() == user_store_source
        assert _backups(good) == []

    @pytest.mark.asyncio
    async def test_program_check_is_report_only(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        write_store("user.store.ts", user_store_source)
        config = MigrationConfig.model_validate(
            {
                "root_directory": project,
                "validation": {"check_program": True, "tsc_executable": "definitely-not-a-tsc"},
            }
        )

        report = await run_migration(config)

        assert report.program_check is not None
        assert report.program_check.warnings
        assert report.summary.overall_success


class TestReport:
    """Rendering and persistence."""

    @pytest.mark.asyncio
    async def test_renders_every_format(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        write_store("user.store.ts", user_store_source)
        report = await run_migration(MigrationConfig(root_directory=project, preview_only=True))

        text = report.render("text")
        markdown = report.render("markdown")
        data = json.loads(report.render("json"))

        assert "Overall: SUCCESS" in text
        assert "  [ok] src/app/stores/user.store.ts (1 converted)" in text
        assert "Manual review:" in text
        assert markdown.startswith("# rxMethod migration report\n")
        assert "| `src/app/stores/user.store.ts` | ok | 1 | 0 |" in markdown
        assert data["stats"]["converted_methods"] == 1
        assert data["pattern_distribution"]["distribution"]["simple-load"] == 1
        assert data["files"][0]["conversions"][0]["pattern"] == "simple-load"
        assert data["summary"]["methods_requiring_manual_review"] == [
            {
                "file": "src/app/stores/user.store.ts",
                "method": "loadUsers",
                "reason": "Complex pattern requires manual review",
            }
        ]

    @pytest.mark.asyncio
    async def test_writes_report_file(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        write_store("user.store.ts", user_store_source)
        output = project / "out" / "report.md"

        await run_migration(
            MigrationConfig(
                root_directory=project,
                preview_only=True,
                report_output_path=output,
                report_format="markdown",
            )
        )

        assert output.read_text().startswith("# rxMethod migration report")

    @pytest.mark.asyncio
    async def test_unwritable_report_does_not_fail_run(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        path = write_store("user.store.ts", user_store_source)
        output = project / "package.json" / "report.txt"

        report = await run_migration(
            MigrationConfig(root_directory=project, report_output_path=output)
        )

        assert report.summary.overall_success
        assert "rxMethod" in path.read_text()
        assert not output.exists()

    @pytest.mark.asyncio
    async def test_unwritable_report_keeps_abort_error(
        self, project: Path, write_store: WriteStore, user_store_source: str
    ) -> None:
        good = write_store("user.store.ts", user_store_source)
        write_store("shared.store.ts", SHARED_LINE)

        with pytest.raises(RunAbortedError) as exc_info:
            await run_migration(
                MigrationConfig(
                    root_directory=project,
                    stop_on_first_error=True,
                    report_output_path=project / "package.json" / "report.txt",
                )
            )

        assert exc_info.value.code == ErrorCode.RUN_ABORTED
        assert good.read_text() == user_store_source

    @pytest.mark.asyncio
    async def test_excluded_files_are_listed(
        self, project: Path, write_store: WriteStore, unbalanced_store_source: str
    ) -> None:
        write_store("broken.store.ts", unbalanced_store_source)

        report = await run_migration(MigrationConfig(root_directory=project, preview_only=True))

        text = report.render("text")
        assert "Overall: FAILED" in text
        assert "  [excluded] src/app/stores/broken.store.ts" in text
