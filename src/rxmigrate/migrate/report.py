"""Migration report: statistics, summary and rendering."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from rxmigrate.classify.models import PatternDistribution
from rxmigrate.classify.ops import analyze_pattern_distribution
from rxmigrate.config.models import ReportFormat
from rxmigrate.core.errors import FileAccessError
from rxmigrate.generate.models import GenerationResult
from rxmigrate.validate.models import ValidationResult

MANUAL_REVIEW_REASON = "Complex pattern requires manual review"


@dataclass
class MigrationStats:
    """Aggregate counters for one run."""

    total_files: int = 0
    processed_files: int = 0
    successful_files: int = 0
    failed_files: int = 0
    excluded_files: int = 0
    total_methods: int = 0
    converted_methods: int = 0
    skipped_methods: int = 0
    wrappers_generated: int = 0
    duration_seconds: float = 0.0

    @property
    def success_rate(self) -> float:
        if not self.processed_files:
            return 0.0
        return self.successful_files / self.processed_files

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "successful_files": self.successful_files,
            "failed_files": self.failed_files,
            "excluded_files": self.excluded_files,
            "total_methods": self.total_methods,
            "converted_methods": self.converted_methods,
            "skipped_methods": self.skipped_methods,
            "wrappers_generated": self.wrappers_generated,
            "success_rate": round(self.success_rate, 3),
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass(frozen=True)
class ManualReviewItem:
    file: str
    method: str
    reason: str = MANUAL_REVIEW_REASON


@dataclass(frozen=True)
class ExcludedFile:
    """A file pre-validation refused to convert."""

    file: str
    reasons: tuple[str, ...]


@dataclass
class MigrationSummary:
    overall_success: bool
    files_with_errors: list[str] = field(default_factory=list)
    files_with_warnings: list[str] = field(default_factory=list)
    methods_requiring_manual_review: list[ManualReviewItem] = field(default_factory=list)
    excluded_files: list[ExcludedFile] = field(default_factory=list)


@dataclass
class MigrationReport:
    """Everything a run produced. Always built, even when the run fails."""

    run_id: str
    started_at: datetime
    preview_only: bool
    results: list[GenerationResult] = field(default_factory=list)
    excluded: list[ExcludedFile] = field(default_factory=list)
    program_check: ValidationResult | None = None
    stats: MigrationStats = field(default_factory=MigrationStats)
    restored_files: list[str] = field(default_factory=list)
    aborted: str | None = None

    @property
    def summary(self) -> MigrationSummary:
        summary = MigrationSummary(
            overall_success=(
                self.aborted is None
                and not self.excluded
                and all(r.success for r in self.results)
            ),
            excluded_files=list(self.excluded),
        )
        for result in self.results:
            if result.errors or not result.success:
                summary.files_with_errors.append(result.path)
            if result.warnings or (result.validation is not None and result.validation.warnings):
                summary.files_with_warnings.append(result.path)
            summary.methods_requiring_manual_review.extend(
                ManualReviewItem(result.path, conv.method_name)
                for conv in result.conversions
                if conv.requires_manual_review
            )
        return summary

    def pattern_distribution(self) -> PatternDistribution:
        classifications = [c for r in self.results for _, c in r.classifications]
        return analyze_pattern_distribution(classifications)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        summary = self.summary
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "preview_only": self.preview_only,
            "aborted": self.aborted,
            "stats": self.stats.to_dict(),
            "pattern_distribution": asdict(self.pattern_distribution()),
            "summary": {
                "overall_success": summary.overall_success,
                "files_with_errors": summary.files_with_errors,
                "files_with_warnings": summary.files_with_warnings,
                "methods_requiring_manual_review": [
                    {"file": m.file, "method": m.method, "reason": m.reason}
                    for m in summary.methods_requiring_manual_review
                ],
                "excluded_files": [
                    {"file": e.file, "reasons": list(e.reasons)} for e in summary.excluded_files
                ],
            },
            "restored_files": self.restored_files,
            "files": [_result_dict(r) for r in self.results],
            "program_check": self.program_check.to_dict() if self.program_check else None,
        }

    def render(self, fmt: ReportFormat = "text") -> str:
        if fmt == "json":
            return json.dumps(self.to_dict(), indent=2)
        if fmt == "markdown":
            return self._render_markdown()
        return self._render_text()

    def _render_text(self) -> str:
        s = self.stats
        summary = self.summary
        lines = [
            f"rxmigrate run {self.run_id}" + (" (preview)" if self.preview_only else ""),
            f"Files: {s.successful_files}/{s.processed_files} converted, "
            f"{s.failed_files} failed, {s.excluded_files} excluded",
            f"Methods: {s.converted_methods}/{s.total_methods} converted, "
            f"{s.skipped_methods} skipped, {s.wrappers_generated} wrappers",
            f"Duration: {s.duration_seconds:.2f}s",
            f"Overall: {'SUCCESS' if summary.overall_success else 'FAILED'}",
        ]
        if self.aborted:
            lines.append(f"Aborted: {self.aborted}")
        for result in self.results:
            mark = "ok" if result.success else "FAILED"
            lines.append(f"  [{mark}] {result.path} ({result.methods_converted} converted)")
            lines.extend(f"      error: {e}" for e in result.errors)
            lines.extend(f"      warning: {w}" for w in result.warnings)
        for excluded in summary.excluded_files:
            lines.append(f"  [excluded] {excluded.file}")
            lines.extend(f"      {r}" for r in excluded.reasons)
        if summary.methods_requiring_manual_review:
            lines.append("Manual review:")
            lines.extend(
                f"  {m.file}: {m.method}" for m in summary.methods_requiring_manual_review
            )
        if self.restored_files:
            lines.append("Restored from backup:")
            lines.extend(f"  {p}" for p in self.restored_files)
        return "\n".join(lines) + "\n"

    def _render_markdown(self) -> str:
        s = self.stats
        summary = self.summary
        lines = [
            "# rxMethod migration report",
            "",
            f"- Run: `{self.run_id}`",
            f"- Started: {self.started_at.isoformat()}",
            f"- Mode: {'preview' if self.preview_only else 'write'}",
            f"- Overall: **{'success' if summary.overall_success else 'failed'}**",
            "",
            "## Statistics",
            "",
            "| Metric | Value |",
            "| --- | --- |",
        ]
        lines.extend(f"| {k} | {v} |" for k, v in s.to_dict().items())
        lines += ["", "## Files", "", "| File | Status | Converted | Skipped |", "| --- | --- | --- | --- |"]
        for result in self.results:
            status = "ok" if result.success else "failed"
            lines.append(
                f"| `{result.path}` | {status} | {result.methods_converted} | {result.methods_skipped} |"
            )
        if summary.excluded_files:
            lines += ["", "## Excluded", ""]
            for excluded in summary.excluded_files:
                lines.append(f"- `{excluded.file}`: {'; '.join(excluded.reasons)}")
        if summary.methods_requiring_manual_review:
            lines += ["", "## Manual review", ""]
            for item in summary.methods_requiring_manual_review:
                lines.append(f"- `{item.file}` `{item.method}`: {item.reason}")
        problems = [r for r in self.results if r.errors or r.warnings]
        if problems:
            lines += ["", "## Issues", ""]
            for result in problems:
                lines.append(f"### `{result.path}`")
                lines.extend(f"- error: {e}" for e in result.errors)
                lines.extend(f"- warning: {w}" for w in result.warnings)
        return "\n".join(lines) + "\n"

    def write(self, path: Path, fmt: ReportFormat = "text") -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render(fmt), encoding="utf-8")
        except OSError as e:
            raise FileAccessError.write_failed(str(path), str(e)) from e


def _result_dict(result: GenerationResult) -> dict[str, Any]:
    return {
        "path": result.path,
        "success": result.success,
        "changed": result.changed,
        "methods_converted": result.methods_converted,
        "methods_skipped": result.methods_skipped,
        "wrappers_generated": result.wrappers_generated,
        "errors": result.errors,
        "warnings": result.warnings,
        "import_changes": result.import_changes,
        "conversions": [
            {
                "method": conv.method_name,
                "pattern": str(conv.pattern),
                "confidence": conv.confidence,
                "requires_manual_review": conv.requires_manual_review,
            }
            for conv in result.conversions
        ],
        "validation": result.validation.to_dict() if result.validation else None,
    }
