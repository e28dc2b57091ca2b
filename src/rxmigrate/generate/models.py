"""Data models for code generation and assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rxmigrate.imports.models import ImportEntry
from rxmigrate.scan.models import MethodRecord, PatternType

if TYPE_CHECKING:
    from rxmigrate.classify.models import ClassificationResult
    from rxmigrate.validate.models import ValidationResult


@dataclass(frozen=True)
class GeneratedMethod:
    """Template output for one method, before it is placed in the file.

    ``expression`` is the initializer only; the assembler adds the member
    name and trailing punctuation for the surrounding object or class.
    """

    pattern: PatternType
    doc_lines: tuple[str, ...]
    expression: tuple[str, ...]
    imports: tuple[ImportEntry, ...]
    # Argument the compatibility wrapper passes to the generated method
    call_argument: str = ""


@dataclass(frozen=True)
class ConversionRecord:
    """One converted method."""

    method_name: str
    pattern: PatternType
    body: str
    wrapper: str | None
    required_imports: tuple[ImportEntry, ...]
    confidence: int
    start_line: int = 0
    requires_manual_review: bool = False


@dataclass
class MethodFailure:
    """A method that was left untouched because conversion failed."""

    method_name: str
    reason: str
    start_line: int = 0


@dataclass
class GenerationResult:
    """Per-file conversion outcome."""

    path: str
    success: bool
    original_code: str
    converted_code: str
    methods_converted: int = 0
    methods_skipped: int = 0
    conversions: list[ConversionRecord] = field(default_factory=list)
    classifications: list[tuple[MethodRecord, ClassificationResult]] = field(default_factory=list)
    failures: list[MethodFailure] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    import_changes: dict[str, list[str]] = field(default_factory=dict)
    validation: ValidationResult | None = None
    wrappers_generated: int = 0

    @property
    def changed(self) -> bool:
        return self.converted_code != self.original_code

    def mark_failed(self, message: str) -> None:
        self.success = False
        self.errors.append(message)
