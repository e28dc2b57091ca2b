"""Data models for scanned store files."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Literal

from rxmigrate.config.constants import DEFAULT_CONFIDENCE
from rxmigrate.imports.models import ImportEntry
from rxmigrate.scan.parser import SyntaxProblem

MemberKind = Literal["object", "class"]


class PatternType(StrEnum):
    """Recognised method shapes, each selecting a generation template."""

    SIMPLE_LOAD = "simple-load"
    OPTIMISTIC_UPDATE = "optimistic-update"
    BULK_OPERATION = "bulk-operation"
    CUSTOM = "custom-fallback"


@dataclass(frozen=True)
class MethodParameter:
    name: str
    type: str | None = None
    optional: bool = False
    default: str | None = None

    def render(self) -> str:
        """Source form, e.g. ``ids: string[]`` or ``force?: boolean``."""
        text = self.name + ("?" if self.optional else "")
        if self.type:
            text += f": {self.type}"
        if self.default is not None:
            text += f" = {self.default}"
        return text

    @property
    def is_array(self) -> bool:
        return self.type is not None and ("[]" in self.type or "Array<" in self.type)


@dataclass(frozen=True)
class MethodRecord:
    """An async method found in a store file.

    Line numbers are 1-based and inclusive and cover the whole member
    declaration, not just its body.
    """

    name: str
    parameters: tuple[MethodParameter, ...]
    return_type: str | None
    body: str
    source: str
    start_line: int
    end_line: int
    start_column: int
    member_kind: MemberKind
    has_error_handling: bool
    has_loading_state: bool
    uses_optimistic_update: bool
    dependencies: tuple[str, ...]
    pattern: PatternType
    confidence: int = DEFAULT_CONFIDENCE

    @property
    def collaborator_calls(self) -> list[str]:
        """Dependencies of the form ``someService.method``."""
        return [d for d in self.dependencies if "." in d]

    @property
    def array_parameter(self) -> MethodParameter | None:
        return next((p for p in self.parameters if p.is_array), None)

    def signature(self) -> str:
        params = ", ".join(p.render() for p in self.parameters)
        result = f": {self.return_type}" if self.return_type else ""
        return f"{self.name}({params}){result}"


@dataclass(frozen=True)
class FileContext:
    """File-level facts shared by every method in one store file."""

    state_fields: tuple[str, ...] = ()
    injected_services: tuple[str, ...] = ()
    existing_rx_methods: frozenset[str] = frozenset()
    imports: tuple[ImportEntry, ...] = ()
    has_loading_state: bool = False
    has_error_state: bool = False
    loading_field: str | None = None
    error_field: str | None = None


@dataclass
class StoreStructure:
    """Which signalStore building blocks a file uses."""

    has_signal_store: bool = False
    has_with_state: bool = False
    has_with_methods: bool = False
    problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


@dataclass
class ScanResult:
    """Everything the scanner learned about one file."""

    path: Path
    text: str
    methods: list[MethodRecord] = field(default_factory=list)
    context: FileContext = field(default_factory=FileContext)
    syntax_problems: list[SyntaxProblem] = field(default_factory=list)
