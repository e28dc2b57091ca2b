"""Validation models - issues and checkpoint results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

IssueType = Literal[
    "typescript-error",
    "syntax-error",
    "import-error",
    "pattern-error",
    "dependency-error",
    "file-error",
    "configuration-error",
]


class Severity(Enum):
    """Issue severity level."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """A single finding from a validation checkpoint."""

    type: IssueType
    message: str
    severity: Severity = Severity.ERROR
    path: str | None = None
    line: int | None = None
    column: int | None = None
    code: str | None = None  # ErrorCode name or compiler code such as "TS2304"
    suggestion: str | None = None

    def __str__(self) -> str:
        where = self.path or ""
        if self.line is not None:
            where += f":{self.line}"
            if self.column is not None:
                where += f":{self.column}"
        prefix = f"{where}: " if where else ""
        return f"{prefix}{self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "code": self.code,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationResult:
    """Uniform result shape for every checkpoint.

    Errors block a file from counting as converted; warnings and info never do.
    """

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    info: list[ValidationIssue] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, issue: ValidationIssue) -> None:
        if issue.severity is Severity.ERROR:
            self.errors.append(issue)
        elif issue.severity is Severity.WARNING:
            self.warnings.append(issue)
        else:
            self.info.append(issue)

    def error(self, type: IssueType, message: str, **kwargs: Any) -> None:
        self.add(ValidationIssue(type=type, message=message, severity=Severity.ERROR, **kwargs))

    def warn(self, type: IssueType, message: str, **kwargs: Any) -> None:
        self.add(ValidationIssue(type=type, message=message, severity=Severity.WARNING, **kwargs))

    def note(self, type: IssueType, message: str, **kwargs: Any) -> None:
        self.add(ValidationIssue(type=type, message=message, severity=Severity.INFO, **kwargs))

    def merge(self, other: ValidationResult) -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info.extend(other.info)
        self.duration_seconds += other.duration_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "info": [i.to_dict() for i in self.info],
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class ParseResult:
    """Result of parsing compiler output."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @classmethod
    def ok(cls, issues: list[ValidationIssue]) -> ParseResult:
        return cls(issues=issues)
