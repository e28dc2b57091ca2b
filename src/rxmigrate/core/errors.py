"""rxmigrate error types with typed error codes.

Error code ranges:
- 1xxx: File access
- 2xxx: Config
- 3xxx: Syntax
- 4xxx: Dependency
- 5xxx: Pattern
- 6xxx: Import
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # File access (1xxx)
    FILE_NOT_FOUND = 1001
    FILE_UNREADABLE = 1002
    FILE_NOT_DECODABLE = 1003
    FILE_WRITE_FAILED = 1004
    BACKUP_FAILED = 1005
    DISCOVERY_FAILED = 1006

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Syntax (3xxx)
    SYNTAX_UNBALANCED = 3001
    SYNTAX_PARSE_FAILED = 3002

    # Dependency (4xxx)
    DEPENDENCY_MISSING = 4001

    # Pattern (5xxx)
    PATTERN_UNKNOWN = 5001
    PATTERN_STALE_RANGE = 5002
    PATTERN_UNSPLICEABLE = 5003
    PATTERN_TEMPLATE_INVALID = 5004

    # Import (6xxx)
    IMPORT_CONFLICT = 6001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    RUN_ABORTED = 9002


@dataclass(frozen=True, slots=True)
class MigrationError(Exception):
    """Base error with structured context for reports."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reports."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class FileAccessError(MigrationError):
    """Reading, writing or copying a file failed."""

    @classmethod
    def not_found(cls, path: str) -> "FileAccessError":
        return cls(
            code=ErrorCode.FILE_NOT_FOUND,
            message=f"File not found: {path}",
            details={"path": path},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "FileAccessError":
        return cls(
            code=ErrorCode.FILE_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "FileAccessError":
        return cls(
            code=ErrorCode.FILE_WRITE_FAILED,
            message=f"Cannot write {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def backup_failed(cls, path: str, reason: str) -> "FileAccessError":
        return cls(
            code=ErrorCode.BACKUP_FAILED,
            message=f"Cannot back up {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def discovery_failed(cls, root: str, reason: str) -> "FileAccessError":
        return cls(
            code=ErrorCode.DISCOVERY_FAILED,
            message=f"Cannot enumerate files under {root}: {reason}",
            details={"root": root, "reason": reason},
        )


class ScanError(MigrationError):
    """A source file could not be turned into method records."""

    @classmethod
    def not_decodable(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.FILE_NOT_DECODABLE,
            message=f"Cannot decode {path} as UTF-8: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.FILE_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class ConfigError(MigrationError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class PatternError(MigrationError):
    """A method could not be converted with its selected template."""

    @classmethod
    def unknown_pattern(cls, pattern: str) -> "PatternError":
        return cls(
            code=ErrorCode.PATTERN_UNKNOWN,
            message=f"No template registered for pattern '{pattern}'",
            details={"pattern": pattern},
        )

    @classmethod
    def stale_range(cls, method: str, start: int, end: int, lines: int) -> "PatternError":
        return cls(
            code=ErrorCode.PATTERN_STALE_RANGE,
            message=f"Line range {start}-{end} of '{method}' is outside the file ({lines} lines)",
            details={"method": method, "start_line": start, "end_line": end},
        )

    @classmethod
    def unspliceable(cls, method: str, reason: str) -> "PatternError":
        return cls(
            code=ErrorCode.PATTERN_UNSPLICEABLE,
            message=f"Cannot replace '{method}': {reason}",
            details={"method": method, "reason": reason},
        )

    @classmethod
    def invalid_template(cls, method: str, problems: list[str]) -> "PatternError":
        return cls(
            code=ErrorCode.PATTERN_TEMPLATE_INVALID,
            message=f"Generated code for '{method}' is invalid: {'; '.join(problems)}",
            details={"method": method, "problems": problems},
        )


class RunAbortedError(MigrationError):
    """The batch run stopped before completing all phases."""

    @classmethod
    def stopped_on_error(cls, path: str, reason: str) -> "RunAbortedError":
        return cls(
            code=ErrorCode.RUN_ABORTED,
            message=f"Stopping at first error in {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(MigrationError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
