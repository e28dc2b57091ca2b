"""Output parsers for the TypeScript compiler."""

from __future__ import annotations

import re

from rxmigrate.validate.models import ParseResult, Severity, ValidationIssue

# Format: file(line,col): error TSxxxx: message
_TSC_LINE = re.compile(r"^(.+?)\((\d+),(\d+)\): (error|warning|message) (TS\d+): (.+)$")


def _severity_from_str(s: str) -> Severity:
    """Convert string to Severity."""
    s = s.lower()
    if s in ("error", "e", "fatal"):
        return Severity.ERROR
    if s in ("warning", "warn", "w"):
        return Severity.WARNING
    return Severity.INFO


def parse_tsc(stdout: str, stderr: str) -> ParseResult:  # noqa: ARG001
    """Parse tsc output (line-based, --pretty false)."""
    issues: list[ValidationIssue] = []
    for line in stdout.strip().split("\n"):
        match = _TSC_LINE.match(line.strip())
        if match:
            issues.append(
                ValidationIssue(
                    type="typescript-error",
                    path=match.group(1),
                    line=int(match.group(2)),
                    column=int(match.group(3)),
                    severity=_severity_from_str(match.group(4)),
                    code=match.group(5),
                    message=match.group(6),
                )
            )
    return ParseResult.ok(issues)
