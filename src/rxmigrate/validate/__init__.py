"""Validate module - pre-, post- and full-program checks."""

from rxmigrate.validate.models import Severity, ValidationIssue, ValidationResult
from rxmigrate.validate.ops import check_program, validate_post_conversion, validate_pre_conversion
from rxmigrate.validate.parsers import parse_tsc

__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "check_program",
    "parse_tsc",
    "validate_post_conversion",
    "validate_pre_conversion",
]
