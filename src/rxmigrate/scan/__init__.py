"""Scan module - async method discovery in signal-store files."""

from rxmigrate.scan.models import (
    FileContext,
    MethodParameter,
    MethodRecord,
    PatternType,
    ScanResult,
    StoreStructure,
)
from rxmigrate.scan.ops import (
    count_async_methods,
    extract_dependencies,
    extract_method_signatures,
    scan_file,
    scan_source,
    validate_store_structure,
)

__all__ = [
    "FileContext",
    "MethodParameter",
    "MethodRecord",
    "PatternType",
    "ScanResult",
    "StoreStructure",
    "count_async_methods",
    "extract_dependencies",
    "extract_method_signatures",
    "scan_file",
    "scan_source",
    "validate_store_structure",
]
