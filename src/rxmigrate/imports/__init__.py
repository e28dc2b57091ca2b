"""Import reconciliation - merge, conflict resolution and rendering."""

from rxmigrate.imports.models import ImportBlock, ImportConflict, ImportEntry, ImportMergeResult
from rxmigrate.imports.ops import (
    locate_import_block,
    merge_imports,
    parse_imports,
    render_import,
    render_imports,
    validate_imports,
)

__all__ = [
    "ImportBlock",
    "ImportConflict",
    "ImportEntry",
    "ImportMergeResult",
    "locate_import_block",
    "merge_imports",
    "parse_imports",
    "render_import",
    "render_imports",
    "validate_imports",
]
