"""Compatibility wrappers for converted methods.

A wrapper keeps the original parameter list and result type and awaits the
rxMethod through ``lastValueFrom`` so existing callers compile unmodified.
"""

from __future__ import annotations

from rxmigrate.config import constants as c
from rxmigrate.imports.models import ImportEntry
from rxmigrate.scan.models import MethodRecord

WRAPPER_IMPORT = ImportEntry.named(c.RXJS_MODULE, c.COMPLETION_CALL)


def wrapper_name(method_name: str) -> str:
    """``load`` -> ``loadAsync``; names already ending in Async get ``Promise``."""
    if method_name.endswith("Async"):
        return f"{method_name}Promise"
    return f"{method_name}Async"


def generate_wrapper(record: MethodRecord, call_argument: str) -> list[str]:
    """Wrapper method lines at relative indentation zero."""
    params = ", ".join(p.render() for p in record.parameters)
    result = f": {record.return_type}" if record.return_type else ""
    name = wrapper_name(record.name)
    return [
        "/**",
        f" * Compatibility wrapper for {record.name}; prefer the rxMethod in new code.",
        " */",
        f"async {name}({params}){result} {{",
        "  try {",
        f"    return await {c.COMPLETION_CALL}(this.{record.name}({call_argument}));",
        "  } catch (error) {",
        f"    console.error('{name} failed:', error);",
        "    throw error;",
        "  }",
        "}",
    ]
