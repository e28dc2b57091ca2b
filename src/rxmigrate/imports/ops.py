"""Import table parsing, merging and rendering.

The merge is keyed by module path. Named imports for the same path are
unioned; default and namespace imports keep the existing value and only fall
back to the required one when the file has none. When two modules would bind
the same local name, the later one is aliased with a module-derived suffix and
a warning is raised.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from rxmigrate.core.logging import get_logger
from rxmigrate.imports.models import (
    ImportBlock,
    ImportConflict,
    ImportEntry,
    ImportMergeResult,
    imported_name,
    local_binding,
)

if TYPE_CHECKING:
    import tree_sitter

log = get_logger(__name__)

# Named imports beyond this count are rendered one per line.
WRAP_NAMED_IMPORTS_AFTER = 3

_GROUP_PLATFORM = 0
_GROUP_PACKAGE = 1
_GROUP_RELATIVE = 2


def _text(node: tree_sitter.Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def _parse_import_statement(node: tree_sitter.Node) -> ImportEntry | None:
    """Turn an import_statement node into an ImportEntry.

    Returns None for shapes the table cannot represent (``import x = require()``).
    """
    source = node.child_by_field_name("source")
    if source is None:
        return None
    module_path = _text(source).strip("'\"`")
    type_only = any(c.type == "type" for c in node.children)

    clause = next((c for c in node.children if c.type == "import_clause"), None)
    if clause is None:
        if any(c.type == "import_require_clause" for c in node.children):
            return None
        return ImportEntry(module_path=module_path, type_only=type_only, side_effect=True)

    named: set[str] = set()
    default_import: str | None = None
    namespace_import: str | None = None
    for child in clause.children:
        if child.type == "identifier":
            default_import = _text(child)
        elif child.type == "namespace_import":
            ident = next((c for c in child.children if c.type == "identifier"), None)
            if ident is not None:
                namespace_import = _text(ident)
        elif child.type == "named_imports":
            for spec in child.children:
                if spec.type != "import_specifier":
                    continue
                name = spec.child_by_field_name("name")
                alias = spec.child_by_field_name("alias")
                text = _text(name) if name is not None else _text(spec)
                if alias is not None:
                    text = f"{text} as {_text(alias)}"
                if any(c.type == "type" for c in spec.children):
                    text = f"type {text}"
                named.add(text)

    return ImportEntry(
        module_path=module_path,
        named_imports=frozenset(named),
        default_import=default_import,
        namespace_import=namespace_import,
        type_only=type_only,
    )


def parse_imports(root: tree_sitter.Node) -> list[ImportEntry]:
    """All top-level imports of a parsed file, in source order."""
    entries: list[ImportEntry] = []
    for child in root.children:
        if child.type == "import_statement":
            entry = _parse_import_statement(child)
            if entry is not None:
                entries.append(entry)
    return entries


def locate_import_block(root: tree_sitter.Node) -> ImportBlock | None:
    """Find the leading run of import statements (comments may be interleaved).

    The run ends at the first top-level node that is neither an import nor a
    comment. Imports the table cannot represent are carried in ``interleaved``
    so a re-render keeps them verbatim.
    """
    children = list(root.children)
    first = next((i for i, c in enumerate(children) if c.type == "import_statement"), None)
    if first is None:
        return None

    last = first
    for i in range(first, len(children)):
        kind = children[i].type
        if kind == "import_statement":
            last = i
        elif kind != "comment":
            break

    block = ImportBlock(
        start_line=children[first].start_point[0] + 1,
        end_line=children[last].end_point[0] + 1,
    )
    for node in children[first : last + 1]:
        if node.type == "comment":
            block.interleaved.append(_text(node))
            continue
        entry = _parse_import_statement(node)
        if entry is None:
            block.interleaved.append(_text(node))
        else:
            block.entries.append(entry)
    return block


def _module_suffix(module_path: str) -> str:
    segment = module_path.rstrip("/").rsplit("/", 1)[-1]
    cleaned = re.sub(r"[^a-zA-Z0-9]", "", segment) or "Module"
    return cleaned[0].upper() + cleaned[1:]


def _union(current: ImportEntry, incoming: ImportEntry) -> ImportEntry:
    return ImportEntry(
        module_path=current.module_path,
        named_imports=current.named_imports | incoming.named_imports,
        default_import=current.default_import or incoming.default_import,
        namespace_import=current.namespace_import or incoming.namespace_import,
        type_only=current.type_only and incoming.type_only,
        side_effect=current.side_effect and incoming.side_effect,
    )


def merge_imports(existing: list[ImportEntry], required: list[ImportEntry]) -> ImportMergeResult:
    """Merge required imports into an existing import table.

    Args:
        existing: The file's current imports, in source order.
        required: Imports the generated code needs, in the order they were requested.

    Returns:
        The merged table plus which entries were added or modified, and any
        name conflicts with the alias chosen to resolve them.
    """
    result = ImportMergeResult()
    table: dict[str, ImportEntry] = {}
    for entry in existing:
        current = table.get(entry.module_path)
        table[entry.module_path] = entry if current is None else _union(current, entry)
    original = dict(table)

    owners: dict[str, str] = {}
    for entry in table.values():
        for name in entry.bindings():
            owners.setdefault(name, entry.module_path)

    for req in required:
        current = table.get(req.module_path)
        present = current.named_imports if current is not None else frozenset()
        specs: set[str] = set()
        for spec in sorted(req.named_imports):
            if spec in present:
                specs.add(spec)
                continue
            binding = local_binding(spec)
            owner = owners.get(binding)
            if owner is not None and owner != req.module_path:
                # Already imported under an alias by an earlier merge
                aliased = next(
                    (p for p in present if imported_name(p) == imported_name(spec)), None
                )
                if aliased is not None:
                    specs.add(aliased)
                    continue
                renamed = f"{binding}From{_module_suffix(req.module_path)}"
                counter = 2
                while renamed in owners:
                    renamed = f"{binding}From{_module_suffix(req.module_path)}{counter}"
                    counter += 1
                conflict = ImportConflict(
                    name=binding,
                    existing_module=owner,
                    conflicting_module=req.module_path,
                    resolution=f"'{binding}' from '{req.module_path}' imported as '{renamed}'",
                    renamed_to=renamed,
                )
                result.conflicts.append(conflict)
                result.warnings.append(
                    f"Import conflict: '{binding}' is already imported from '{owner}'; "
                    f"import from '{req.module_path}' renamed to '{renamed}'"
                )
                log.warning(
                    "import_conflict",
                    name=binding,
                    existing=owner,
                    incoming=req.module_path,
                    renamed_to=renamed,
                )
                spec = f"{imported_name(spec)} as {renamed}"
                binding = renamed
            owners.setdefault(binding, req.module_path)
            specs.add(spec)

        incoming = ImportEntry(
            module_path=req.module_path,
            named_imports=frozenset(specs),
            default_import=req.default_import,
            namespace_import=req.namespace_import,
            type_only=req.type_only,
            side_effect=req.side_effect,
        )
        table[req.module_path] = incoming if current is None else _union(current, incoming)

    result.merged = list(table.values())
    for path, entry in table.items():
        before = original.get(path)
        if before is None:
            result.added.append(entry)
        elif entry != before:
            result.modified.append(entry)
    return result


def _module_group(module_path: str) -> int:
    if module_path.startswith("."):
        return _GROUP_RELATIVE
    if module_path.startswith("@") or "/" in module_path:
        return _GROUP_PACKAGE
    return _GROUP_PLATFORM


def _sorted_specifiers(entry: ImportEntry) -> list[str]:
    return sorted(entry.named_imports, key=lambda s: (imported_name(s).lower(), s))


def render_import(entry: ImportEntry) -> str:
    """Render one import statement with single-quoted module path."""
    keyword = "import type" if entry.type_only else "import"
    if entry.side_effect and entry.is_empty:
        return f"{keyword} '{entry.module_path}';"

    parts: list[str] = []
    if entry.default_import:
        parts.append(entry.default_import)
    if entry.namespace_import:
        parts.append(f"* as {entry.namespace_import}")
    names = _sorted_specifiers(entry)
    if names:
        if len(names) > WRAP_NAMED_IMPORTS_AFTER:
            inner = ",\n".join(f"  {n}" for n in names)
            parts.append("{\n" + inner + "\n}")
        else:
            parts.append("{ " + ", ".join(names) + " }")
    return f"{keyword} {', '.join(parts)} from '{entry.module_path}';"


def render_imports(
    entries: list[ImportEntry], *, group: bool = True, sort: bool = True
) -> list[str]:
    """Render an import table as source lines.

    With ``group`` the table is split into platform modules, package-style
    modules, and relative modules, with a blank line between groups.
    """
    if group:
        buckets: list[list[ImportEntry]] = [[], [], []]
        for entry in entries:
            buckets[_module_group(entry.module_path)].append(entry)
    else:
        buckets = [list(entries)]

    lines: list[str] = []
    for bucket in buckets:
        if not bucket:
            continue
        if sort:
            bucket = sorted(bucket, key=lambda e: e.module_path)
        if lines:
            lines.append("")
        for entry in bucket:
            lines.extend(render_import(entry).split("\n"))
    return lines


def validate_imports(entries: list[ImportEntry]) -> list[str]:
    """Report empty entries, names bound twice, and suspicious module paths."""
    problems: list[str] = []
    seen: dict[str, str] = {}
    for entry in entries:
        if entry.is_empty and not entry.side_effect:
            problems.append(f"Empty import from '{entry.module_path}'")
        if not entry.module_path or "//" in entry.module_path or entry.module_path.endswith("/"):
            problems.append(f"Suspicious import path '{entry.module_path}'")
        for name in entry.bindings():
            if name in seen:
                problems.append(
                    f"'{name}' imported from both '{seen[name]}' and '{entry.module_path}'"
                )
            else:
                seen[name] = entry.module_path
    return problems
