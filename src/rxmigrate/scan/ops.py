"""Source scanning: async method records and file context.

A declaration is a candidate only when it is explicitly ``async``:

- async method definitions, in classes or object literals
- object properties whose value is an async arrow or function expression
- class fields initialised with an async arrow or function expression

Candidates are never nested: once a candidate is found its subtree is not
searched again, which keeps line ranges within a file disjoint.
"""

from __future__ import annotations

import re
from pathlib import Path

import tree_sitter

from rxmigrate.config.constants import (
    DEPENDENCY_VOCABULARY,
    REACTIVE_MARKER,
    SHARED_HELPERS,
)
from rxmigrate.core.errors import ScanError
from rxmigrate.core.logging import get_logger
from rxmigrate.imports.ops import parse_imports
from rxmigrate.scan.models import (
    FileContext,
    MemberKind,
    MethodParameter,
    MethodRecord,
    PatternType,
    ScanResult,
    StoreStructure,
)
from rxmigrate.scan.parser import node_text, parse_typescript

log = get_logger(__name__)

_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function"})
_RX_FACTORIES = frozenset({REACTIVE_MARKER, *SHARED_HELPERS})

_COLLABORATOR_CALL = re.compile(r"(?<![\w.$])(?:this\.)?(\w+Service)\.(\w+)\s*\(")
_VOCABULARY_CALL = re.compile(
    r"(?<![\w.$])("
    + "|".join(sorted(DEPENDENCY_VOCABULARY, key=len, reverse=True))
    + r")\s*(?:<[^<>()]*>)?\s*\("
)
_ERROR_HANDLING = re.compile(r"\b(?:try|catch)\b")
_BULK_HINT = re.compile(r"bulk|forEach|Promise\.all", re.IGNORECASE)


# =============================================================================
# Textual detectors
# =============================================================================


def has_error_handling(body: str) -> bool:
    return _ERROR_HANDLING.search(body) is not None


def has_loading_state(body: str) -> bool:
    return "isLoading" in body or "setLoading" in body


def uses_optimistic_update(body: str) -> bool:
    return "optimistic" in body or ("patchState" in body and "rollback" in body)


def guess_pattern(body: str) -> PatternType:
    """Coarse first guess, replaced later by the classifier."""
    if "isLoading: true" in body and "Service." in body and "optimistic" not in body:
        return PatternType.SIMPLE_LOAD
    if "optimistic" in body or ("patchState" in body and "original" in body):
        return PatternType.OPTIMISTIC_UPDATE
    if _BULK_HINT.search(body) or (".map(" in body and "async" in body):
        return PatternType.BULK_OPERATION
    return PatternType.CUSTOM


def extract_dependencies(body: str) -> tuple[str, ...]:
    """Collaborator calls and state/utility calls, deduplicated in source order."""
    found: list[tuple[int, str]] = []
    for m in _COLLABORATOR_CALL.finditer(body):
        found.append((m.start(), f"{m.group(1)}.{m.group(2)}"))
    for m in _VOCABULARY_CALL.finditer(body):
        found.append((m.start(), m.group(1)))
    seen: dict[str, None] = {}
    for _, name in sorted(found):
        seen.setdefault(name, None)
    return tuple(seen)


# =============================================================================
# Tree helpers
# =============================================================================


def _is_async(node: tree_sitter.Node) -> bool:
    return any(child.type == "async" for child in node.children)


def _property_name(node: tree_sitter.Node | None) -> str | None:
    if node is None:
        return None
    return node_text(node).strip("'\"`")


def _type_text(node: tree_sitter.Node | None) -> str | None:
    if node is None:
        return None
    text = node_text(node).strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or None


def _callee_name(call: tree_sitter.Node) -> str | None:
    func = call.child_by_field_name("function")
    if func is None:
        return None
    if func.type == "member_expression":
        return _property_name(func.child_by_field_name("property"))
    return node_text(func)


def _parse_parameters(function: tree_sitter.Node) -> tuple[MethodParameter, ...]:
    single = function.child_by_field_name("parameter")
    if single is not None:
        return (MethodParameter(name=node_text(single)),)
    params = function.child_by_field_name("parameters")
    if params is None:
        return ()

    result: list[MethodParameter] = []
    for child in params.named_children:
        if child.type not in ("required_parameter", "optional_parameter"):
            continue
        pattern = child.child_by_field_name("pattern")
        value = child.child_by_field_name("value")
        result.append(
            MethodParameter(
                name=node_text(pattern) if pattern is not None else node_text(child),
                type=_type_text(child.child_by_field_name("type")),
                optional=child.type == "optional_parameter",
                default=node_text(value) if value is not None else None,
            )
        )
    return tuple(result)


def _candidate(node: tree_sitter.Node) -> tuple[str, tree_sitter.Node] | None:
    """Return (name, function-like node) when ``node`` declares an async method."""
    if node.type == "method_definition":
        if _is_async(node):
            name = _property_name(node.child_by_field_name("name"))
            return (name, node) if name else None
        return None

    if node.type == "pair":
        key, value = node.child_by_field_name("key"), node.child_by_field_name("value")
    elif node.type == "public_field_definition":
        key, value = node.child_by_field_name("name"), node.child_by_field_name("value")
    else:
        return None

    if value is None or value.type not in _FUNCTION_VALUES or not _is_async(value):
        return None
    name = _property_name(key)
    return (name, value) if name else None


def _member_kind(node: tree_sitter.Node) -> MemberKind:
    parent = node.parent
    return "class" if parent is not None and parent.type == "class_body" else "object"


def _build_record(
    declaration: tree_sitter.Node, name: str, function: tree_sitter.Node
) -> MethodRecord:
    body_node = function.child_by_field_name("body")
    body = node_text(body_node) if body_node is not None else ""
    return MethodRecord(
        name=name,
        parameters=_parse_parameters(function),
        return_type=_type_text(function.child_by_field_name("return_type")),
        body=body,
        source=node_text(declaration),
        start_line=declaration.start_point[0] + 1,
        end_line=declaration.end_point[0] + 1,
        start_column=declaration.start_point[1],
        member_kind=_member_kind(declaration),
        has_error_handling=has_error_handling(body),
        has_loading_state=has_loading_state(body),
        uses_optimistic_update=uses_optimistic_update(body),
        dependencies=extract_dependencies(body),
        pattern=guess_pattern(body),
    )


def _collect_methods(root: tree_sitter.Node) -> list[MethodRecord]:
    records: list[MethodRecord] = []
    stack = [root]
    while stack:
        node = stack.pop()
        found = _candidate(node)
        if found is not None:
            name, function = found
            records.append(_build_record(node, name, function))
            continue
        stack.extend(reversed(node.children))
    records.sort(key=lambda r: r.start_line)
    return records


# =============================================================================
# File context
# =============================================================================


def _pick_field(fields: list[str], preferred: str, needle: str) -> str | None:
    if preferred in fields:
        return preferred
    return next((f for f in fields if needle in f.lower()), None)


def extract_context(root: tree_sitter.Node) -> FileContext:
    """Collect state fields, collaborators, rxMethod members and imports in one walk."""
    state_fields: dict[str, None] = {}
    services: dict[str, None] = {}
    rx_methods: set[str] = set()

    stack = [root]
    while stack:
        node = stack.pop()
        kind = node.type

        if kind == "property_signature":
            name = _property_name(node.child_by_field_name("name"))
            if name:
                state_fields.setdefault(name, None)

        elif kind == "call_expression" and _callee_name(node) == "withState":
            args = node.child_by_field_name("arguments")
            for arg in args.named_children if args is not None else ():
                if arg.type != "object":
                    continue
                for pair in arg.named_children:
                    name = _property_name(pair.child_by_field_name("key"))
                    if pair.type == "pair" and name:
                        state_fields.setdefault(name, None)

        elif kind in ("required_parameter", "optional_parameter"):
            pattern = node.child_by_field_name("pattern")
            name = node_text(pattern if pattern is not None else node)
            if "Service" in name:
                services.setdefault(name, None)

        elif kind == "variable_declarator":
            name = _property_name(node.child_by_field_name("name"))
            value = node.child_by_field_name("value")
            if (
                name
                and "Service" in name
                and value is not None
                and value.type == "call_expression"
                and _callee_name(value) == "inject"
            ):
                services.setdefault(name, None)

        elif kind in ("pair", "public_field_definition"):
            key = node.child_by_field_name("key" if kind == "pair" else "name")
            value = node.child_by_field_name("value")
            name = _property_name(key)
            if name and value is not None and value.type == "call_expression":
                if _callee_name(value) in _RX_FACTORIES:
                    rx_methods.add(name)
                elif kind == "public_field_definition":
                    state_fields.setdefault(name, None)
            elif name and kind == "public_field_definition" and value is not None:
                if value.type not in _FUNCTION_VALUES:
                    state_fields.setdefault(name, None)

        stack.extend(reversed(node.children))

    fields = list(state_fields)
    loading_field = _pick_field(fields, "isLoading", "loading")
    error_field = _pick_field(fields, "error", "error")
    return FileContext(
        state_fields=tuple(fields),
        injected_services=tuple(services),
        existing_rx_methods=frozenset(rx_methods),
        imports=tuple(parse_imports(root)),
        has_loading_state=loading_field is not None,
        has_error_state=error_field is not None,
        loading_field=loading_field,
        error_field=error_field,
    )


def _is_compatibility_wrapper(name: str, converted: frozenset[str]) -> bool:
    for suffix in ("Async", "Promise"):
        if name.endswith(suffix) and name[: -len(suffix)] in converted:
            return True
    return False


# =============================================================================
# Public API
# =============================================================================


def scan_source(text: str, path: Path | str = "<memory>") -> ScanResult:
    """Scan TypeScript source text.

    Syntax errors do not raise; they are reported in ``syntax_problems`` and the
    validator decides what to do with them.
    """
    parsed = parse_typescript(text)
    context = extract_context(parsed.root)
    methods = [
        m
        for m in _collect_methods(parsed.root)
        if not _is_compatibility_wrapper(m.name, context.existing_rx_methods)
    ]
    log.debug(
        "file_scanned",
        path=str(path),
        methods=len(methods),
        rx_methods=len(context.existing_rx_methods),
        syntax_problems=len(parsed.problems),
    )
    return ScanResult(
        path=Path(path),
        text=text,
        methods=methods,
        context=context,
        syntax_problems=parsed.problems,
    )


def read_source(path: Path) -> str:
    """Read a file as UTF-8, raising ScanError when that is not possible."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ScanError.unreadable(str(path), str(e)) from e
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ScanError.not_decodable(str(path), str(e)) from e


def scan_file(path: Path) -> ScanResult:
    """Read and scan one store file.

    Raises:
        ScanError: The file cannot be read or is not UTF-8.
    """
    return scan_source(read_source(path), path)


def count_async_methods(text: str) -> int:
    parsed = parse_typescript(text)
    return len(_collect_methods(parsed.root))


def validate_store_structure(text: str) -> StoreStructure:
    """Check for the signalStore building blocks a conversion relies on."""
    structure = StoreStructure(
        has_signal_store=re.search(r"\bsignalStore\s*\(", text) is not None,
        has_with_state=re.search(r"\bwithState\s*[<(]", text) is not None,
        has_with_methods=re.search(r"\bwithMethods\s*\(", text) is not None,
    )
    if not structure.has_signal_store:
        structure.problems.append("No signalStore() call found")
    if not structure.has_with_methods:
        structure.problems.append("No withMethods() block found")
    return structure


def extract_method_signatures(methods: list[MethodRecord]) -> dict[str, str]:
    """Map method name to its declared signature."""
    return {m.name: m.signature() for m in methods}
