"""rxMethod templates, one generator per pattern label.

Generators return lines at relative indentation zero; the assembler shifts
them to the indentation of the method they replace. Adding a pattern means
adding a generator and registering it in ``TEMPLATES``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from rxmigrate.config import constants as c
from rxmigrate.core.errors import PatternError
from rxmigrate.generate.models import GeneratedMethod
from rxmigrate.imports.models import ImportEntry
from rxmigrate.scan.models import FileContext, MethodParameter, MethodRecord, PatternType

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")
_RESULT_VAR = re.compile(r"(?:const|let)\s+(\w+)\s*(?::[^=]+)?=\s*await\b")
_PATCH_OBJECT = re.compile(r"patchState\(\s*[\w.]+\s*,\s*\{([^{}]*)\}\s*\)")
_PATCH_CALL = re.compile(r"patchState\([^;\n]*\);?")
_CATCH = re.compile(r"\bcatch\b")

IND = "  "


@dataclass(frozen=True)
class TemplateOptions:
    """Store-specific names used by every template."""

    store: str = "store"
    loading_field: str = "isLoading"
    error_field: str = "error"
    helpers_module: str = c.DEFAULT_HELPERS_MODULE
    progress_field: str | None = None

    @classmethod
    def for_context(
        cls,
        context: FileContext,
        *,
        store: str = "store",
        loading_field: str = "isLoading",
        error_field: str = "error",
        helpers_module: str = c.DEFAULT_HELPERS_MODULE,
    ) -> TemplateOptions:
        progress = next((f for f in context.state_fields if "progress" in f.lower()), None)
        return cls(
            store=store,
            loading_field=context.loading_field or loading_field,
            error_field=context.error_field or error_field,
            helpers_module=helpers_module,
            progress_field=progress,
        )


Generator = Callable[[MethodRecord, int, TemplateOptions], GeneratedMethod]


# =============================================================================
# Shared pieces
# =============================================================================


def _param_key(param: MethodParameter, index: int) -> str:
    return param.name if _IDENTIFIER.match(param.name) else f"arg{index + 1}"


def input_type(params: tuple[MethodParameter, ...]) -> str:
    """Type of the single value an rxMethod receives."""
    if not params:
        return "void"
    if len(params) == 1:
        return params[0].type or "unknown"
    fields = []
    for i, p in enumerate(params):
        optional = "?" if p.optional or p.default is not None else ""
        fields.append(f"{_param_key(p, i)}{optional}: {p.type or 'unknown'}")
    return "{ " + "; ".join(fields) + " }"


def _lambda_binding(params: tuple[MethodParameter, ...], type_text: str) -> str:
    """Parameter list of the projection lambda, e.g. ``(id: string)``."""
    if not params:
        return "()"
    if len(params) == 1:
        return f"({params[0].name}: {type_text})"
    keys = ", ".join(
        k if k == p.name else f"{k}: {p.name}"
        for k, p in ((_param_key(p, i), p) for i, p in enumerate(params))
    )
    return f"({{ {keys} }}: {type_text})"


def _call_arguments(params: tuple[MethodParameter, ...]) -> str:
    """Arguments forwarded to the collaborator call inside the pipeline."""
    return ", ".join(p.name for p in params)


def wrapper_argument(params: tuple[MethodParameter, ...]) -> str:
    """Expression the compatibility wrapper passes to the rxMethod."""
    if not params:
        return ""
    if len(params) == 1:
        return params[0].name
    parts = []
    for i, p in enumerate(params):
        key = _param_key(p, i)
        parts.append(key if key == p.name else f"{key}: {p.name}")
    return "{ " + ", ".join(parts) + " }"


def _placeholder_call(params: tuple[MethodParameter, ...]) -> str:
    return f"Promise.resolve({wrapper_argument(params) or 'undefined'})"


def _collaborator(record: MethodRecord) -> str | None:
    calls = record.collaborator_calls
    if not calls:
        return None
    return f"this.{calls[0]}" if record.member_kind == "class" else calls[0]


def _doc(record: MethodRecord, headline: str, *extra: str) -> tuple[str, ...]:
    params = ", ".join(p.render() for p in record.parameters)
    result = f": {record.return_type}" if record.return_type else ""
    lines = [
        "/**",
        f" * {record.name} converted to {c.REACTIVE_MARKER} ({headline})",
        f" * Original: async {record.name}({params}){result}",
    ]
    lines.extend(f" * {line}" if line else " *" for line in extra)
    lines.append(" */")
    return tuple(lines)


def _success_updates(record: MethodRecord, loading_field: str) -> tuple[str | None, list[str]]:
    """Find the awaited result variable and the state entries set from it."""
    m = _RESULT_VAR.search(record.body)
    if m is None:
        return None, []
    var = m.group(1)
    for pm in _PATCH_OBJECT.finditer(record.body, m.end()):
        entries = [e.strip() for e in pm.group(1).split(",") if e.strip()]
        used = [
            e
            for e in entries
            if re.search(rf"\b{re.escape(var)}\b", e) and not e.startswith(loading_field)
        ]
        if used:
            return var, used
    return var, []


def _state_pipeline(
    record: MethodRecord,
    opts: TemplateOptions,
    source_lines: list[str],
    next_lines: list[str],
) -> list[str]:
    """rxMethod scaffolding that sets loading on entry and clears it on every exit."""
    type_text = input_type(record.parameters)
    store, loading, error = opts.store, opts.loading_field, opts.error_field
    lines = [
        f"{c.REACTIVE_MARKER}<{type_text}>(",
        f"{IND}pipe(",
        f"{IND * 2}tap(() => patchState({store}, {{ {loading}: true, {error}: undefined }})),",
        f"{IND * 2}switchMap({_lambda_binding(record.parameters, type_text)} =>",
    ]
    lines.extend(f"{IND * 3}{line}" for line in source_lines)
    lines.extend(
        [
            f"{IND * 4}tap({{",
            *(f"{IND * 5}{line}" for line in next_lines),
            f"{IND * 5}error: (error: unknown) =>",
            f"{IND * 6}patchState({store}, {{",
            f"{IND * 7}{loading}: false,",
            f"{IND * 7}{error}: error instanceof Error ? error.message : 'Operation failed',",
            f"{IND * 6}}}),",
            f"{IND * 4}}}),",
            f"{IND * 4}catchError(() => EMPTY)",
            f"{IND * 3})",
            f"{IND * 2}),",
            f"{IND * 2}finalize(() => patchState({store}, {{ {loading}: false }}))",
            f"{IND})",
            ")",
        ]
    )
    return lines


def _pipeline_imports() -> tuple[ImportEntry, ...]:
    return (
        ImportEntry.named(c.RXMETHOD_MODULE, c.REACTIVE_MARKER),
        ImportEntry.named(c.SIGNALS_MODULE, "patchState"),
        ImportEntry.named(
            c.RXJS_MODULE, "pipe", "switchMap", "tap", "finalize", "from", "catchError", "EMPTY"
        ),
    )


# =============================================================================
# Generators
# =============================================================================


def generate_simple_load(
    record: MethodRecord, confidence: int, opts: TemplateOptions
) -> GeneratedMethod:
    collaborator = _collaborator(record)
    args = _call_arguments(record.parameters)
    if collaborator is not None:
        source = [f"from({collaborator}({args})).pipe("]
    else:
        source = [
            "// TODO: no collaborator call detected; replace with the remote call",
            f"from({_placeholder_call(record.parameters)}).pipe(",
        ]

    var, updates = _success_updates(record, opts.loading_field)
    if updates:
        entries = ", ".join([*updates, f"{opts.loading_field}: false"])
        next_lines = [f"next: ({var}) => patchState({opts.store}, {{ {entries} }}),"]
    else:
        next_lines = [
            "next: () => {",
            f"{IND}// TODO: store the result in state",
            f"{IND}patchState({opts.store}, {{ {opts.loading_field}: false }});",
            "},",
        ]

    return GeneratedMethod(
        pattern=PatternType.SIMPLE_LOAD,
        doc_lines=_doc(record, f"{PatternType.SIMPLE_LOAD} pattern"),
        expression=tuple(_state_pipeline(record, opts, source, next_lines)),
        imports=_pipeline_imports(),
        call_argument=wrapper_argument(record.parameters),
    )


def _split_state_hints(body: str) -> tuple[list[str], list[str]]:
    """patchState calls before the first await, and those after a catch."""
    await_at = body.find("await")
    catch = _CATCH.search(body)
    calls = list(_PATCH_CALL.finditer(body))
    before = [m.group(0) for m in calls if await_at == -1 or m.start() < await_at]
    after = [m.group(0) for m in calls if catch is not None and m.start() > catch.start()]
    return before, after


def generate_optimistic_update(
    record: MethodRecord, confidence: int, opts: TemplateOptions
) -> GeneratedMethod:
    type_text = input_type(record.parameters)
    binding = _lambda_binding(record.parameters, type_text)
    collaborator = _collaborator(record)
    args = _call_arguments(record.parameters)
    remote = (
        f"{collaborator}({args})"
        if collaborator is not None
        else f"{_placeholder_call(record.parameters)} /* TODO: remote call */"
    )
    optimistic_hints, rollback_hints = _split_state_hints(record.body)

    lines = [f"{c.OPTIMISTIC_HELPER}<{type_text}>(", f"{IND}{opts.store},"]
    lines.append(f"{IND}{binding} => {{")
    lines.append(f"{IND * 2}// TODO: apply the optimistic state change")
    lines.extend(f"{IND * 2}// was: {hint}" for hint in optimistic_hints)
    lines.append(f"{IND}}},")
    lines.append(f"{IND}{binding} => {remote},")
    lines.append(f"{IND}{binding} => {{")
    lines.append(f"{IND * 2}// TODO: restore the state captured before the optimistic change")
    lines.extend(f"{IND * 2}// was: {hint}" for hint in rollback_hints)
    lines.append(f"{IND}}}")
    lines.append(")")

    return GeneratedMethod(
        pattern=PatternType.OPTIMISTIC_UPDATE,
        doc_lines=_doc(record, f"{PatternType.OPTIMISTIC_UPDATE} pattern via {c.OPTIMISTIC_HELPER}"),
        expression=tuple(lines),
        imports=(
            ImportEntry.named(c.RXMETHOD_MODULE, c.REACTIVE_MARKER),
            ImportEntry.named(c.SIGNALS_MODULE, "patchState"),
            ImportEntry.named(opts.helpers_module, c.OPTIMISTIC_HELPER),
        ),
        call_argument=wrapper_argument(record.parameters),
    )


def generate_bulk_operation(
    record: MethodRecord, confidence: int, opts: TemplateOptions
) -> GeneratedMethod:
    collaborator = _collaborator(record)
    array_param = record.array_parameter
    extra: list[str] = []
    lines: list[str]

    if array_param is not None:
        type_text = array_param.type or "unknown[]"
        per_item = (
            f"{collaborator}(item)"
            if collaborator is not None
            else "Promise.resolve(item) /* TODO: remote call */"
        )
        others = [p.name for p in record.parameters if p is not array_param]
        lines = [
            f"{c.BULK_HELPER}<{type_text}>(",
            f"{IND}{opts.store},",
            f"{IND}({array_param.name}: {type_text}) =>",
            f"{IND * 2}Promise.all({array_param.name}.map((item) => {per_item})),",
        ]
        call_argument = array_param.name
        if others:
            extra.append(f"TODO: parameters not forwarded to the bulk call: {', '.join(others)}")
    else:
        # No array parameter: the parameters travel as one tuple
        types = ", ".join(p.type or "unknown" for p in record.parameters)
        names = ", ".join(p.name for p in record.parameters)
        type_text = f"[{types}]"
        single = (
            f"{collaborator}({names})"
            if collaborator is not None
            else "Promise.resolve() /* TODO: remote call */"
        )
        lines = [
            f"{c.BULK_HELPER}<{type_text}>(",
            f"{IND}{opts.store},",
            f"{IND}([{names}]: {type_text}) => {single},",
        ]
        call_argument = f"[{names}]"
        extra.append("No array parameter found; converted as a single call")

    if opts.progress_field:
        lines.append(f"{IND}(completed: number, total: number) =>")
        lines.append(
            f"{IND * 2}patchState({opts.store}, "
            f"{{ {opts.progress_field}: Math.round((completed / total) * 100) }})"
        )
    else:
        # Drop the trailing comma of the last argument
        lines[-1] = lines[-1].rstrip(",")
    lines.append(")")

    imports = [
        ImportEntry.named(c.RXMETHOD_MODULE, c.REACTIVE_MARKER),
        ImportEntry.named(opts.helpers_module, c.BULK_HELPER),
    ]
    if opts.progress_field:
        imports.append(ImportEntry.named(c.SIGNALS_MODULE, "patchState"))

    return GeneratedMethod(
        pattern=PatternType.BULK_OPERATION,
        doc_lines=_doc(
            record,
            f"{PatternType.BULK_OPERATION} pattern via {c.BULK_HELPER}",
            "Every item is sent concurrently; there is no batching.",
            *extra,
        ),
        expression=tuple(lines),
        imports=tuple(imports),
        call_argument=call_argument,
    )


def generate_custom(
    record: MethodRecord, confidence: int, opts: TemplateOptions
) -> GeneratedMethod:
    original = record.source.replace("*/", "*\\/").split("\n")
    source = [
        "// TODO: convert the original async/await logic to RxJS operators",
        "/*",
        *(f" * {line}".rstrip() for line in original),
        " */",
        "from(Promise.resolve() /* replace with the actual async operation */).pipe(",
    ]
    next_lines = [
        "next: () => {",
        f"{IND}// TODO: update state based on result",
        f"{IND}patchState({opts.store}, {{ {opts.loading_field}: false }});",
        "},",
    ]
    return GeneratedMethod(
        pattern=PatternType.CUSTOM,
        doc_lines=_doc(
            record,
            f"{PatternType.CUSTOM} pattern, {confidence}% confidence",
            "",
            f"{c.MANUAL_REVIEW_MARKER}: the original logic is kept below as a comment",
            "and must be translated by hand.",
        ),
        expression=tuple(_state_pipeline(record, opts, source, next_lines)),
        imports=_pipeline_imports(),
        call_argument=wrapper_argument(record.parameters),
    )


TEMPLATES: dict[PatternType, Generator] = {
    PatternType.SIMPLE_LOAD: generate_simple_load,
    PatternType.OPTIMISTIC_UPDATE: generate_optimistic_update,
    PatternType.BULK_OPERATION: generate_bulk_operation,
    PatternType.CUSTOM: generate_custom,
}


def generate(
    record: MethodRecord, pattern: PatternType, confidence: int, opts: TemplateOptions
) -> GeneratedMethod:
    generator = TEMPLATES.get(pattern)
    if generator is None:
        raise PatternError.unknown_pattern(str(pattern))
    return generator(record, confidence, opts)


def validate_template(generated: GeneratedMethod, record: MethodRecord) -> tuple[list[str], list[str]]:
    """Check generated code for the pieces every conversion needs.

    Returns:
        (errors, warnings)
    """
    text = "\n".join((*generated.doc_lines, *generated.expression))
    errors: list[str] = []
    warnings: list[str] = []
    if not generated.imports:
        errors.append("Template must specify required imports")
    if c.REACTIVE_MARKER not in text:
        errors.append(f"Template must use {c.REACTIVE_MARKER}")
    helper_used = any(h in text for h in c.SHARED_HELPERS)
    if "catchError" not in text and not helper_used:
        warnings.append("Template should include error handling with catchError")
    if "patchState" not in text and not helper_used:
        warnings.append("Template should include state management with patchState")
    if generated.pattern is PatternType.CUSTOM and "TODO" not in text:
        warnings.append("Custom templates should include TODO comments for manual review")
    return errors, warnings
