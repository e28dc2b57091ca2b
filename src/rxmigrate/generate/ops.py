"""Code assembly: splice generated methods into a store file.

The file is treated as an immutable list of lines. Every change is a
``LineEdit`` (start, end, new lines) against the original line numbers, and
all edits are applied in one pass from the bottom of the file up so that no
splice shifts a range that has not been applied yet.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from rxmigrate.classify.models import ClassificationResult
from rxmigrate.classify.ops import DEFAULT_THRESHOLDS, classify_all
from rxmigrate.config.constants import DEFAULT_HELPERS_MODULE
from rxmigrate.config.models import ClassifierThresholds, MigrationConfig
from rxmigrate.core.errors import InternalError, MigrationError, PatternError
from rxmigrate.core.logging import get_logger
from rxmigrate.generate.models import (
    ConversionRecord,
    GeneratedMethod,
    GenerationResult,
    MethodFailure,
)
from rxmigrate.generate.templates import TemplateOptions, generate, validate_template
from rxmigrate.generate.wrappers import WRAPPER_IMPORT, generate_wrapper, wrapper_name
from rxmigrate.imports.models import ImportEntry
from rxmigrate.imports.ops import locate_import_block, merge_imports, render_imports
from rxmigrate.scan.models import FileContext, MethodRecord, ScanResult
from rxmigrate.scan.ops import scan_source
from rxmigrate.scan.parser import check_balanced_delimiters, parse_typescript

log = get_logger(__name__)

_TRAILING = re.compile(r"\s*[,;]?\s*(//.*)?")


@dataclass(frozen=True)
class LineEdit:
    """Replace lines ``[start, end)`` (0-based) with ``lines``."""

    start: int
    end: int
    lines: tuple[str, ...]


@dataclass(frozen=True)
class AssemblyOptions:
    add_provenance_comments: bool = True
    preserve_caller_compatibility: bool = True
    group_imports: bool = True
    sort_imports: bool = True
    store: str = "store"
    loading_field: str = "isLoading"
    error_field: str = "error"
    helpers_module: str = DEFAULT_HELPERS_MODULE
    thresholds: ClassifierThresholds = field(default_factory=lambda: DEFAULT_THRESHOLDS)

    @classmethod
    def from_config(cls, config: MigrationConfig) -> AssemblyOptions:
        gen = config.generation
        return cls(
            add_provenance_comments=gen.add_provenance_comments,
            preserve_caller_compatibility=config.preserve_caller_compatibility,
            group_imports=gen.group_imports,
            sort_imports=gen.sort_imports,
            store=gen.store_identifier,
            loading_field=gen.loading_field,
            error_field=gen.error_field,
            helpers_module=gen.helpers_module,
            thresholds=config.classifier,
        )

    def template_options(self, context: FileContext) -> TemplateOptions:
        return TemplateOptions.for_context(
            context,
            store=self.store,
            loading_field=self.loading_field,
            error_field=self.error_field,
            helpers_module=self.helpers_module,
        )


# =============================================================================
# Line edits
# =============================================================================


def split_lines(text: str) -> tuple[str, ...]:
    return tuple(text.split("\n"))


def apply_edits(lines: tuple[str, ...], edits: list[LineEdit]) -> str:
    """Apply non-overlapping edits bottom-up and join the result."""
    ordered = sorted(edits, key=lambda e: (e.start, e.end), reverse=True)
    for later, earlier in zip(ordered, ordered[1:]):
        if earlier.end > later.start:
            raise InternalError.unexpected(
                "overlapping edits",
                first=(earlier.start, earlier.end),
                second=(later.start, later.end),
            )
    out = list(lines)
    for edit in ordered:
        out[edit.start : edit.end] = edit.lines
    return "\n".join(out)


def extract_range(text: str, start_line: int, end_line: int) -> list[str]:
    """Lines ``start_line..end_line`` (1-based, inclusive)."""
    return list(split_lines(text)[start_line - 1 : end_line])


def replace_range(text: str, start_line: int, end_line: int, new_lines: list[str]) -> str:
    """Replace lines ``start_line..end_line`` (1-based, inclusive) with ``new_lines``."""
    return apply_edits(split_lines(text), [LineEdit(start_line - 1, end_line, tuple(new_lines))])


def _indent(lines: list[str] | tuple[str, ...], prefix: str) -> list[str]:
    return [f"{prefix}{line}" if line else line for line in lines]


# =============================================================================
# Per-method conversion
# =============================================================================


def _locate(record: MethodRecord, lines: tuple[str, ...]) -> tuple[str, str | None]:
    """Check the record still matches the file and return (indent, trailing comment).

    Raises:
        PatternError: The range is stale or shares its lines with other code.
    """
    start, end = record.start_line - 1, record.end_line - 1
    if start < 0 or end >= len(lines) or start > end:
        raise PatternError.stale_range(record.name, record.start_line, record.end_line, len(lines))

    source_lines = record.source.split("\n")
    first = lines[start]
    prefix = first[: record.start_column]
    if prefix.strip():
        raise PatternError.unspliceable(record.name, "other code precedes it on its first line")

    end_col = len(source_lines[-1]) + (record.start_column if start == end else 0)
    span = [lines[i] for i in range(start, end + 1)]
    span[-1] = span[-1][:end_col]
    span[0] = span[0][record.start_column :]
    if "\n".join(span) != record.source:
        raise PatternError.stale_range(record.name, record.start_line, record.end_line, len(lines))

    match = _TRAILING.fullmatch(lines[end][end_col:])
    if match is None:
        raise PatternError.unspliceable(record.name, "other code follows it on its last line")
    return prefix, match.group(1)


def _member_lines(
    record: MethodRecord,
    generated: GeneratedMethod,
    confidence: int,
    options: AssemblyOptions,
    trailing_comment: str | None,
) -> tuple[list[str], list[str] | None]:
    """Generated member and optional wrapper, at relative indentation zero."""
    body: list[str] = []
    if options.add_provenance_comments:
        body.append(
            f"// Converted from async method to rxMethod "
            f"({generated.pattern} pattern, {confidence}% confidence)"
        )
    body.extend(generated.doc_lines)

    expr = list(generated.expression)
    if record.member_kind == "object":
        expr[0] = f"{record.name}: {expr[0]}"
        expr[-1] += ","
    else:
        expr[0] = f"readonly {record.name} = {expr[0]}"
        expr[-1] += ";"
    if trailing_comment:
        expr[-1] += f" {trailing_comment}"
    body.extend(expr)

    wrapper: list[str] | None = None
    if options.preserve_caller_compatibility:
        wrapper = generate_wrapper(record, generated.call_argument)
        if record.member_kind == "object":
            wrapper[-1] += ","
    return body, wrapper


def _convert_method(
    record: MethodRecord,
    classification: ClassificationResult,
    context: FileContext,
    lines: tuple[str, ...],
    options: AssemblyOptions,
    result: GenerationResult,
) -> tuple[LineEdit, list[ImportEntry]] | None:
    try:
        indent, trailing_comment = _locate(record, lines)
        generated = generate(
            record,
            classification.pattern,
            classification.confidence,
            options.template_options(context),
        )
        errors, warnings = validate_template(generated, record)
        if errors:
            raise PatternError.invalid_template(record.name, errors)
        result.warnings.extend(f"{record.name}: {w}" for w in warnings)
        body, wrapper = _member_lines(
            record, generated, classification.confidence, options, trailing_comment
        )
    except MigrationError as e:
        log.warning("method_conversion_failed", method=record.name, error=str(e))
        result.failures.append(MethodFailure(record.name, e.message, record.start_line))
        result.errors.append(f"{record.name}: {e.message}")
        result.methods_skipped += 1
        return None

    new_lines = _indent(body, indent)
    imports = list(generated.imports)
    if wrapper is not None:
        new_lines.append("")
        new_lines.extend(_indent(wrapper, indent))
        imports.append(WRAPPER_IMPORT)
        result.wrappers_generated += 1

    result.conversions.append(
        ConversionRecord(
            method_name=record.name,
            pattern=classification.pattern,
            body="\n".join(body),
            wrapper="\n".join(wrapper) if wrapper is not None else None,
            required_imports=tuple(imports),
            confidence=classification.confidence,
            start_line=record.start_line,
            requires_manual_review=classification.requires_manual_review,
        )
    )
    result.methods_converted += 1
    if classification.requires_manual_review:
        result.warnings.append(
            f"{record.name}: requires manual review ({classification.confidence}% confidence)"
        )
    log.debug(
        "method_converted",
        method=record.name,
        pattern=str(classification.pattern),
        confidence=classification.confidence,
        wrapper=wrapper_name(record.name) if wrapper is not None else None,
    )
    return LineEdit(record.start_line - 1, record.end_line, tuple(new_lines)), imports


def _import_edit(
    text: str, required: list[ImportEntry], options: AssemblyOptions, result: GenerationResult
) -> LineEdit | None:
    """Merge required imports into the leading import block, if anything changes."""
    block = locate_import_block(parse_typescript(text).root)
    merged = merge_imports(block.entries if block else [], required)
    result.warnings.extend(merged.warnings)
    result.import_changes = merged.summary()
    if not merged.changed:
        return None

    rendered = render_imports(merged.merged, group=options.group_imports, sort=options.sort_imports)
    if block is None:
        return LineEdit(0, 0, (*rendered, ""))
    return LineEdit(block.start_line - 1, block.end_line, (*rendered, *block.interleaved))


# =============================================================================
# Public API
# =============================================================================


def assemble(
    scan: ScanResult,
    classifications: list[tuple[MethodRecord, ClassificationResult]],
    options: AssemblyOptions | None = None,
) -> GenerationResult:
    """Replace every classified method in ``scan`` and regenerate imports.

    Methods that fail are left untouched and recorded as errors on the
    result; the remaining methods are still converted.
    """
    options = options or AssemblyOptions()
    text = scan.text
    result = GenerationResult(
        path=str(scan.path),
        success=True,
        original_code=text,
        converted_code=text,
        classifications=list(classifications),
    )
    if not classifications:
        return result

    lines = split_lines(text)
    edits: list[LineEdit] = []
    required: list[ImportEntry] = []
    ordered = sorted(classifications, key=lambda pair: pair[0].start_line, reverse=True)
    for record, classification in ordered:
        converted = _convert_method(record, classification, scan.context, lines, options, result)
        if converted is not None:
            edit, imports = converted
            edits.append(edit)
            required.extend(imports)
    result.conversions.sort(key=lambda conv: conv.start_line)

    if result.methods_converted:
        import_edit = _import_edit(text, required, options, result)
        if import_edit is not None:
            edits.append(import_edit)

    try:
        result.converted_code = apply_edits(lines, edits)
    except InternalError as e:
        result.converted_code = text
        result.mark_failed(e.message)
        return result

    if result.methods_converted:
        problems = check_balanced_delimiters(result.converted_code)
        if problems:
            if check_balanced_delimiters(text):
                result.warnings.extend(f"Delimiter check: {p}" for p in problems)
            else:
                result.errors.extend(f"Delimiter check: {p}" for p in problems)

    result.success = not result.errors
    return result


def classify_scan(
    scan: ScanResult, thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS
) -> list[tuple[MethodRecord, ClassificationResult]]:
    return classify_all(scan.methods, scan.context, thresholds)


def convert_source(
    text: str, path: str = "<memory>", options: AssemblyOptions | None = None
) -> GenerationResult:
    """Scan, classify and assemble one source text."""
    options = options or AssemblyOptions()
    scan = scan_source(text, path)
    return assemble(scan, classify_scan(scan, options.thresholds), options)
