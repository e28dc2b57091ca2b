"""Generate module - rxMethod templates and code assembly."""

from rxmigrate.generate.models import (
    ConversionRecord,
    GeneratedMethod,
    GenerationResult,
    MethodFailure,
)
from rxmigrate.generate.ops import (
    AssemblyOptions,
    LineEdit,
    apply_edits,
    assemble,
    classify_scan,
    convert_source,
)
from rxmigrate.generate.templates import TEMPLATES, TemplateOptions
from rxmigrate.generate.wrappers import wrapper_name

__all__ = [
    "TEMPLATES",
    "AssemblyOptions",
    "ConversionRecord",
    "GeneratedMethod",
    "GenerationResult",
    "LineEdit",
    "MethodFailure",
    "TemplateOptions",
    "apply_edits",
    "assemble",
    "classify_scan",
    "convert_source",
    "wrapper_name",
]
