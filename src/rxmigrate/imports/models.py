"""Data models for import reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field


def _strip_type_modifier(specifier: str) -> str:
    spec = specifier.strip()
    return spec[5:].strip() if spec.startswith("type ") else spec


def local_binding(specifier: str) -> str:
    """Name a named-import specifier binds locally ('a as b' -> 'b')."""
    name, _, alias = _strip_type_modifier(specifier).partition(" as ")
    return (alias or name).strip()


def imported_name(specifier: str) -> str:
    """Name exported by the module for a specifier ('a as b' -> 'a')."""
    return _strip_type_modifier(specifier).partition(" as ")[0].strip()


@dataclass(frozen=True)
class ImportEntry:
    """One import statement, keyed by module path.

    Named imports are stored as specifier text, either ``name`` or
    ``name as alias``.
    """

    module_path: str
    named_imports: frozenset[str] = frozenset()
    default_import: str | None = None
    namespace_import: str | None = None
    type_only: bool = False
    side_effect: bool = False  # import 'module';

    @classmethod
    def named(cls, module_path: str, *names: str) -> ImportEntry:
        return cls(module_path=module_path, named_imports=frozenset(names))

    @property
    def is_empty(self) -> bool:
        return not (self.named_imports or self.default_import or self.namespace_import)

    def bindings(self) -> list[str]:
        """Local names this entry introduces."""
        names = [local_binding(s) for s in self.named_imports]
        if self.default_import:
            names.append(self.default_import)
        if self.namespace_import:
            names.append(self.namespace_import)
        return names


@dataclass
class ImportConflict:
    """The same local name imported from two modules."""

    name: str
    existing_module: str
    conflicting_module: str
    resolution: str
    renamed_to: str


@dataclass
class ImportMergeResult:
    """Outcome of merging required imports into an existing table."""

    merged: list[ImportEntry] = field(default_factory=list)
    added: list[ImportEntry] = field(default_factory=list)
    modified: list[ImportEntry] = field(default_factory=list)
    conflicts: list[ImportConflict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.modified)

    def summary(self) -> dict[str, list[str]]:
        return {
            "added": [e.module_path for e in self.added],
            "modified": [e.module_path for e in self.modified],
            "conflicts": [c.resolution for c in self.conflicts],
        }


@dataclass
class ImportBlock:
    """Location of the contiguous import section of a file (1-based, inclusive)."""

    start_line: int
    end_line: int
    entries: list[ImportEntry] = field(default_factory=list)
    # Non-import lines (comments) found between the first and last import
    interleaved: list[str] = field(default_factory=list)
