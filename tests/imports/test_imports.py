"""Tests for import parsing, merging and rendering."""

from __future__ import annotations

from rxmigrate.imports import (
    ImportEntry,
    locate_import_block,
    merge_imports,
    parse_imports,
    render_import,
    render_imports,
    validate_imports,
)
from rxmigrate.imports.models import imported_name, local_binding
from rxmigrate.scan.parser import parse_typescript

HEADER = """\
import { signalStore, withState } from '@ngrx/signals';
// shared helpers
import { helper } from './a';
import Default, * as NS from 'lib';
import type { Todo } from './todo.model';
import './polyfills';

export const x = 1;
import { late } from './late';
"""


def _parse(text: str) -> list[ImportEntry]:
    return parse_imports(parse_typescript(text).root)


class TestSpecifiers:
    """Specifier helpers."""

    def test_local_binding(self) -> None:
        assert local_binding("a as b") == "b"
        assert local_binding("type T") == "T"
        assert local_binding("plain") == "plain"

    def test_imported_name(self) -> None:
        assert imported_name("a as b") == "a"
        assert imported_name("type T as U") == "T"


class TestParseImports:
    """Tests for parse_imports() and locate_import_block()."""

    def test_named_imports(self) -> None:
        entries = _parse("import { a, b as c } from './x';\n")
        assert entries == [ImportEntry(module_path="./x", named_imports=frozenset({"a", "b as c"}))]

    def test_default_and_namespace(self) -> None:
        entry = _parse(HEADER)[2]
        assert entry.module_path == "lib"
        assert entry.default_import == "Default"
        assert entry.namespace_import == "NS"

    def test_type_only_and_side_effect(self) -> None:
        entries = _parse(HEADER)
        assert entries[3].type_only
        assert entries[4].side_effect
        assert entries[4].is_empty

    def test_all_top_level_imports(self) -> None:
        assert [e.module_path for e in _parse(HEADER)][-1] == "./late"

    def test_block_is_leading_run(self) -> None:
        block = locate_import_block(parse_typescript(HEADER).root)

        assert block is not None
        assert (block.start_line, block.end_line) == (1, 6)
        assert [e.module_path for e in block.entries] == [
            "@ngrx/signals",
            "./a",
            "lib",
            "./todo.model",
            "./polyfills",
        ]
        assert block.interleaved == ["// shared helpers"]

    def test_no_block(self) -> None:
        assert locate_import_block(parse_typescript("const a = 1;\n").root) is None


class TestMergeImports:
    """Tests for merge_imports()."""

    def test_adds_new_module(self) -> None:
        existing = [ImportEntry.named("@ngrx/signals", "signalStore")]
        required = [ImportEntry.named("rxjs", "tap")]

        result = merge_imports(existing, required)

        assert [e.module_path for e in result.merged] == ["@ngrx/signals", "rxjs"]
        assert [e.module_path for e in result.added] == ["rxjs"]
        assert result.modified == []
        assert result.changed

    def test_unions_named_imports(self) -> None:
        existing = [ImportEntry.named("@ngrx/signals", "signalStore")]
        required = [ImportEntry.named("@ngrx/signals", "patchState")]

        result = merge_imports(existing, required)

        assert result.merged[0].named_imports == frozenset({"signalStore", "patchState"})
        assert [e.module_path for e in result.modified] == ["@ngrx/signals"]

    def test_nothing_to_add(self) -> None:
        existing = [ImportEntry.named("rxjs", "tap", "map")]
        result = merge_imports(existing, [ImportEntry.named("rxjs", "tap")])
        assert not result.changed
        assert result.merged == existing

    def test_existing_default_wins(self) -> None:
        existing = [ImportEntry(module_path="lib", default_import="Lib")]
        required = [ImportEntry(module_path="lib", default_import="Other")]

        result = merge_imports(existing, required)

        assert result.merged[0].default_import == "Lib"

    def test_conflict_renames_later_import(self) -> None:
        existing = [ImportEntry.named("./a", "helper")]
        required = [ImportEntry.named("./utils/b", "helper")]

        result = merge_imports(existing, required)

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.name == "helper"
        assert conflict.existing_module == "./a"
        assert conflict.renamed_to == "helperFromB"
        merged = {e.module_path: e for e in result.merged}
        assert merged["./a"].named_imports == frozenset({"helper"})
        assert merged["./utils/b"].named_imports == frozenset({"helper as helperFromB"})
        assert result.warnings and "helperFromB" in result.warnings[0]

    def test_conflict_suffix_strips_punctuation(self) -> None:
        existing = [ImportEntry.named("rxjs", "from")]
        required = [ImportEntry.named("@app/rx-utils", "from")]

        result = merge_imports(existing, required)

        assert result.conflicts[0].renamed_to == "fromFromRxutils"

    def test_idempotent(self) -> None:
        existing = [
            ImportEntry.named("./a", "helper"),
            ImportEntry.named("@ngrx/signals", "signalStore"),
        ]
        required = [
            ImportEntry.named("./utils/b", "helper"),
            ImportEntry.named("@ngrx/signals", "patchState"),
            ImportEntry.named("rxjs", "tap"),
        ]

        once = merge_imports(existing, required)
        twice = merge_imports(once.merged, required)

        assert twice.merged == once.merged
        assert not twice.changed
        assert twice.conflicts == []


class TestRenderImports:
    """Tests for render_import() and render_imports()."""

    def test_single_line(self) -> None:
        entry = ImportEntry.named("rxjs", "tap", "map")
        assert render_import(entry) == "import { map, tap } from 'rxjs';"

    def test_wraps_after_three_names(self) -> None:
        entry = ImportEntry.named("rxjs", "tap", "map", "from", "EMPTY")
        assert render_import(entry) == (
            "import {\n  EMPTY,\n  from,\n  map,\n  tap\n} from 'rxjs';"
        )

    def test_default_namespace_and_type(self) -> None:
        assert render_import(ImportEntry(module_path="lib", default_import="Lib")) == (
            "import Lib from 'lib';"
        )
        assert render_import(ImportEntry(module_path="lib", namespace_import="L")) == (
            "import * as L from 'lib';"
        )
        typed = ImportEntry(module_path="./m", named_imports=frozenset({"T"}), type_only=True)
        assert render_import(typed) == "import type { T } from './m';"

    def test_side_effect(self) -> None:
        entry = ImportEntry(module_path="./polyfills", side_effect=True)
        assert render_import(entry) == "import './polyfills';"

    def test_groups_and_sorts(self) -> None:
        entries = [
            ImportEntry.named("./local", "x"),
            ImportEntry.named("@ngrx/signals", "patchState"),
            ImportEntry.named("rxjs", "tap"),
            ImportEntry.named("@angular/core", "inject"),
        ]

        lines = render_imports(entries)

        assert lines == [
            "import { tap } from 'rxjs';",
            "",
            "import { inject } from '@angular/core';",
            "import { patchState } from '@ngrx/signals';",
            "",
            "import { x } from './local';",
        ]

    def test_ungrouped_keeps_order(self) -> None:
        entries = [ImportEntry.named("./b", "b"), ImportEntry.named("./a", "a")]
        assert render_imports(entries, group=False, sort=False) == [
            "import { b } from './b';",
            "import { a } from './a';",
        ]

    def test_rendered_block_parses_back(self) -> None:
        entries = _parse(HEADER)[:5]
        text = "\n".join(render_imports(entries)) + "\n"
        assert sorted(_parse(text), key=lambda e: e.module_path) == sorted(
            entries, key=lambda e: e.module_path
        )


class TestValidateImports:
    """Tests for validate_imports()."""

    def test_clean(self) -> None:
        assert validate_imports([ImportEntry.named("rxjs", "tap")]) == []

    def test_empty_entry(self) -> None:
        problems = validate_imports([ImportEntry(module_path="rxjs")])
        assert problems == ["Empty import from 'rxjs'"]

    def test_duplicate_binding(self) -> None:
        problems = validate_imports(
            [ImportEntry.named("./a", "helper"), ImportEntry.named("./b", "helper")]
        )
        assert problems == ["'helper' imported from both './a' and './b'"]

    def test_suspicious_path(self) -> None:
        problems = validate_imports([ImportEntry.named("./utils/", "x")])
        assert problems == ["Suspicious import path './utils/'"]
