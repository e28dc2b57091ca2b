"""Tree-sitter TypeScript parsing and lightweight syntax checks."""

from __future__ import annotations

from dataclasses import dataclass, field

import tree_sitter
import tree_sitter_typescript

_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


@dataclass
class SyntaxProblem:
    """A location where the parser could not make sense of the source."""

    line: int  # 1-based
    column: int  # 1-based
    message: str


@dataclass
class ParsedSource:
    """Result of parsing one TypeScript source."""

    tree: tree_sitter.Tree
    source: bytes
    problems: list[SyntaxProblem] = field(default_factory=list)

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node

    @property
    def ok(self) -> bool:
        return not self.problems


def parse_typescript(content: str | bytes) -> ParsedSource:
    """Parse TypeScript source and collect ERROR / missing nodes."""
    source = content.encode("utf-8") if isinstance(content, str) else content
    parser = tree_sitter.Parser()
    parser.language = _LANGUAGE
    tree = parser.parse(source)

    problems: list[SyntaxProblem] = []
    if tree.root_node.has_error:
        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                row, col = node.start_point
                if node.is_missing:
                    message = f"Missing '{node.type}'"
                else:
                    message = "Unexpected syntax"
                problems.append(SyntaxProblem(line=row + 1, column=col + 1, message=message))
                continue
            if node.has_error:
                stack.extend(reversed(node.children))
        problems.sort(key=lambda p: (p.line, p.column))
    return ParsedSource(tree=tree, source=source, problems=problems)


def node_text(node: tree_sitter.Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def check_balanced_delimiters(text: str) -> list[str]:
    """Check (), [] and {} balance outside strings and comments.

    Not a parse: regex literals are not recognised, so this is only meant
    for catching splices that dropped or duplicated a delimiter.
    """
    problems: list[str] = []
    stack: list[tuple[str, int]] = []
    # Template literal nesting: each entry is the stack depth at which a
    # ``${`` substitution re-enters code.
    template_depths: list[int] = []
    line = 1
    i = 0
    n = len(text)
    in_template = False

    while i < n:
        ch = text[i]
        if ch == "\n":
            line += 1
            i += 1
            continue

        if in_template:
            if ch == "\\":
                i += 2
                continue
            if ch == "`":
                in_template = False
            elif ch == "$" and i + 1 < n and text[i + 1] == "{":
                template_depths.append(len(stack))
                stack.append(("{", line))
                in_template = False
                i += 2
                continue
            i += 1
            continue

        nxt = text[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            if end == -1:
                problems.append(f"Unterminated block comment starting on line {line}")
                break
            line += text.count("\n", i, end)
            i = end + 2
            continue
        if ch in ("'", '"'):
            j = i + 1
            while j < n and text[j] != ch and text[j] != "\n":
                j += 2 if text[j] == "\\" else 1
            if j >= n or text[j] == "\n":
                problems.append(f"Unterminated string on line {line}")
            i = j + 1
            continue
        if ch == "`":
            in_template = True
            i += 1
            continue

        if ch in _OPENERS:
            stack.append((ch, line))
        elif ch in _CLOSERS:
            if not stack:
                problems.append(f"Unmatched '{ch}' on line {line}")
            else:
                opener, open_line = stack.pop()
                if opener != _CLOSERS[ch]:
                    problems.append(
                        f"'{opener}' opened on line {open_line} closed by '{ch}' on line {line}"
                    )
                if ch == "}" and template_depths and template_depths[-1] == len(stack):
                    template_depths.pop()
                    in_template = True
        i += 1

    if in_template:
        problems.append("Unterminated template literal")
    for opener, open_line in stack:
        problems.append(f"Unclosed '{opener}' opened on line {open_line}")
    return problems
