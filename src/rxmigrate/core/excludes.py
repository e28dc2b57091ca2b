"""Directory pruning and glob exclusion for store-file discovery."""

from __future__ import annotations

import fnmatch

# Never descended into during recursive discovery.
PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        # JavaScript/Node.js ecosystem
        "node_modules",
        "bower_components",
        ".angular",
        ".nx",
        ".next",
        ".turbo",
        # Build outputs
        "dist",
        "build",
        "out",
        "coverage",
    )
)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "node_modules/**",
    "dist/**",
    "**/*.spec.ts",
    "**/*.test.ts",
)


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Check if a POSIX-style relative path matches a glob pattern, with ** support."""
    if fnmatch.fnmatch(rel_path, pattern):
        return True
    # **/pattern matches at any depth, including the root
    if pattern.startswith("**/"):
        return fnmatch.fnmatch(rel_path, pattern[3:])
    # dir/** matches the directory at any depth
    if pattern.endswith("/**"):
        prefix = pattern[:-3]
        parts = rel_path.split("/")
        return any(fnmatch.fnmatch("/".join(parts[i:]), f"{prefix}/*") for i in range(len(parts)))
    return False


def is_excluded(rel_path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    return any(matches_glob(rel_path, p) for p in patterns)
