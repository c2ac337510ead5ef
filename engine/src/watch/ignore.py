"""
Path filtering for watch mode.
"""

import re
from typing import Callable, Iterable, List

DEFAULT_IGNORED_SEGMENTS = frozenset({
    # dependencies and virtualenvs
    "node_modules",
    ".venv",
    "venv",
    ".tox",
    # build and output
    "dist",
    "build",
    "out",
    "coverage",
    # tool caches
    ".vite",
    ".vite-temp",
    ".turbo",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    # vcs and editors
    ".git",
    ".idea",
    ".tmp",
})

DEFAULT_IGNORED_SEGMENT_SUFFIXES = (".egg-info",)

DEFAULT_IGNORED_FILE_SUFFIXES = (
    ".tsbuildinfo",
    ".tsbuildinfo.build",
    ".pyc",
    ".pyo",
    ".swp",
    "~",
)

PathMatcher = Callable[[str, List[str]], bool]

def normalize_watch_path(path: str) -> str:
    return path.replace("\\", "/")

def create_watch_ignore_matcher(exclude_patterns: Iterable[str] = ()) -> Callable[[str], bool]:
    """
    Build a predicate telling whether a changed path should be ignored.

    Built-in directories and generated files are always ignored. Each
    extra pattern is one of:
      - a plain name, matched against every path segment
      - a plain path containing "/", matched as a path prefix
      - a glob with "*" (one segment) or "**" (any depth)
    """
    matchers = [
        _compile_exclude_pattern(pattern.strip())
        for pattern in exclude_patterns
        if pattern.strip()
    ]

    def should_ignore(path: str) -> bool:
        normalized = normalize_watch_path(path)
        segments = [segment for segment in normalized.split("/") if segment]

        for segment in segments:
            if segment in DEFAULT_IGNORED_SEGMENTS:
                return True
            if segment.endswith(DEFAULT_IGNORED_SEGMENT_SUFFIXES):
                return True

        file_name = segments[-1] if segments else ""
        if file_name.endswith(DEFAULT_IGNORED_FILE_SUFFIXES):
            return True

        return any(matcher(normalized, segments) for matcher in matchers)

    return should_ignore

def _compile_exclude_pattern(pattern: str) -> PathMatcher:
    if pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = normalize_watch_path(pattern)

    if "*" not in pattern:
        if "/" in pattern:
            prefix = pattern.rstrip("/")
            return lambda path, segments: path == prefix or path.startswith(prefix + "/")
        return lambda path, segments: pattern in segments

    regex = glob_to_regex(pattern)
    if "/" not in pattern:
        return lambda path, segments: any(regex.match(segment) for segment in segments)
    return lambda path, segments: regex.match(path) is not None

def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate "*" to one segment and "**" to any depth."""
    parts = ["^"]
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "*":
            if pattern[i + 1:i + 3] == "*/":
                parts.append("(?:.*/)?")
                i += 3
                continue
            if pattern[i + 1:i + 2] == "*":
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        else:
            parts.append(re.escape(char))
        i += 1
    parts.append("$")
    return re.compile("".join(parts))
