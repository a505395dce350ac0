"""Glob matching for repository-relative paths.

The dialect follows the usual shell/micromatch conventions:

* ``*`` and ``?`` match within a single path segment and never cross ``/``
* ``**`` as a whole segment matches zero or more segments
* ``[abc]``, ``[!abc]`` and ``[^abc]`` character classes
* ``{a,b}`` brace alternatives, nestable
* wildcards do not match a leading ``.`` unless the pattern segment starts with one
* a pattern prefixed with ``!`` excludes matches instead of adding them
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Iterable, List, Sequence, Tuple, Union

GlobPattern = Union[str, Sequence[str]]


def as_pattern_list(patterns: GlobPattern | None) -> List[str]:
    if patterns is None:
        return []
    if isinstance(patterns, str):
        return [patterns]
    return [str(pattern) for pattern in patterns]


def is_match(path: str, patterns: GlobPattern, ignore: GlobPattern | None = None) -> bool:
    """Return True when ``path`` matches any pattern and no ignore pattern."""
    positives, negatives = _split(as_pattern_list(patterns))
    negatives.extend(as_pattern_list(ignore))
    normalized = path.replace("\\", "/")
    if not any(_matches(normalized, pattern) for pattern in positives):
        return False
    return not any(_matches(normalized, pattern) for pattern in negatives)


def match_paths(paths: Iterable[str], patterns: GlobPattern) -> List[str]:
    """Return the subset of ``paths`` matching ``patterns``, preserving order."""
    return [path for path in paths if is_match(path, patterns)]


def _split(patterns: Sequence[str]) -> Tuple[List[str], List[str]]:
    positives: List[str] = []
    negatives: List[str] = []
    for pattern in patterns:
        if pattern.startswith("!") and len(pattern) > 1:
            negatives.append(pattern[1:])
        elif pattern:
            positives.append(pattern)
    if negatives and not positives:
        positives.append("**")
    return positives, negatives


def _matches(path: str, pattern: str) -> bool:
    parts = tuple(part for part in path.split("/") if part)
    return any(_match_segments(parts, segments) for segments in _compile(pattern))


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> Tuple[Tuple[str, ...], ...]:
    compiled = []
    for alternative in _expand_braces(pattern.replace("\\", "/")):
        if alternative.startswith("./"):
            alternative = alternative[2:]
        segments = [segment for segment in alternative.split("/") if segment]
        # Collapse runs of "**" so backtracking stays linear in their count.
        collapsed: List[str] = []
        for segment in segments:
            if segment == "**" and collapsed and collapsed[-1] == "**":
                continue
            collapsed.append(segment.replace("[^", "[!"))
        compiled.append(tuple(collapsed))
    return tuple(compiled)


def _expand_braces(pattern: str) -> List[str]:
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    options: List[str] = []
    current = start + 1
    for index in range(start, len(pattern)):
        char = pattern[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[current:index])
                prefix, suffix = pattern[:start], pattern[index + 1:]
                expanded: List[str] = []
                for option in options:
                    expanded.extend(_expand_braces(prefix + option + suffix))
                return expanded
        elif char == "," and depth == 1:
            options.append(pattern[current:index])
            current = index + 1
    # Unbalanced braces are literal characters.
    return [pattern]


def _match_segments(parts: Tuple[str, ...], segments: Tuple[str, ...]) -> bool:
    if not segments:
        return not parts
    head, rest = segments[0], segments[1:]
    if head == "**":
        for index in range(len(parts) + 1):
            if _match_segments(parts[index:], rest):
                return True
            if index < len(parts) and parts[index].startswith("."):
                return False
        return False
    if not parts:
        return False
    if not _match_segment(parts[0], head):
        return False
    return _match_segments(parts[1:], rest)


def _match_segment(part: str, segment: str) -> bool:
    if part.startswith(".") and not segment.startswith("."):
        return False
    return fnmatchcase(part, segment)


__all__ = ["GlobPattern", "as_pattern_list", "is_match", "match_paths"]
