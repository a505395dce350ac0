"""Trigger rules: changed files that force other files to be reprocessed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Sequence, Tuple, Union

from .matching import as_pattern_list, match_paths


@dataclass(frozen=True)
class Patterns:
    """Destination given as one or more literal glob patterns."""

    patterns: Union[str, Tuple[str, ...]]

    def __post_init__(self) -> None:
        object.__setattr__(self, "patterns", tuple(as_pattern_list(self.patterns)))

    def expand(self, matched: Sequence[str]) -> List[str]:
        return list(self.patterns)


@dataclass(frozen=True)
class Derive:
    """Destination computed from the source paths that matched."""

    fn: Callable[[List[str]], Iterable[str]]

    def expand(self, matched: Sequence[str]) -> List[str]:
        return [str(pattern) for pattern in self.fn(list(matched))]


TriggerTarget = Union[Patterns, Derive]
TriggerMap = Mapping[str, TriggerTarget]


def trigger_target(value: object) -> TriggerTarget:
    """Coerce a plain config value (pattern, list, callable) into a target."""
    if isinstance(value, (Patterns, Derive)):
        return value
    if isinstance(value, str):
        return Patterns(value)
    if callable(value):
        return Derive(value)  # type: ignore[arg-type]
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return Patterns(value)  # type: ignore[arg-type]
    raise TypeError(
        "Trigger destination must be a pattern, a list of patterns or a callable, "
        f"got {type(value).__name__}"
    )


def trigger_map(triggers: Mapping[str, object]) -> dict[str, TriggerTarget]:
    return {str(source): trigger_target(target) for source, target in triggers.items()}


def collect_triggered_patterns(changed: Sequence[str], triggers: TriggerMap) -> List[str]:
    """Return the deduplicated destination patterns fired by ``changed``.

    Source patterns are visited in insertion order; each one that matches at
    least one changed path contributes its expanded destination.
    """
    result: dict[str, None] = {}
    for source, target in triggers.items():
        matched = match_paths(changed, source)
        if not matched:
            continue
        for pattern in target.expand(matched):
            result.setdefault(pattern, None)
    return list(result)


__all__ = [
    "Derive",
    "Patterns",
    "TriggerMap",
    "TriggerTarget",
    "collect_triggered_patterns",
    "trigger_map",
    "trigger_target",
]
