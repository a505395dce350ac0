"""Discovery modes: which repository files should a run process.

Every mode is called as ``mode(source, options)``. Options are validated
immediately; the returned async iterator performs its remote calls only once
iteration starts, yields paths relative to ``options.cwd`` one at a time and
cannot be restarted. Output order is whatever the source returns.

The two ``changed`` modes read the checkpoint from ``options.storage`` and
store the branch head once the sequence has been exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    AsyncIterator,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Union,
)

from .errors import ConfigurationError
from .git.source import SnapshotSource
from .logging import get_logger
from .matching import GlobPattern, is_match
from .models import DiffEntry
from .paths import is_within, normalize_cwd, relative_path
from .stores import CheckpointStore
from .triggers import TriggerTarget, collect_triggered_patterns, trigger_map
from .utils import resolve

logger = get_logger("discovery")


@dataclass
class DiscoveryOptions:
    """Options shared by every discovery mode."""

    repository: str = ""
    branch: str = "master"
    cwd: str = "."
    pattern: GlobPattern = "**"
    ignore: Optional[GlobPattern] = None
    filter: Optional[Callable[[str], bool]] = None
    storage: Optional[CheckpointStore] = None
    triggers: Optional[Mapping[str, object]] = None
    triggers_cwd: Optional[str] = None


Mode = Callable[[SnapshotSource, DiscoveryOptions], Union[AsyncIterator[str], Iterable[str]]]


def find_all(source: SnapshotSource, options: DiscoveryOptions) -> AsyncIterator[str]:
    """Every file under ``cwd``, optionally narrowed by ``filter``."""
    validate_options(options)
    return _find_all(source, options)


def find_by_glob(source: SnapshotSource, options: DiscoveryOptions) -> AsyncIterator[str]:
    """Files under ``cwd`` matching ``pattern`` but not ``ignore``."""
    validate_options(options)
    return _find_by_glob(source, options)


def find_changed_by_glob(source: SnapshotSource, options: DiscoveryOptions) -> AsyncIterator[str]:
    """Like :func:`find_by_glob`, restricted to files changed since the checkpoint.

    Without a checkpoint every matching file counts as changed.
    """
    validate_options(options, needs_storage=True)
    return _find_changed_by_glob(source, options)


def find_changed_or_triggered_by_glob(
    source: SnapshotSource, options: DiscoveryOptions
) -> AsyncIterator[str]:
    """Changed files plus the files that changed files trigger.

    For every ``triggers`` entry whose source pattern matches a changed path
    (relative to ``triggers_cwd``) the destination patterns are collected. A
    path is yielded when it matches ``pattern``/``ignore`` or any collected
    destination pattern; ``ignore`` never applies to triggered matches.
    Triggered files are looked up in the full tree, so they need not have
    changed themselves. Without a checkpoint triggers are not evaluated.
    """
    validate_options(options, needs_storage=True, needs_triggers=True)
    triggers = trigger_map(options.triggers or {})
    return _find_changed_or_triggered_by_glob(source, options, triggers)


MODES: Dict[str, Mode] = {
    "all": find_all,
    "glob": find_by_glob,
    "changed": find_changed_by_glob,
    "triggered": find_changed_or_triggered_by_glob,
}


def validate_options(
    options: DiscoveryOptions,
    *,
    needs_storage: bool = False,
    needs_triggers: bool = False,
) -> None:
    """Raise :class:`ConfigurationError` for missing or mistyped options."""
    if not isinstance(options.repository, str) or not options.repository:
        raise ConfigurationError("Argument type mismatch, 'repository' expects a non-empty string.")
    if not isinstance(options.branch, str) or not options.branch:
        raise ConfigurationError("Argument type mismatch, 'branch' expects a non-empty string.")
    if not isinstance(options.cwd, str):
        raise ConfigurationError("Argument type mismatch, 'cwd' expects a string.")
    if not _is_pattern(options.pattern):
        raise ConfigurationError("Argument type mismatch, 'pattern' expects a string or a list of strings.")
    if options.ignore is not None and not _is_pattern(options.ignore):
        raise ConfigurationError("Argument type mismatch, 'ignore' expects a string or a list of strings.")
    if options.filter is not None and not callable(options.filter):
        raise ConfigurationError("Argument type mismatch, 'filter' expects a function.")
    if needs_storage:
        storage = options.storage
        if storage is None:
            raise ConfigurationError("Missing option, 'storage' is required to track changes.")
        if not callable(getattr(storage, "get", None)) or not callable(getattr(storage, "set", None)):
            raise ConfigurationError("Argument type mismatch, 'storage' expects an object with get() and set().")
    if needs_triggers:
        if not isinstance(options.triggers, Mapping):
            raise ConfigurationError("Argument type mismatch, 'triggers' expects a mapping.")
        if options.triggers_cwd is not None and not isinstance(options.triggers_cwd, str):
            raise ConfigurationError("Argument type mismatch, 'triggers_cwd' expects a string.")
        try:
            trigger_map(options.triggers)
        except TypeError as exc:
            raise ConfigurationError(f"Argument type mismatch, 'triggers': {exc}") from exc


# ----------------------------------------------------------------------
# Mode bodies


async def _find_all(source: SnapshotSource, options: DiscoveryOptions) -> AsyncIterator[str]:
    cwd = normalize_cwd(options.cwd)
    for path in await _list_files(source, options, cwd):
        if _passes_filter(path, options):
            yield path


async def _find_by_glob(source: SnapshotSource, options: DiscoveryOptions) -> AsyncIterator[str]:
    cwd = normalize_cwd(options.cwd)
    for path in await _list_files(source, options, cwd):
        if _accepts(path, options):
            yield path


async def _find_changed_by_glob(
    source: SnapshotSource, options: DiscoveryOptions
) -> AsyncIterator[str]:
    cwd = normalize_cwd(options.cwd)
    storage = options.storage
    assert storage is not None
    head = await source.resolve_commit(options.repository, options.branch)
    since = await resolve(storage.get())

    if since:
        changes = await source.diff(options.repository, since, head.id)
        logger.debug("%d paths changed between %s and %s", len(changes), since, head.id)
        candidates = _relative_changes(changes, cwd)
    else:
        logger.debug("No checkpoint for %s@%s, treating every file as changed", options.repository, options.branch)
        candidates = await _list_files(source, options, cwd)

    for path in candidates:
        if _accepts(path, options):
            yield path

    await _advance(storage, head.id)


async def _find_changed_or_triggered_by_glob(
    source: SnapshotSource,
    options: DiscoveryOptions,
    triggers: Mapping[str, TriggerTarget],
) -> AsyncIterator[str]:
    cwd = normalize_cwd(options.cwd)
    storage = options.storage
    assert storage is not None
    head = await source.resolve_commit(options.repository, options.branch)
    since = await resolve(storage.get())

    if not since:
        logger.debug("No checkpoint for %s@%s, triggers are not evaluated", options.repository, options.branch)
        for path in await _list_files(source, options, cwd):
            if _accepts(path, options):
                yield path
        await _advance(storage, head.id)
        return

    changes = await source.diff(options.repository, since, head.id)
    logger.debug("%d paths changed between %s and %s", len(changes), since, head.id)
    triggers_cwd = normalize_cwd(options.triggers_cwd if options.triggers_cwd is not None else options.cwd)
    triggered = collect_triggered_patterns(_relative_changes(changes, triggers_cwd), triggers)
    if triggered:
        logger.debug("Triggered patterns: %s", ", ".join(triggered))

    seen: Set[str] = set()
    for path in _relative_changes(changes, cwd):
        if path in seen:
            continue
        seen.add(path)
        if (_matches_primary(path, options) or is_match(path, triggered)) and _passes_filter(path, options):
            yield path

    if triggered:
        for path in await _list_files(source, options, cwd):
            if path in seen:
                continue
            seen.add(path)
            if is_match(path, triggered) and _passes_filter(path, options):
                yield path

    await _advance(storage, head.id)


# ----------------------------------------------------------------------
# Helpers


async def _list_files(source: SnapshotSource, options: DiscoveryOptions, cwd: str) -> List[str]:
    entries = await source.list_tree(options.repository, cwd, options.branch, recursive=True)
    return [
        relative_path(cwd, entry.path)
        for entry in entries
        if entry.type == "blob" and is_within(cwd, entry.path)
    ]


def _relative_changes(changes: Sequence[DiffEntry], cwd: str) -> List[str]:
    paths: List[str] = []
    for change in changes:
        if not is_within(cwd, change.new_path):
            continue
        paths.append(relative_path(cwd, change.new_path))
    return paths


def _matches_primary(path: str, options: DiscoveryOptions) -> bool:
    return is_match(path, options.pattern, options.ignore)


def _passes_filter(path: str, options: DiscoveryOptions) -> bool:
    return options.filter is None or bool(options.filter(path))


def _accepts(path: str, options: DiscoveryOptions) -> bool:
    # Pattern first: the filter only sees already matched paths.
    return _matches_primary(path, options) and _passes_filter(path, options)


async def _advance(storage: CheckpointStore, commit: str) -> None:
    await resolve(storage.set(commit))
    logger.debug("Checkpoint advanced to %s", commit)


def _is_pattern(value: object) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, Sequence) and all(isinstance(item, str) for item in value)


__all__ = [
    "DiscoveryOptions",
    "MODES",
    "Mode",
    "find_all",
    "find_by_glob",
    "find_changed_by_glob",
    "find_changed_or_triggered_by_glob",
    "validate_options",
]
