"""Reads documents from a repository: discover, fetch, parse."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Iterable, Optional, Union

from .discovery import DiscoveryOptions, Mode, find_by_glob
from .errors import ConfigurationError, ErrorHandler, FetchError, ParseError, log_error, wrap_error
from .git.source import SnapshotSource
from .header import LatestCommit
from .logging import get_logger
from .paths import normalize_cwd
from .utils import aiter_any, is_iterable_source, resolve

logger = get_logger("reader")

Parser = Callable[[bytes, str, "ReadContext"], Any]


@dataclass
class ReaderOptions(DiscoveryOptions):
    """Discovery options plus the reading pipeline."""

    cwd: str = "pages"
    mode: Mode = find_by_glob
    parser: Optional[Parser] = None
    on_error: ErrorHandler = log_error
    host: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class ReadContext:
    """Per-run session handed to parsers.

    Holds the effective options and lazily caches the branch head commit so
    that a run resolves it at most once, however many files need it.
    """

    def __init__(self, source: SnapshotSource, options: ReaderOptions) -> None:
        self.source = source
        self.options = options
        self._latest_commit: LatestCommit | None = None

    async def latest_commit(self) -> LatestCommit:
        if self._latest_commit is None:
            commit = await self.source.resolve_commit(self.options.repository, self.options.branch)
            self._latest_commit = LatestCommit.from_commit(commit)
        return self._latest_commit


def read_documents(source: SnapshotSource, options: ReaderOptions) -> AsyncIterator[Any]:
    """Yield ``options.parser`` results for every file ``options.mode`` discovers.

    Options are checked before any remote call. A file that cannot be fetched
    or parsed is reported to ``options.on_error`` and skipped.
    """
    if not callable(options.mode):
        raise ConfigurationError("Argument type mismatch, 'mode' expects a function.")
    if not callable(options.parser):
        raise ConfigurationError("Argument type mismatch, 'parser' expects a function.")
    if not callable(options.on_error):
        raise ConfigurationError("Argument type mismatch, 'on_error' expects a function.")
    if not isinstance(options.cwd, str):
        raise ConfigurationError("Argument type mismatch, 'cwd' expects a string.")
    if not isinstance(options.repository, str) or not options.repository:
        raise ConfigurationError("Argument type mismatch, 'repository' expects a non-empty string.")
    if not isinstance(options.branch, str) or not options.branch:
        raise ConfigurationError("Argument type mismatch, 'branch' expects a non-empty string.")
    if options.host is not None and not isinstance(options.host, str):
        raise ConfigurationError("Argument type mismatch, 'host' expects a string.")

    files = options.mode(source, options)
    if not is_iterable_source(files):
        raise ConfigurationError(
            "Argument type mismatch, 'mode' expects a function that returns an iterable or an async iterable."
        )
    return _read(source, options, files)


async def _read(
    source: SnapshotSource,
    options: ReaderOptions,
    files: Union[Iterable[str], AsyncIterator[str]],
) -> AsyncIterator[Any]:
    context = ReadContext(source, options)
    prefix = normalize_cwd(options.cwd)
    parser = options.parser
    assert parser is not None

    async for path in aiter_any(files):
        try:
            body = await source.read_raw(options.repository, prefix + path, options.branch)
        except Exception as exc:
            error = wrap_error(FetchError, f"Failed to fetch {path}: {exc}", path=path, cause=exc)
            await resolve(options.on_error(error))
            continue
        try:
            document = await resolve(parser(body, path, context))
        except Exception as exc:
            error = wrap_error(ParseError, f"Failed to parse {path}: {exc}", path=path, cause=exc)
            await resolve(options.on_error(error))
            continue
        logger.debug("Read %s", path)
        yield document


__all__ = ["ErrorHandler", "Parser", "ReadContext", "ReaderOptions", "read_documents"]
