"""Writes rendered documents back to a repository as batched commits."""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Union,
)

from .errors import CollisionError, ConfigurationError, ErrorHandler, NamingError, log_error
from .git.source import SnapshotSource
from .logging import get_logger
from .models import CommitAction, CommitInfo
from .naming import name_by_header, name_by_url
from .paths import join_output, normalize_cwd
from .utils import resolve

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger("writer")

Content = Union[str, bytes, bytearray, memoryview]
Namer = Callable[[Any], Union[Optional[str], Awaitable[Optional[str]]]]
Renderer = Callable[[Any], Union[Optional[Content], Awaitable[Optional[Content]]]]


class CommitRegistry:
    """Pending commit groups keyed by correlation key.

    A group is created by the first write that uses its key and dropped when
    that key is torn down. Writes into a group are serialized per key; a
    later write to the same output path replaces the earlier content.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, Dict[str, Content]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def add(self, key: str, path: str, content: Content) -> None:
        async with self._lock(key):
            self._groups.setdefault(key, {})[path] = content

    async def take(self, key: str) -> Dict[str, Content]:
        """Detach the group for ``key``; writes made afterwards start a new one."""
        async with self._lock(key):
            return self._groups.pop(key, {})

    async def restore(self, key: str, group: Dict[str, Content]) -> None:
        """Put back a detached group whose commit failed.

        Writes that reached the key in the meantime win over the restored
        content for the same path.
        """
        if not group:
            return
        async with self._lock(key):
            current = self._groups.get(key, {})
            self._groups[key] = {**group, **current}

    def pending(self, key: str) -> Dict[str, Content]:
        return dict(self._groups.get(key, {}))

    def drop(self, key: str) -> None:
        self._groups.pop(key, None)
        self._locks.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._groups)

    def clear(self) -> None:
        self._groups.clear()
        self._locks.clear()

    def _lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def __contains__(self, key: object) -> bool:
        return key in self._groups

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._groups)


@dataclass
class WriterOptions:
    """Destination and provenance of written documents.

    The committer name only distinguishes commit groups in the default
    ``group_key``; commits themselves carry the author identity.
    """

    repository: str = ""
    renderer: Optional[Renderer] = None
    branch: str = "master"
    cwd: str = "dist"
    author_name: str = "anonymous"
    author_email: str = "anonymous@example.com"
    committer_name: Optional[str] = None
    message: str = "Not provided"
    namers: Sequence[Namer] = (name_by_url, name_by_header)
    on_error: ErrorHandler = log_error
    commit_group_key: Optional[str] = None
    host: Optional[str] = None

    @property
    def effective_committer_name(self) -> str:
        return self.committer_name if self.committer_name is not None else self.author_name

    @property
    def group_key(self) -> str:
        if self.commit_group_key is not None:
            return self.commit_group_key
        return "/".join(
            (
                str(self.host),
                self.repository,
                self.branch,
                self.author_name,
                self.effective_committer_name,
                self.message,
            )
        )


class Writer:
    """Names, renders and batches documents into one commit per group key.

    Example::

        registry = CommitRegistry()
        writer = Writer(source, WriterOptions(repository="group/site", renderer=render), registry)
        async for document in read_documents(source, reader_options):
            await writer.write(document)
        await writer.teardown()
    """

    def __init__(
        self,
        source: SnapshotSource,
        options: WriterOptions,
        registry: CommitRegistry | None = None,
    ) -> None:
        _validate(options)
        self.source = source
        self.options = options
        self.registry = registry if registry is not None else CommitRegistry()
        self.key = options.group_key

    async def write(self, document: Any) -> Optional[str]:
        """Add ``document`` to the pending commit; return its repository path.

        Naming and rendering failures go to ``on_error``; nothing is stored
        and ``None`` is returned. An empty render is dropped silently.
        """
        try:
            name = await self._name(document)
            if name is None:
                raise NamingError("Naming error: could not create an output filename for the document.")
            rendered = await resolve(self.options.renderer(document))  # type: ignore[misc]
            if not rendered:
                logger.debug("Renderer returned nothing for %s, skipping", name)
                return None
            path = join_output(self.options.cwd, name)
            await self.registry.add(self.key, path, rendered)
            return path
        except Exception as exc:
            await resolve(self.options.on_error(exc))
            return None

    async def __call__(self, document: Any) -> Optional[str]:
        return await self.write(document)

    async def teardown(self) -> Optional[CommitInfo]:
        """Commit everything pending for this writer's key as one commit.

        The group is detached before any remote call, so writes arriving
        while the commit is in flight land in a fresh group for the next
        teardown. If the commit fails the detached entries are put back.
        """
        pending = await self.registry.take(self.key)
        if not pending:
            return None
        try:
            commit = await self._commit(pending)
        except BaseException:
            await self.registry.restore(self.key, pending)
            raise
        logger.info("Committed %d files to %s@%s", len(pending), self.options.repository, self.options.branch)
        return commit

    async def _commit(self, pending: Dict[str, Content]) -> CommitInfo:
        options = self.options
        files: Set[str] = set()
        dirs: Set[str] = set()
        for entry in await self.source.list_tree(
            options.repository, normalize_cwd(options.cwd), options.branch, recursive=True
        ):
            if entry.type == "blob":
                files.add(entry.path)
            else:
                dirs.add(entry.path)

        actions: List[CommitAction] = []
        for path, content in pending.items():
            if path in dirs:
                await resolve(
                    options.on_error(
                        CollisionError(
                            f"Invalid filename, directory already exists with this name: {path}",
                            path=path,
                        )
                    )
                )
            actions.append(
                CommitAction(
                    action="update" if path in files else "create",
                    path=path,
                    content=_encode(content),
                    encoding="base64",
                )
            )

        return await self.source.create_commit(
            options.repository,
            options.branch,
            options.message,
            actions,
            author_name=options.author_name,
            author_email=options.author_email,
        )

    async def __aenter__(self) -> Writer:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            await self.teardown()

    async def _name(self, document: Any) -> Optional[str]:
        for namer in self.options.namers:
            name = await resolve(namer(document))
            if name and isinstance(name, str):
                return name
        return None


def _encode(content: Content) -> str:
    if isinstance(content, str):
        raw = content.encode("utf-8")
    else:
        raw = bytes(content)
    return base64.b64encode(raw).decode("ascii")


def _validate(options: WriterOptions) -> None:
    for name in ("repository", "branch", "author_name", "author_email", "message"):
        value = getattr(options, name)
        if not isinstance(value, str) or not value:
            raise ConfigurationError(f"Argument type mismatch, '{name}' expects a non-empty string.")
    for name in ("committer_name", "commit_group_key", "host"):
        value = getattr(options, name)
        if value is not None and not isinstance(value, str):
            raise ConfigurationError(f"Argument type mismatch, '{name}' expects a string.")
    if not isinstance(options.cwd, str):
        raise ConfigurationError("Argument type mismatch, 'cwd' expects a string.")
    if callable(options.namers) or not isinstance(options.namers, Sequence):
        raise ConfigurationError("Argument type mismatch, 'namers' expects a list of functions.")
    if not options.namers or any(not callable(namer) for namer in options.namers):
        raise ConfigurationError("Argument type mismatch, 'namers' expects a list of functions.")
    if not callable(options.renderer):
        raise ConfigurationError("Argument type mismatch, 'renderer' expects a function.")
    if not callable(options.on_error):
        raise ConfigurationError("Argument type mismatch, 'on_error' expects a function.")


__all__ = ["CommitRegistry", "Content", "Namer", "Renderer", "Writer", "WriterOptions"]
