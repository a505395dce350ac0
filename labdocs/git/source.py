"""Interface of the remote repository the pipeline reads from and writes to."""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ..models import CommitAction, CommitInfo, DiffEntry, TreeEntry


@runtime_checkable
class SnapshotSource(Protocol):
    """Repository operations used by discovery, reading and writing.

    Every method is a suspension point; implementations raise
    :class:`labdocs.errors.TransportError` for failed remote calls.
    """

    async def list_tree(
        self, repository: str, path: str, ref: str, recursive: bool = True
    ) -> List[TreeEntry]:
        ...

    async def diff(self, repository: str, from_ref: str, to_ref: str) -> List[DiffEntry]:
        ...

    async def resolve_commit(self, repository: str, ref: str) -> CommitInfo:
        ...

    async def read_raw(self, repository: str, path: str, ref: str) -> bytes:
        ...

    async def create_commit(
        self,
        repository: str,
        branch: str,
        message: str,
        actions: Sequence[CommitAction],
        *,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> CommitInfo:
        ...


__all__ = ["SnapshotSource"]
