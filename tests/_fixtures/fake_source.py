"""In-memory snapshot source for exercising the pipeline without GitLab."""

from __future__ import annotations

import base64
import posixpath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from labdocs.errors import TransportError
from labdocs.models import CommitAction, CommitInfo, DiffEntry, TreeEntry

DEFAULT_REPOSITORY = "group/project"


def make_commit(commit_id: str, **overrides: str) -> CommitInfo:
    """Build a commit descriptor with predictable author fields."""
    values = {
        "id": commit_id,
        "short_id": commit_id[:8],
        "author_name": "Ada",
        "author_email": "ada@example.com",
        "authored_date": "2024-01-01T00:00:00Z",
        "message": f"commit {commit_id}",
    }
    values.update(overrides)
    return CommitInfo(**values)  # type: ignore[arg-type]


class FakeSource:
    """Implements ``SnapshotSource`` over dictionaries and records every call."""

    def __init__(
        self,
        files: Optional[Mapping[str, Union[str, bytes]]] = None,
        *,
        repository: str = DEFAULT_REPOSITORY,
        head: Union[str, CommitInfo] = "c1",
    ) -> None:
        self.repositories: Dict[str, Dict[str, bytes]] = {}
        self.heads: Dict[str, CommitInfo] = {}
        self.diffs: Dict[Tuple[str, str], List[DiffEntry]] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.commits: List[dict] = []
        self.unreadable: set[str] = set()
        self.fail_commit = False
        self.add_files(files or {}, repository=repository)
        self.set_head(head, repository=repository)

    # ------------------------------------------------------------------
    # Test setup

    def add_files(self, files: Mapping[str, Union[str, bytes]], *, repository: str = DEFAULT_REPOSITORY) -> None:
        tree = self.repositories.setdefault(repository, {})
        for path, content in files.items():
            tree[path] = content.encode("utf-8") if isinstance(content, str) else content

    def set_head(self, head: Union[str, CommitInfo], *, repository: str = DEFAULT_REPOSITORY) -> None:
        self.heads[repository] = head if isinstance(head, CommitInfo) else make_commit(head)

    def set_diff(self, from_ref: str, to_ref: str, paths: Iterable[Union[str, DiffEntry]]) -> None:
        self.diffs[(from_ref, to_ref)] = [
            item if isinstance(item, DiffEntry) else DiffEntry(new_path=item) for item in paths
        ]

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    # ------------------------------------------------------------------
    # SnapshotSource

    async def list_tree(
        self, repository: str, path: str, ref: str, recursive: bool = True
    ) -> List[TreeEntry]:
        self.calls.append(("list_tree", repository, path, ref))
        prefix = path.strip("/")
        prefix = f"{prefix}/" if prefix else ""
        entries: List[TreeEntry] = []
        dirs: set[str] = set()
        for file_path in sorted(self.repositories.get(repository, {})):
            if not file_path.startswith(prefix):
                continue
            parent = posixpath.dirname(file_path)
            while parent and f"{parent}/".startswith(prefix) and f"{parent}/" != prefix:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
            entries.append(TreeEntry(type="blob", path=file_path))
        entries.extend(TreeEntry(type="tree", path=directory) for directory in sorted(dirs))
        return entries

    async def diff(self, repository: str, from_ref: str, to_ref: str) -> List[DiffEntry]:
        self.calls.append(("diff", repository, from_ref, to_ref))
        return list(self.diffs.get((from_ref, to_ref), []))

    async def resolve_commit(self, repository: str, ref: str) -> CommitInfo:
        self.calls.append(("resolve_commit", repository, ref))
        return self.heads[repository]

    async def read_raw(self, repository: str, path: str, ref: str) -> bytes:
        self.calls.append(("read_raw", repository, path, ref))
        tree = self.repositories.get(repository, {})
        if path in self.unreadable or path not in tree:
            raise TransportError(f"404 File Not Found: {path}")
        return tree[path]

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
        self.calls.append(("create_commit", repository, branch, message))
        if self.fail_commit:
            raise TransportError("500 Internal Server Error")
        self.commits.append(
            {
                "repository": repository,
                "branch": branch,
                "message": message,
                "actions": list(actions),
                "author_name": author_name,
                "author_email": author_email,
            }
        )
        self.add_files(
            {action.path: base64.b64decode(action.content) for action in actions},
            repository=repository,
        )
        commit = make_commit(f"commit-{len(self.commits)}", message=message)
        self.heads[repository] = commit
        return commit

    async def __aenter__(self) -> FakeSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None


__all__ = ["DEFAULT_REPOSITORY", "FakeSource", "make_commit"]
