"""Core data models shared across labdocs components."""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class TreeEntry:
    """A single entry of a repository tree listing."""

    type: Literal["blob", "tree"]
    path: str


@dataclass(frozen=True)
class DiffEntry:
    """A changed path between two commits."""

    new_path: str
    old_path: Optional[str] = None
    status: Literal["added", "modified", "renamed", "deleted"] = "modified"


@dataclass(frozen=True)
class CommitInfo:
    """Commit metadata as reported by the repository."""

    id: str
    short_id: str
    author_name: str
    author_email: str
    authored_date: Optional[str] = None
    committer_name: Optional[str] = None
    committer_email: Optional[str] = None
    committed_date: Optional[str] = None
    message: str = ""


@dataclass(frozen=True)
class CommitAction:
    """One file operation of a batched multi-file commit."""

    action: Literal["create", "update"]
    path: str
    content: str
    encoding: Literal["text", "base64"] = "base64"
