"""Header-building parser: path segments plus repository metadata."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from .models import CommitInfo
from .utils import resolve

if TYPE_CHECKING:
    from .reader import ReadContext


@dataclass(frozen=True)
class LatestCommit:
    """Head commit of the branch a run reads from."""

    hash: str
    abbrev: str
    author_name: str
    author_email: str
    authored_date: Optional[str]
    committer_name: str
    committer_email: str
    committed_date: Optional[str]
    message: str

    @classmethod
    def from_commit(cls, commit: CommitInfo) -> LatestCommit:
        return cls(
            hash=commit.id,
            abbrev=commit.short_id,
            author_name=commit.author_name,
            author_email=commit.author_email,
            authored_date=commit.authored_date,
            committer_name=commit.committer_name or commit.author_name,
            committer_email=commit.committer_email or commit.author_email,
            committed_date=commit.committed_date or commit.authored_date,
            message=commit.message,
        )


@dataclass(frozen=True)
class Header:
    host: Optional[str]
    repository: str
    branch: str
    cwd: str
    path: str
    dirname: str
    basename: str
    extname: str
    latest_commit: Optional[LatestCommit] = None


BodyParser = Callable[[bytes, str, "ReadContext"], Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]]


def split_path(path: str) -> Tuple[str, str, str]:
    """Return ``(dirname, basename, extname)``; basename excludes the extension."""
    dirname = posixpath.dirname(path) or "."
    filename = posixpath.basename(path)
    stem, extname = posixpath.splitext(filename)
    return dirname, stem, extname


def _raw_body(body: bytes, path: str, context: ReadContext) -> Dict[str, Any]:
    return {"body": body}


def parse_header(
    body_parser: Optional[BodyParser] = None,
) -> Callable[[bytes, str, ReadContext], Awaitable[Dict[str, Any]]]:
    """Wrap ``body_parser`` so its result gains a ``header`` entry.

    Any ``header`` key produced by the body parser is replaced. The latest
    commit is looked up through ``context`` and therefore fetched once per run.
    """
    parser = body_parser or _raw_body

    async def _parse(body: bytes, path: str, context: ReadContext) -> Dict[str, Any]:
        parsed = await resolve(parser(body, path, context))
        if not isinstance(parsed, Mapping):
            raise TypeError(f"Body parser must return a mapping, got {type(parsed).__name__}")
        payload = {key: value for key, value in parsed.items() if key != "header"}
        options = context.options
        dirname, basename, extname = split_path(path)
        header = Header(
            host=options.host,
            repository=options.repository,
            branch=options.branch,
            cwd=options.cwd,
            path=path,
            dirname=dirname,
            basename=basename,
            extname=extname,
            latest_commit=await context.latest_commit(),
        )
        return {"header": header, **payload}

    return _parse


__all__ = ["Header", "LatestCommit", "parse_header", "split_path"]
