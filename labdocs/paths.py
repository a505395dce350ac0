"""Working-directory normalization for repository paths."""

from __future__ import annotations

import posixpath

from .errors import NamingError


def normalize_cwd(raw: str) -> str:
    """Return ``raw`` as a canonical ``a/b/`` prefix.

    Backslashes become forward slashes, ``.``/``..`` segments collapse and a
    leading slash is dropped. The repository root maps to ``""``.
    """
    normalized = posixpath.normpath(raw.replace("\\", "/") or ".")
    if normalized.startswith("//"):
        normalized = normalized.lstrip("/")
    elif normalized.startswith("/"):
        normalized = normalized[1:]
    if normalized in {"", "."}:
        return ""
    return normalized.rstrip("/") + "/"


def is_within(prefix: str, path: str) -> bool:
    return not prefix or path.startswith(prefix)


def relative_path(prefix: str, path: str) -> str:
    """Return ``path`` relative to the canonical ``prefix``."""
    if not is_within(prefix, path):
        raise ValueError(f"{path!r} is outside of working directory {prefix!r}")
    return path[len(prefix):]


def join_output(cwd: str, name: str) -> str:
    """Join a working directory and an output name into a repository path.

    Raises :class:`NamingError` when ``name`` resolves to ``cwd`` itself or
    to a path outside of it.
    """
    prefix = normalize_cwd(cwd)
    relative = name.replace("\\", "/").lstrip("/")
    joined = posixpath.normpath(posixpath.join(prefix, relative))
    if prefix:
        escaped = not joined.startswith(prefix)
    else:
        escaped = joined in {".", ".."} or joined.startswith("../")
    if escaped:
        raise NamingError(f"Invalid filename, {name!r} resolves outside of working directory {cwd!r}.")
    return joined


__all__ = ["is_within", "join_output", "normalize_cwd", "relative_path"]
