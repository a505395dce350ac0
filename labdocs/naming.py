"""Namers: derive an output path for a rendered document."""

from __future__ import annotations

import posixpath
from typing import Any, Optional
from urllib.parse import urlparse

from .utils import get_field


def name_by_header(document: Any) -> Optional[str]:
    """``header.path`` with its extension swapped for ``.html``."""
    header = get_field(document, "header")
    path = get_field(header, "path") if header is not None else None
    if not isinstance(path, str) or not path:
        return None
    stem, _ = posixpath.splitext(path)
    return f"{stem}.html"


def name_by_url(document: Any) -> Optional[str]:
    """Output path from a ``url`` field, e.g. ``/docs/intro/`` -> ``docs/intro/index.html``."""
    url = get_field(document, "url")
    if not isinstance(url, str) or not url.strip():
        return None
    path = urlparse(url.strip()).path
    if not path or path.endswith("/"):
        path = f"{path}index.html"
    elif not posixpath.splitext(path)[1]:
        path = f"{path}.html"
    return path.lstrip("/")


__all__ = ["name_by_header", "name_by_url"]
