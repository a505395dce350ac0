"""Small helpers shared by the pipeline stages."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any, AsyncIterator, Awaitable, Iterable, TypeVar, Union

T = TypeVar("T")


async def resolve(value: Union[T, Awaitable[T]]) -> T:
    """Await ``value`` when a sync-or-async callback returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def is_iterable_source(value: Any) -> bool:
    return hasattr(value, "__aiter__") or (
        hasattr(value, "__iter__") and not isinstance(value, (str, bytes))
    )


async def aiter_any(items: Union[Iterable[T], AsyncIterator[T]]) -> AsyncIterator[T]:
    """Iterate a plain or async iterable with ``async for``."""
    if hasattr(items, "__aiter__"):
        async for item in items:  # type: ignore[union-attr]
            yield item
    else:
        for item in items:  # type: ignore[union-attr]
            yield item


def get_field(document: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an attribute-style document."""
    if isinstance(document, Mapping):
        return document.get(name, default)
    return getattr(document, name, default)


__all__ = ["aiter_any", "get_field", "is_iterable_source", "resolve"]
