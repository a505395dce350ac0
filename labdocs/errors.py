"""Error taxonomy shared by the reader, writer and discovery modes."""

from __future__ import annotations

from typing import Awaitable, Callable, Union

from .logging import get_logger

_logger = get_logger("errors")


class LabdocsError(Exception):
    """Base class for labdocs failures."""


class ConfigurationError(LabdocsError, TypeError):
    """Raised before any network call when an option is missing or mistyped."""


class TransportError(LabdocsError, RuntimeError):
    """Raised by a snapshot source when a remote call fails."""


class _PathError(LabdocsError):
    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class NamingError(_PathError):
    """No namer produced a usable output path for a document."""


class FetchError(_PathError):
    """Raw content for a discovered file could not be fetched."""


class ParseError(_PathError):
    """The parser failed on a fetched file."""


class CollisionError(_PathError):
    """An output path coincides with an existing directory in the destination."""


ErrorHandler = Callable[[BaseException], Union[None, Awaitable[None]]]


def log_error(error: BaseException) -> None:
    """Default error handler: log the failure and let the stream continue."""
    _logger.error("%s", error, exc_info=error)


def wrap_error(error_type: type[_PathError], message: str, *, path: str, cause: BaseException) -> _PathError:
    error = error_type(message, path=path)
    error.__cause__ = cause
    return error


__all__ = [
    "CollisionError",
    "ConfigurationError",
    "ErrorHandler",
    "FetchError",
    "LabdocsError",
    "NamingError",
    "ParseError",
    "TransportError",
    "log_error",
    "wrap_error",
]
