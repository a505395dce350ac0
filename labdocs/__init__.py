"""labdocs: discover, read and write documents kept in GitLab repositories."""

from .discovery import (
    MODES,
    DiscoveryOptions,
    find_all,
    find_by_glob,
    find_changed_by_glob,
    find_changed_or_triggered_by_glob,
)
from .errors import (
    CollisionError,
    ConfigurationError,
    FetchError,
    LabdocsError,
    NamingError,
    ParseError,
    TransportError,
    log_error,
)
from .header import Header, LatestCommit, parse_header
from .naming import name_by_header, name_by_url
from .reader import ReadContext, ReaderOptions, read_documents
from .render import TemplateRenderer
from .stores import FileCheckpoint, MemoryCheckpoint
from .triggers import Derive, Patterns
from .writer import CommitRegistry, Writer, WriterOptions

__all__ = [
    "MODES",
    "CollisionError",
    "CommitRegistry",
    "ConfigurationError",
    "Derive",
    "DiscoveryOptions",
    "FetchError",
    "FileCheckpoint",
    "Header",
    "LabdocsError",
    "LatestCommit",
    "MemoryCheckpoint",
    "NamingError",
    "ParseError",
    "Patterns",
    "ReadContext",
    "ReaderOptions",
    "TemplateRenderer",
    "TransportError",
    "Writer",
    "WriterOptions",
    "find_all",
    "find_by_glob",
    "find_changed_by_glob",
    "find_changed_or_triggered_by_glob",
    "log_error",
    "name_by_header",
    "name_by_url",
    "parse_header",
    "read_documents",
]
