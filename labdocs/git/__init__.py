"""Remote repository access."""

from .gitlab import GitLabError, GitLabSource
from .source import SnapshotSource

__all__ = ["GitLabError", "GitLabSource", "SnapshotSource"]
