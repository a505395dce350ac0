from __future__ import annotations

import pytest

from labdocs.stores import MemoryCheckpoint
from tests._fixtures.fake_source import FakeSource


@pytest.fixture
def source() -> FakeSource:
    """Provide a repository with a handful of text files under the root."""
    return FakeSource(
        {
            "file1.txt": "one",
            "file2.txt": "two",
            "folder/file3.txt": "three",
            "folder/notes.md": "# notes",
            "pages/index.md": "# home",
            "pages/guide/setup.md": "# setup",
        }
    )


@pytest.fixture
def checkpoint() -> MemoryCheckpoint:
    return MemoryCheckpoint()
