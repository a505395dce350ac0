"""Checkpoint stores remembering the last processed commit."""

from __future__ import annotations

from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Awaitable, Dict, List, Optional, Protocol, Union, runtime_checkable

_CHECKPOINT_VERSION = 1


@runtime_checkable
class CheckpointStore(Protocol):
    """Get/set pair owned by the caller; either method may be a coroutine."""

    def get(self) -> Union[Optional[str], Awaitable[Optional[str]]]:
        ...

    def set(self, commit: str) -> Union[None, Awaitable[None]]:
        ...


class MemoryCheckpoint:
    """Keeps the checkpoint in process memory."""

    def __init__(self, initial: str | None = None) -> None:
        self.commit = initial
        self.history: List[str] = []

    def get(self) -> Optional[str]:
        return self.commit

    def set(self, commit: str) -> None:
        self.commit = commit
        self.history.append(commit)


class FileCheckpoint:
    """Stores named checkpoints in a JSON file.

    Several pipelines can share one file by using distinct keys, for example
    one per repository and branch.
    """

    def __init__(self, path: Path, key: str = "default") -> None:
        self._path = path
        self.key = key

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Optional[str]:
        entry = self._load().get(self.key)
        if not entry:
            return None
        commit = entry.get("commit")
        return commit if isinstance(commit, str) and commit else None

    def set(self, commit: str) -> None:
        entries = self._load()
        entries[self.key] = {
            "commit": commit,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._persist(entries)

    def reset(self) -> bool:
        """Forget the checkpoint so the next run starts cold."""
        entries = self._load()
        if self.key not in entries:
            return False
        entries.pop(self.key)
        self._persist(entries)
        return True

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self) -> Dict[str, Dict[str, object]]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError):
            return {}
        if not isinstance(data, dict) or data.get("version") != _CHECKPOINT_VERSION:
            return {}
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return {}
        return {
            key: raw
            for key, raw in entries.items()
            if isinstance(key, str) and isinstance(raw, dict) and "commit" in raw
        }

    def _persist(self, entries: Dict[str, Dict[str, object]]) -> None:
        payload = {
            "version": _CHECKPOINT_VERSION,
            "entries": entries,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
        )


__all__ = ["CheckpointStore", "FileCheckpoint", "MemoryCheckpoint"]
