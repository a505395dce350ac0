"""Checkpoint storage backends."""

from .checkpoint import CheckpointStore, FileCheckpoint, MemoryCheckpoint

__all__ = ["CheckpointStore", "FileCheckpoint", "MemoryCheckpoint"]
