# src/livespec/repositories/__init__.py
from .live_source_repository import LiveSourceRepository
from .spec_snapshot_repository import SpecSnapshot, SpecSnapshotRepository

__all__ = [
    "LiveSourceRepository",
    "SpecSnapshot",
    "SpecSnapshotRepository",
]
