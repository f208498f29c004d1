"""
Audit tools: snapshot history, snapshot diffing, batch recalculation.
"""

from .comparator import DiffConfig, FieldChange, SnapshotComparator, SnapshotDiff
from .history import latest_fresh_snapshot, latest_snapshot, snapshot_history
from .runners import run_snapshots

__all__ = [
    "SnapshotComparator",
    "DiffConfig",
    "SnapshotDiff",
    "FieldChange",
    "snapshot_history",
    "latest_snapshot",
    "latest_fresh_snapshot",
    "run_snapshots",
]
