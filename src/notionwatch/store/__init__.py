"""Snapshot persistence."""

from .codec import format_timestamp, parse_timestamp, snapshot_from_dict, snapshot_to_dict
from .snapshot_store import SnapshotStore

__all__ = [
    "SnapshotStore",
    "format_timestamp",
    "parse_timestamp",
    "snapshot_from_dict",
    "snapshot_to_dict",
]
