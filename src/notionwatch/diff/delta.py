"""Incremental deltas against an already-reported snapshot.

While a report for the current period is still open, re-running the full
diff would repeat changes the report already contains.  An incremental
delta instead diffs the freshly fetched snapshot against the snapshot the
open report was built from.  The algorithm is exactly the differ's; only
the "previous" side changes, so anything already reflected in the
reported snapshot is not a difference.

When no reported snapshot is available the caller passes ``None`` and
every record counts as added, the same as a first run.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from notionwatch.models import IncrementalDelta, MultiCollectionDelta, Snapshot
from notionwatch.store.codec import parse_timestamp

from .differ import SnapshotDiffer, default_label


def incremental_delta(
    reported: Snapshot | None,
    fresh: Snapshot,
    collection_label: str | None = None,
    differ: SnapshotDiffer | None = None,
) -> IncrementalDelta:
    """Diff *fresh* against the snapshot an open report was built from.

    Parameters
    ----------
    reported:
        The snapshot already communicated in the open report, or ``None``.
    fresh:
        The snapshot fetched now.
    collection_label:
        Human name of the database.
    differ:
        Differ to use; a default one is created when omitted.

    Returns
    -------
    IncrementalDelta
    """
    change_set = (differ or SnapshotDiffer()).diff(reported, fresh, collection_label)
    return IncrementalDelta(
        collection_id=change_set.collection_id,
        collection_label=change_set.collection_label,
        changes=change_set.changes,
        reported_at=reported.captured_at if reported is not None else None,
    )


def combine_deltas(deltas: Iterable[IncrementalDelta]) -> MultiCollectionDelta:
    """Keep the deltas that have changes, in the given order."""
    return MultiCollectionDelta(deltas=[d for d in deltas if d.has_changes])


def multi_collection_delta(
    reported: Mapping[str, Snapshot | None],
    fresh: Mapping[str, Snapshot],
    labels: Mapping[str, str] | None = None,
    differ: SnapshotDiffer | None = None,
) -> MultiCollectionDelta:
    """Compute incremental deltas for several databases at once.

    Parameters
    ----------
    reported:
        Collection id to reported snapshot.  Missing ids are treated as
        ``None``.
    fresh:
        Collection id to freshly fetched snapshot.  Iteration order of this
        mapping fixes the order of the result.
    labels:
        Collection id to human name.

    Returns
    -------
    MultiCollectionDelta
        Only collections with at least one change are included.
    """
    labels = labels or {}
    differ = differ or SnapshotDiffer()
    return combine_deltas(
        incremental_delta(
            reported.get(collection_id),
            snapshot,
            labels.get(collection_id) or default_label(collection_id),
            differ=differ,
        )
        for collection_id, snapshot in fresh.items()
    )


def filter_delta_by_time(delta: IncrementalDelta, cutoff: datetime) -> IncrementalDelta:
    """Keep only changes whose revision marker is strictly after *cutoff*.

    Markers that cannot be parsed as ISO-8601 timestamps are dropped.
    *cutoff* must be timezone-aware.
    """
    kept = []
    for change in delta.changes:
        edited = parse_timestamp(change.revision_marker)
        if edited is not None and edited > cutoff:
            kept.append(change)
    return IncrementalDelta(
        collection_id=delta.collection_id,
        collection_label=delta.collection_label,
        changes=kept,
        reported_at=delta.reported_at,
    )
