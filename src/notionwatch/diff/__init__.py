"""Change detection between snapshots.

Exports
-------
SnapshotDiffer
    Classifies records of two snapshots as added, updated or deleted.
diff_snapshots
    One-shot helper around :class:`SnapshotDiffer`.
display_title
    Human-readable title of a record.
values_equal
    Structural equality of normalized values.
diff_fields
    Per-field changes between two field maps.
incremental_delta
    Diff a fresh snapshot against an already-reported one.
multi_collection_delta
    Incremental deltas for several databases.
combine_deltas
    Aggregate already computed deltas.
filter_delta_by_time
    Keep only changes newer than a cutoff.
"""

from .delta import combine_deltas, filter_delta_by_time, incremental_delta, multi_collection_delta
from .differ import TITLE_FIELDS, SnapshotDiffer, diff_snapshots, display_title
from .equality import diff_fields, fields_equal, values_equal

__all__ = [
    "TITLE_FIELDS",
    "SnapshotDiffer",
    "combine_deltas",
    "diff_fields",
    "diff_snapshots",
    "display_title",
    "fields_equal",
    "filter_delta_by_time",
    "incremental_delta",
    "multi_collection_delta",
    "values_equal",
]
