"""notionwatch: change detection and reporting for Notion databases.

Public re-exports
-----------------

* **Engine:** :class:`SnapshotDiffer`, :func:`diff_snapshots`,
  :func:`incremental_delta`, :func:`multi_collection_delta`
* **Storage:** :class:`SnapshotStore`
* **Runner:** :class:`ChangeMonitor`
* **Configuration:** :class:`NotionwatchConfig`, :class:`CollectionsConfig`
* **Errors:** Every :class:`NotionwatchError` subclass and :class:`ErrorCode`
* **Models:** Snapshot, change and batch-result types

Usage::

    from notionwatch import SnapshotStore, build_snapshot, diff_snapshots

    store = SnapshotStore("./state")
    fresh = build_snapshot(database_id, pages)
    changes = diff_snapshots(store.load(database_id), fresh, "Tasks")
    store.save(database_id, fresh)
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from notionwatch.config import (
    CollectionConfig,
    CollectionsConfig,
    NotionwatchConfig,
    load_collections_config,
    parse_collections_config,
)

# ── Engine ──────────────────────────────────────────────────────────────
from notionwatch.diff import (
    SnapshotDiffer,
    diff_snapshots,
    display_title,
    filter_delta_by_time,
    incremental_delta,
    multi_collection_delta,
)

# ── Errors ──────────────────────────────────────────────────────────────
from notionwatch.errors import (
    ErrorCode,
    NotionwatchAmbiguousReportError,
    NotionwatchAuthError,
    NotionwatchConfigError,
    NotionwatchError,
    NotionwatchMissingIdError,
    NotionwatchNetworkError,
    NotionwatchNotFoundError,
    NotionwatchPermissionError,
    NotionwatchRetryExhaustedError,
    NotionwatchSnapshotError,
    NotionwatchValidationError,
)

# ── Models ──────────────────────────────────────────────────────────────
from notionwatch.models import (
    UNDEFINED,
    BatchResult,
    ChangeKind,
    ChangeRecord,
    ChangeSet,
    ChangeSummary,
    CollectionOutcome,
    CollectionStatus,
    FieldChange,
    IncrementalDelta,
    MultiCollectionDelta,
    Record,
    Snapshot,
)
from notionwatch.normalize import build_snapshot, normalize_record

# ── Runner & storage ────────────────────────────────────────────────────
from notionwatch.runner import ChangeMonitor
from notionwatch.store import SnapshotStore

__all__ = [
    "UNDEFINED",
    "BatchResult",
    "ChangeKind",
    "ChangeMonitor",
    "ChangeRecord",
    "ChangeSet",
    "ChangeSummary",
    "CollectionConfig",
    "CollectionOutcome",
    "CollectionStatus",
    "CollectionsConfig",
    "ErrorCode",
    "FieldChange",
    "IncrementalDelta",
    "MultiCollectionDelta",
    "NotionwatchAmbiguousReportError",
    "NotionwatchAuthError",
    "NotionwatchConfig",
    "NotionwatchConfigError",
    "NotionwatchError",
    "NotionwatchMissingIdError",
    "NotionwatchNetworkError",
    "NotionwatchNotFoundError",
    "NotionwatchPermissionError",
    "NotionwatchRetryExhaustedError",
    "NotionwatchSnapshotError",
    "NotionwatchValidationError",
    "Record",
    "Snapshot",
    "SnapshotDiffer",
    "SnapshotStore",
    "build_snapshot",
    "diff_snapshots",
    "display_title",
    "filter_delta_by_time",
    "incremental_delta",
    "load_collections_config",
    "multi_collection_delta",
    "normalize_record",
    "parse_collections_config",
]
