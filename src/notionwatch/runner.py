"""Batch change monitoring across all configured databases.

:class:`ChangeMonitor` runs one fetch-normalize-diff-save cycle per
enabled database.  Each cycle is isolated: a failure in one database is
recorded as a skipped outcome and never stops the others.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from notionwatch.config import CollectionConfig, CollectionsConfig, NotionwatchConfig
from notionwatch.diff import SnapshotDiffer, incremental_delta
from notionwatch.models import (
    BatchResult,
    ChangeSet,
    CollectionOutcome,
    CollectionStatus,
    IncrementalDelta,
    Snapshot,
)
from notionwatch.normalize import build_snapshot
from notionwatch.notion_api import DatabaseAPI
from notionwatch.observability import get_logger, resolve_metrics
from notionwatch.store import SnapshotStore

log = get_logger("notionwatch.runner")


class ChangeMonitor:
    """Detects changes in every enabled database.

    Parameters
    ----------
    config:
        Runtime configuration; ``max_workers`` bounds concurrency and
        ``metrics`` receives run metrics.
    collections:
        The watched databases.  Disabled entries are ignored.
    database_api:
        Fetches database pages.
    store:
        Holds the last known snapshot of each database.  Updated after
        every successful cycle.
    differ:
        Differ to use.  Defaults to one sharing ``config.metrics``.
    """

    def __init__(
        self,
        config: NotionwatchConfig,
        collections: CollectionsConfig,
        *,
        database_api: DatabaseAPI,
        store: SnapshotStore,
        differ: SnapshotDiffer | None = None,
    ) -> None:
        self._config = config
        self._collections = collections
        self._database_api = database_api
        self._store = store
        self._metrics = resolve_metrics(config.metrics)
        self._differ = differ or SnapshotDiffer(metrics=config.metrics)

    # -- single database -----------------------------------------------------

    def fetch_snapshot(self, collection: CollectionConfig) -> Snapshot:
        """Fetch every page of *collection* and normalize it."""
        captured_at = datetime.now(timezone.utc)
        pages = self._database_api.query(collection.id)
        self._metrics.increment(
            "notionwatch.records_fetched_total",
            value=len(pages),
            tags={"collection_id": collection.id},
        )
        return build_snapshot(collection.id, pages, captured_at=captured_at)

    def check_collection(self, collection: CollectionConfig) -> ChangeSet:
        """Diff the fresh snapshot against the stored one, then store it.

        The stored snapshot is only replaced once the diff is complete, so
        a failure while fetching or diffing leaves it untouched.
        """
        fresh = self.fetch_snapshot(collection)
        previous = self._store.load(collection.id)
        change_set = self._differ.diff(previous, fresh, collection.name)
        self._store.save(collection.id, fresh)
        return change_set

    def check_collection_incremental(
        self,
        collection: CollectionConfig,
        reported_store: SnapshotStore | None,
    ) -> IncrementalDelta:
        """Diff the fresh snapshot against the already-reported one.

        Without a reported snapshot every record is reported as added, the
        same output a first run produces.  The fresh snapshot then replaces
        the one in the main store.
        """
        fresh = self.fetch_snapshot(collection)
        reported = reported_store.load(collection.id) if reported_store is not None else None
        if reported is None:
            log.info(
                "no reported snapshot, reporting all records",
                extra={"extra_fields": {"op": "incremental", "collection_id": collection.id}},
            )
        delta = incremental_delta(reported, fresh, collection.name, differ=self._differ)
        self._store.save(collection.id, fresh)
        return delta

    # -- batch ---------------------------------------------------------------

    def _outcome(
        self,
        collection: CollectionConfig,
        reported_store: SnapshotStore | None,
        incremental: bool,
    ) -> CollectionOutcome:
        started = time.monotonic()
        try:
            if incremental:
                change_set: ChangeSet = self.check_collection_incremental(collection, reported_store)
            else:
                change_set = self.check_collection(collection)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            self._metrics.increment(
                "notionwatch.collections_skipped_total",
                tags={"collection_id": collection.id},
            )
            log.error(
                "collection skipped",
                exc_info=True,
                extra={
                    "extra_fields": {
                        "op": "run",
                        "collection_id": collection.id,
                        "reason": reason,
                    }
                },
            )
            return CollectionOutcome(
                collection_id=collection.id,
                collection_label=collection.name,
                status=CollectionStatus.SKIPPED,
                reason=reason,
            )
        finally:
            self._metrics.timing(
                "notionwatch.collection_duration_ms",
                (time.monotonic() - started) * 1000,
                tags={"collection_id": collection.id},
            )

        summary = change_set.summary
        log.info(
            "collection checked",
            extra={
                "extra_fields": {
                    "op": "run",
                    "collection_id": collection.id,
                    "added": summary.added,
                    "updated": summary.updated,
                    "deleted": summary.deleted,
                }
            },
        )
        return CollectionOutcome(
            collection_id=collection.id,
            collection_label=collection.name,
            status=CollectionStatus.OK,
            change_set=change_set,
        )

    def run(
        self,
        reported_store: SnapshotStore | None = None,
        incremental: bool = False,
    ) -> BatchResult:
        """Check every enabled database.

        Parameters
        ----------
        reported_store:
            Store holding the snapshots of the open report (incremental
            mode only).
        incremental:
            Produce :class:`IncrementalDelta` outcomes against
            *reported_store* instead of diffing against the main store.

        Returns
        -------
        BatchResult
            One outcome per enabled database, in configuration order.
        """
        collections = self._collections.enabled()
        workers = min(self._config.max_workers, len(collections))
        if workers <= 1:
            outcomes = [self._outcome(c, reported_store, incremental) for c in collections]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._outcome, c, reported_store, incremental)
                    for c in collections
                ]
                outcomes = [future.result() for future in futures]

        result = BatchResult(outcomes=outcomes)
        log.info(
            "run finished",
            extra={
                "extra_fields": {
                    "op": "run",
                    "incremental": incremental,
                    "collections": len(outcomes),
                    "skipped": len(result.skipped),
                    "changes": result.total_changes.total,
                }
            },
        )
        return result
