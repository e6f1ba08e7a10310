"""Snapshot differ: classify records between two snapshots.

Given the previous snapshot of a database (or ``None`` on the first run)
and the current one, :class:`SnapshotDiffer` produces a
:class:`~notionwatch.models.ChangeSet`:

* records only in *current* are ``added`` (with their full field map);
* records on both sides whose revision marker or fields differ are
  ``updated`` (with per-field changes);
* records only in *previous* are ``deleted``.

Changes come out in a fixed order -- current records in snapshot order,
then deleted records in previous-snapshot order -- so diffing the same
inputs twice gives identical results.
"""

from __future__ import annotations

import copy
from typing import Any

from notionwatch.errors import NotionwatchSnapshotError
from notionwatch.models import ChangeKind, ChangeRecord, ChangeSet, Record, Snapshot
from notionwatch.observability import get_logger, resolve_metrics

from .equality import diff_fields

log = get_logger("notionwatch.diff")

TITLE_FIELDS: tuple[str, ...] = ("Name", "Title")
"""Field names searched, in order, for a record's display title."""


def display_title(record: Record) -> str:
    """Return the record's ``Name`` or ``Title`` field, falling back to its id."""
    for name in TITLE_FIELDS:
        value = record.fields.get(name)
        if isinstance(value, str) and value:
            return value
    return record.id


def default_label(collection_id: str) -> str:
    return f"Database {collection_id}"


class SnapshotDiffer:
    """Computes change sets between snapshots of one database.

    Parameters
    ----------
    metrics:
        Optional :class:`~notionwatch.observability.MetricsHook`; receives
        ``notionwatch.changes_total`` per change kind.
    """

    def __init__(self, metrics: Any | None = None) -> None:
        self._metrics = resolve_metrics(metrics)

    def diff(
        self,
        previous: Snapshot | None,
        current: Snapshot,
        collection_label: str | None = None,
    ) -> ChangeSet:
        """Classify every record of *previous* and *current*.

        Parameters
        ----------
        previous:
            The last known snapshot, or ``None`` when there is none; every
            current record is then ``added``.
        current:
            The freshly captured snapshot.
        collection_label:
            Human name of the database.  Defaults to ``"Database <id>"``.

        Returns
        -------
        ChangeSet

        Raises
        ------
        NotionwatchSnapshotError
            If the two snapshots belong to different collections.
        """
        if previous is not None and previous.collection_id != current.collection_id:
            raise NotionwatchSnapshotError(
                message=(
                    f"Cannot diff snapshot of {previous.collection_id!r} "
                    f"against {current.collection_id!r}"
                ),
                context={
                    "collection_id": current.collection_id,
                    "other_collection_id": previous.collection_id,
                },
            )

        previous_map = previous.by_id() if previous is not None else {}
        current_ids = {record.id for record in current.records}
        changes: list[ChangeRecord] = []

        for record in current.records:
            before = previous_map.get(record.id)
            if before is None:
                changes.append(_added(record))
                continue
            field_changes = diff_fields(before.fields, record.fields)
            if field_changes or before.revision_marker != record.revision_marker:
                changes.append(
                    ChangeRecord(
                        id=record.id,
                        display_title=display_title(record),
                        kind=ChangeKind.UPDATED,
                        revision_marker=record.revision_marker,
                        previous_revision_marker=before.revision_marker,
                        field_changes=field_changes,
                    )
                )

        if previous is not None:
            for record in previous.records:
                if record.id not in current_ids:
                    changes.append(
                        ChangeRecord(
                            id=record.id,
                            display_title=display_title(record),
                            kind=ChangeKind.DELETED,
                            revision_marker=record.revision_marker,
                            previous_revision_marker=record.revision_marker,
                        )
                    )

        change_set = ChangeSet(
            collection_id=current.collection_id,
            collection_label=collection_label or default_label(current.collection_id),
            changes=changes,
        )
        self._report(change_set, first_run=previous is None)
        return change_set

    def _report(self, change_set: ChangeSet, first_run: bool) -> None:
        summary = change_set.summary
        for kind, count in (
            (ChangeKind.ADDED, summary.added),
            (ChangeKind.UPDATED, summary.updated),
            (ChangeKind.DELETED, summary.deleted),
        ):
            if count:
                self._metrics.increment(
                    "notionwatch.changes_total",
                    value=count,
                    tags={"collection_id": change_set.collection_id, "kind": kind.value},
                )
        log.debug(
            "snapshot diff computed",
            extra={
                "extra_fields": {
                    "op": "diff",
                    "collection_id": change_set.collection_id,
                    "first_run": first_run,
                    "added": summary.added,
                    "updated": summary.updated,
                    "deleted": summary.deleted,
                }
            },
        )


def _added(record: Record) -> ChangeRecord:
    return ChangeRecord(
        id=record.id,
        display_title=display_title(record),
        kind=ChangeKind.ADDED,
        revision_marker=record.revision_marker,
        initial_fields=copy.deepcopy(record.fields),
    )


def diff_snapshots(
    previous: Snapshot | None,
    current: Snapshot,
    collection_label: str | None = None,
) -> ChangeSet:
    """Module-level shortcut for ``SnapshotDiffer().diff(...)``."""
    return SnapshotDiffer().diff(previous, current, collection_label)
