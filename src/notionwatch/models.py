"""Data models for notionwatch.

Snapshots, records and every change type produced by the differ live here.
Types are plain dataclasses.  :class:`Record` and :class:`Snapshot` are
frozen: once a snapshot is built nothing mutates it, the store only
replaces whole snapshots.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from notionwatch.errors import NotionwatchSnapshotError

# ---------------------------------------------------------------------------
# Field values
# ---------------------------------------------------------------------------

FieldValue = Union[str, int, float, bool, None, list]
"""A normalized property value: scalar, ``None`` or a list of strings."""


class _Undefined:
    """Marker for a property that does not exist on one side of a diff.

    Distinct from ``None``: ``None`` means "the property exists and is
    empty", :data:`UNDEFINED` means "the property is not there at all".
    """

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ChangeKind(str, Enum):
    """Classification of a record between two snapshots."""

    ADDED = "added"
    """The record exists only in the current snapshot."""

    UPDATED = "updated"
    """The record exists on both sides and its marker or fields differ."""

    DELETED = "deleted"
    """The record exists only in the previous snapshot."""


class CollectionStatus(str, Enum):
    """Outcome of one collection within a batch run."""

    OK = "ok"
    SKIPPED = "skipped"


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Record:
    """One Notion page in normalized form.

    Attributes
    ----------
    id:
        The page id, unique within its database.
    revision_marker:
        The page's ``last_edited_time``.  A coarse signal only; field
        equality is always checked as well.
    fields:
        Property name to normalized value, in the source's order.
    """

    id: str
    revision_marker: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Snapshot:
    """All records of one database at one point in time.

    Records are kept in the order they were fetched, which fixes the order
    of changes in any :class:`ChangeSet` computed from this snapshot.

    Raises
    ------
    NotionwatchSnapshotError
        If two records share an id.
    """

    collection_id: str
    captured_at: datetime
    records: tuple[Record, ...] = ()

    def __post_init__(self) -> None:
        records = tuple(self.records)
        object.__setattr__(self, "records", records)
        seen: set[str] = set()
        for record in records:
            if record.id in seen:
                raise NotionwatchSnapshotError(
                    message=(
                        f"Duplicate record id {record.id!r} in snapshot of "
                        f"collection {self.collection_id!r}"
                    ),
                    context={"collection_id": self.collection_id, "record_id": record.id},
                )
            seen.add(record.id)

    @classmethod
    def empty(cls, collection_id: str, captured_at: datetime | None = None) -> Snapshot:
        return cls(
            collection_id=collection_id,
            captured_at=captured_at or datetime.now(timezone.utc),
        )

    def by_id(self) -> dict[str, Record]:
        return {record.id: record for record in self.records}

    def ids(self) -> list[str]:
        return [record.id for record in self.records]

    def __len__(self) -> int:
        return len(self.records)


# ---------------------------------------------------------------------------
# Change sets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldChange:
    """One property that differs between two versions of a record.

    Either value may be :data:`UNDEFINED` when the property was added to
    or removed from the database schema.
    """

    name: str
    previous_value: Any
    current_value: Any


@dataclass
class ChangeRecord:
    """A single classified change.

    Attributes
    ----------
    id:
        The record id.
    display_title:
        The record's ``Name``/``Title`` field, or its id.
    kind:
        Added, updated or deleted.
    revision_marker:
        The current marker; for deleted records, the last known marker.
    previous_revision_marker:
        The marker in the previous snapshot (updated and deleted only).
    initial_fields:
        The full field map of a newly discovered record (added only).
    field_changes:
        The differing fields of an updated record, in key order.  Empty
        only when the revision marker alone moved.
    """

    id: str
    display_title: str
    kind: ChangeKind
    revision_marker: str
    previous_revision_marker: str | None = None
    initial_fields: dict[str, Any] | None = None
    field_changes: list[FieldChange] = field(default_factory=list)


@dataclass(frozen=True)
class ChangeSummary:
    """Counts of changes by kind."""

    added: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.added + self.updated + self.deleted

    def __add__(self, other: ChangeSummary) -> ChangeSummary:
        if not isinstance(other, ChangeSummary):
            return NotImplemented
        return ChangeSummary(
            added=self.added + other.added,
            updated=self.updated + other.updated,
            deleted=self.deleted + other.deleted,
        )

    @classmethod
    def tally(cls, changes: Iterable[ChangeRecord]) -> ChangeSummary:
        counts = {kind: 0 for kind in ChangeKind}
        for change in changes:
            counts[change.kind] += 1
        return cls(
            added=counts[ChangeKind.ADDED],
            updated=counts[ChangeKind.UPDATED],
            deleted=counts[ChangeKind.DELETED],
        )


@dataclass
class ChangeSet:
    """The classified difference between two snapshots of one database.

    ``summary`` is derived from ``changes`` on every access, so it can
    never drift from the list it describes.
    """

    collection_id: str
    collection_label: str
    changes: list[ChangeRecord] = field(default_factory=list)

    @property
    def summary(self) -> ChangeSummary:
        return ChangeSummary.tally(self.changes)

    @property
    def has_changes(self) -> bool:
        return len(self.changes) > 0

    def of_kind(self, kind: ChangeKind) -> list[ChangeRecord]:
        return [change for change in self.changes if change.kind == kind]


@dataclass
class IncrementalDelta(ChangeSet):
    """A change set computed against an already-reported snapshot.

    Attributes
    ----------
    reported_at:
        Capture time of the reported snapshot, or ``None`` when no reported
        snapshot was available and everything counts as added.
    """

    reported_at: datetime | None = None


@dataclass
class MultiCollectionDelta:
    """Incremental deltas for several databases.

    Only deltas that actually contain changes are kept.
    """

    deltas: list[IncrementalDelta] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(delta.has_changes for delta in self.deltas)

    @property
    def total_changes(self) -> ChangeSummary:
        total = ChangeSummary()
        for delta in self.deltas:
            total = total + delta.summary
        return total


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------

@dataclass
class CollectionOutcome:
    """What happened to one database during a batch run.

    Attributes
    ----------
    collection_id:
        The database id.
    collection_label:
        The configured database name.
    status:
        ``ok`` when the change set was computed and the snapshot saved,
        ``skipped`` when the cycle for this database failed.
    change_set:
        The computed change set (a :class:`IncrementalDelta` in
        incremental mode).  ``None`` when skipped.
    reason:
        Why the database was skipped.
    """

    collection_id: str
    collection_label: str
    status: CollectionStatus
    change_set: ChangeSet | None = None
    reason: str | None = None


@dataclass
class BatchResult:
    """All outcomes of one batch run, in configuration order."""

    outcomes: list[CollectionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[CollectionOutcome]:
        return [o for o in self.outcomes if o.status == CollectionStatus.OK]

    @property
    def skipped(self) -> list[CollectionOutcome]:
        return [o for o in self.outcomes if o.status == CollectionStatus.SKIPPED]

    @property
    def has_failures(self) -> bool:
        return bool(self.skipped)

    @property
    def change_sets(self) -> list[ChangeSet]:
        return [o.change_set for o in self.succeeded if o.change_set is not None]

    @property
    def has_changes(self) -> bool:
        return any(cs.has_changes for cs in self.change_sets)

    @property
    def total_changes(self) -> ChangeSummary:
        total = ChangeSummary()
        for change_set in self.change_sets:
            total = total + change_set.summary
        return total
