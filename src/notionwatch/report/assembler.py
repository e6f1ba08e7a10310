"""Turn change sets into a display-ready report structure.

The assembler does the counting and selection: per-database summaries,
aggregate totals, the cap on detailed entries per database.  It produces
no text; :mod:`notionwatch.report.markdown` renders a :class:`Report`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from notionwatch.models import (
    UNDEFINED,
    ChangeKind,
    ChangeRecord,
    ChangeSet,
    ChangeSummary,
    CollectionOutcome,
    FieldChange,
    MultiCollectionDelta,
)

NOTION_PAGE_URL = "https://notion.so/{id}"


class ReportMode(str, Enum):
    FULL = "full"
    """Every configured database, changed or not."""

    INCREMENTAL = "incremental"
    """Only databases with changes since the open report."""


def page_url(record_id: str) -> str:
    return NOTION_PAGE_URL.format(id=record_id)


def is_empty_value(value: Any) -> bool:
    """``None``, :data:`UNDEFINED`, ``""`` and ``[]`` count as empty.

    ``0`` and ``False`` are values.
    """
    if value is None or value is UNDEFINED:
        return True
    return isinstance(value, (str, list)) and len(value) == 0


@dataclass
class ReportEntry:
    """One change, ready for display.

    ``initial_fields`` holds only the non-empty fields of an added record.
    """

    id: str
    title: str
    kind: ChangeKind
    url: str
    revision_marker: str
    previous_revision_marker: str | None = None
    initial_fields: dict[str, Any] = field(default_factory=dict)
    field_changes: list[FieldChange] = field(default_factory=list)

    @classmethod
    def from_change(cls, change: ChangeRecord) -> ReportEntry:
        initial = {
            name: value
            for name, value in (change.initial_fields or {}).items()
            if not is_empty_value(value)
        }
        return cls(
            id=change.id,
            title=change.display_title,
            kind=change.kind,
            url=page_url(change.id),
            revision_marker=change.revision_marker,
            previous_revision_marker=change.previous_revision_marker,
            initial_fields=initial,
            field_changes=list(change.field_changes),
        )


@dataclass
class ReportSection:
    """One database in a report.

    Attributes
    ----------
    summary:
        Counts over *all* changes of the database, not only the shown ones.
    entries:
        The first ``max_changes_per_collection`` changes.
    omitted:
        How many changes were left out of ``entries``.
    """

    collection_id: str
    label: str
    summary: ChangeSummary
    entries: list[ReportEntry] = field(default_factory=list)
    omitted: int = 0

    @property
    def has_changes(self) -> bool:
        return self.summary.total > 0


@dataclass
class SkippedCollection:
    """A database whose check failed, with the reason."""

    collection_id: str
    label: str
    reason: str

    @classmethod
    def from_outcome(cls, outcome: CollectionOutcome) -> SkippedCollection:
        return cls(
            collection_id=outcome.collection_id,
            label=outcome.collection_label,
            reason=outcome.reason or "unknown error",
        )


@dataclass
class Report:
    mode: ReportMode
    generated_at: datetime
    sections: list[ReportSection] = field(default_factory=list)
    environment: str | None = None
    skipped: list[SkippedCollection] = field(default_factory=list)

    @property
    def totals(self) -> ChangeSummary:
        total = ChangeSummary()
        for section in self.sections:
            total = total + section.summary
        return total

    @property
    def collections_affected(self) -> int:
        return sum(1 for section in self.sections if section.has_changes)

    @property
    def has_changes(self) -> bool:
        return self.totals.total > 0

    @property
    def has_failures(self) -> bool:
        return bool(self.skipped)


class ReportAssembler:
    """Builds :class:`Report` objects from change sets.

    Parameters
    ----------
    max_changes_per_collection:
        Cap on detailed entries per database.  The summary counts always
        cover every change.
    """

    def __init__(self, max_changes_per_collection: int = 20) -> None:
        if max_changes_per_collection < 0:
            raise ValueError(
                "max_changes_per_collection must be >= 0, "
                f"got {max_changes_per_collection}"
            )
        self.max_changes_per_collection = max_changes_per_collection

    def section(self, change_set: ChangeSet) -> ReportSection:
        shown = change_set.changes[: self.max_changes_per_collection]
        return ReportSection(
            collection_id=change_set.collection_id,
            label=change_set.collection_label,
            summary=change_set.summary,
            entries=[ReportEntry.from_change(change) for change in shown],
            omitted=len(change_set.changes) - len(shown),
        )

    def assemble(
        self,
        change_sets: Iterable[ChangeSet],
        *,
        mode: ReportMode | str = ReportMode.FULL,
        environment: str | None = None,
        generated_at: datetime | None = None,
        skipped: Iterable[CollectionOutcome] = (),
    ) -> Report:
        """Assemble one report from several change sets, in the given order.

        In incremental mode change sets without changes are left out; in
        full mode they are kept so the report lists every database.
        *skipped* outcomes are listed with their reasons in either mode.
        """
        mode = ReportMode(mode)
        sections = [
            self.section(change_set)
            for change_set in change_sets
            if mode is ReportMode.FULL or change_set.has_changes
        ]
        return Report(
            mode=mode,
            generated_at=generated_at or datetime.now(timezone.utc),
            sections=sections,
            environment=environment,
            skipped=[SkippedCollection.from_outcome(outcome) for outcome in skipped],
        )

    def assemble_incremental(
        self,
        delta: MultiCollectionDelta,
        *,
        environment: str | None = None,
        generated_at: datetime | None = None,
        skipped: Iterable[CollectionOutcome] = (),
    ) -> Report | None:
        """Assemble an incremental report, or ``None`` if nothing changed.

        Skipped databases alone do not produce a report.
        """
        if not delta.has_changes:
            return None
        return self.assemble(
            delta.deltas,
            mode=ReportMode.INCREMENTAL,
            environment=environment,
            generated_at=generated_at,
            skipped=skipped,
        )
