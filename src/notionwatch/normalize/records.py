"""Turn raw Notion pages into :class:`~notionwatch.models.Record` objects."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from notionwatch.errors import NotionwatchMissingIdError
from notionwatch.models import Record, Snapshot

from .properties import normalize_properties


def normalize_record(
    raw: dict[str, Any],
    collection_id: str | None = None,
    index: int | None = None,
) -> Record:
    """Normalize one page as returned by the database query endpoint.

    Parameters
    ----------
    raw:
        The page object: ``id``, ``last_edited_time`` and ``properties``.
    collection_id, index:
        Only used to give a missing-id error useful context.

    Raises
    ------
    NotionwatchMissingIdError
        If the page has no usable ``id``.  An identifier is never guessed.
    """
    record_id = raw.get("id") if isinstance(raw, dict) else None
    if not isinstance(record_id, str) or not record_id:
        raise NotionwatchMissingIdError(
            message=(
                f"Record at index {index} of collection {collection_id!r} has no id"
            ),
            context={"collection_id": collection_id, "index": index},
        )

    marker = raw.get("last_edited_time")
    return Record(
        id=record_id,
        revision_marker=marker if isinstance(marker, str) else "",
        fields=normalize_properties(raw.get("properties")),
    )


def normalize_records(
    raws: Iterable[dict[str, Any]],
    collection_id: str | None = None,
) -> list[Record]:
    """Normalize every page, preserving order.

    The whole list is validated before anything is returned, so one page
    without an id aborts the collection's cycle.
    """
    return [
        normalize_record(raw, collection_id=collection_id, index=i)
        for i, raw in enumerate(raws)
    ]


def build_snapshot(
    collection_id: str,
    raws: Iterable[dict[str, Any]],
    captured_at: datetime | None = None,
) -> Snapshot:
    """Normalize *raws* and wrap them in a :class:`Snapshot`.

    Raises
    ------
    NotionwatchMissingIdError
        If a page has no id.
    NotionwatchSnapshotError
        If two pages share an id.
    """
    return Snapshot(
        collection_id=collection_id,
        captured_at=captured_at or datetime.now(timezone.utc),
        records=tuple(normalize_records(raws, collection_id)),
    )
