"""JSON codec for persisted snapshots.

On-disk layout, one file per database::

    {
      "lastSync": "2024-05-01T10:00:00.000Z",
      "pages": [
        {"id": "...", "last_edited_time": "...", "properties": {...}}
      ]
    }

``properties`` holds the already-normalized field map, so a stored
snapshot diffs against a fresh one without re-normalizing.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from notionwatch.models import Record, Snapshot


def format_timestamp(when: datetime) -> str:
    """Render *when* as UTC ISO-8601 with millisecond precision and ``Z``.

    Naive datetimes are taken to be UTC.
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    text = when.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Returns ``None`` for anything that is not a parseable string.  Naive
    timestamps are taken to be UTC.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "lastSync": format_timestamp(snapshot.captured_at),
        "pages": [
            {
                "id": record.id,
                "last_edited_time": record.revision_marker,
                "properties": dict(record.fields),
            }
            for record in snapshot.records
        ],
    }


def snapshot_from_dict(data: Any, collection_id: str) -> Snapshot:
    """Rebuild a :class:`Snapshot` from its stored form.

    Raises
    ------
    ValueError
        If *data* does not follow the stored layout.
    NotionwatchSnapshotError
        If two pages share an id.
    """
    if not isinstance(data, dict):
        raise ValueError("snapshot document must be a JSON object")

    captured_at = parse_timestamp(data.get("lastSync"))
    if captured_at is None:
        raise ValueError("snapshot document has no valid 'lastSync'")

    pages = data.get("pages")
    if not isinstance(pages, list):
        raise ValueError("snapshot document has no 'pages' list")

    records: list[Record] = []
    for index, page in enumerate(pages):
        if not isinstance(page, dict):
            raise ValueError(f"page {index} is not an object")
        page_id = page.get("id")
        if not isinstance(page_id, str) or not page_id:
            raise ValueError(f"page {index} has no id")
        marker = page.get("last_edited_time", "")
        if not isinstance(marker, str):
            raise ValueError(f"page {page_id} has a non-string last_edited_time")
        properties = page.get("properties", {})
        if properties is None:
            properties = {}
        if not isinstance(properties, dict):
            raise ValueError(f"page {page_id} has non-object properties")
        records.append(Record(id=page_id, revision_marker=marker, fields=dict(properties)))

    return Snapshot(collection_id=collection_id, captured_at=captured_at, records=tuple(records))
