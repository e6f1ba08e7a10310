"""Shared test fixtures for the notionwatch test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from notionwatch.config import NotionwatchConfig
from notionwatch.models import Record, Snapshot

T0 = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def config() -> NotionwatchConfig:
    """Default test configuration with a dummy token."""
    return NotionwatchConfig(token="test_token_1234")


@pytest.fixture
def make_snapshot():
    """Build a snapshot from ``(id, marker, fields)`` tuples."""

    def _make(collection_id: str = "db1", records=(), captured_at: datetime = T0) -> Snapshot:
        return Snapshot(
            collection_id=collection_id,
            captured_at=captured_at,
            records=tuple(Record(id=i, revision_marker=m, fields=dict(f)) for i, m, f in records),
        )

    return _make
