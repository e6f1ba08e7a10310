"""Configuration for notionwatch.

Two kinds of configuration live here:

* :class:`NotionwatchConfig` -- runtime knobs (API access, retry and rate
  limiting, storage locations, batch sizing).  Every field has a default;
  only ``token`` is needed to talk to Notion.
* :class:`CollectionsConfig` -- the list of Notion databases to watch,
  loaded from a JSON file by :func:`load_collections_config`.

Both are plain values.  Callers load them once and pass them down
explicitly; nothing in the package reads environment variables or caches
configuration at module level.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from notionwatch.errors import NotionwatchConfigError

# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------

@dataclass
class NotionwatchConfig:
    """Runtime configuration for a change-monitoring run.

    Parameters
    ----------
    token:
        Notion integration token.  Never logged.
    notion_version:
        Value of the ``Notion-Version`` header.  The database query
        endpoint used by :class:`~notionwatch.notion_api.DatabaseAPI` is
        stable under ``2022-06-28``.
    base_url:
        API root URL.  Override for proxies or local fakes.
    state_dir:
        Directory holding one snapshot file per watched database.
    reports_dir:
        Directory that rendered markdown reports are written to.
    max_workers:
        Number of databases processed concurrently.  ``1`` means strictly
        sequential processing.
    max_changes_per_collection:
        Cap on detailed entries per database in a rendered report; the
        remainder is summarised as a count.
    retry_max_attempts:
        Maximum attempts per request for retryable HTTP errors.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper bound (seconds) on a single backoff delay.
    retry_jitter:
        Scale each backoff delay randomly to 50-100 % of its value.
    rate_limit_rps:
        Client-side request pacing (token bucket refill rate).
    timeout_seconds:
        HTTP request timeout.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    metrics:
        A :class:`~notionwatch.observability.MetricsHook` implementation,
        or ``None`` for no metrics.
    """

    # ── Notion API ──────────────────────────────────────────────────────
    token: str = ""

    notion_version: str = "2022-06-28"

    base_url: str = "https://api.notion.com/v1"

    # ── Storage ─────────────────────────────────────────────────────────
    state_dir: str = "./state"

    reports_dir: str = "./reports"

    # ── Batch ───────────────────────────────────────────────────────────
    max_workers: int = 1

    max_changes_per_collection: int = 20

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 5

    retry_base_delay: float = 1.0

    retry_max_delay: float = 60.0

    retry_jitter: bool = True

    rate_limit_rps: float = 3.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    def __post_init__(self) -> None:
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )

        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_changes_per_collection < 0:
            raise ValueError(
                "max_changes_per_collection must be >= 0, "
                f"got {self.max_changes_per_collection}"
            )
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def __repr__(self) -> str:
        """Mask the token so the config can be logged safely."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotionwatchConfig({', '.join(parts)})"


# ---------------------------------------------------------------------------
# Watched collections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CollectionConfig:
    """One watched Notion database.

    Attributes
    ----------
    id:
        The Notion database id.  Also names the snapshot file.
    name:
        Human label used in reports.
    description:
        Free-form note; not used by the engine.
    enabled:
        Disabled databases are kept in the file but never fetched.
    """

    id: str
    name: str
    description: str = ""
    enabled: bool = True


@dataclass(frozen=True)
class CollectionsConfig:
    """The full, immutable list of configured databases."""

    collections: tuple[CollectionConfig, ...] = field(default_factory=tuple)

    def enabled(self) -> list[CollectionConfig]:
        return [c for c in self.collections if c.enabled]

    def get(self, collection_id: str) -> CollectionConfig | None:
        for collection in self.collections:
            if collection.id == collection_id:
                return collection
        return None

    def labels(self) -> dict[str, str]:
        return {c.id: c.name for c in self.collections}


def _invalid(path: Path, reason: str) -> NotionwatchConfigError:
    return NotionwatchConfigError(
        message=f"Invalid collections config {path}: {reason}",
        context={"path": str(path), "reason": reason},
    )


def parse_collections_config(data: Any, path: Path | str = "<memory>") -> CollectionsConfig:
    """Validate an already-decoded config document.

    The document has the shape::

        {"databases": [{"id": "...", "name": "...",
                        "description": "...", "enabled": true}]}

    Raises
    ------
    NotionwatchConfigError
        When the shape is wrong, the list is empty, or an entry lacks an
        ``id``, a ``name`` or a boolean ``enabled`` flag.
    """
    path = Path(path)
    if not isinstance(data, dict):
        raise _invalid(path, "top level must be an object")
    entries = data.get("databases")
    if not isinstance(entries, list):
        raise _invalid(path, "'databases' must be a list")
    if not entries:
        raise _invalid(path, "'databases' is empty")

    collections: list[CollectionConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise _invalid(path, f"entry {index} is not an object")
        db_id = entry.get("id")
        name = entry.get("name")
        enabled = entry.get("enabled")
        if not isinstance(db_id, str) or not db_id:
            raise _invalid(path, f"entry {index} has no id")
        if not isinstance(name, str) or not name:
            raise _invalid(path, f"entry {index} has no name")
        if not isinstance(enabled, bool):
            raise _invalid(path, f"entry {index} has a non-boolean 'enabled'")
        if db_id in seen:
            raise _invalid(path, f"database id {db_id!r} is listed twice")
        seen.add(db_id)
        collections.append(
            CollectionConfig(
                id=db_id,
                name=name,
                description=str(entry.get("description") or ""),
                enabled=enabled,
            )
        )
    return CollectionsConfig(collections=tuple(collections))


def load_collections_config(path: str | Path) -> CollectionsConfig:
    """Read and validate the collections config file at *path*.

    Raises
    ------
    NotionwatchConfigError
        If the file is missing, is not valid JSON, or fails validation.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotionwatchConfigError(
            message=f"Collections config not found: {path}",
            context={"path": str(path), "reason": "not_found"},
            cause=exc,
        ) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise NotionwatchConfigError(
            message=f"Collections config is not valid JSON: {path}",
            context={"path": str(path), "reason": "invalid_json"},
            cause=exc,
        ) from exc
    return parse_collections_config(data, path)
