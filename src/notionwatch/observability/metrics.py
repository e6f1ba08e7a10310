"""Metrics hook protocol and no-op default.

notionwatch reports counters and timings for API traffic and change
detection.  Pass any object satisfying :class:`MetricsHook` as
``NotionwatchConfig(metrics=...)`` to forward them to StatsD, Prometheus or
similar; without one, :class:`NoopMetricsHook` discards everything.

Emitted metric names:

* ``notionwatch.requests_total``             -- counter
* ``notionwatch.retries_total``              -- counter
* ``notionwatch.rate_limited_total``         -- counter
* ``notionwatch.request_duration_ms``        -- timing
* ``notionwatch.rate_limit_wait_ms``         -- timing
* ``notionwatch.records_fetched_total``      -- counter
* ``notionwatch.changes_total``              -- counter, tagged ``kind``
* ``notionwatch.collection_duration_ms``     -- timing
* ``notionwatch.collections_skipped_total``  -- counter
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol any metrics backend must satisfy.

    *tags* are string key/value pairs; backends map them onto their own
    labelling scheme.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment counter *name* by *value*."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration of *ms* milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set gauge *name* to *value*."""
        ...


class NoopMetricsHook:
    """Metrics backend that drops every data point."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(metrics: Any | None) -> MetricsHook:
    """Return *metrics*, or a :class:`NoopMetricsHook` when it is ``None``."""
    return metrics if metrics is not None else NoopMetricsHook()
