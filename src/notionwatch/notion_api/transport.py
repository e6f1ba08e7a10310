"""HTTP transport for the Notion API.

Every request goes through the same cycle:

1. Wait for a token-bucket slot.
2. Send the request with auth and version headers.
3. ``2xx``: return the decoded JSON body.
4. ``429``: honour ``Retry-After`` and retry.
5. ``5xx`` or a network failure: back off exponentially and retry.
6. Any other ``4xx``: raise a typed error at once.
7. Out of attempts: raise :class:`NotionwatchRetryExhaustedError`.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from typing import Any

import httpx

from notionwatch.config import NotionwatchConfig
from notionwatch.errors import (
    NotionwatchAuthError,
    NotionwatchError,
    NotionwatchNetworkError,
    NotionwatchNotFoundError,
    NotionwatchPermissionError,
    NotionwatchRetryExhaustedError,
    NotionwatchValidationError,
)
from notionwatch.observability import get_logger, resolve_metrics

from .rate_limit import TokenBucket
from .retries import RETRYABLE_STATUSES, RetryPolicy

log = get_logger("notionwatch.transport")

PAGE_SIZE = 100
"""Largest page size the Notion list endpoints accept."""


def _parse_retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


_STATUS_ERRORS: dict[int, tuple[type[NotionwatchError], str]] = {
    400: (NotionwatchValidationError, "Validation error"),
    401: (NotionwatchAuthError, "Authentication failed"),
    403: (NotionwatchPermissionError, "Permission denied"),
    404: (NotionwatchNotFoundError, "Resource not found"),
}


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the typed error for a non-retryable ``4xx`` response."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    notion_message = body.get("message", response.text[:500])
    error_cls, prefix = _STATUS_ERRORS.get(
        status, (NotionwatchValidationError, f"Client error {status}")
    )
    raise error_cls(
        message=f"{prefix} on {method} {path}: {notion_message}",
        context={
            "status_code": status,
            "notion_code": body.get("code", ""),
            "method": method,
            "path": path,
        },
    )


class NotionTransport:
    """Synchronous Notion API client with pacing and retries.

    One transport may be shared by several worker threads; the token bucket
    is thread-safe and ``httpx.Client`` is safe for concurrent requests.

    Parameters
    ----------
    config:
        Supplies the token, API version, base URL, timeouts, proxy, retry
        and rate-limit settings and the metrics hook.
    """

    def __init__(self, config: NotionwatchConfig) -> None:
        self._config = config
        self._retry = RetryPolicy.from_config(config)
        self._bucket = TokenBucket(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = resolve_metrics(config.metrics)
        self._client = httpx.Client(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Notion-Version": config.notion_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    # -- internals -----------------------------------------------------------

    def _pace(self, method: str, path: str) -> None:
        waited = self._bucket.acquire()
        if waited > 0:
            self._metrics.timing(
                "notionwatch.rate_limit_wait_ms",
                waited * 1000,
                tags={"method": method, "path": path},
            )

    def _network_retry_delay(
        self, method: str, path: str, exc: Exception, attempt: int,
    ) -> float:
        """Return the delay before retrying a failed send, or raise."""
        self._metrics.increment(
            "notionwatch.requests_total",
            tags={"method": method, "path": path, "status": "error"},
        )
        log.warning(
            "request network error",
            extra={
                "extra_fields": {
                    "op": "request",
                    "method": method,
                    "path": path,
                    "attempt": attempt + 1,
                    "error": str(exc),
                }
            },
        )
        if not self._retry.allows(attempt, exception=exc):
            raise NotionwatchNetworkError(
                message=f"Network error on {method} {path}: {exc}",
                context={"url": path, "attempt": attempt + 1},
                cause=exc,
            ) from exc
        self._metrics.increment(
            "notionwatch.retries_total",
            tags={"method": method, "path": path, "reason": "network_error"},
        )
        return self._retry.delay(attempt)

    def _record_response(self, method: str, path: str, status: int, elapsed_ms: float) -> None:
        tags = {"method": method, "path": path, "status": str(status)}
        self._metrics.increment("notionwatch.requests_total", tags=tags)
        self._metrics.timing("notionwatch.request_duration_ms", elapsed_ms, tags=tags)

    def _status_retry_delay(
        self, method: str, path: str, response: httpx.Response, attempt: int,
    ) -> float:
        retry_after: float | None = None
        reason = "server_error"
        if response.status_code == 429:
            retry_after = _parse_retry_after(response)
            reason = "rate_limited"
            self._metrics.increment(
                "notionwatch.rate_limited_total",
                tags={"method": method, "path": path},
            )
            log.warning(
                "rate limited by Notion API",
                extra={
                    "extra_fields": {
                        "op": "request",
                        "method": method,
                        "path": path,
                        "retry_after": retry_after,
                        "attempt": attempt + 1,
                    }
                },
            )
        self._metrics.increment(
            "notionwatch.retries_total",
            tags={"method": method, "path": path, "reason": reason},
        )
        return self._retry.delay(attempt, retry_after=retry_after)

    # -- public API ----------------------------------------------------------

    def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Send one API request and return its JSON body.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            Path relative to ``base_url``, e.g. ``/databases/<id>/query``.
        **kwargs:
            Passed to :meth:`httpx.Client.request` (``json=``, ``params=``).

        Returns
        -------
        dict
            The decoded body, ``{}`` for empty responses.

        Raises
        ------
        NotionwatchAuthError
            On ``401``.
        NotionwatchPermissionError
            On ``403``.
        NotionwatchNotFoundError
            On ``404``.
        NotionwatchValidationError
            On ``400`` and other non-retryable ``4xx``.
        NotionwatchRetryExhaustedError
            When a retryable status persists through every attempt.
        NotionwatchNetworkError
            When network failures persist through every attempt.
        """
        attempts = self._retry.max_attempts
        last_status: int | None = None

        for attempt in range(attempts):
            self._pace(method, path)

            started = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                time.sleep(self._network_retry_delay(method, path, exc, attempt))
                continue

            last_status = response.status_code
            self._record_response(
                method, path, last_status, (time.monotonic() - started) * 1000,
            )

            if 200 <= last_status < 300:
                if last_status == 204 or not response.content:
                    return {}
                return response.json()

            if last_status not in RETRYABLE_STATUSES:
                _raise_for_status(response, method, path)

            if not self._retry.allows(attempt, status_code=last_status):
                break

            time.sleep(self._status_retry_delay(method, path, response, attempt))

        raise NotionwatchRetryExhaustedError(
            message=(
                f"All {attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context={"attempts": attempts, "last_status_code": last_status},
        )

    def paginate(self, path: str, method: str = "GET", **kwargs: Any) -> Iterator[dict]:
        """Yield every item of a cursor-paginated list endpoint.

        ``start_cursor`` and ``page_size`` go into the JSON body for
        ``POST`` endpoints (database queries) and into the query string
        otherwise.  Iteration stops when ``has_more`` is false or no
        ``next_cursor`` is given.
        """
        in_body = method.upper() in ("POST", "PATCH")
        slot = "json" if in_body else "params"
        base = dict(kwargs.pop(slot, None) or {})
        cursor: str | None = None

        while True:
            page_args = dict(base, page_size=PAGE_SIZE)
            if cursor is not None:
                page_args["start_cursor"] = cursor
            data = self.request(method, path, **{slot: page_args}, **kwargs)
            yield from data.get("results", [])

            cursor = data.get("next_cursor")
            if not data.get("has_more", False) or cursor is None:
                return

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> NotionTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
