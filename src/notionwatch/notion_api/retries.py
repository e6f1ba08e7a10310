"""When to retry a Notion request, and how long to wait first.

Rate limiting (``429``) and server errors (``5xx``) are transient; so are
timeouts and connection failures.  Everything else is final.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from notionwatch.config import NotionwatchConfig

RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Return ``True`` if attempt number *attempt* (0-indexed) may be retried.

    Exactly one of *status_code* and *exception* is expected to be set.
    """
    if attempt + 1 >= max_attempts:
        return False
    if exception is not None:
        return isinstance(exception, RETRYABLE_EXCEPTIONS)
    return status_code is not None and status_code in RETRYABLE_STATUSES


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 60.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Seconds to wait before retrying attempt *attempt*.

    A server-supplied ``Retry-After`` wins.  Otherwise the delay doubles
    per attempt from *base*, capped at *maximum*.  With *jitter* the delay
    is scaled randomly into ``[50 %, 100 %]`` of its value.
    """
    delay = retry_after if retry_after is not None else min(base * (2 ** attempt), maximum)
    if jitter:
        delay *= 0.5 + random.random() * 0.5
    return delay


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings bundled for the transport.

    Attributes
    ----------
    max_attempts:
        Total attempts per request, including the first.
    base_delay, max_delay:
        Exponential backoff parameters in seconds.
    jitter:
        Randomise delays.
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True

    @classmethod
    def from_config(cls, config: NotionwatchConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    def allows(
        self,
        attempt: int,
        status_code: int | None = None,
        exception: Exception | None = None,
    ) -> bool:
        return should_retry(status_code, exception, attempt, self.max_attempts)

    def delay(self, attempt: int, retry_after: float | None = None) -> float:
        return compute_backoff(
            attempt,
            base=self.base_delay,
            maximum=self.max_delay,
            jitter=self.jitter,
            retry_after=retry_after,
        )
