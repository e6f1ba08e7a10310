"""Client-side request pacing.

Notion allows an average of three requests per second per integration.
:class:`TokenBucket` keeps a run under that limit even when several
databases are fetched from worker threads sharing one transport.
"""

from __future__ import annotations

import threading
import time


class TokenBucket:
    """Thread-safe token bucket.

    Tokens refill continuously at *rate_rps* per second, up to *burst*.
    :meth:`acquire` blocks until enough tokens are available.

    Parameters
    ----------
    rate_rps:
        Refill rate in tokens per second.
    burst:
        Bucket capacity.
    """

    __slots__ = ("_lock", "burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int = 10) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        self.rate = float(rate_rps)
        self.burst = burst
        self.tokens = float(burst)
        self.last_refill = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        self.tokens = min(float(self.burst), self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now

    def acquire(self, tokens: int = 1) -> float:
        """Take *tokens*, sleeping if the bucket is short.

        Returns
        -------
        float
            Seconds slept; ``0.0`` when tokens were available at once.
        """
        with self._lock:
            self._refill(time.monotonic())
            if self.tokens >= tokens:
                self.tokens -= tokens
                return 0.0
            wait = (tokens - self.tokens) / self.rate
            # The deficit is paid by this caller's sleep.
            self.tokens = 0.0

        time.sleep(wait)
        return wait
