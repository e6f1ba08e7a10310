"""notionwatch.notion_api -- Notion API transport and endpoint wrappers.

This sub-package provides:

* :mod:`.rate_limit` -- Token bucket request pacing.
* :mod:`.retries` -- Retry decisions and exponential backoff.
* :mod:`.transport` -- HTTP transport with auth, retries and pacing.
* :mod:`.databases` -- Database retrieve and query wrappers.
"""

from __future__ import annotations

from .databases import DatabaseAPI
from .rate_limit import TokenBucket
from .retries import RetryPolicy, compute_backoff, should_retry
from .transport import NotionTransport

__all__ = [
    "DatabaseAPI",
    "NotionTransport",
    "RetryPolicy",
    "TokenBucket",
    "compute_backoff",
    "should_retry",
]
