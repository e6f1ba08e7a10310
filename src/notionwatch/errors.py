"""Error hierarchy for notionwatch.

Every error raised on purpose by the package inherits from
:class:`NotionwatchError` and carries a machine-readable ``code`` (from
:class:`ErrorCode`), a human-readable ``message``, an optional structured
``context`` dict and an optional ``cause``.

Storage write failures have no class here: an
``OSError`` raised while persisting a snapshot reaches the caller as-is.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    SNAPSHOT_INVARIANT = "SNAPSHOT_INVARIANT"
    MISSING_RECORD_ID = "MISSING_RECORD_ID"
    AMBIGUOUS_REPORT = "AMBIGUOUS_REPORT"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionwatchError(Exception):
    """Base exception for all notionwatch errors.

    Parameters
    ----------
    message:
        Description of what went wrong.
    context:
        Structured diagnostic data.  Keys are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    code:
        A value from :class:`ErrorCode` (or any string).  Defaults to the
        subclass's ``default_code``.
    """

    default_code: str = "ERROR"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str | None = None,
    ) -> None:
        self.code: str = code or self.default_code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Notion API / transport errors
# ---------------------------------------------------------------------------

class NotionwatchValidationError(NotionwatchError):
    """Notion rejected the request (400, or any other non-retryable 4xx).

    Context keys: ``status_code``, ``notion_code``, ``body``.
    """

    default_code = ErrorCode.VALIDATION_ERROR


class NotionwatchAuthError(NotionwatchError):
    """The integration token was refused (401).

    Context keys: ``status_code``, ``notion_code``.
    """

    default_code = ErrorCode.AUTH_ERROR


class NotionwatchPermissionError(NotionwatchError):
    """The integration is not shared with the database (403).

    Context keys: ``status_code``, ``notion_code``, ``operation``.
    """

    default_code = ErrorCode.PERMISSION_ERROR


class NotionwatchNotFoundError(NotionwatchError):
    """The database or page does not exist (404).

    Context keys: ``status_code``, ``notion_code``, ``path``.
    """

    default_code = ErrorCode.NOT_FOUND


class NotionwatchRetryExhaustedError(NotionwatchError):
    """Every retry attempt for a retryable request failed.

    Context keys: ``attempts``, ``last_status_code``.
    """

    default_code = ErrorCode.RETRY_EXHAUSTED


class NotionwatchNetworkError(NotionwatchError):
    """Timeout, DNS failure or connection reset that outlived the retries.

    Context keys: ``url``, ``attempt``.
    """

    default_code = ErrorCode.NETWORK_ERROR


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class NotionwatchConfigError(NotionwatchError):
    """The collections configuration file is missing or malformed.

    Context keys: ``path``, ``reason``.
    """

    default_code = ErrorCode.CONFIG_ERROR


# ---------------------------------------------------------------------------
# Snapshot / record errors
# ---------------------------------------------------------------------------

class NotionwatchSnapshotError(NotionwatchError):
    """A snapshot violates a structural invariant.

    Raised when a :class:`~notionwatch.models.Snapshot` is built with two
    records sharing an id, or when two snapshots of different collections
    are compared.

    Context keys: ``collection_id``, ``record_id`` or ``other_collection_id``.
    """

    default_code = ErrorCode.SNAPSHOT_INVARIANT


class NotionwatchMissingIdError(NotionwatchError):
    """A raw record arrived without an ``id``.

    Context keys: ``collection_id``, ``index``.
    """

    default_code = ErrorCode.MISSING_RECORD_ID


# ---------------------------------------------------------------------------
# Report lifecycle errors
# ---------------------------------------------------------------------------

class NotionwatchAmbiguousReportError(NotionwatchError):
    """More than one open report exists for the same environment.

    Picking one automatically could re-report or drop changes, so this
    always requires someone to close the extra reports by hand.

    Context keys: ``environment``, ``report_numbers``.
    """

    default_code = ErrorCode.AMBIGUOUS_REPORT
