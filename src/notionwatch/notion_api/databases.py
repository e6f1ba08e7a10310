"""Database API wrappers for the Notion API.

Provides :class:`DatabaseAPI`, a thin wrapper around the ``/databases``
endpoints.  HTTP concerns (auth, retries, rate limiting) belong to the
transport.
"""

from __future__ import annotations

from typing import Any

from notionwatch.normalize import plain_text

from .transport import NotionTransport


class DatabaseAPI:
    """Synchronous wrapper for the Notion Databases API.

    Parameters
    ----------
    transport:
        A configured :class:`NotionTransport` instance.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    def retrieve(self, database_id: str) -> dict[str, Any]:
        """Retrieve a database object (title, schema) by its ID."""
        return self._transport.request("GET", f"/databases/{database_id}")

    def query(
        self,
        database_id: str,
        filter: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return every page of a database.

        All result pages are fetched before returning.  Errors propagate:
        an empty list always means the database really is empty, never
        that the fetch failed.

        Parameters
        ----------
        database_id:
            The database UUID.
        filter:
            Optional Notion filter object.

        Returns
        -------
        list[dict]
            Page objects in the order the API returned them.
        """
        body: dict[str, Any] = {}
        if filter is not None:
            body["filter"] = filter
        return list(
            self._transport.paginate(
                f"/databases/{database_id}/query", method="POST", json=body,
            )
        )

    @staticmethod
    def database_title(database: dict[str, Any]) -> str:
        """Plain-text title of a database object, ``""`` when it has none."""
        return plain_text(database.get("title"))
