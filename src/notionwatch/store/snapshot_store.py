"""File-backed persistence of the last known snapshot per database."""

from __future__ import annotations

import json
import os
from pathlib import Path

from notionwatch.errors import NotionwatchSnapshotError
from notionwatch.models import Snapshot
from notionwatch.observability import get_logger

from .codec import snapshot_from_dict, snapshot_to_dict

log = get_logger("notionwatch.store")

_SUFFIX = ".json"


class SnapshotStore:
    """Reads and writes ``<state_dir>/<collection_id>.json``.

    A missing, unreadable or malformed file loads as ``None`` so the next
    check treats every record as newly added.  Write failures are never
    swallowed: an :class:`OSError` from :meth:`save` reaches the caller.

    Parameters
    ----------
    state_dir:
        Directory holding one snapshot file per database.  Created on the
        first :meth:`save`.
    """

    def __init__(self, state_dir: str | os.PathLike[str]) -> None:
        self.state_dir = Path(state_dir)

    def __repr__(self) -> str:
        return f"SnapshotStore(state_dir={str(self.state_dir)!r})"

    def path_for(self, collection_id: str) -> Path:
        """Return the file path for *collection_id*.

        Raises
        ------
        ValueError
            If the id is empty or could escape the state directory.
        """
        if (
            not collection_id
            or "/" in collection_id
            or "\\" in collection_id
            or collection_id in (".", "..")
        ):
            raise ValueError(f"Invalid collection id for storage: {collection_id!r}")
        return self.state_dir / f"{collection_id}{_SUFFIX}"

    def exists(self, collection_id: str) -> bool:
        return self.path_for(collection_id).is_file()

    def save(self, collection_id: str, snapshot: Snapshot) -> Path:
        """Atomically replace the stored snapshot for *collection_id*.

        The document is written to a temporary sibling and renamed over the
        target, so readers see either the old or the new file.

        Raises
        ------
        ValueError
            If the snapshot belongs to another collection.
        OSError
            If the directory or file cannot be written.
        """
        if snapshot.collection_id != collection_id:
            raise ValueError(
                f"Snapshot of {snapshot.collection_id!r} cannot be saved as {collection_id!r}"
            )
        path = self.path_for(collection_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
        try:
            tmp.write_text(
                json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False, indent=2),
                "utf-8",
            )
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

        log.debug(
            "snapshot saved",
            extra={
                "extra_fields": {
                    "op": "save",
                    "collection_id": collection_id,
                    "records": len(snapshot),
                    "path": str(path),
                }
            },
        )
        return path

    def load(self, collection_id: str) -> Snapshot | None:
        """Return the stored snapshot, or ``None`` if there is no usable one.

        Raises
        ------
        OSError
            For read failures other than the file not existing.
        """
        path = self.path_for(collection_id)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            log.info(
                "no previous snapshot",
                extra={"extra_fields": {"op": "load", "collection_id": collection_id}},
            )
            return None

        try:
            return snapshot_from_dict(json.loads(data.decode("utf-8")), collection_id)
        except (ValueError, RecursionError, NotionwatchSnapshotError) as exc:
            log.warning(
                "ignoring unusable snapshot file",
                extra={
                    "extra_fields": {
                        "op": "load",
                        "collection_id": collection_id,
                        "path": str(path),
                        "error": str(exc),
                    }
                },
            )
            return None

    def delete(self, collection_id: str) -> None:
        self.path_for(collection_id).unlink(missing_ok=True)

    def collection_ids(self) -> list[str]:
        """Ids of every stored snapshot, sorted."""
        if not self.state_dir.is_dir():
            return []
        return sorted(
            p.name[: -len(_SUFFIX)]
            for p in self.state_dir.iterdir()
            if p.is_file() and p.name.endswith(_SUFFIX) and not p.name.startswith(".")
        )

    def load_all(self) -> dict[str, Snapshot]:
        """Load every stored snapshot, skipping files that do not load."""
        snapshots: dict[str, Snapshot] = {}
        for collection_id in self.collection_ids():
            try:
                snapshot = self.load(collection_id)
            except OSError as exc:
                log.warning(
                    "cannot read snapshot file",
                    extra={
                        "extra_fields": {
                            "op": "load_all",
                            "collection_id": collection_id,
                            "error": str(exc),
                        }
                    },
                )
                continue
            if snapshot is not None:
                snapshots[collection_id] = snapshot
        return snapshots
