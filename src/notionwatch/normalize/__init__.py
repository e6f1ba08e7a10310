"""Property normalization.

Exports
-------
normalize_property
    Reduce one typed Notion property to a comparable value.
normalize_properties
    Normalize a page's whole ``properties`` map.
normalize_record
    Build a :class:`~notionwatch.models.Record` from a raw page.
normalize_records
    Normalize a list of raw pages.
build_snapshot
    Normalize raw pages into a :class:`~notionwatch.models.Snapshot`.
"""

from .properties import normalize_properties, normalize_property, plain_text
from .records import build_snapshot, normalize_record, normalize_records

__all__ = [
    "build_snapshot",
    "normalize_properties",
    "normalize_property",
    "normalize_record",
    "normalize_records",
    "plain_text",
]
