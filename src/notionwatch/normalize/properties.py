"""Flatten Notion's typed property objects into comparable values.

A Notion page property looks like ``{"id": "...", "type": "select",
"select": {"name": "Done", ...}}``; each ``type`` stores its payload under
a key of the same name with its own shape.  :func:`normalize_property`
reduces every supported type to a string, number, boolean, ``None`` or a
list of strings.

Normalization never raises.  Notion adds property types over time and
partially-populated payloads do occur, so an unknown type yields ``None``
and a malformed payload degrades to ``None``/``""``/``[]``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _scalar(value: Any) -> str | int | float | bool | None:
    """Return *value* if it is a JSON scalar, else ``None``."""
    if isinstance(value, (str, int, float, bool)):
        return value
    return None


def _non_empty_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


# ---------------------------------------------------------------------------
# Building blocks shared by several types
# ---------------------------------------------------------------------------

def plain_text(runs: Any) -> str:
    """Concatenate the text of a rich-text array and strip it.

    Notion API responses carry ``plain_text`` on each run; payloads built
    by hand often only have ``text.content``, which is used as fallback.
    """
    parts: list[str] = []
    for run in _as_list(runs):
        run = _as_dict(run)
        text = run.get("plain_text")
        if not isinstance(text, str) or not text:
            text = _as_dict(run.get("text")).get("content")
        if isinstance(text, str):
            parts.append(text)
    return "".join(parts).strip()


def _option_name(option: Any) -> str | None:
    return _non_empty_str(_as_dict(option).get("name"))


def _object_id(obj: Any) -> str | None:
    return _non_empty_str(_as_dict(obj).get("id"))


def _date_start(date: Any) -> str | None:
    return _non_empty_str(_as_dict(date).get("start"))


def _file_name(entry: Any) -> str | None:
    entry = _as_dict(entry)
    return (
        _non_empty_str(entry.get("name"))
        or _non_empty_str(_as_dict(entry.get("file")).get("url"))
        or _non_empty_str(_as_dict(entry.get("external")).get("url"))
    )


def _collect(items: Any, pick: Callable[[Any], str | None]) -> list[str]:
    values = (pick(item) for item in _as_list(items))
    return [v for v in values if v]


# ---------------------------------------------------------------------------
# Per-type extractors
# ---------------------------------------------------------------------------

def _formula(payload: Any) -> Any:
    payload = _as_dict(payload)
    kind = payload.get("type")
    if kind in ("string", "number", "boolean"):
        return _scalar(payload.get(kind))
    if kind == "date":
        return _date_start(payload.get("date"))
    return None


def _rollup_element(element: Any) -> list[str]:
    """Normalize one element of an array rollup into zero or more strings."""
    element = _as_dict(element)
    kind = element.get("type")
    if isinstance(kind, str) and kind in _EXTRACTORS:
        value = normalize_property(element)
    else:
        value = (
            _non_empty_str(element.get("plain_text"))
            or _non_empty_str(element.get("name"))
            or _non_empty_str(element.get("id"))
        )

    if isinstance(value, list):
        return [v for v in value if v]
    if value is None or value == "":
        return []
    if isinstance(value, bool):
        return [str(value).lower()]
    return [str(value)]


def _rollup(payload: Any) -> Any:
    payload = _as_dict(payload)
    kind = payload.get("type")
    if kind == "array":
        values: list[str] = []
        for element in _as_list(payload.get("array")):
            values.extend(_rollup_element(element))
        return values
    if kind == "number":
        return _scalar(payload.get("number"))
    if kind == "date":
        return _date_start(payload.get("date"))
    return None


_EXTRACTORS: dict[str, Callable[[Any], Any]] = {
    # text
    "title": plain_text,
    "rich_text": plain_text,
    # single choice
    "select": _option_name,
    "status": _option_name,
    # scalars passed through
    "number": _scalar,
    "checkbox": _scalar,
    "url": _scalar,
    "email": _scalar,
    "phone_number": _scalar,
    "created_time": _scalar,
    "last_edited_time": _scalar,
    # dates
    "date": _date_start,
    # lists
    "multi_select": lambda items: _collect(items, _option_name),
    "relation": lambda items: _collect(items, _object_id),
    "people": lambda items: _collect(items, _object_id),
    "files": lambda items: _collect(items, _file_name),
    # authorship
    "created_by": _object_id,
    "last_edited_by": _object_id,
    # computed
    "formula": _formula,
    "rollup": _rollup,
}
"""Notion property type -> extractor applied to ``property[type]``."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_property(prop: Any) -> Any:
    """Return the normalized value of one Notion property object.

    Parameters
    ----------
    prop:
        A property object such as ``{"type": "number", "number": 3}``.

    Returns
    -------
    str | int | float | bool | list[str] | None
        ``None`` for unknown types, missing ``type`` keys and non-dict
        input.
    """
    prop = _as_dict(prop)
    kind = prop.get("type")
    if not isinstance(kind, str):
        return None
    extractor = _EXTRACTORS.get(kind)
    if extractor is None:
        return None
    return extractor(prop.get(kind))


def normalize_properties(properties: Any) -> dict[str, Any]:
    """Normalize a page's ``properties`` map, preserving key order."""
    return {
        str(name): normalize_property(prop)
        for name, prop in _as_dict(properties).items()
    }


def supported_types() -> frozenset[str]:
    """The property types that produce a value other than ``None``."""
    return frozenset(_EXTRACTORS)
