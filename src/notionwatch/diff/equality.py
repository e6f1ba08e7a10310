"""Structural equality over normalized field values.

Values compared here are the output of the property normalizer (strings,
numbers, booleans, ``None``, lists of strings) plus whatever a stored
snapshot file contains, and the :data:`~notionwatch.models.UNDEFINED`
marker for absent properties.

The comparison is:

* type-sensitive -- ``True`` is not ``1``, ``"1"`` is not ``1``, ``None``
  is not ``UNDEFINED``;
* order-sensitive for lists;
* by value for numbers, so ``3`` equals ``3.0``;
* key-order-insensitive for mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from notionwatch.models import UNDEFINED, FieldChange


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def values_equal(a: Any, b: Any) -> bool:
    """Return ``True`` if two normalized values are structurally equal."""
    if a is UNDEFINED or b is UNDEFINED:
        return a is b
    if a is None or b is None:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) or _is_number(b):
        return _is_number(a) and _is_number(b) and a == b
    if isinstance(a, str) or isinstance(b, str):
        return isinstance(a, str) and isinstance(b, str) and a == b
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    return False


def _union_keys(previous: Mapping[str, Any], current: Mapping[str, Any]) -> list[str]:
    """Previous keys in order, then keys that only exist in *current*."""
    keys = list(previous)
    keys.extend(k for k in current if k not in previous)
    return keys


def diff_fields(
    previous: Mapping[str, Any],
    current: Mapping[str, Any],
) -> list[FieldChange]:
    """Return one :class:`FieldChange` per differing key.

    A key missing on one side is reported with :data:`UNDEFINED` as that
    side's value.
    """
    changes: list[FieldChange] = []
    for key in _union_keys(previous, current):
        before = previous.get(key, UNDEFINED)
        after = current.get(key, UNDEFINED)
        if not values_equal(before, after):
            changes.append(FieldChange(name=key, previous_value=before, current_value=after))
    return changes


def fields_equal(previous: Mapping[str, Any], current: Mapping[str, Any]) -> bool:
    return not diff_fields(previous, current)
