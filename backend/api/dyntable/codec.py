# dyntable/codec.py

"""Mapping between sparse JSON payloads and the fixed generic row."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from dyntable.exceptions import EmptyFieldSet, InvalidPayload

ID_COLUMN = "id_x"
FIELD_COUNT = 20


def field_name(index: int) -> str:
    """Canonical column name for a 1-based field index, e.g. ``3 -> "x_03"``."""
    if not 1 <= index <= FIELD_COUNT:
        raise ValueError(f"field index must be between 1 and {FIELD_COUNT}, got {index}")
    return f"x_{index:02d}"


FIELD_NAMES: Tuple[str, ...] = tuple(field_name(i) for i in range(1, FIELD_COUNT + 1))


def require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise InvalidPayload("JSON body must be an object")
    return payload


def encode_fields(payload: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    """
    Select the recognised fields present in ``payload``.

    The result is ordered by field index, never by the key order of the
    payload. A key that is present counts even when its value is ``null``;
    keys outside ``x_01`` .. ``x_20`` are ignored. Values are passed through
    untouched, the datastore decides whether it accepts them.

    Raises:
        EmptyFieldSet: If none of the twenty fields is present.
    """
    fields = [(name, payload[name]) for name in FIELD_NAMES if name in payload]
    if not fields:
        raise EmptyFieldSet()
    return fields


def decode_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return dict(row)
