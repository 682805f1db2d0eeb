# dyntable/sql.py

"""
SQL text builders for generic tables.

Identifiers cannot be bound as parameters, so table names are interpolated
into the statement text through :func:`dyntable.tables.quote_identifier`;
values always go through the datastore's positional placeholder. Each builder
returns ``(query, params)``.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from dyntable.codec import ID_COLUMN
from dyntable.tables import quote_identifier

Statement = Tuple[str, List[Any]]

SNAPSHOT_COLUMNS = (ID_COLUMN, "x_01", "x_02", "x_03")


def select_all(table: str) -> Statement:
    return f"SELECT * FROM {quote_identifier(table)} ORDER BY {ID_COLUMN} DESC", []


def select_by_id(table: str, item_id: Any, ph: str, columns: Sequence[str] = ("*",)) -> Statement:
    cols = ", ".join(columns)
    return (
        f"SELECT {cols} FROM {quote_identifier(table)} WHERE {ID_COLUMN} = {ph}",
        [item_id],
    )


def insert(table: str, fields: Sequence[Tuple[str, Any]], ph: str) -> Statement:
    cols = ", ".join(name for name, _ in fields)
    vals = ", ".join(ph for _ in fields)
    return (
        f"INSERT INTO {quote_identifier(table)} ({cols}) VALUES ({vals}) RETURNING {ID_COLUMN}",
        [value for _, value in fields],
    )


def update(table: str, item_id: Any, fields: Sequence[Tuple[str, Any]], ph: str) -> Statement:
    set_clause = ", ".join(f"{name} = {ph}" for name, _ in fields)
    return (
        f"UPDATE {quote_identifier(table)} SET {set_clause} WHERE {ID_COLUMN} = {ph}",
        [value for _, value in fields] + [item_id],
    )


def delete(table: str, item_id: Any, ph: str) -> Statement:
    return f"DELETE FROM {quote_identifier(table)} WHERE {ID_COLUMN} = {ph}", [item_id]
