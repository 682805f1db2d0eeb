# dyntable/tables.py

"""Table name validation and lazy provisioning of generic tables.

A generic table is an ``id_x`` autoincrement primary key followed by twenty
nullable TEXT columns ``x_01`` .. ``x_20``. Tables are created on first use
when the deployment runs with the ``create`` missing-table policy.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from dyntable.codec import FIELD_NAMES, ID_COLUMN
from dyntable.db import Datastore
from dyntable.exceptions import DatastoreFault, InvalidTableName

logger = logging.getLogger(__name__)

TABLE_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
TABLE_NAME_MAX_LENGTH = 50


def is_valid_table_name(name: Any) -> bool:
    """Return True if ``name`` may be interpolated into SQL as a table name."""
    return (
        isinstance(name, str)
        and len(name) <= TABLE_NAME_MAX_LENGTH
        and TABLE_NAME_RE.fullmatch(name) is not None
    )


def quote_identifier(name: str) -> str:
    """Quote a table name for use in statement text.

    This is the only place identifiers enter SQL. Names that fail
    :func:`is_valid_table_name` are refused here as well, so a statement can
    never be built around an unchecked name.

    Raises:
        InvalidTableName: If ``name`` is not a valid table name.
    """
    if not is_valid_table_name(name):
        raise InvalidTableName()
    return f'"{name}"'


def create_table_sql(name: str, id_column_ddl: str) -> str:
    columns = [f"{ID_COLUMN} {id_column_ddl}"] + [f"{col} TEXT" for col in FIELD_NAMES]
    body = ",\n  ".join(columns)
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(name)} (\n  {body}\n)"


class TableProvisioner:
    """Ensures generic tables exist before they are read or written."""

    def __init__(self, datastore: Datastore) -> None:
        self.datastore = datastore

    async def table_exists(self, name: str) -> bool:
        try:
            return await self.datastore.table_exists(name)
        except Exception as exc:
            logger.exception("Catalog lookup failed for table %s", name)
            raise DatastoreFault(f"Failed to look up table '{name}': {exc}", exc) from exc

    async def ensure_table(self, name: str) -> None:
        """Create ``name`` with the generic schema unless it already exists.

        Idempotent. The catalog lookup only saves a DDL round trip;
        ``CREATE TABLE IF NOT EXISTS`` is what keeps concurrent first requests
        from colliding.

        Raises:
            InvalidTableName: If ``name`` is not a valid table name.
            DatastoreFault: If the lookup or the DDL statement fails.
        """
        ddl = create_table_sql(name, self.datastore.id_column_ddl)
        if await self.table_exists(name):
            return

        logger.info("Table '%s' does not exist, creating...", name)
        try:
            await self.datastore.execute(ddl)
        except Exception as exc:
            logger.exception("Failed to create table %s", name)
            raise DatastoreFault(f"Failed to create table '{name}': {exc}", exc) from exc
        logger.info("Table '%s' created or already exists", name)
