# dyntable/crud_base.py

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from dyntable import sql
from dyntable.codec import ID_COLUMN, decode_row, encode_fields
from dyntable.db import Datastore
from dyntable.exceptions import DatastoreFault, InvalidTableName, NotFound, TableAccessError
from dyntable.tables import TableProvisioner, is_valid_table_name

logger = logging.getLogger(__name__)

POLICY_CREATE = "create"
POLICY_REJECT = "reject"


@asynccontextmanager
async def datastore_errors(prefix: str):
    """Turn driver errors raised inside the block into :class:`DatastoreFault`."""
    try:
        yield
    except TableAccessError:
        raise
    except Exception as exc:
        logger.exception(prefix)
        raise DatastoreFault(f"{prefix}: {exc}", exc) from exc


class GenericTableCRUD:
    """
    CRUD over one generic table (``id_x`` + ``x_01`` .. ``x_20``).
    The table name comes from the client and is validated on construction;
    every statement is parameterized on values. Call :meth:`prepare` before
    the data methods so the missing-table policy is applied.
    """

    def __init__(
        self,
        datastore: Datastore,
        table: str,
        missing_table_policy: str = POLICY_CREATE,
    ) -> None:
        if not is_valid_table_name(table):
            raise InvalidTableName()
        if missing_table_policy not in (POLICY_CREATE, POLICY_REJECT):
            raise ValueError(f"Unknown missing-table policy: {missing_table_policy!r}")
        self.datastore = datastore
        self.table = table
        self.policy = missing_table_policy
        self.provisioner = TableProvisioner(datastore)

    @property
    def _ph(self) -> str:
        return self.datastore.placeholder

    async def prepare(self) -> None:
        """Apply the missing-table policy: provision the table or 404."""
        if self.policy == POLICY_CREATE:
            await self.provisioner.ensure_table(self.table)
        elif not await self.provisioner.table_exists(self.table):
            raise NotFound(f"Table '{self.table}' does not exist")

    async def list(self) -> Sequence[Dict[str, Any]]:
        async with datastore_errors(f"Failed to get data from table '{self.table}'"):
            rows = await self.datastore.fetch_all(*sql.select_all(self.table))
        logger.info("Found %d records in %s", len(rows), self.table)
        return [decode_row(r) for r in rows]

    async def get(self, item_id: Any) -> Dict[str, Any]:
        async with datastore_errors(f"Get failed from table '{self.table}'"):
            row = await self.datastore.fetch_one(*sql.select_by_id(self.table, item_id, self._ph))
        if not row:
            raise NotFound(f"Record not found in table '{self.table}'")
        return decode_row(row)

    async def create(self, data: Mapping[str, Any]) -> Tuple[int, List[str]]:
        """Insert one row built from the recognised fields of ``data``.

        Returns:
            tuple: The new ``id_x`` and the column names written.

        Raises:
            EmptyFieldSet: If ``data`` holds none of ``x_01`` .. ``x_20``.
            DatastoreFault: If the insert fails, e.g. the engine rejects a value.
        """
        fields = encode_fields(data)
        async with datastore_errors(f"Failed to save record to table '{self.table}'"):
            row = await self.datastore.fetch_one(*sql.insert(self.table, fields, self._ph))
        new_id = row[ID_COLUMN]
        logger.info("Inserted %s=%s into %s", ID_COLUMN, new_id, self.table)
        return new_id, [name for name, _ in fields]

    async def update(self, item_id: Any, data: Mapping[str, Any]) -> Tuple[int, List[str]]:
        """Update the recognised fields of ``data`` on one row.

        The existence check and the UPDATE are separate statements; a row
        deleted in between is reported with zero changes.

        Returns:
            tuple: Number of rows changed and the column names written.
        """
        prefix = f"Update failed in table '{self.table}'"
        async with datastore_errors(prefix):
            exists = await self.datastore.fetch_one(
                *sql.select_by_id(self.table, item_id, self._ph, columns=(ID_COLUMN,))
            )
        if not exists:
            raise NotFound(f"Record not found in table '{self.table}'")

        fields = encode_fields(data)
        async with datastore_errors(prefix):
            changes = await self.datastore.execute(*sql.update(self.table, item_id, fields, self._ph))
        return changes, [name for name, _ in fields]

    async def delete(self, item_id: Any) -> Tuple[int, Optional[Dict[str, Any]]]:
        """Delete one row.

        Returns:
            tuple: Number of rows changed and a snapshot of the identifying
            columns (``id_x``, ``x_01`` .. ``x_03``) taken before deletion.
        """
        prefix = f"Delete failed from table '{self.table}'"
        async with datastore_errors(prefix):
            snapshot = await self.datastore.fetch_one(
                *sql.select_by_id(self.table, item_id, self._ph, columns=sql.SNAPSHOT_COLUMNS)
            )
        if not snapshot:
            raise NotFound(f"Record not found in table '{self.table}'")

        async with datastore_errors(prefix):
            changes = await self.datastore.execute(*sql.delete(self.table, item_id, self._ph))
        return changes, decode_row(snapshot)
