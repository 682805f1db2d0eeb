# dyntable/legacy.py

"""Fixed-schema contacts table.

The table (``id``, ``name``, ``email``, ``message``, ``created_at``) is owned
by whoever deployed it. It is never provisioned here: when it is missing the
endpoints answer 404.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Tuple

from dyntable.crud_base import datastore_errors
from dyntable.db import Datastore
from dyntable.exceptions import InvalidPayload, NotFound
from dyntable.tables import quote_identifier

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("name", "email", "message")


def _required_text(data: Mapping[str, Any], message: str) -> Tuple[str, str, str]:
    values = tuple(data.get(f) for f in CONTACT_FIELDS)
    if not all(isinstance(v, str) and v for v in values):
        raise InvalidPayload(message)
    return values


class LegacyContactsCRUD:
    def __init__(self, datastore: Datastore, table: str = "contacts") -> None:
        self.datastore = datastore
        self.table = table
        self._qt = quote_identifier(table)

    @property
    def _ph(self) -> str:
        return self.datastore.placeholder

    async def _require_table(self) -> None:
        async with datastore_errors(f"Failed to look up table '{self.table}'"):
            exists = await self.datastore.table_exists(self.table)
        if not exists:
            raise NotFound(f"Table '{self.table}' does not exist")

    async def list(self) -> List[Dict[str, Any]]:
        await self._require_table()
        async with datastore_errors("Failed to get contacts"):
            rows = await self.datastore.fetch_all(
                f"SELECT * FROM {self._qt} ORDER BY created_at DESC"
            )
        logger.info("Found %d contacts", len(rows))
        return [dict(r) for r in rows]

    async def create(self, data: Mapping[str, Any]) -> Any:
        name, email, message = _required_text(data, "Name, email, and message are required")
        if "@" not in email:
            raise InvalidPayload("Invalid email format")

        await self._require_table()
        ph = self._ph
        async with datastore_errors("Failed to save contact to database"):
            row = await self.datastore.fetch_one(
                f"INSERT INTO {self._qt} (name, email, message) VALUES ({ph}, {ph}, {ph}) RETURNING id",
                (name.strip(), email.strip(), message.strip()),
            )
        return row["id"]

    async def update(self, contact_id: Any, data: Mapping[str, Any]) -> int:
        name, email, message = _required_text(data, "Missing required fields: name, email, message")

        await self._require_table()
        ph = self._ph
        async with datastore_errors("Update failed"):
            exists = await self.datastore.fetch_one(
                f"SELECT id FROM {self._qt} WHERE id = {ph}", (contact_id,)
            )
            if not exists:
                raise NotFound("Contact not found")
            return await self.datastore.execute(
                f"UPDATE {self._qt} SET name = {ph}, email = {ph}, message = {ph} WHERE id = {ph}",
                (name, email, message, contact_id),
            )

    async def delete(self, contact_id: Any) -> Tuple[int, Dict[str, Any]]:
        await self._require_table()
        ph = self._ph
        async with datastore_errors("Delete failed"):
            snapshot = await self.datastore.fetch_one(
                f"SELECT id, name FROM {self._qt} WHERE id = {ph}", (contact_id,)
            )
            if not snapshot:
                raise NotFound("Contact not found")
            changes = await self.datastore.execute(
                f"DELETE FROM {self._qt} WHERE id = {ph}", (contact_id,)
            )
        return changes, dict(snapshot)
