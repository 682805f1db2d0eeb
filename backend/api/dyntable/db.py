# dyntable/db.py

"""Datastore collaborators.

The request handlers never talk to a driver directly. They receive a
:class:`Datastore` (held on ``app.state`` and injected per request) that
offers parameterized statements with positional placeholders, a table
existence lookup against the engine's catalog, autoincrement primary keys and
affected-row counts.

Two backends are provided:

* :class:`SQLiteDatastore` on the standard library ``sqlite3`` module, the
  engine the generic-table schema was designed for (``sqlite_master``,
  ``AUTOINCREMENT``).
* :class:`PostgresDatastore` on ``psycopg`` 3, using a single autocommit
  ``AsyncConnection`` with ``dict_row`` rows.

Both run in autocommit mode: every statement commits on its own and no
transaction spans several statements.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row

logger = logging.getLogger(__name__)

Params = Sequence[Any]


class Datastore:
    """Interface every datastore backend implements."""

    #: Positional placeholder understood by the driver.
    placeholder: str = "?"
    #: Column definition used for the autoincrement ``id_x`` primary key.
    id_column_ddl: str = "INTEGER PRIMARY KEY AUTOINCREMENT"

    async def connect(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    async def fetch_all(self, query: str, params: Optional[Params] = None) -> List[Dict[str, Any]]:
        """Fetch all rows matching the given SQL query.

        Args:
            query: SQL query to execute.
            params: Positional parameters to bind. Defaults to none.

        Returns:
            list[dict]: Rows as dictionaries mapping column names to values,
            in the order the engine returned them.
        """
        raise NotImplementedError

    async def fetch_one(self, query: str, params: Optional[Params] = None) -> Optional[Dict[str, Any]]:
        """Fetch the first row of the given SQL query, or ``None``."""
        raise NotImplementedError

    async def execute(self, query: str, params: Optional[Params] = None) -> int:
        """Execute a statement without returning rows.

        Returns:
            int: Number of rows changed by the statement.
        """
        raise NotImplementedError

    async def table_exists(self, name: str) -> bool:
        """Look up ``name`` in the engine's table catalog."""
        raise NotImplementedError


class SQLiteDatastore(Datastore):
    """``sqlite3`` backend.

    One connection is shared by the application. ``sqlite3`` calls block, so
    they run in a worker thread; an ``asyncio.Lock`` keeps a single statement
    in flight on the connection at a time.
    """

    placeholder = "?"
    id_column_ddl = "INTEGER PRIMARY KEY AUTOINCREMENT"

    def __init__(self, path: str) -> None:
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        if self._conn is None:
            self._conn = sqlite3.connect(
                self.path,
                check_same_thread=False,
                isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row
            logger.info("Connected to SQLite database %s", self.path)

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def _run(self, fn, query: str, params: Optional[Params]):
        logger.debug("SQL: %s | params=%s", query, params)
        async with self._lock:
            if self._conn is None:
                await self.connect()
            return await asyncio.to_thread(fn, self._conn, query, tuple(params or ()))

    @staticmethod
    def _fetch_all(conn: sqlite3.Connection, query: str, params: tuple):
        cur = conn.execute(query, params)
        try:
            return [dict(row) for row in cur.fetchall()]
        finally:
            cur.close()

    @staticmethod
    def _fetch_one(conn: sqlite3.Connection, query: str, params: tuple):
        cur = conn.execute(query, params)
        try:
            row = cur.fetchone()
            # drain so statements with RETURNING run to completion
            cur.fetchall()
            return dict(row) if row is not None else None
        finally:
            cur.close()

    @staticmethod
    def _execute(conn: sqlite3.Connection, query: str, params: tuple):
        cur = conn.execute(query, params)
        try:
            return cur.rowcount
        finally:
            cur.close()

    async def fetch_all(self, query: str, params: Optional[Params] = None) -> List[Dict[str, Any]]:
        return await self._run(self._fetch_all, query, params)

    async def fetch_one(self, query: str, params: Optional[Params] = None) -> Optional[Dict[str, Any]]:
        return await self._run(self._fetch_one, query, params)

    async def execute(self, query: str, params: Optional[Params] = None) -> int:
        return await self._run(self._execute, query, params)

    async def table_exists(self, name: str) -> bool:
        row = await self.fetch_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (name,),
        )
        return row is not None


class PostgresDatastore(Datastore):
    """``psycopg`` 3 backend over a single autocommit ``AsyncConnection``."""

    placeholder = "%s"
    id_column_ddl = "BIGINT GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY"

    def __init__(self, dsn: str) -> None:
        self.dsn = dsn
        self._conn: Optional[psycopg.AsyncConnection] = None

    async def connect(self) -> None:
        """Establish the connection. Does nothing if it already exists.

        Raises:
            psycopg.OperationalError: If the database connection fails.
        """
        if self._conn is None:
            self._conn = await psycopg.AsyncConnection.connect(
                self.dsn,
                row_factory=dict_row,
                autocommit=True,
            )
            logger.info("Connected to PostgreSQL")

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def fetch_all(self, query: str, params: Optional[Params] = None) -> List[Dict[str, Any]]:
        if self._conn is None:
            await self.connect()
        logger.debug("SQL: %s | params=%s", query, params)
        async with self._conn.cursor() as cur:
            await cur.execute(query, tuple(params or ()))
            return list(await cur.fetchall())

    async def fetch_one(self, query: str, params: Optional[Params] = None) -> Optional[Dict[str, Any]]:
        if self._conn is None:
            await self.connect()
        logger.debug("SQL: %s | params=%s", query, params)
        async with self._conn.cursor() as cur:
            await cur.execute(query, tuple(params or ()))
            return await cur.fetchone()

    async def execute(self, query: str, params: Optional[Params] = None) -> int:
        if self._conn is None:
            await self.connect()
        logger.debug("SQL: %s | params=%s", query, params)
        async with self._conn.cursor() as cur:
            await cur.execute(query, tuple(params or ()))
            return cur.rowcount

    async def table_exists(self, name: str) -> bool:
        row = await self.fetch_one(
            """
            SELECT table_name FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_name = %s
            """,
            (name,),
        )
        return row is not None


def create_datastore(dsn: str) -> Datastore:
    """Pick a backend from the DSN scheme.

    ``sqlite:///relative.db``, ``sqlite:////abs/path.db`` and
    ``sqlite:///:memory:`` select :class:`SQLiteDatastore`;
    ``postgresql://`` and ``postgres://`` select :class:`PostgresDatastore`.

    Raises:
        ValueError: If the scheme is not recognised.
    """
    if dsn.startswith("sqlite:///"):
        return SQLiteDatastore(dsn[len("sqlite:///"):])
    if dsn.startswith(("postgresql://", "postgres://")):
        return PostgresDatastore(dsn)
    raise ValueError(f"Unsupported DATABASE_DSN scheme: {dsn.split(':', 1)[0]}")
