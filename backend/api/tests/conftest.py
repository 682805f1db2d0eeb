"""Pytest configuration for the dyntable API tests.

Every test gets its own SQLite file under ``tmp_path`` so tables created by
one test never leak into another.
"""
import sqlite3

import pytest
from fastapi.testclient import TestClient

from dyntable.config import Settings
from dyntable.main import create_app


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "dyntable.db"


@pytest.fixture
def make_client(db_path):
    """Factory for started TestClients; keyword overrides go to Settings."""
    clients = []

    def _make(raise_server_exceptions: bool = True, **overrides) -> TestClient:
        overrides.setdefault("DATABASE_DSN", f"sqlite:///{db_path}")
        settings = Settings(**overrides)
        client = TestClient(create_app(settings), raise_server_exceptions=raise_server_exceptions)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def query_db(db_path):
    """Run a query straight against the test database file."""

    def _query(sql: str, params=()):
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        try:
            return [dict(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    return _query
