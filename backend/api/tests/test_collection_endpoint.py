import sqlite3
from unittest.mock import AsyncMock

from dyntable.codec import FIELD_NAMES
from dyntable.db import SQLiteDatastore
from dyntable.exceptions import INVALID_TABLE_NAME_MESSAGE


def _table_names(query_db):
    return {r["name"] for r in query_db("SELECT name FROM sqlite_master WHERE type='table'")}


def test_create_on_fresh_table_provisions_and_inserts(client, query_db):
    """First write to an unknown table creates it and stores the sparse row."""
    assert "books" not in _table_names(query_db)

    response = client.post("/api/contacts?table=books", json={"x_01": "a", "x_05": "b"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["table"] == "books"
    assert isinstance(body["id_x"], int) and body["id_x"] > 0
    assert body["message"] == "Record created successfully in table 'books'"
    assert body["insertedFields"] == ["x_01", "x_05"]
    assert body["insertedData"] == {"x_01": "a", "x_05": "b"}
    assert "books" in _table_names(query_db)

    listing = client.get("/api/contacts", params={"table": "books"}).json()
    assert listing["count"] == 1
    row = listing["data"][0]
    assert row["id_x"] == body["id_x"]
    assert row["x_01"] == "a"
    assert row["x_05"] == "b"
    assert all(row[col] is None for col in FIELD_NAMES if col not in ("x_01", "x_05"))


def test_list_is_newest_first(client):
    ids = [
        client.post("/api/contacts?table=books", json={"x_01": str(i)}).json()["id_x"]
        for i in range(3)
    ]

    body = client.get("/api/contacts?table=books").json()

    assert body["count"] == 3
    assert [r["id_x"] for r in body["data"]] == sorted(ids, reverse=True)


def test_list_of_new_table_is_empty_not_an_error(client, query_db):
    response = client.get("/api/contacts?table=fresh_table")

    assert response.status_code == 200
    assert response.json() == {"success": True, "table": "fresh_table", "count": 0, "data": []}
    assert "fresh_table" in _table_names(query_db)


def test_create_without_recognised_fields_is_rejected(client):
    response = client.post("/api/contacts?table=books", json={"title": "Dune", "x_21": "no"})

    assert response.status_code == 400
    assert response.json() == {"error": "At least one field (x_01 to x_20) is required"}
    assert client.get("/api/contacts?table=books").json()["count"] == 0


def test_create_with_empty_object_leaves_row_count_unchanged(client):
    client.post("/api/contacts?table=books", json={"x_01": "keep"})

    response = client.post("/api/contacts?table=books", json={})

    assert response.status_code == 400
    assert client.get("/api/contacts?table=books").json()["count"] == 1


def test_create_with_malformed_json(client, query_db):
    response = client.post(
        "/api/contacts?table=books",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON data"}
    assert "books" not in _table_names(query_db)


def test_create_with_non_object_json(client):
    response = client.post("/api/contacts?table=books", json=[{"x_01": "a"}])

    assert response.status_code == 400
    assert response.json() == {"error": "JSON body must be an object"}


def test_value_the_datastore_cannot_bind_is_a_datastore_fault(client):
    response = client.post("/api/contacts?table=books", json={"x_01": {"nested": "object"}})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Failed to save record to table 'books': ")


def test_null_values_are_written_explicitly(client):
    created = client.post("/api/contacts?table=books", json={"x_02": None}).json()

    assert created["insertedFields"] == ["x_02"]
    row = client.get(f"/api/contacts/{created['id_x']}?table=books").json()["data"]
    assert row["x_02"] is None


def test_table_selection_precedence(client, query_db):
    client.post("/api/contacts", json={"x_01": "default"})
    client.post("/api/contacts", json={"x_01": "header"}, headers={"X-Table-Name": "from_header"})
    client.post(
        "/api/contacts?table=from_query",
        json={"x_01": "query"},
        headers={"X-Table-Name": "from_header"},
    )

    assert {"contacts", "from_header", "from_query"} <= _table_names(query_db)
    assert client.get("/api/contacts").json()["data"][0]["x_01"] == "default"
    assert client.get("/api/contacts", headers={"X-Table-Name": "from_header"}).json()["count"] == 1
    assert client.get("/api/contacts?table=from_query").json()["data"][0]["x_01"] == "query"


def test_configured_default_table(make_client, query_db):
    client = make_client(DEFAULT_TABLE="entries")

    client.post("/api/contacts", json={"x_01": "a"})

    assert "entries" in _table_names(query_db)


def test_invalid_table_name_is_rejected_before_any_sql(client, query_db):
    for name in ["books;DROP TABLE books", "1books", "a" * 51, "my-table"]:
        response = client.get("/api/contacts", params={"table": name})
        assert response.status_code == 400
        assert response.json() == {"error": INVALID_TABLE_NAME_MESSAGE}

    response = client.post("/api/contacts", json={"x_01": "a"}, headers={"X-Table-Name": "bad name"})
    assert response.status_code == 400
    assert _table_names(query_db) == set()


def test_provisioning_failure_surfaces_as_datastore_fault(client, monkeypatch):
    monkeypatch.setattr(
        SQLiteDatastore, "execute", AsyncMock(side_effect=sqlite3.OperationalError("database is locked"))
    )

    response = client.get("/api/contacts?table=books")

    assert response.status_code == 400
    assert response.json() == {"error": "Failed to create table 'books': database is locked"}


def test_reject_policy_answers_404_for_missing_tables(make_client, query_db):
    client = make_client(MISSING_TABLE_POLICY="reject")

    listing = client.get("/api/contacts?table=ghost")
    created = client.post("/api/contacts?table=ghost", json={"x_01": "a"})

    assert listing.status_code == 404
    assert listing.json() == {"error": "Table 'ghost' does not exist"}
    assert created.status_code == 404
    assert "ghost" not in _table_names(query_db)


def test_reject_policy_serves_existing_tables(make_client, query_db):
    make_client().get("/api/contacts?table=books")
    client = make_client(MISSING_TABLE_POLICY="reject")

    response = client.post("/api/contacts?table=books", json={"x_03": "c"})

    assert response.status_code == 200
    assert client.get("/api/contacts?table=books").json()["count"] == 1
