import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from dyntable.crud_base import POLICY_REJECT, GenericTableCRUD
from dyntable.db import Datastore
from dyntable.exceptions import DatastoreFault, EmptyFieldSet, InvalidTableName, NotFound


def _mock_datastore() -> MagicMock:
    datastore = MagicMock(spec=Datastore)
    datastore.placeholder = "?"
    datastore.id_column_ddl = "INTEGER PRIMARY KEY AUTOINCREMENT"
    datastore.table_exists = AsyncMock(return_value=True)
    datastore.fetch_all = AsyncMock(return_value=[])
    datastore.fetch_one = AsyncMock(return_value=None)
    datastore.execute = AsyncMock(return_value=1)
    return datastore


def test_constructor_validates_table_name():
    with pytest.raises(InvalidTableName):
        GenericTableCRUD(_mock_datastore(), "bad name")
    with pytest.raises(ValueError):
        GenericTableCRUD(_mock_datastore(), "books", missing_table_policy="sometimes")


def test_update_reports_zero_changes_when_row_vanishes_between_statements():
    """Existence check passes, a racing delete wins, the UPDATE touches nothing."""
    datastore = _mock_datastore()
    datastore.fetch_one = AsyncMock(return_value={"id_x": 4})
    datastore.execute = AsyncMock(return_value=0)
    crud = GenericTableCRUD(datastore, "books")

    changes, fields = asyncio.run(crud.update("4", {"x_02": "new"}))

    assert changes == 0
    assert fields == ["x_02"]
    query, params = datastore.execute.call_args.args
    assert query == 'UPDATE "books" SET x_02 = ? WHERE id_x = ?'
    assert params == ["new", "4"]


def test_update_checks_existence_before_fields():
    datastore = _mock_datastore()
    crud = GenericTableCRUD(datastore, "books")

    with pytest.raises(NotFound):
        asyncio.run(crud.update("9", {}))

    datastore.fetch_one = AsyncMock(return_value={"id_x": 9})
    with pytest.raises(EmptyFieldSet):
        asyncio.run(crud.update("9", {"name": "x"}))
    datastore.execute.assert_not_called()


def test_driver_errors_become_datastore_faults():
    datastore = _mock_datastore()
    datastore.fetch_all = AsyncMock(side_effect=RuntimeError("disk I/O error"))
    crud = GenericTableCRUD(datastore, "books")

    with pytest.raises(DatastoreFault) as excinfo:
        asyncio.run(crud.list())

    assert excinfo.value.message == "Failed to get data from table 'books': disk I/O error"
    assert excinfo.value.status_code == 400


def test_reject_policy_never_creates_tables():
    datastore = _mock_datastore()
    datastore.table_exists = AsyncMock(return_value=False)
    crud = GenericTableCRUD(datastore, "ghost", missing_table_policy=POLICY_REJECT)

    with pytest.raises(NotFound) as excinfo:
        asyncio.run(crud.prepare())

    assert excinfo.value.message == "Table 'ghost' does not exist"
    datastore.execute.assert_not_called()


def test_delete_returns_snapshot_of_identifying_columns():
    datastore = _mock_datastore()
    datastore.fetch_one = AsyncMock(return_value={"id_x": 2, "x_01": "a", "x_02": None, "x_03": "c"})
    crud = GenericTableCRUD(datastore, "books")

    changes, snapshot = asyncio.run(crud.delete("2"))

    assert changes == 1
    assert snapshot == {"id_x": 2, "x_01": "a", "x_02": None, "x_03": "c"}
    query, params = datastore.fetch_one.call_args.args
    assert query == 'SELECT id_x, x_01, x_02, x_03 FROM "books" WHERE id_x = ?'
