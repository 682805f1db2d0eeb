# dyntable/deps.py

"""FastAPI dependencies shared by the routers.

The datastore is created by the application lifespan and kept on
``app.state``; handlers receive it through these dependencies rather than
through module globals.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Header, Query, Request

from dyntable.codec import require_object
from dyntable.config import Settings
from dyntable.crud_base import GenericTableCRUD
from dyntable.db import Datastore
from dyntable.exceptions import (
    DatastoreUnavailable,
    InvalidPayload,
    InvalidTableName,
    MissingId,
    UnsupportedMediaType,
)
from dyntable.legacy import LegacyContactsCRUD
from dyntable.tables import is_valid_table_name


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_datastore(request: Request) -> Datastore:
    datastore = getattr(request.app.state, "datastore", None)
    if datastore is None:
        raise DatastoreUnavailable()
    return datastore


def get_legacy_datastore(request: Request) -> Datastore:
    datastore = getattr(request.app.state, "legacy_datastore", None)
    if datastore is None:
        raise DatastoreUnavailable()
    return datastore


def resolve_table_name(
    table: Optional[str] = Query(None, description="Target table name."),
    x_table_name: Optional[str] = Header(None, description="Target table name, used when ?table= is absent."),
    settings: Settings = Depends(get_settings),
) -> str:
    """Pick the table from ``?table=``, then ``X-Table-Name``, then the default.

    Raises:
        InvalidTableName: If the chosen name is not a safe identifier.
    """
    name = table or x_table_name or settings.DEFAULT_TABLE
    if not is_valid_table_name(name):
        raise InvalidTableName()
    return name


def get_table_crud(
    table: str = Depends(resolve_table_name),
    datastore: Datastore = Depends(get_datastore),
    settings: Settings = Depends(get_settings),
) -> GenericTableCRUD:
    return GenericTableCRUD(datastore, table, missing_table_policy=settings.MISSING_TABLE_POLICY)


def get_legacy_crud(
    datastore: Datastore = Depends(get_legacy_datastore),
    settings: Settings = Depends(get_settings),
) -> LegacyContactsCRUD:
    return LegacyContactsCRUD(datastore, settings.LEGACY_CONTACTS_TABLE)


def require_id(item_id: Optional[str]) -> str:
    if item_id is None or not item_id.strip():
        raise MissingId()
    return item_id


def require_json_content_type(request: Request) -> None:
    content_type = request.headers.get("content-type")
    if not content_type or "application/json" not in content_type:
        raise UnsupportedMediaType()


async def read_json_object(request: Request) -> Dict[str, Any]:
    """Parse the request body as a JSON object.

    Raises:
        InvalidPayload: If the body is not valid JSON or not an object.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise InvalidPayload()
    return require_object(payload)
