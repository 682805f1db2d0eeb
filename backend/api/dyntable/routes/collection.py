# dyntable/routes/collection.py

import logging

from fastapi import APIRouter, Depends, Request

from dyntable.crud_base import GenericTableCRUD
from dyntable.deps import get_table_crud, read_json_object, resolve_table_name
from dyntable.exceptions import MethodNotAllowed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["tables"])


@router.get("", summary="List every row of a table, newest first")
async def list_records(crud: GenericTableCRUD = Depends(get_table_crud)):
    logger.info("GET /contacts table=%s", crud.table)
    await crud.prepare()
    rows = await crud.list()
    return {
        "success": True,
        "table": crud.table,
        "count": len(rows),
        "data": rows,
    }


@router.post("", summary="Insert a row from any of x_01 .. x_20")
async def create_record(request: Request, crud: GenericTableCRUD = Depends(get_table_crud)):
    logger.info("POST /contacts table=%s", crud.table)
    data = await read_json_object(request)
    await crud.prepare()
    new_id, fields = await crud.create(data)
    return {
        "success": True,
        "table": crud.table,
        "id_x": new_id,
        "message": f"Record created successfully in table '{crud.table}'",
        "insertedFields": fields,
        "insertedData": data,
    }


@router.api_route("", methods=["PUT", "DELETE", "PATCH", "HEAD"], include_in_schema=False)
async def collection_method_not_allowed(request: Request, table: str = Depends(resolve_table_name)):
    raise MethodNotAllowed(f"Method {request.method} not allowed")
