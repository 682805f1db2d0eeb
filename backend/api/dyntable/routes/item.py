# dyntable/routes/item.py

"""
Single-row operations on a generic table, keyed by ``id_x``.

Each request runs the same linear checks: table name, id, missing-table
policy, then the method-specific work. The id is bound to the lookup as
received; a malformed id and an unknown id both end in 404.
"""

import logging

from fastapi import APIRouter, Depends, Request

from dyntable.crud_base import GenericTableCRUD
from dyntable.deps import (
    get_table_crud,
    read_json_object,
    require_id,
    require_json_content_type,
    resolve_table_name,
)
from dyntable.exceptions import MethodNotAllowed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["tables"])


@router.get("/{item_id}", summary="Fetch one row by id_x")
async def get_record(item_id: str, crud: GenericTableCRUD = Depends(get_table_crud)):
    logger.info("GET /contacts/%s table=%s", item_id, crud.table)
    item_id = require_id(item_id)
    await crud.prepare()
    row = await crud.get(item_id)
    return {"success": True, "table": crud.table, "data": row}


@router.put("/{item_id}", summary="Update some of x_01 .. x_20 on one row")
async def update_record(
    item_id: str,
    request: Request,
    crud: GenericTableCRUD = Depends(get_table_crud),
):
    logger.info("PUT /contacts/%s table=%s", item_id, crud.table)
    item_id = require_id(item_id)
    await crud.prepare()
    require_json_content_type(request)
    data = await read_json_object(request)
    changes, fields = await crud.update(item_id, data)
    return {
        "success": True,
        "table": crud.table,
        "message": f"Record updated successfully in table '{crud.table}'",
        "changes": changes,
        "updatedFields": fields,
        "updatedData": data,
    }


@router.delete("/{item_id}", summary="Delete one row by id_x")
async def delete_record(item_id: str, crud: GenericTableCRUD = Depends(get_table_crud)):
    logger.info("DELETE /contacts/%s table=%s", item_id, crud.table)
    item_id = require_id(item_id)
    await crud.prepare()
    changes, snapshot = await crud.delete(item_id)
    return {
        "success": True,
        "table": crud.table,
        "message": f"Record deleted successfully from table '{crud.table}'",
        "changes": changes,
        "deletedRecord": snapshot,
    }


@router.api_route("/{item_id}", methods=["POST", "PATCH", "HEAD"], include_in_schema=False)
async def item_method_not_allowed(
    item_id: str,
    request: Request,
    table: str = Depends(resolve_table_name),
):
    raise MethodNotAllowed(f"Method {request.method} not allowed")
