# dyntable/routes/legacy.py

"""Fixed-schema contacts endpoints, mounted only when a legacy DSN is set."""

import logging

from fastapi import APIRouter, Depends, Request

from dyntable.deps import (
    get_legacy_crud,
    read_json_object,
    require_id,
    require_json_content_type,
)
from dyntable.legacy import LegacyContactsCRUD

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/legacy/contacts", tags=["legacy"])


@router.get("")
async def list_contacts(crud: LegacyContactsCRUD = Depends(get_legacy_crud)):
    return await crud.list()


@router.post("")
async def create_contact(request: Request, crud: LegacyContactsCRUD = Depends(get_legacy_crud)):
    data = await read_json_object(request)
    contact_id = await crud.create(data)
    logger.info("Created contact %s", contact_id)
    return {"success": True, "id": contact_id, "message": "Contact created successfully"}


@router.put("/{contact_id}")
async def update_contact(
    contact_id: str,
    request: Request,
    crud: LegacyContactsCRUD = Depends(get_legacy_crud),
):
    contact_id = require_id(contact_id)
    require_json_content_type(request)
    data = await read_json_object(request)
    changes = await crud.update(contact_id, data)
    return {"success": True, "message": "Contact updated successfully", "changes": changes}


@router.delete("/{contact_id}")
async def delete_contact(contact_id: str, crud: LegacyContactsCRUD = Depends(get_legacy_crud)):
    contact_id = require_id(contact_id)
    changes, snapshot = await crud.delete(contact_id)
    return {
        "success": True,
        "message": "Contact deleted successfully",
        "changes": changes,
        "deletedContact": snapshot,
    }
