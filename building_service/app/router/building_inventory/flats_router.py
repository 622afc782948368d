from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import validate_current_token
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult, UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.errors import ValidationError
from shared.utils.scoped_cache import ScopedCache
from ...core.cache import get_request_cache
from ...crud.building_inventory import flats_crud as crud
from ...schemas.building_inventory.building_schemas import (
    BulkFlatCreateRequest, BulkFlatCreateResponse, FlatOut, MyFlatOut)

router = APIRouter(
    prefix="/api/flats",
    tags=["Flats"], dependencies=[Depends(validate_current_token)],
)


@router.post("/bulk-create", response_model=JsonOutResult[BulkFlatCreateResponse], status_code=201)
def bulk_create_flats(
    payload: BulkFlatCreateRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    if payload.building_id is None:
        raise ValidationError("Building id is required", field="buildingId")
    result = crud.bulk_create_flats(db, payload.building_id, payload.flat_numbers, current_user)

    message = f"Successfully created {result.created_count} flats"
    if result.skipped_count:
        message += f", skipped {result.skipped_count} duplicates"
    return success_response(
        BulkFlatCreateResponse(
            created_count=result.created_count,
            skipped_count=result.skipped_count,
            created=result.created,
            duplicates=result.skipped_duplicates,
        ),
        message,
        AppStatusCode.CREATED_SUCCESSFULLY
    )


@router.get("/mine", response_model=JsonOutResult[List[MyFlatOut]])
def list_my_flats(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(crud.list_my_flats(db, current_user))


@router.delete("/{flat_id}", response_model=JsonOutResult)
def delete_flat(
    flat_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token),
    cache: ScopedCache = Depends(get_request_cache)
):
    crud.delete_flat(db, flat_id, current_user, cache)
    return success_response(None, "Flat deleted", AppStatusCode.DELETED_SUCCESSFULLY)


@router.post("/{flat_id}/remove-tenant", response_model=JsonOutResult[FlatOut])
def remove_tenant(
    flat_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    flat = crud.clear_tenant(db, flat_id, current_user)
    return success_response(flat, "Tenant removed", AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{flat_id}/leave", response_model=JsonOutResult[FlatOut])
def leave_flat(
    flat_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    flat = crud.leave_flat(db, flat_id, current_user)
    return success_response(flat, "You have left the flat", AppStatusCode.UPDATED_SUCCESSFULLY)
