from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.core.auth import validate_current_token
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult, UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...crud.building_inventory import building_crud, flats_crud
from ...schemas.building_inventory.building_schemas import BuildingOverview, FlatCreate, FlatOut

router = APIRouter(
    prefix="/api",
    tags=["Buildings"], dependencies=[Depends(validate_current_token)],
)


@router.get("/buildings", response_model=JsonOutResult[List[BuildingOverview]])
def list_buildings_in_settlement(
    settlement_id: UUID = Query(...),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return success_response(building_crud.list_buildings_in_settlement(db, settlement_id, current_user))


@router.get("/buildings/managed", response_model=JsonOutResult[List[BuildingOverview]])
def list_managed_buildings(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(building_crud.list_managed_buildings(db, current_user))


@router.get("/buildings/{building_id}/flats", response_model=JsonOutResult[List[FlatOut]])
def list_flats(
    building_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return success_response(flats_crud.list_flats(db, building_id, current_user))


@router.post("/addresses/{address_id}/flats", response_model=JsonOutResult[FlatOut], status_code=201)
def create_flat(
    address_id: UUID,
    payload: FlatCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    flat = flats_crud.create_flat(db, address_id, payload.unit_number, current_user)
    return success_response(flat, "Flat created", AppStatusCode.CREATED_SUCCESSFULLY)
