from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.core.auth import validate_current_token
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult, Lookup, UserToken
from shared.helpers.json_response_helper import success_response
from ...crud.address_approval import location_crud as crud
from ...schemas.address_approval.address_schemas import MunicipalityLookup, SettlementLookup

router = APIRouter(
    prefix="/api/locations",
    tags=["Locations"], dependencies=[Depends(validate_current_token)],
)


@router.get("/counties", response_model=JsonOutResult[List[Lookup]])
def county_lookup(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(crud.county_lookup(db, current_user))


@router.get("/municipalities", response_model=JsonOutResult[List[MunicipalityLookup]])
def municipality_lookup(
    county_id: UUID = Query(...),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return success_response(crud.municipality_lookup(db, county_id, current_user))


@router.get("/settlements", response_model=JsonOutResult[List[SettlementLookup]])
def settlement_lookup(
    municipality_id: UUID = Query(...),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return success_response(crud.settlement_lookup(db, municipality_id, current_user))
