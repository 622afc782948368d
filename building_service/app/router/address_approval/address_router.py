from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import validate_current_token
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult, UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...crud.address_approval import address_crud as crud
from ...schemas.address_approval.address_schemas import AddressCreate, AddressDecision, AddressOut

router = APIRouter(
    prefix="/api/addresses",
    tags=["Addresses"], dependencies=[Depends(validate_current_token)],
)


@router.post("", response_model=JsonOutResult[AddressOut], status_code=201)
def submit_address(
    payload: AddressCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    address = crud.submit_address(db, payload, current_user)
    return success_response(address, "Address submitted for approval", AppStatusCode.CREATED_SUCCESSFULLY)


@router.get("/mine", response_model=JsonOutResult[List[AddressOut]])
def list_own_addresses(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(crud.list_own_addresses(db, current_user))


@router.get("/pending", response_model=JsonOutResult[List[AddressOut]])
def list_pending(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(crud.list_pending(db, current_user))


@router.post("/{address_id}/decision", response_model=JsonOutResult[AddressOut])
def decide(
    address_id: UUID,
    payload: AddressDecision,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    address = crud.decide(db, address_id, payload.decision, current_user)
    return success_response(address, f"Address {address.status.value}", AppStatusCode.UPDATED_SUCCESSFULLY)
