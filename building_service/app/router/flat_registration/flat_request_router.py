from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import validate_current_token
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult, UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.scoped_cache import ScopedCache
from ...core.cache import get_request_cache
from ...crud.flat_registration import flat_request_crud as crud
from ...schemas.flat_registration.flat_request_schemas import (
    FlatRequestCreate, FlatRequestDetail, FlatRequestOut, FlatRequestReview)

router = APIRouter(
    prefix="/api/flat-requests",
    tags=["Flat Registration"], dependencies=[Depends(validate_current_token)],
)


@router.post("", response_model=JsonOutResult[FlatRequestOut], status_code=201)
def request_flat(
    payload: FlatRequestCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token),
    cache: ScopedCache = Depends(get_request_cache)
):
    req = crud.request_flat(db, payload.flat_id, current_user, cache)
    return success_response(req, "Registration request submitted", AppStatusCode.CREATED_SUCCESSFULLY)


@router.get("", response_model=JsonOutResult[List[FlatRequestDetail]])
def list_flat_requests(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token),
    cache: ScopedCache = Depends(get_request_cache)
):
    return success_response(crud.list_for_caller(db, current_user, cache))


@router.post("/{request_id}/approve", response_model=JsonOutResult[FlatRequestOut])
def approve_request(
    request_id: UUID,
    payload: Optional[FlatRequestReview] = None,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token),
    cache: ScopedCache = Depends(get_request_cache)
):
    req = crud.approve_request(
        db, request_id, current_user, payload.notes if payload else None, cache)
    return success_response(req, "Request approved", AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{request_id}/reject", response_model=JsonOutResult[FlatRequestOut])
def reject_request(
    request_id: UUID,
    payload: FlatRequestReview,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token),
    cache: ScopedCache = Depends(get_request_cache)
):
    req = crud.reject_request(db, request_id, current_user, payload.notes, cache)
    return success_response(req, "Request rejected", AppStatusCode.UPDATED_SUCCESSFULLY)
