from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import validate_current_token
from shared.core.database import get_db
from shared.core.schemas import JsonOutResult, UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.scoped_cache import ScopedCache
from ...core.cache import get_request_cache
from ...crud.system import reconciliation_crud, stats_crud
from ...schemas.system.system_schemas import (
    AdminStats, CloseStuckRequestsResult, ManagerStats, RepairBuildingsResult)

router = APIRouter(
    prefix="/api",
    tags=["System"], dependencies=[Depends(validate_current_token)],
)


@router.post("/system/repair-buildings", response_model=JsonOutResult[RepairBuildingsResult])
def repair_buildings(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    result = reconciliation_crud.repair_missing_buildings(db, current_user)
    return success_response(result, f"Created {result.created_count} missing buildings",
                            AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/system/close-stuck-requests", response_model=JsonOutResult[CloseStuckRequestsResult])
def close_stuck_requests(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token),
    cache: ScopedCache = Depends(get_request_cache)
):
    result = reconciliation_crud.close_stuck_requests(db, current_user, cache)
    return success_response(result, f"Closed {result.closed_count} stuck requests",
                            AppStatusCode.UPDATED_SUCCESSFULLY)


@router.get("/stats/manager", response_model=JsonOutResult[ManagerStats])
def manager_stats(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(stats_crud.get_manager_stats(db, current_user))


@router.get("/stats/admin", response_model=JsonOutResult[AdminStats])
def admin_stats(db: Session = Depends(get_db), current_user: UserToken = Depends(validate_current_token)):
    return success_response(stats_crud.get_admin_stats(db, current_user))
