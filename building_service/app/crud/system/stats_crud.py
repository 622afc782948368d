from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.schemas import UserToken
from shared.models.profiles import Profile
from shared.utils.db_resilience import with_store_retry
from shared.utils.enums import ApprovalStatus, UserRole
from shared.utils.errors import classify_store_error
from ...core.policy import Action, authorize
from ...models.address_approval.addresses import Address
from ...models.building_inventory.buildings import Building
from ...models.building_inventory.flats import Flat
from ...models.flat_registration.flat_registration_requests import FlatRegistrationRequest
from ...schemas.system.system_schemas import AdminStats, ManagerStats


@with_store_retry()
def get_manager_stats(db: Session, current_user: UserToken) -> ManagerStats:
    authorize(Action.VIEW_MANAGER_STATS, current_user)
    try:
        buildings = db.query(Building.id)
        if current_user.role != UserRole.ADMIN:
            buildings = buildings.filter(Building.manager_id == current_user.user_id)
        building_ids = [b for (b,) in buildings]

        if not building_ids:
            return ManagerStats()

        total_flats = db.query(func.count(Flat.id)).filter(
            Flat.building_id.in_(building_ids)).scalar() or 0
        occupied_flats = db.query(func.count(Flat.id)).filter(
            Flat.building_id.in_(building_ids),
            Flat.tenant_id.isnot(None)
        ).scalar() or 0
        pending_requests = (
            db.query(func.count(FlatRegistrationRequest.id))
            .join(Flat, Flat.id == FlatRegistrationRequest.flat_id)
            .filter(
                Flat.building_id.in_(building_ids),
                FlatRegistrationRequest.status == ApprovalStatus.pending
            ).scalar() or 0
        )

        return ManagerStats(
            total_buildings=len(building_ids),
            total_flats=total_flats,
            occupied_flats=occupied_flats,
            vacant_flats=total_flats - occupied_flats,
            pending_requests=pending_requests,
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


@with_store_retry()
def get_admin_stats(db: Session, current_user: UserToken) -> AdminStats:
    authorize(Action.VIEW_ADMIN_STATS, current_user)
    try:
        return AdminStats(
            total_users=db.query(func.count(Profile.id)).scalar() or 0,
            building_managers=db.query(func.count(Profile.id)).filter(
                Profile.role == UserRole.BUILDING_MANAGER).scalar() or 0,
            pending_addresses=db.query(func.count(Address.id)).filter(
                Address.status == ApprovalStatus.pending).scalar() or 0,
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e
