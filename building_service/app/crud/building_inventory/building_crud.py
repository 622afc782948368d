# building_crud.py
import logging
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shared.core.config import settings
from shared.core.schemas import UserToken
from shared.utils.db_resilience import with_store_retry
from shared.utils.enums import ApprovalStatus, UserRole
from shared.utils.errors import classify_store_error
from ...core.policy import Action, authorize
from ...helpers.address_label import label_for_address
from ...models.address_approval.addresses import Address
from ...models.address_approval.locations import Municipality, Settlement
from ...models.building_inventory.buildings import Building
from ...models.building_inventory.flats import Flat
from ...schemas.building_inventory.building_schemas import BuildingOverview

logger = logging.getLogger(__name__)


def get_building_by_id(db: Session, building_id: UUID) -> Optional[Building]:
    return db.query(Building).filter(Building.id == building_id).first()


def get_building_for_address(db: Session, address_id: UUID) -> Optional[Building]:
    return db.query(Building).filter(Building.address_id == address_id).first()


def building_name_from_label(label: str) -> str:
    return (label or "").strip()[:settings.MAX_BUILDING_NAME_LENGTH]


def get_or_create_building(db: Session, address_id: UUID, manager_id: UUID, full_address_label: str) -> Tuple[Building, bool]:
    """Flush (not commit) a building for the address unless one exists.

    Runs inside a savepoint: a unique violation on address_id means another
    caller won the race, so the existing row is returned instead.
    """
    existing = get_building_for_address(db, address_id)
    if existing:
        return existing, False

    building = Building(
        address_id=address_id,
        name=building_name_from_label(full_address_label),
        manager_id=manager_id,
    )
    try:
        with db.begin_nested():
            db.add(building)
            db.flush()
    except IntegrityError:
        existing = get_building_for_address(db, address_id)
        if existing is None:
            raise
        logger.info("Building for address %s was created concurrently, reusing %s",
                    address_id, existing.id)
        return existing, False

    logger.info("Created building %s for address %s (manager %s)",
                building.id, address_id, manager_id)
    return building, True


def ensure_building(db: Session, address_id: UUID, manager_id: UUID, full_address_label: str) -> Building:
    try:
        building, _ = get_or_create_building(db, address_id, manager_id, full_address_label)
        db.commit()
        db.refresh(building)
        return building
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def _overview_query(db: Session):
    flat_counts = (
        db.query(
            Flat.building_id.label("building_id"),
            func.count(Flat.id).label("total_flats"),
            func.count(case((Flat.tenant_id.isnot(None), 1))).label("occupied_flats"),
        )
        .group_by(Flat.building_id)
    ).subquery()

    return (
        db.query(
            Building,
            func.coalesce(flat_counts.c.total_flats, 0),
            func.coalesce(flat_counts.c.occupied_flats, 0),
        )
        .outerjoin(flat_counts, flat_counts.c.building_id == Building.id)
        .options(
            joinedload(Building.address)
            .joinedload(Address.settlement)
            .joinedload(Settlement.municipality)
            .joinedload(Municipality.county)
        )
    )


def _to_overview(rows) -> List[BuildingOverview]:
    overview = []
    for building, total, occupied in rows:
        overview.append(BuildingOverview(
            id=building.id,
            address_id=building.address_id,
            name=building.name,
            manager_id=building.manager_id,
            created_at=building.created_at,
            full_address=label_for_address(building.address) if building.address else building.name,
            total_flats=total,
            occupied_flats=occupied,
        ))
    return sorted(overview, key=lambda b: b.name.casefold())


@with_store_retry()
def list_managed_buildings(db: Session, current_user: UserToken) -> List[BuildingOverview]:
    authorize(Action.MANAGE_FLATS, current_user)
    try:
        query = _overview_query(db)
        if current_user.role != UserRole.ADMIN:
            query = query.filter(Building.manager_id == current_user.user_id)
        return _to_overview(query.all())
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


@with_store_retry()
def list_buildings_in_settlement(db: Session, settlement_id: UUID, current_user: UserToken) -> List[BuildingOverview]:
    """Buildings on approved addresses of a settlement, for tenants picking a flat."""
    authorize(Action.VIEW_FLATS, current_user)
    try:
        query = (
            _overview_query(db)
            .join(Address, Address.id == Building.address_id)
            .filter(
                Address.settlement_id == settlement_id,
                Address.status == ApprovalStatus.approved
            )
        )
        return _to_overview(query.all())
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e
