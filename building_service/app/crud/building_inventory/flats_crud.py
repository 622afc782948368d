# flats_crud.py
import logging
from typing import List, Optional, Sequence
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.schemas import UserToken
from shared.models.profiles import Profile
from shared.utils.db_resilience import with_store_retry
from shared.utils.enums import ApprovalStatus, UserRole
from shared.utils.errors import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError, classify_store_error)
from shared.utils.scoped_cache import ScopedCache
from ...core.policy import Action, authorize, authorize_building
from ...helpers.address_label import label_for_address
from ...helpers.unit_numbers import normalize_unit_number, sort_by_unit_number
from ...models.address_approval.addresses import Address
from ...models.building_inventory.buildings import Building
from ...models.building_inventory.flats import Flat
from ...schemas.building_inventory.building_schemas import BulkFlatCreateResult, FlatOut, MyFlatOut
from .building_crud import get_building_by_id, get_or_create_building

logger = logging.getLogger(__name__)


def get_flat_by_id(db: Session, flat_id: UUID) -> Optional[Flat]:
    return db.query(Flat).filter(Flat.id == flat_id).first()


def _get_flat_or_404(db: Session, flat_id: UUID) -> Flat:
    flat = get_flat_by_id(db, flat_id)
    if not flat:
        raise NotFoundError("Flat")
    return flat


def _can_see_tenants(current_user: UserToken, manager_id: UUID) -> bool:
    return current_user.role == UserRole.ADMIN or (
        current_user.role == UserRole.BUILDING_MANAGER and current_user.user_id == manager_id)


def _masked_flat_out(flat: Flat, current_user: UserToken) -> FlatOut:
    """Occupancy only, the tenant is named just to themselves."""
    own = flat.tenant_id == current_user.user_id
    return FlatOut(
        id=flat.id,
        building_id=flat.building_id,
        unit_number=flat.unit_number,
        tenant_id=flat.tenant_id if own else None,
        is_occupied=flat.is_occupied,
        created_at=flat.created_at,
    )


def _to_flat_out(flat: Flat, tenant: Optional[Profile] = None) -> FlatOut:
    return FlatOut(
        id=flat.id,
        building_id=flat.building_id,
        unit_number=flat.unit_number,
        tenant_id=flat.tenant_id,
        is_occupied=flat.is_occupied,
        tenant_name=tenant.full_name if tenant else None,
        tenant_email=tenant.email if tenant else None,
        created_at=flat.created_at,
    )


@with_store_retry()
def list_flats(db: Session, building_id: UUID, current_user: UserToken) -> List[FlatOut]:
    authorize(Action.VIEW_FLATS, current_user)
    try:
        building = get_building_by_id(db, building_id)
        if not building:
            raise NotFoundError("Building")

        rows = (
            db.query(Flat, Profile)
            .outerjoin(Profile, Profile.id == Flat.tenant_id)
            .filter(Flat.building_id == building_id)
            .all()
        )
        if _can_see_tenants(current_user, building.manager_id):
            flats = [_to_flat_out(flat, tenant) for flat, tenant in rows]
        else:
            flats = [_masked_flat_out(flat, current_user) for flat, _ in rows]
        return sort_by_unit_number(flats)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def create_flat(db: Session, address_id: UUID, unit_number: str, current_user: UserToken,
                full_address_label: Optional[str] = None) -> FlatOut:
    authorize(Action.MANAGE_FLATS, current_user)
    unit_number = normalize_unit_number(unit_number)
    try:
        address = db.query(Address).filter(Address.id == address_id).first()
        if not address:
            raise NotFoundError("Address")
        if address.status != ApprovalStatus.approved:
            raise ConflictError("Building not found or not approved", "address_id")

        # lazily provisioned buildings are owned by the address applicant
        building = address.building
        if building is None and current_user.role != UserRole.ADMIN and address.created_by != current_user.user_id:
            raise AuthorizationError("You do not manage this address")

        if building is None:
            label = full_address_label or label_for_address(address)
            building, _ = get_or_create_building(db, address.id, address.created_by, label)
        try:
            authorize_building(Action.MANAGE_FLATS, current_user, building.manager_id)
        except AuthorizationError:
            # drop a building flushed above
            db.rollback()
            raise

        duplicate = db.query(Flat.id).filter(
            Flat.building_id == building.id,
            Flat.unit_number == unit_number
        ).first()
        if duplicate:
            db.rollback()
            raise ConflictError(
                f'Flat number "{unit_number}" already exists in this building', "unit_number")

        flat = Flat(building_id=building.id, unit_number=unit_number)
        db.add(flat)
        db.commit()
        db.refresh(flat)
        logger.info("Created flat %s (%s) in building %s", flat.id, unit_number, building.id)
        return _to_flat_out(flat)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def bulk_create_flats(db: Session, building_id: UUID, unit_numbers: Optional[Sequence[str]],
                      current_user: UserToken) -> BulkFlatCreateResult:
    """
    Create many flats in one batch.

    The input is rejected as a whole when empty, too large or containing an
    invalid unit number. Unit numbers already present in the building (or
    repeated within the input) are skipped and reported, the rest are inserted
    with a single commit.
    """
    authorize(Action.MANAGE_FLATS, current_user)
    if not unit_numbers:
        raise ValidationError("No flat numbers provided", field="flat_numbers")
    if len(unit_numbers) > settings.MAX_BULK_FLATS:
        raise ValidationError(
            f"Cannot create more than {settings.MAX_BULK_FLATS} flats at once",
            field="flat_numbers", value=len(unit_numbers))
    normalized = [normalize_unit_number(n) for n in unit_numbers]

    try:
        building = get_building_by_id(db, building_id)
        if not building:
            raise NotFoundError("Building")
        authorize_building(Action.MANAGE_FLATS, current_user, building.manager_id)

        existing = {
            number for (number,) in db.query(Flat.unit_number).filter(
                Flat.building_id == building.id,
                Flat.unit_number.in_(list(set(normalized)))
            )
        }

        to_create: List[str] = []
        duplicates: List[str] = []
        for number in normalized:
            if number in existing:
                duplicates.append(number)
            else:
                existing.add(number)
                to_create.append(number)

        flats = [Flat(building_id=building.id, unit_number=n) for n in to_create]
        if flats:
            db.add_all(flats)
            db.commit()
            for flat in flats:
                db.refresh(flat)

        logger.info("Bulk created %d flats in building %s, skipped %d duplicates",
                    len(flats), building.id, len(duplicates))
        return BulkFlatCreateResult(
            created=[_to_flat_out(f) for f in flats],
            skipped_duplicates=duplicates,
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def delete_flat(db: Session, flat_id: UUID, current_user: UserToken,
                cache: Optional[ScopedCache] = None) -> None:
    authorize(Action.MANAGE_FLATS, current_user)
    try:
        flat = get_flat_by_id(db, flat_id)
        if flat is None:
            logger.info("Flat %s already deleted", flat_id)
            return None
        authorize_building(Action.MANAGE_FLATS, current_user, flat.building.manager_id)

        # conditional delete so a tenant assigned meanwhile still blocks it
        deleted = db.query(Flat).filter(
            Flat.id == flat_id,
            Flat.tenant_id.is_(None)
        ).delete(synchronize_session="fetch")

        if not deleted:
            db.rollback()
            flat = get_flat_by_id(db, flat_id)
            if flat is None:
                return None
            raise ConflictError(
                f"Cannot delete flat {flat.unit_number} - it is currently occupied", "tenant_id")

        db.commit()
        logger.info("Deleted flat %s", flat_id)
        if cache is not None:
            # registration requests for the flat went with it
            cache.clear()
        return None
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def clear_tenant(db: Session, flat_id: UUID, current_user: UserToken) -> FlatOut:
    authorize(Action.MANAGE_FLATS, current_user)
    try:
        flat = _get_flat_or_404(db, flat_id)
        authorize_building(Action.MANAGE_FLATS, current_user, flat.building.manager_id)

        previous = flat.tenant_id
        flat.tenant_id = None
        db.commit()
        db.refresh(flat)
        logger.info("Removed tenant %s from flat %s", previous, flat_id)
        return _to_flat_out(flat)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


@with_store_retry()
def list_my_flats(db: Session, current_user: UserToken) -> List[MyFlatOut]:
    authorize(Action.LIST_MY_FLATS, current_user)
    try:
        rows = (
            db.query(Flat, Building)
            .join(Building, Building.id == Flat.building_id)
            .filter(Flat.tenant_id == current_user.user_id)
            .all()
        )
        flats = [
            MyFlatOut(
                **_to_flat_out(flat).model_dump(),
                building_name=building.name,
                full_address=label_for_address(building.address) if building.address else building.name,
            )
            for flat, building in rows
        ]
        return sort_by_unit_number(flats)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def leave_flat(db: Session, flat_id: UUID, current_user: UserToken) -> FlatOut:
    """Tenant-initiated release of their own flat."""
    authorize(Action.LEAVE_FLAT, current_user)
    try:
        released = db.query(Flat).filter(
            Flat.id == flat_id,
            Flat.tenant_id == current_user.user_id
        ).update({"tenant_id": None}, synchronize_session="fetch")

        if not released:
            db.rollback()
            _get_flat_or_404(db, flat_id)
            raise ConflictError("You are not registered in this flat", "tenant_id")

        db.commit()
        logger.info("Tenant %s left flat %s", current_user.user_id, flat_id)
        return _to_flat_out(_get_flat_or_404(db, flat_id))
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e
