# reconciliation_crud.py
import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shared.core.schemas import UserToken
from shared.utils.enums import ApprovalStatus
from shared.utils.errors import classify_store_error
from shared.utils.scoped_cache import ScopedCache
from ...core.policy import Action, authorize
from ...helpers.address_label import label_for_address
from ...models.address_approval.addresses import Address
from ...models.address_approval.locations import Municipality, Settlement
from ...models.building_inventory.buildings import Building
from ...models.building_inventory.flats import Flat
from ...models.flat_registration.flat_registration_requests import FlatRegistrationRequest
from ...schemas.system.system_schemas import CloseStuckRequestsResult, RepairBuildingsResult
from ..building_inventory.building_crud import building_name_from_label, get_or_create_building

logger = logging.getLogger(__name__)

RECONCILIATION_NOTE = "Closed by reconciliation: flat already assigned to applicant"


def _addresses_with_buildings(db: Session) -> set:
    return {address_id for (address_id,) in db.query(Building.address_id)}


def repair_missing_buildings(db: Session, current_user: UserToken) -> RepairBuildingsResult:
    """
    Create the building for every approved address that lacks one.

    The gap is inserted as one batch. If a concurrent writer provisioned one
    of those buildings meanwhile the batch is rolled back and each address is
    retried on its own, counting only rows this run created.
    """
    authorize(Action.RUN_RECONCILIATION, current_user)
    try:
        existing = _addresses_with_buildings(db)
        approved = (
            db.query(Address)
            .options(
                joinedload(Address.settlement)
                .joinedload(Settlement.municipality)
                .joinedload(Municipality.county)
            )
            .filter(Address.status == ApprovalStatus.approved)
            .all()
        )
        missing = [a for a in approved if a.id not in existing]
        if not missing:
            logger.info("Reconciliation: no approved address is missing a building")
            return RepairBuildingsResult(created_count=0)

        # plain values, so the fallback does not touch expired instances
        gap = [(a.id, a.created_by, label_for_address(a)) for a in missing]

        try:
            db.add_all([
                Building(address_id=address_id, manager_id=manager_id,
                         name=building_name_from_label(label))
                for address_id, manager_id, label in gap
            ])
            db.commit()
            created = len(gap)
        except IntegrityError:
            db.rollback()
            logger.warning(
                "Reconciliation batch insert collided with a concurrent writer, "
                "falling back to per-address creation for %d addresses", len(gap))
            created = 0
            for address_id, manager_id, label in gap:
                _, was_created = get_or_create_building(db, address_id, manager_id, label)
                created += int(was_created)
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e

    logger.info("Reconciliation created %d missing buildings", created)
    return RepairBuildingsResult(created_count=created)


def close_stuck_requests(db: Session, current_user: UserToken,
                         cache: Optional[ScopedCache] = None) -> CloseStuckRequestsResult:
    """Approve pending requests whose flat is already held by the requester."""
    authorize(Action.RUN_RECONCILIATION, current_user)
    try:
        stuck_ids = [
            request_id for (request_id,) in (
                db.query(FlatRegistrationRequest.id)
                .join(Flat, Flat.id == FlatRegistrationRequest.flat_id)
                .filter(
                    FlatRegistrationRequest.status == ApprovalStatus.pending,
                    Flat.tenant_id == FlatRegistrationRequest.user_id
                )
            )
        ]
        if not stuck_ids:
            return CloseStuckRequestsResult(closed_count=0)

        closed = db.query(FlatRegistrationRequest).filter(
            FlatRegistrationRequest.id.in_(stuck_ids),
            FlatRegistrationRequest.status == ApprovalStatus.pending
        ).update({
            "status": ApprovalStatus.approved,
            "reviewed_at": datetime.now(timezone.utc),
            "reviewed_by": current_user.user_id,
            "notes": RECONCILIATION_NOTE,
        }, synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e

    logger.info("Reconciliation closed %d stuck registration requests", closed)
    if closed and cache is not None:
        cache.clear()
    return CloseStuckRequestsResult(closed_count=closed)
