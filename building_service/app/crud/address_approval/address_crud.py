# address_crud.py
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shared.core.schemas import UserToken
from shared.models.profiles import Profile
from shared.utils.db_resilience import with_store_retry
from shared.utils.enums import ApprovalStatus
from shared.utils.errors import (
    AppError, ConflictError, NotFoundError, StoreError, ValidationError, classify_store_error)
from ...core.policy import Action, authorize
from ...helpers.address_label import label_for_address
from ...models.address_approval.addresses import Address
from ...models.address_approval.locations import Municipality, Settlement
from ...schemas.address_approval.address_schemas import AddressCreate, AddressOut
from ..building_inventory.building_crud import ensure_building

logger = logging.getLogger(__name__)

DECISIONS = (ApprovalStatus.approved, ApprovalStatus.rejected)


def _with_hierarchy(query):
    return query.options(
        joinedload(Address.settlement)
        .joinedload(Settlement.municipality)
        .joinedload(Municipality.county)
    )


def _to_address_out(address: Address, creator: Optional[Profile] = None) -> AddressOut:
    return AddressOut(
        id=address.id,
        street_and_number=address.street_and_number,
        settlement_id=address.settlement_id,
        status=address.status,
        created_by=address.created_by,
        created_at=address.created_at,
        approved_by=address.approved_by,
        full_address=label_for_address(address),
        creator_email=creator.email if creator else None,
        creator_name=creator.full_name if creator else None,
    )


def get_address_by_id(db: Session, address_id: UUID) -> Optional[Address]:
    return _with_hierarchy(db.query(Address)).filter(Address.id == address_id).first()


def submit_address(db: Session, payload: AddressCreate, current_user: UserToken) -> AddressOut:
    authorize(Action.SUBMIT_ADDRESS, current_user)
    street = (payload.street_and_number or "").strip()
    if not street:
        raise ValidationError("Street and number is required", field="street_and_number")
    if payload.settlement_id is None:
        raise ValidationError("Settlement is required", field="settlement_id")

    try:
        if not db.query(Settlement.id).filter(Settlement.id == payload.settlement_id).first():
            raise ValidationError("Referenced settlement not found",
                                  field="settlement_id", value=str(payload.settlement_id))

        address = Address(
            street_and_number=street,
            settlement_id=payload.settlement_id,
            created_by=current_user.user_id,
            status=ApprovalStatus.pending,
        )
        db.add(address)
        db.commit()
        logger.info("Address %s submitted by %s", address.id, current_user.user_id)
        return _to_address_out(get_address_by_id(db, address.id))
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


@with_store_retry()
def list_pending(db: Session, current_user: UserToken) -> List[AddressOut]:
    authorize(Action.LIST_PENDING_ADDRESSES, current_user)
    try:
        rows = (
            _with_hierarchy(db.query(Address, Profile))
            .outerjoin(Profile, Profile.id == Address.created_by)
            .filter(Address.status == ApprovalStatus.pending)
            .order_by(Address.created_at.desc())
            .all()
        )
        return [_to_address_out(address, creator) for address, creator in rows]
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


@with_store_retry()
def list_own_addresses(db: Session, current_user: UserToken) -> List[AddressOut]:
    authorize(Action.LIST_OWN_ADDRESSES, current_user)
    try:
        addresses = (
            _with_hierarchy(db.query(Address))
            .filter(Address.created_by == current_user.user_id)
            .order_by(Address.created_at.desc())
            .all()
        )
        return [_to_address_out(a) for a in addresses]
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e


def decide(db: Session, address_id: UUID, decision, current_user: UserToken) -> AddressOut:
    """
    Approve or reject a pending address exactly once.

    The status write is a compare-and-set on ``status = 'pending'`` so two
    concurrent reviewers cannot both win. On approval the building for the
    address is provisioned afterwards; if that step fails the address stays
    approved and ``repair_missing_buildings`` picks it up later.
    """
    authorize(Action.DECIDE_ADDRESS, current_user)
    try:
        decision = ApprovalStatus(decision)
    except ValueError:
        decision = None
    if decision not in DECISIONS:
        raise ValidationError("Decision must be 'approved' or 'rejected'", field="decision")

    try:
        updated = db.query(Address).filter(
            Address.id == address_id,
            Address.status == ApprovalStatus.pending
        ).update({
            "status": decision,
            "approved_by": current_user.user_id,
            "updated_at": datetime.now(timezone.utc),
        }, synchronize_session="fetch")

        if not updated:
            db.rollback()
            existing = db.query(Address.status).filter(Address.id == address_id).first()
            if existing is None:
                raise NotFoundError("Address")
            raise ConflictError(f"Address has already been {existing.status.value}", "status")

        db.commit()
        logger.info("Address %s %s by %s", address_id, decision.value, current_user.user_id)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e

    address = get_address_by_id(db, address_id)
    if decision == ApprovalStatus.approved:
        try:
            ensure_building(db, address.id, address.created_by, label_for_address(address))
        except (StoreError, ConflictError) as exc:
            logger.warning(
                "Address %s approved but building creation failed, left for reconciliation: %s",
                address_id, exc.message)
        except AppError:
            logger.exception("Unexpected failure provisioning building for address %s", address_id)

    return _to_address_out(address)
