# flat_request_crud.py
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shared.core.schemas import UserToken
from shared.models.profiles import Profile
from shared.utils.db_resilience import with_store_retry
from shared.utils.enums import ApprovalStatus, UserRole
from shared.utils.errors import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError, classify_store_error)
from shared.utils.scoped_cache import ScopedCache
from ...core.policy import Action, authorize, authorize_building
from ...helpers.address_label import label_for_address
from ...models.address_approval.addresses import Address
from ...models.address_approval.locations import Municipality, Settlement
from ...models.building_inventory.buildings import Building
from ...models.building_inventory.flats import Flat
from ...models.flat_registration.flat_registration_requests import FlatRegistrationRequest
from ...schemas.flat_registration.flat_request_schemas import FlatRequestDetail, FlatRequestOut

logger = logging.getLogger(__name__)


def cache_key(current_user: UserToken):
    return (current_user.user_id, UserRole(current_user.role).value)


def invalidate_request_cache(cache: Optional[ScopedCache], applicant_id: UUID) -> int:
    """Drop the applicant's own listing and every reviewer listing."""
    if cache is None:
        return 0
    return cache.invalidate_where(
        lambda key: key[0] == applicant_id or key[1] != UserRole.USER.value)


def _get_request_or_404(db: Session, request_id: UUID) -> FlatRegistrationRequest:
    req = (
        db.query(FlatRegistrationRequest)
        .options(joinedload(FlatRegistrationRequest.flat).joinedload(Flat.building))
        .filter(FlatRegistrationRequest.id == request_id)
        .first()
    )
    if not req:
        raise NotFoundError("Flat registration request")
    return req


def _authorize_review(req: FlatRegistrationRequest, current_user: UserToken) -> None:
    building = req.flat.building if req.flat else None
    if building is None:
        authorize(Action.REVIEW_FLAT_REQUEST, current_user)
        if current_user.role != UserRole.ADMIN:
            raise AuthorizationError("You do not manage this building")
        return
    authorize_building(Action.REVIEW_FLAT_REQUEST, current_user, building.manager_id)


def request_flat(db: Session, flat_id: UUID, current_user: UserToken,
                 cache: Optional[ScopedCache] = None) -> FlatRequestOut:
    authorize(Action.REQUEST_FLAT, current_user)
    try:
        if not db.query(Flat.id).filter(Flat.id == flat_id).first():
            raise NotFoundError("Flat")

        pending = db.query(FlatRegistrationRequest.id).filter(
            FlatRegistrationRequest.flat_id == flat_id,
            FlatRegistrationRequest.user_id == current_user.user_id,
            FlatRegistrationRequest.status == ApprovalStatus.pending
        ).first()
        if pending:
            raise ConflictError("You already have a pending request for this flat", "flat_id")

        req = FlatRegistrationRequest(
            flat_id=flat_id,
            user_id=current_user.user_id,
            status=ApprovalStatus.pending,
        )
        db.add(req)
        db.commit()
        db.refresh(req)
    except SQLAlchemyError as e:
        db.rollback()
        err = classify_store_error(e)
        if isinstance(err, ConflictError):
            raise ConflictError(
                "You already have a pending request for this flat", "flat_id") from e
        raise err from e

    logger.info("User %s requested flat %s (request %s)", current_user.user_id, flat_id, req.id)
    invalidate_request_cache(cache, current_user.user_id)
    return FlatRequestOut.model_validate(req)


def _load_requests(db: Session, current_user: UserToken) -> List[FlatRequestDetail]:
    query = (
        db.query(FlatRegistrationRequest, Flat, Building, Profile)
        .outerjoin(Flat, Flat.id == FlatRegistrationRequest.flat_id)
        .outerjoin(Building, Building.id == Flat.building_id)
        .outerjoin(Profile, Profile.id == FlatRegistrationRequest.user_id)
        .options(
            joinedload(Building.address)
            .joinedload(Address.settlement)
            .joinedload(Settlement.municipality)
            .joinedload(Municipality.county)
        )
    )

    if current_user.role == UserRole.USER:
        query = query.filter(FlatRegistrationRequest.user_id == current_user.user_id)
    elif current_user.role == UserRole.BUILDING_MANAGER:
        query = query.filter(Building.manager_id == current_user.user_id)

    rows = query.order_by(FlatRegistrationRequest.requested_at.desc()).all()

    results = []
    for req, flat, building, profile in rows:
        detail = FlatRequestOut.model_validate(req).model_dump()
        if flat is not None:
            detail["unit_number"] = flat.unit_number
        if building is not None:
            detail["building_name"] = building.name
            if building.address is not None:
                detail["address_full"] = label_for_address(building.address)
        if profile is not None:
            detail["user_name"] = profile.full_name
            if profile.email:
                detail["user_email"] = profile.email
        results.append(FlatRequestDetail(**detail))
    return results


@with_store_retry()
def list_for_caller(db: Session, current_user: UserToken,
                    cache: Optional[ScopedCache] = None) -> List[FlatRequestDetail]:
    """
    Registration requests visible to the caller, newest first.

    Users see their own, building managers see requests for flats in the
    buildings they manage and admins see everything. Results are cached per
    (user, role) scope.
    """
    authorize(Action.LIST_FLAT_REQUESTS, current_user)

    def load():
        try:
            return _load_requests(db, current_user)
        except SQLAlchemyError as e:
            db.rollback()
            raise classify_store_error(e) from e

    if cache is None:
        return load()
    return cache.get_or_load(cache_key(current_user), load)


def approve_request(db: Session, request_id: UUID, current_user: UserToken,
                    notes: Optional[str] = None,
                    cache: Optional[ScopedCache] = None) -> FlatRequestOut:
    """
    Bind the applicant to the flat and close the request, in one transaction.

    The flat update only matches while the flat is vacant or already held by
    the applicant; the request update only matches while it is pending.
    Either miss rolls back both writes.
    """
    try:
        req = _get_request_or_404(db, request_id)
        _authorize_review(req, current_user)
        if req.status != ApprovalStatus.pending:
            raise ConflictError(f"Request has already been {req.status.value}", "status")

        applicant_id = req.user_id
        flat_id = req.flat_id

        assigned = db.query(Flat).filter(
            Flat.id == flat_id,
            or_(Flat.tenant_id.is_(None), Flat.tenant_id == applicant_id)
        ).update({"tenant_id": applicant_id}, synchronize_session="fetch")

        if not assigned:
            db.rollback()
            if not db.query(Flat.id).filter(Flat.id == flat_id).first():
                raise NotFoundError("Flat")
            raise ConflictError("Flat is already occupied by another tenant", "tenant_id")

        closed = db.query(FlatRegistrationRequest).filter(
            FlatRegistrationRequest.id == request_id,
            FlatRegistrationRequest.status == ApprovalStatus.pending
        ).update({
            "status": ApprovalStatus.approved,
            "reviewed_at": datetime.now(timezone.utc),
            "reviewed_by": current_user.user_id,
            "notes": notes,
        }, synchronize_session="fetch")

        if not closed:
            db.rollback()
            raise ConflictError("Request is no longer pending", "status")

        db.commit()
        db.refresh(req)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e

    logger.info("Request %s approved by %s, flat %s assigned to %s",
                request_id, current_user.user_id, flat_id, applicant_id)
    invalidate_request_cache(cache, applicant_id)
    return FlatRequestOut.model_validate(req)


def reject_request(db: Session, request_id: UUID, current_user: UserToken,
                   notes: Optional[str], cache: Optional[ScopedCache] = None) -> FlatRequestOut:
    authorize(Action.REVIEW_FLAT_REQUEST, current_user)
    notes = (notes or "").strip()
    if not notes:
        raise ValidationError("Rejection notes are required", field="notes")

    try:
        req = _get_request_or_404(db, request_id)
        _authorize_review(req, current_user)
        if req.status != ApprovalStatus.pending:
            raise ConflictError(f"Request has already been {req.status.value}", "status")

        rejected = db.query(FlatRegistrationRequest).filter(
            FlatRegistrationRequest.id == request_id,
            FlatRegistrationRequest.status == ApprovalStatus.pending
        ).update({
            "status": ApprovalStatus.rejected,
            "reviewed_at": datetime.now(timezone.utc),
            "reviewed_by": current_user.user_id,
            "notes": notes,
        }, synchronize_session="fetch")

        if not rejected:
            db.rollback()
            raise ConflictError("Request is no longer pending", "status")

        db.commit()
        db.refresh(req)
    except SQLAlchemyError as e:
        db.rollback()
        raise classify_store_error(e) from e

    logger.info("Request %s rejected by %s", request_id, current_user.user_id)
    invalidate_request_cache(cache, req.user_id)
    return FlatRequestOut.model_validate(req)
