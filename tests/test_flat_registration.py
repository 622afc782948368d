import uuid

import pytest

from building_service.app.crud.building_inventory import flats_crud
from building_service.app.crud.flat_registration import flat_request_crud as crud
from building_service.app.models.building_inventory.flats import Flat
from building_service.app.models.flat_registration.flat_registration_requests import FlatRegistrationRequest
from shared.core.schemas import UserToken
from shared.utils.enums import ApprovalStatus, UserRole
from shared.utils.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError


@pytest.fixture
def flat(db, building):
    flat = Flat(building_id=building.id, unit_number="101")
    db.add(flat)
    db.commit()
    return flat


def test_request_approve_assigns_tenant(db, flat, tenant, manager):
    req = crud.request_flat(db, flat.id, tenant)
    assert req.status == ApprovalStatus.pending

    approved = crud.approve_request(db, req.id, manager)

    assert approved.status == ApprovalStatus.approved
    assert approved.reviewed_by == manager.user_id
    assert approved.reviewed_at is not None
    db.refresh(flat)
    assert flat.tenant_id == tenant.user_id


def test_second_pending_request_conflicts(db, flat, tenant):
    crud.request_flat(db, flat.id, tenant)
    with pytest.raises(ConflictError):
        crud.request_flat(db, flat.id, tenant)


def test_new_request_allowed_after_rejection(db, flat, tenant, manager):
    first = crud.request_flat(db, flat.id, tenant)
    crud.reject_request(db, first.id, manager, "Missing documents")

    second = crud.request_flat(db, flat.id, tenant)

    assert second.id != first.id
    assert second.status == ApprovalStatus.pending


def test_request_unknown_flat(db, tenant):
    with pytest.raises(NotFoundError):
        crud.request_flat(db, uuid.uuid4(), tenant)


def test_managers_cannot_request_flats(db, flat, manager):
    with pytest.raises(AuthorizationError):
        crud.request_flat(db, flat.id, manager)


def test_occupied_flat_conflicts_on_approve(db, flat, tenant, other_tenant, manager):
    first = crud.request_flat(db, flat.id, tenant)
    second = crud.request_flat(db, flat.id, other_tenant)
    crud.approve_request(db, first.id, manager)

    with pytest.raises(ConflictError):
        crud.approve_request(db, second.id, manager)

    db.refresh(flat)
    assert flat.tenant_id == tenant.user_id
    still_pending = db.query(FlatRegistrationRequest).filter_by(id=second.id).one()
    assert still_pending.status == ApprovalStatus.pending


def test_approve_when_flat_already_held_by_applicant(db, flat, tenant, manager):
    req = crud.request_flat(db, flat.id, tenant)
    # assignment landed but the request was never closed
    flat.tenant_id = tenant.user_id
    db.commit()

    approved = crud.approve_request(db, req.id, manager)

    assert approved.status == ApprovalStatus.approved


def test_approve_twice_conflicts(db, flat, tenant, manager):
    req = crud.request_flat(db, flat.id, tenant)
    crud.approve_request(db, req.id, manager)

    with pytest.raises(ConflictError):
        crud.approve_request(db, req.id, manager)


@pytest.mark.parametrize("notes", [None, "", "   "])
def test_reject_requires_notes(db, flat, tenant, manager, notes, monkeypatch):
    req = crud.request_flat(db, flat.id, tenant)

    def no_store_access(*args, **kwargs):
        raise AssertionError("store touched before validation")

    monkeypatch.setattr(crud, "_get_request_or_404", no_store_access)
    with pytest.raises(ValidationError):
        crud.reject_request(db, req.id, manager, notes)


def test_reject_records_notes(db, flat, tenant, manager):
    req = crud.request_flat(db, flat.id, tenant)

    rejected = crud.reject_request(db, req.id, manager, "  Not a resident ")

    assert rejected.status == ApprovalStatus.rejected
    assert rejected.notes == "Not a resident"
    db.refresh(flat)
    assert flat.tenant_id is None


def test_only_the_buildings_manager_reviews(db, flat, tenant):
    req = crud.request_flat(db, flat.id, tenant)
    stranger = UserToken(user_id=uuid.uuid4(), role=UserRole.BUILDING_MANAGER)

    with pytest.raises(AuthorizationError):
        crud.approve_request(db, req.id, stranger)
    with pytest.raises(AuthorizationError):
        crud.approve_request(db, req.id, tenant)


def test_admin_can_approve_any_request(db, flat, tenant, admin):
    req = crud.request_flat(db, flat.id, tenant)
    assert crud.approve_request(db, req.id, admin).status == ApprovalStatus.approved


def test_listing_is_scoped_by_role(db, flat, tenant, other_tenant, manager, admin):
    crud.request_flat(db, flat.id, tenant)
    crud.request_flat(db, flat.id, other_tenant)

    own = crud.list_for_caller(db, tenant)
    assert [r.user_id for r in own] == [tenant.user_id]
    assert own[0].unit_number == "101"
    assert own[0].building_name == "12 Oak St, S, M, C"
    assert own[0].address_full == "12 Oak St, S, M, C"
    assert own[0].user_email == "tenant@example.com"

    assert len(crud.list_for_caller(db, manager)) == 2
    assert len(crud.list_for_caller(db, admin)) == 2

    stranger = UserToken(user_id=uuid.uuid4(), role=UserRole.BUILDING_MANAGER)
    assert crud.list_for_caller(db, stranger) == []


def test_accountant_cannot_list_requests(db, accountant):
    with pytest.raises(AuthorizationError):
        crud.list_for_caller(db, accountant)


def test_listing_uses_placeholders_for_missing_profiles(db, flat, admin):
    ghost = UserToken(user_id=uuid.uuid4(), role=UserRole.USER)
    crud.request_flat(db, flat.id, ghost)

    [row] = crud.list_for_caller(db, admin)
    assert row.user_name is None
    assert row.user_email == "Unknown Email"
    assert row.unit_number == "101"


def test_listing_is_cached_until_a_mutation(db, flat, tenant, manager, cache):
    crud.request_flat(db, flat.id, tenant, cache)
    assert len(crud.list_for_caller(db, manager, cache)) == 1

    # a write that bypasses the workflow is not visible while cached
    db.add(FlatRegistrationRequest(flat_id=flat.id, user_id=uuid.uuid4()))
    db.commit()
    assert len(crud.list_for_caller(db, manager, cache)) == 1

    mine = crud.list_for_caller(db, tenant, cache)
    crud.approve_request(db, mine[0].id, manager, cache=cache)

    assert len(crud.list_for_caller(db, manager, cache)) == 2
    assert crud.list_for_caller(db, tenant, cache)[0].status == ApprovalStatus.approved


def test_request_invalidates_only_affected_user_scopes(db, flat, tenant, other_tenant, cache):
    crud.list_for_caller(db, tenant, cache)
    crud.list_for_caller(db, other_tenant, cache)

    crud.request_flat(db, flat.id, tenant, cache)

    assert crud.cache_key(tenant) not in cache
    assert crud.cache_key(other_tenant) in cache


def test_deleting_flat_removes_its_requests(db, flat, tenant, manager, cache):
    crud.request_flat(db, flat.id, tenant, cache)
    crud.list_for_caller(db, manager, cache)

    flats_crud.delete_flat(db, flat.id, manager, cache)

    assert db.query(FlatRegistrationRequest).count() == 0
    assert crud.list_for_caller(db, manager, cache) == []


def test_listing_loaded_during_approval_is_not_cached(db, flat, tenant, manager, cache, monkeypatch):
    req = crud.request_flat(db, flat.id, tenant, cache)
    load_requests = crud._load_requests

    def load_then_approve(session, current_user):
        rows = load_requests(session, current_user)
        crud.approve_request(session, req.id, manager, cache=cache)
        return rows

    monkeypatch.setattr(crud, "_load_requests", load_then_approve)
    [stale] = crud.list_for_caller(db, tenant, cache)
    assert stale.status == ApprovalStatus.pending
    monkeypatch.setattr(crud, "_load_requests", load_requests)

    [fresh] = crud.list_for_caller(db, tenant, cache)
    assert fresh.status == ApprovalStatus.approved
