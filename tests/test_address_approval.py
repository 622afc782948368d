import logging
import uuid

import pytest

from building_service.app.crud.address_approval import address_crud, location_crud
from building_service.app.crud.building_inventory import building_crud
from building_service.app.models.building_inventory.buildings import Building
from building_service.app.schemas.address_approval.address_schemas import AddressCreate
from shared.utils.enums import ApprovalStatus
from shared.utils.errors import AuthorizationError, ConflictError, NotFoundError, StoreError, ValidationError


def _submit(db, user, location, street="12 Oak St"):
    return address_crud.submit_address(
        db, AddressCreate(street_and_number=street, settlement_id=location.id), user)


def test_submit_creates_pending_address(db, location, tenant):
    address = _submit(db, tenant, location)

    assert address.status == ApprovalStatus.pending
    assert address.created_by == tenant.user_id
    assert address.full_address == "12 Oak St, S, M, C"


@pytest.mark.parametrize("street", [None, "", "   "])
def test_submit_requires_street(db, location, tenant, street):
    with pytest.raises(ValidationError) as exc:
        address_crud.submit_address(
            db, AddressCreate(street_and_number=street, settlement_id=location.id), tenant)
    assert exc.value.field == "street_and_number"


def test_submit_requires_existing_settlement(db, location, tenant):
    with pytest.raises(ValidationError):
        address_crud.submit_address(
            db, AddressCreate(street_and_number="1 Elm", settlement_id=uuid.uuid4()), tenant)


def test_accountant_cannot_submit(db, location, accountant):
    with pytest.raises(AuthorizationError):
        _submit(db, accountant, location)


def test_list_pending_is_admin_only(db, location, tenant, admin):
    _submit(db, tenant, location)

    pending = address_crud.list_pending(db, admin)
    assert len(pending) == 1
    assert pending[0].creator_email == "tenant@example.com"

    with pytest.raises(AuthorizationError):
        address_crud.list_pending(db, tenant)


def test_list_own_addresses_only_returns_callers(db, location, tenant, other_tenant):
    _submit(db, tenant, location, "1 Elm")
    _submit(db, other_tenant, location, "2 Elm")

    own = address_crud.list_own_addresses(db, tenant)
    assert [a.street_and_number for a in own] == ["1 Elm"]


def test_approve_creates_building_managed_by_applicant(db, location, tenant, admin):
    address = _submit(db, tenant, location)

    decided = address_crud.decide(db, address.id, "approved", admin)

    assert decided.status == ApprovalStatus.approved
    assert decided.approved_by == admin.user_id
    building = building_crud.get_building_for_address(db, address.id)
    assert building.name == "12 Oak St, S, M, C"
    assert building.manager_id == tenant.user_id


def test_reject_creates_no_building(db, location, tenant, admin):
    address = _submit(db, tenant, location)

    decided = address_crud.decide(db, address.id, "rejected", admin)

    assert decided.status == ApprovalStatus.rejected
    assert building_crud.get_building_for_address(db, address.id) is None


def test_address_is_decided_only_once(db, location, tenant, admin):
    address = _submit(db, tenant, location)
    address_crud.decide(db, address.id, "approved", admin)

    with pytest.raises(ConflictError):
        address_crud.decide(db, address.id, "rejected", admin)
    assert address_crud.get_address_by_id(db, address.id).status == ApprovalStatus.approved
    assert db.query(Building).count() == 1


@pytest.mark.parametrize("decision", [None, "", "pending", "maybe"])
def test_decide_rejects_unknown_decision(db, location, tenant, admin, decision):
    address = _submit(db, tenant, location)
    with pytest.raises(ValidationError):
        address_crud.decide(db, address.id, decision, admin)


def test_decide_unknown_address(db, admin):
    with pytest.raises(NotFoundError):
        address_crud.decide(db, uuid.uuid4(), "approved", admin)


def test_decide_requires_admin(db, location, tenant, manager):
    address = _submit(db, tenant, location)
    with pytest.raises(AuthorizationError):
        address_crud.decide(db, address.id, "approved", manager)


def test_building_failure_keeps_address_approved(db, location, tenant, admin, monkeypatch, caplog):
    address = _submit(db, tenant, location)

    def broken(*args, **kwargs):
        raise StoreError("Database temporarily unavailable", transient=True)

    monkeypatch.setattr(address_crud, "ensure_building", broken)
    with caplog.at_level(logging.WARNING):
        decided = address_crud.decide(db, address.id, "approved", admin)

    assert decided.status == ApprovalStatus.approved
    assert building_crud.get_building_for_address(db, address.id) is None
    assert "left for reconciliation" in caplog.text


def test_ensure_building_is_idempotent(db, approved_address, manager):
    first = building_crud.ensure_building(db, approved_address.id, manager.user_id, "label")
    second = building_crud.ensure_building(db, approved_address.id, manager.user_id, "other label")

    assert first.id == second.id
    assert db.query(Building).count() == 1


def test_building_name_is_truncated(db, approved_address, manager):
    building = building_crud.ensure_building(db, approved_address.id, manager.user_id, "x" * 300)
    assert len(building.name) == 100


def test_location_lookups_are_ordered(db, location, tenant):
    counties = location_crud.county_lookup(db, tenant)
    assert [c.name for c in counties] == ["C"]

    municipalities = location_crud.municipality_lookup(db, location.municipality.county_id, tenant)
    settlements = location_crud.settlement_lookup(db, municipalities[0].id, tenant)
    assert settlements[0].id == location.id
