"""Test configuration and fixtures."""

import os
import uuid

# must be set before the engine is built
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_RETRY_BACKOFF_MS"] = "0"

import pytest
from fastapi.testclient import TestClient

from shared.core.auth import create_access_token
from shared.core.database import Base, SessionLocal, engine, get_db
from shared.core.schemas import UserToken
from shared.models.profiles import Profile
from shared.utils.enums import ApprovalStatus, UserRole
from shared.utils.scoped_cache import ScopedCache
from building_service.app import models  # noqa: F401
from building_service.app.main import app
from building_service.app.models.address_approval.addresses import Address
from building_service.app.models.address_approval.locations import County, Municipality, Settlement


@pytest.fixture
def db():
    """Fresh schema and a session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def location(db):
    county = County(name="C")
    municipality = Municipality(name="M", county=county)
    settlement = Settlement(name="S", municipality=municipality)
    db.add_all([county, municipality, settlement])
    db.commit()
    return settlement


def _make_user(db, role: UserRole, email: str, full_name: str) -> UserToken:
    profile = Profile(id=uuid.uuid4(), email=email, full_name=full_name, role=role)
    db.add(profile)
    db.commit()
    return UserToken(user_id=profile.id, role=role, email=email, name=full_name)


@pytest.fixture
def admin(db):
    return _make_user(db, UserRole.ADMIN, "admin@example.com", "Ada Admin")


@pytest.fixture
def manager(db):
    return _make_user(db, UserRole.BUILDING_MANAGER, "manager@example.com", "Mia Manager")


@pytest.fixture
def tenant(db):
    return _make_user(db, UserRole.USER, "tenant@example.com", "Tom Tenant")


@pytest.fixture
def other_tenant(db):
    return _make_user(db, UserRole.USER, "other@example.com", "Olga Other")


@pytest.fixture
def accountant(db):
    return _make_user(db, UserRole.ACCOUNTANT, "books@example.com", "Al Accountant")


@pytest.fixture
def cache():
    return ScopedCache(ttl_seconds=30)


@pytest.fixture
def approved_address(db, location, manager):
    """An approved address submitted by the manager, without a building yet."""
    address = Address(
        street_and_number="12 Oak St",
        settlement_id=location.id,
        created_by=manager.user_id,
        status=ApprovalStatus.approved,
    )
    db.add(address)
    db.commit()
    return address


@pytest.fixture
def building(db, approved_address, manager):
    from building_service.app.crud.building_inventory.building_crud import ensure_building
    return ensure_building(db, approved_address.id, manager.user_id, "12 Oak St, S, M, C")


@pytest.fixture
def client(db):
    """Test client sharing the test session with the app."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.state.request_cache = ScopedCache(ttl_seconds=30)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: UserToken) -> dict:
    token = create_access_token({"user_id": user.user_id, "role": user.role.value, "email": user.email})
    return {"Authorization": f"Bearer {token}"}
