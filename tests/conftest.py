"""Pytest configuration and shared fixtures."""

import os
from dataclasses import dataclass
from decimal import Decimal

# Point settings at an in-memory database before the package is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from ottalika.api.app import app  # noqa: E402
from ottalika.models import Apartment, Base, Building, Renter  # noqa: E402
from ottalika.services import build_engine, get_db  # noqa: E402
from ottalika.services.actor import Actor, Role  # noqa: E402

test_engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session():
    """Provide a database session with all tables created, dropped after the test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@dataclass
class Tenancy:
    """Seeded directory: two occupied apartments and one vacant one."""

    building: Building
    other_building: Building
    apt_101: Apartment
    apt_102: Apartment
    apt_103: Apartment
    alice: Renter
    bob: Renter


@pytest.fixture
def tenancy(db_session: Session) -> Tenancy:
    building = Building(name="Green Valley", address="House 12, Road 5, Dhanmondi")
    other = Building(name="Empty Tower", address="Plot 3, Uttara")
    alice = Renter(name="Alice Rahman", email="alice@example.com", phone="+8801700000001")
    bob = Renter(name="Bob Hossain", email="bob@example.com", phone="+8801700000002")
    db_session.add_all([building, other, alice, bob])
    db_session.flush()

    apt_101 = Apartment(
        building_id=building.id,
        apartment_number="101",
        floor=1,
        rent_amount=Decimal("1200.00"),
        current_renter_id=alice.id,
    )
    apt_102 = Apartment(
        building_id=building.id,
        apartment_number="102",
        floor=1,
        rent_amount=Decimal("1500.00"),
        current_renter_id=bob.id,
    )
    apt_103 = Apartment(
        building_id=building.id,
        apartment_number="103",
        floor=1,
        rent_amount=Decimal("1000.00"),
    )
    db_session.add_all([apt_101, apt_102, apt_103])
    db_session.commit()

    return Tenancy(
        building=building,
        other_building=other,
        apt_101=apt_101,
        apt_102=apt_102,
        apt_103=apt_103,
        alice=alice,
        bob=bob,
    )


@pytest.fixture
def manager() -> Actor:
    return Actor(actor_id=900, role=Role.MANAGER)


@pytest.fixture
def renter_actor(tenancy: Tenancy) -> Actor:
    return Actor(actor_id=tenancy.alice.id, role=Role.RENTER)


@pytest.fixture
def client(db_session: Session):
    """FastAPI test client bound to the test session."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close, let fixture handle cleanup

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def manager_headers() -> dict:
    return {"X-Actor-Id": "900", "X-Actor-Role": "manager"}


@pytest.fixture
def renter_headers(tenancy: Tenancy) -> dict:
    return {"X-Actor-Id": str(tenancy.alice.id), "X-Actor-Role": "renter"}
