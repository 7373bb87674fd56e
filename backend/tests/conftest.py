"""
Pytest fixtures for the courier billing test suite.

Provides:
- A throwaway SQLite database, recreated for every test
- Sessions, a FastAPI test client and bearer tokens per role
- A small seeded catalog: weight slabs, enumerations, a region and a party

Environment Variables:
- DATABASE_URL is forced to a temporary SQLite file before the application
  is imported, so no PostgreSQL server is needed.
"""
import os
import tempfile
from decimal import Decimal
from types import SimpleNamespace

_DB_DIR = tempfile.mkdtemp(prefix="courier_billing_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'billing.db')}"
os.environ["JWT_SECRET"] = "test-secret"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from courier_billing.core.security import create_access_token  # noqa: E402
from courier_billing.db.database import Base, SessionLocal, engine  # noqa: E402
from courier_billing.main import app  # noqa: E402
from courier_billing.models import User, UserRole  # noqa: E402
from courier_billing.services import rate_table  # noqa: E402
from courier_billing.services.lookup_cache import LookupCache  # noqa: E402
from courier_billing.services.parties import create_party, create_region  # noqa: E402
from courier_billing.services.slab_catalog import SlabCatalog, upsert_enumeration  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.state.slab_catalog.invalidate()
    yield
    app.state.slab_catalog.invalidate()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog():
    return SlabCatalog(LookupCache(max_entries=8, ttl_seconds=600))


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _make_user(db, username, role):
    user = User(username=username, email=f"{username}@example.com", role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def users(db):
    return SimpleNamespace(
        admin=_make_user(db, "admin", UserRole.ADMIN.value),
        operator=_make_user(db, "operator", UserRole.BILLING_OPERATOR.value),
    )


@pytest.fixture
def auth(users):
    def headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return SimpleNamespace(admin=headers(users.admin), operator=headers(users.operator))


@pytest.fixture
def seeded(db, catalog):
    """Three weight slabs, one of each enumeration, a region and a party in it."""
    light = catalog.create_weight_slab(db, "Light", 0, 500)
    medium = catalog.create_weight_slab(db, "Medium", 500, 1000)
    heavy = catalog.create_weight_slab(db, "Heavy", 1000, 5000)
    mode = upsert_enumeration(db, "modes", "surface", "Surface").row
    service = upsert_enumeration(db, "service-types", "standard", "Standard").row
    distance = upsert_enumeration(db, "distance", "local", "Local").row
    region = create_region(db, "MUM", "Mumbai")
    other_region = create_region(db, "DEL", "Delhi")
    party = create_party(db, "Acme Traders", region_id=region.id)
    return SimpleNamespace(
        light=light,
        medium=medium,
        heavy=heavy,
        mode=mode,
        service=service,
        distance=distance,
        region=region,
        other_region=other_region,
        party=party,
    )


@pytest.fixture
def party_rate_values(seeded):
    """Values for a party override on the Medium slab."""
    return {
        "party_id": seeded.party.id,
        "shipment_type": "DOCUMENT",
        "mode_id": seeded.mode.id,
        "service_type_id": seeded.service.id,
        "distance_slab_id": seeded.distance.id,
        "weight_slab_id": seeded.medium.id,
        "base_rate": Decimal("100.00"),
        "fuel_pct": Decimal("10"),
        "handling": Decimal("5.00"),
        "gst_pct": Decimal("18"),
    }


@pytest.fixture
def party_rate(db, party_rate_values):
    return rate_table.upsert_party_rate_slab(db, party_rate_values, actor="tester").row
