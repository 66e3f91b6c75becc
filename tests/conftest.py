"""
Pytest configuration and shared fixtures
"""
import os
import sys
import uuid
import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret-key-minimum-32-chars-long")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("DEFAULT_ROLE", "user")

import jwt  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from facilityhub.config import settings  # noqa: E402
from facilityhub.db import Base, get_db, make_engine  # noqa: E402
from facilityhub.models import models  # noqa: E402,F401
from facilityhub.models.models import Building, Floor, Room, StorageItem, User  # noqa: E402
from facilityhub.services.permission_catalog import seed_permission_catalog  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file per test"""
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_permission_catalog(session)
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    """Factory creating a committed user with the given role"""
    def _make(role="user", external_id=None, **fields):
        user = User(external_id=external_id or f"ext_{uuid.uuid4().hex[:12]}", role=role, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", first_name="Ada", last_name="Admin")


@pytest.fixture
def technician(make_user):
    return make_user("technician", first_name="Tess", last_name="Tech")


@pytest.fixture
def member(make_user):
    return make_user("member", first_name="Max", last_name="Member")


@pytest.fixture
def guest(make_user):
    return make_user("guest")


@pytest.fixture
def facility(db):
    """One building with one floor and two rooms"""
    building = Building(name="Main Building", address="1 Campus Way")
    db.add(building)
    db.flush()
    floor = Floor(number=1, name="Ground", building_id=building.id)
    db.add(floor)
    db.flush()
    room_a = Room(number="101", name="Lab A", type="LABORATORY", floor_id=floor.id)
    room_b = Room(number="102", name="Office B", type="OFFICE", floor_id=floor.id)
    db.add_all([room_a, room_b])
    db.commit()
    return {"building": building, "floor": floor, "room_a": room_a, "room_b": room_b}


@pytest.fixture
def cable_stock(db):
    item = StorageItem(name="HDMI cable 2m", item_type="CABLE", sub_type="HDMI", quantity=10, unit="pcs")
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def monitor_stock(db):
    item = StorageItem(
        name="24in monitor",
        item_type="COMPUTER_PART",
        sub_type="MONITOR",
        quantity=3,
        serial_numbers=["MON-001", "MON-002", "MON-003"],
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def make_token(external_id: str, **claims) -> str:
    payload = {"sub": external_id, **claims}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
def auth_headers():
    def _headers(user_or_external_id, **claims):
        external_id = getattr(user_or_external_id, "external_id", user_or_external_id)
        return {"Authorization": f"Bearer {make_token(external_id, **claims)}"}
    return _headers


@pytest.fixture
def client(session_factory, db):
    """TestClient bound to the per-test database"""
    from fastapi.testclient import TestClient
    from facilityhub.main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()
