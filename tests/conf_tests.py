import os
from datetime import date, time
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.db import Base, get_db
from app.dependencies import get_clock, get_dispatcher
from app.models.room import Room, RoomTimeSlotPrice, TimeSlot
from app.models.user import User, UserRole
from app.services.notifications import NotificationDispatcher
from app.utils.auth import get_password_hash

# Test database setup
if not os.path.exists("./out"):
    os.makedirs("./out")

SQLALCHEMY_DATABASE_URL = "sqlite:///./out/tests.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create test tables
Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

# Every API test runs as if today were this date (a Sunday)
TODAY = date(2025, 6, 1)


# Dependency overrides
def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


def override_get_clock():
    return lambda: TODAY


def override_get_dispatcher():
    return NotificationDispatcher(TestingSessionLocal)


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_clock] = override_get_clock
app.dependency_overrides[get_dispatcher] = override_get_dispatcher

client = TestClient(app)


# Fixtures
@pytest.fixture(autouse=True)
def clear_db():
    """Clear all data from all tables after each test"""
    with engine.connect() as conn:
        trans = conn.begin()
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        trans.commit()


@pytest.fixture
def test_db():
    """Provide a database session for testing"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_next_user():
    """Helper function to generate unique usernames"""
    if not hasattr(get_next_user, "user_count"):
        get_next_user.user_count = 0
    get_next_user.user_count += 1
    return get_next_user.user_count


@pytest.fixture
def test_user_data():
    """Fixture for test user data with unique username"""
    username = get_next_user()
    return {
        "username": f"user_{username}",
        "email": f"user_{username}@example.com",
        "password": "testpassword",
    }


def login_headers(test_db, user_data, role=UserRole.user):
    """Create a user directly in the database and log in as them"""
    user = User(
        username=user_data["username"],
        email=user_data["email"],
        hashed_password=get_password_hash(user_data["password"]),
        role=role,
    )
    test_db.add(user)
    test_db.commit()

    login_response = client.post(
        "/auth/login",
        data={
            "username": user_data["username"],
            "password": user_data["password"],
        },
    )
    token = login_response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_db, test_user_data):
    """Fixture to get authentication headers for a general user"""
    return login_headers(test_db, test_user_data)


@pytest.fixture
def staff_headers(test_db):
    """Fixture to get authentication headers for a staff member"""
    number = get_next_user()
    user_data = {
        "username": f"staff_{number}",
        "email": f"staff_{number}@example.com",
        "password": "staffpassword",
    }
    return login_headers(test_db, user_data, role=UserRole.staff)


@pytest.fixture
def test_slot(test_db):
    slot = TimeSlot(code="morning", name="Morning", start_time=time(9, 0), end_time=time(12, 0))
    test_db.add(slot)
    test_db.commit()
    test_db.refresh(slot)
    return slot


@pytest.fixture
def priced_room(test_db, test_slot):
    """A room charging 10000 per morning slot and 500 per AC hour"""
    room = Room(name="Hall A", capacity=100, location="Floor 1")
    test_db.add(room)
    test_db.commit()
    test_db.add(
        RoomTimeSlotPrice(room_id=room.id, time_slot_id=test_slot.id, base_price=10000, ac_price_per_hour=500)
    )
    test_db.commit()
    test_db.refresh(room)
    return room


def application_payload(room, slot, dates, **overrides):
    payload = {
        "room_id": room.id,
        "time_slot_id": slot.id,
        "dates": [str(day) for day in dates],
        "applicant_representative": "Taro Yamada",
        "applicant_phone": "03-1234-5678",
        "applicant_email": "taro@example.com",
        "event_name": "Community concert",
    }
    payload.update(overrides)
    return payload
