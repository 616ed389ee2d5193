"""
Test configuration and fixtures.

The settings object reads the environment at import time, so the test
environment is set before any ``hallbook`` module is imported. Every test
gets a fresh in-memory SQLite schema shared through a StaticPool, with the
API's ``get_db`` dependency pointed at it.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date, datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hallbook.auth.utils import create_access_token, get_password_hash  # noqa: E402
from hallbook.database import Base, get_db  # noqa: E402
from hallbook.main import app  # noqa: E402
from hallbook.models import Hall, User  # noqa: E402

DEFAULT_PASSWORD = "secret123"
# Hashed once; bcrypt is deliberately slow
DEFAULT_PASSWORD_HASH = get_password_hash(DEFAULT_PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(session, email: str, role: str = "user", name: str = "Test User", **kwargs) -> User:
    user = User(
        name=name,
        email=email,
        password=DEFAULT_PASSWORD_HASH,
        role=role,
        phone=kwargs.pop("phone", "9000000000"),
        **kwargs
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_hall(session, owner: User, **overrides) -> Hall:
    fields = dict(
        name="Grand Ballroom",
        description="Ballroom with stage and lighting",
        address="12 MG Road",
        city="Pune",
        state="Maharashtra",
        pincode="411001",
        capacity=200,
        price_per_hour=Decimal("500.00"),
        amenities=["parking", "ac"],
        is_available=True,
        approval_status="approved",
    )
    fields.update(overrides)
    hall = Hall(owner_id=owner.id, **fields)
    session.add(hall)
    session.commit()
    session.refresh(hall)
    return hall


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(db_session):
    return make_user(db_session, "customer@example.com", name="Asha Customer")


@pytest.fixture
def other_customer(db_session):
    return make_user(db_session, "other@example.com", name="Ravi Other")


@pytest.fixture
def owner(db_session):
    return make_user(db_session, "owner@example.com", role="hall_owner", name="Meera Owner", business_name="Meera Events")


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "admin@example.com", role="admin", name="Site Admin")


@pytest.fixture
def hall(db_session, owner):
    return make_hall(db_session, owner)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_customer_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def future_date():
    """A date far enough ahead that cancellations fall in the early refund band"""
    return date.today() + timedelta(days=10)


class FrozenClock:
    """Callable clock for services, movable between calls"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


SLOTS = "/api/v1/slots"
BOOKINGS = "/api/v1/bookings"
REVENUE = "/api/v1/revenue"


def publish(client, headers, hall_id, slot_date, start="10:00", end="13:00", **extra):
    payload = {
        "hall_id": hall_id,
        "slot_date": slot_date.isoformat(),
        "start_time": start,
        "end_time": end,
        **extra
    }
    return client.post(f"{SLOTS}/", json=payload, headers=headers)


def book(client, headers, hall_id, booking_date, start="10:00", end="13:00"):
    payload = {
        "hall_id": hall_id,
        "booking_date": booking_date.isoformat(),
        "start_time": start,
        "end_time": end,
    }
    return client.post(f"{BOOKINGS}/", json=payload, headers=headers)
