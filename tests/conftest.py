import io
import os
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine, insert
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carpool_api.db import get_db
from carpool_api.main import app
from carpool_api.models.base import Base
from carpool_api.models.ride import Ride, ride_passengers
from carpool_api.models.user import User, UserRole
from carpool_api.models.vehicle import Vehicle
from carpool_api.security import create_access_token
from carpool_api.services.normalizer import CityDateNormalizer

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# Service-level tests run against a frozen clock; the search day is in that year.
FROZEN_NOW = datetime(2030, 1, 10, 9, 0, tzinfo=timezone.utc)
SEARCH_DAY = date(2030, 3, 14)

# API tests go through the real clock, so they search next year.
NEXT_YEAR_DAY = date(date.today().year + 1, 3, 14)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_and_teardown_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def frozen_normalizer():
    return CityDateNormalizer(clock=lambda: FROZEN_NOW)


def png_bytes(width: int = 400, height: int = 200, color: str = "red") -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


class Factory:
    """Creates committed rows for tests."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(
        self,
        nickname: Optional[str] = None,
        role: UserRole = UserRole.driver,
        avg_rating: float = 4.5,
        photo: Optional[bytes] = None,
    ) -> User:
        n = self._next()
        user = User(
            nickname=nickname or f"user{n}",
            email=f"user{n}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            avg_rating=avg_rating,
            photo=photo,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def vehicle(self, owner: User, electric: bool = False, brand: str = "Peugeot", model: str = "208") -> Vehicle:
        n = self._next()
        vehicle = Vehicle(
            owner_id=owner.id,
            brand=brand,
            model=model,
            color="grey",
            registration=f"AB-{n:03d}-CD",
            electric=electric,
        )
        self.db.add(vehicle)
        self.db.commit()
        return vehicle

    def ride(
        self,
        day: date = SEARCH_DAY,
        at: time = time(9, 0),
        origin: str = "Paris",
        destiny: str = "Lyon",
        price: float = 25.0,
        duration: int = 270,
        seats: int = 3,
        driver: Optional[User] = None,
        vehicle: Optional[Vehicle] = None,
        electric: bool = False,
        cancelled: bool = False,
    ) -> Ride:
        driver = driver or self.user()
        vehicle = vehicle or self.vehicle(driver, electric=electric)
        departure = datetime.combine(day, at)
        arrival = departure + timedelta(minutes=duration)
        ride = Ride(
            driver_id=driver.id,
            vehicle_id=vehicle.id,
            origin_city=origin,
            pick_point="Gare centrale",
            destiny_city=destiny,
            drop_point="Place principale",
            departure_date=departure.date(),
            departure_time=departure.time(),
            arrival_date=arrival.date(),
            arrival_time=arrival.time(),
            estimated_duration=duration,
            seats_offered=seats,
            price_per_person=price,
            smokers_allowed=False,
            animals_allowed=True,
            other_preferences="No music",
            cancelled_at=datetime.now(timezone.utc) if cancelled else None,
        )
        self.db.add(ride)
        self.db.commit()
        return ride

    def book(self, ride: Ride, passenger: Optional[User] = None) -> User:
        passenger = passenger or self.user(role=UserRole.passenger)
        self.db.execute(insert(ride_passengers).values(ride_id=ride.id, user_id=passenger.id))
        self.db.commit()
        return passenger


@pytest.fixture
def factory(db):
    return Factory(db)


def auth_headers(user: User) -> dict:
    token = create_access_token(subject=user.id, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}
