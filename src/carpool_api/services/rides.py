"""
Ride publishing and seat booking.

Seats are never counted by hand: a booking is a ride_passengers row and
Ride.seats_available is derived from those rows on every load.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carpool_api.models.ride import Ride, ride_passengers
from carpool_api.models.user import User
from carpool_api.models.vehicle import Vehicle
from carpool_api.schemas.ride import RideCreateRequest
from carpool_api.services.exceptions import (
    AlreadyBookedError,
    InvalidRideError,
    NotBookedError,
    NotRideDriverError,
    OwnRideBookingError,
    RideCancelledError,
    RideFullError,
    RideNotFoundError,
    VehicleNotOwnedError,
)
from carpool_api.services.normalizer import CityDateNormalizer

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _local_naive(value: datetime, normalizer: CityDateNormalizer) -> datetime:
    """Express a timestamp as naive wall-clock time in the search timezone."""
    if value.tzinfo is not None:
        value = value.astimezone(normalizer.tz)
    return value.replace(tzinfo=None)


def get_ride(db: Session, ride_id: int, *, for_update: bool = False) -> Ride:
    """Load a ride or raise RideNotFoundError."""
    stmt = select(Ride).where(Ride.id == ride_id)
    if for_update:
        stmt = stmt.with_for_update(of=Ride)
    ride = db.scalars(stmt).unique().one_or_none()
    if ride is None:
        raise RideNotFoundError(ride_id)
    return ride


def is_passenger(db: Session, ride_id: int, user_id: int) -> bool:
    row = db.execute(
        select(ride_passengers.c.ride_id).where(
            ride_passengers.c.ride_id == ride_id,
            ride_passengers.c.user_id == user_id,
        )
    ).first()
    return row is not None


# PUBLIC_INTERFACE
def publish_ride(
    db: Session,
    driver: User,
    payload: RideCreateRequest,
    normalizer: Optional[CityDateNormalizer] = None,
) -> Ride:
    """
    Publish a new ride for `driver`.

    Rules:
    - the vehicle must belong to the driver
    - both cities must be valid city names
    - departure must not be in the past; arrival must come after departure
    - estimated_duration is computed from the two timestamps (minutes)
    """
    normalizer = normalizer or CityDateNormalizer()

    vehicle = db.scalar(select(Vehicle).where(Vehicle.id == payload.vehicle_id))
    if vehicle is None or vehicle.owner_id != driver.id:
        raise VehicleNotOwnedError(payload.vehicle_id)

    if not normalizer.is_valid_city(payload.origin_city) or not normalizer.is_valid_city(payload.destiny_city):
        raise InvalidRideError("Cities may only contain letters, spaces and hyphens.")

    departure = _local_naive(payload.departure_at, normalizer)
    arrival = _local_naive(payload.arrival_at, normalizer)
    now = normalizer.now().replace(tzinfo=None)
    if departure < now:
        raise InvalidRideError("Departure must be in the future.")
    if arrival <= departure:
        raise InvalidRideError("Arrival must be after departure.")

    ride = Ride(
        driver_id=driver.id,
        vehicle_id=vehicle.id,
        origin_city=payload.origin_city.strip(),
        pick_point=payload.pick_point.strip(),
        destiny_city=payload.destiny_city.strip(),
        drop_point=payload.drop_point.strip(),
        departure_date=departure.date(),
        departure_time=departure.time().replace(microsecond=0),
        arrival_date=arrival.date(),
        arrival_time=arrival.time().replace(microsecond=0),
        estimated_duration=int((arrival - departure).total_seconds() // 60),
        seats_offered=payload.seats_offered,
        price_per_person=payload.price_per_person,
        smokers_allowed=payload.smokers_allowed,
        animals_allowed=payload.animals_allowed,
        other_preferences=payload.other_preferences,
    )
    db.add(ride)
    db.commit()
    db.refresh(ride)
    logger.info(
        "Ride %s published by driver %s: %s -> %s on %s",
        ride.id, driver.id, ride.origin_city, ride.destiny_city, ride.departure_date,
    )
    return ride


# PUBLIC_INTERFACE
def book_seat(db: Session, ride_id: int, user: User) -> Ride:
    """
    Book one seat on a ride for `user`.

    Raises:
        RideNotFoundError, RideCancelledError, OwnRideBookingError,
        AlreadyBookedError, RideFullError
    """
    ride = get_ride(db, ride_id, for_update=True)
    if ride.cancelled_at is not None:
        raise RideCancelledError(ride_id)
    if ride.driver_id == user.id:
        raise OwnRideBookingError(ride_id)
    if is_passenger(db, ride_id, user.id):
        raise AlreadyBookedError(ride_id)
    if ride.seats_available <= 0:
        raise RideFullError(ride_id)

    db.execute(insert(ride_passengers).values(ride_id=ride_id, user_id=user.id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyBookedError(ride_id)

    db.refresh(ride)
    logger.info("User %s booked a seat on ride %s (%s left)", user.id, ride_id, ride.seats_available)
    return ride


# PUBLIC_INTERFACE
def leave_ride(db: Session, ride_id: int, user: User) -> Ride:
    """Release the seat `user` holds on a ride."""
    ride = get_ride(db, ride_id)
    result = db.execute(
        delete(ride_passengers).where(
            ride_passengers.c.ride_id == ride_id,
            ride_passengers.c.user_id == user.id,
        )
    )
    if not result.rowcount:
        db.rollback()
        raise NotBookedError(ride_id)
    db.commit()
    db.refresh(ride)
    logger.info("User %s left ride %s (%s left)", user.id, ride_id, ride.seats_available)
    return ride


# PUBLIC_INTERFACE
def cancel_ride(db: Session, ride_id: int, driver: User) -> Ride:
    """Cancel a ride; only its driver may do so, and only once."""
    ride = get_ride(db, ride_id, for_update=True)
    if ride.driver_id != driver.id:
        raise NotRideDriverError(ride_id)
    if ride.cancelled_at is not None:
        raise RideCancelledError(ride_id)

    now = _utcnow()
    ride.cancelled_at = now
    ride.updated_at = now
    db.add(ride)
    db.commit()
    db.refresh(ride)
    logger.info("Ride %s cancelled by driver %s", ride_id, driver.id)
    return ride
