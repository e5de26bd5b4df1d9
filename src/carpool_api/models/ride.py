from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Time,
    func,
    select,
)
from sqlalchemy.orm import Mapped, column_property, mapped_column, relationship, validates

from carpool_api.models.base import Base
from carpool_api.services.normalizer import normalize_city

# One-directional passenger relation: who booked which ride. Seat counts and
# passenger lists are derived from this table by query.
ride_passengers = Table(
    "ride_passengers",
    Base.metadata,
    Column("ride_id", Integer, ForeignKey("rides.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("booked_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


class Ride(Base):
    """
    ORM model for the 'rides' table.

    Notes:
    - origin_city/destiny_city keep the text as published; the *_key columns
      hold the normalized form (lower-case, no diacritics) used by search and
      are kept in sync by the validators below.
    - seats_available is not stored: it is seats_offered minus the number of
      ride_passengers rows (see the column_property after the class).
    """

    __tablename__ = "rides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    driver_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    vehicle_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("vehicles.id", ondelete="RESTRICT"),
        nullable=False,
    )

    origin_city: Mapped[str] = mapped_column(String(60), nullable=False)
    origin_city_key: Mapped[str] = mapped_column(String(60), nullable=False)
    pick_point: Mapped[str] = mapped_column(String(255), nullable=False)
    destiny_city: Mapped[str] = mapped_column(String(60), nullable=False)
    destiny_city_key: Mapped[str] = mapped_column(String(60), nullable=False)
    drop_point: Mapped[str] = mapped_column(String(255), nullable=False)

    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_time: Mapped[time] = mapped_column(Time, nullable=False)
    arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)
    estimated_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    seats_offered: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_person: Mapped[float] = mapped_column(Float, nullable=False)

    smokers_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    animals_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    other_preferences: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    driver = relationship("User", foreign_keys=[driver_id], lazy="joined")
    vehicle = relationship("Vehicle", lazy="joined")

    @validates("origin_city")
    def _sync_origin_key(self, key: str, value: str) -> str:
        self.origin_city_key = normalize_city(value)
        return value

    @validates("destiny_city")
    def _sync_destiny_key(self, key: str, value: str) -> str:
        self.destiny_city_key = normalize_city(value)
        return value

    @property
    def departure_at(self) -> datetime:
        return datetime.combine(self.departure_date, self.departure_time)

    @property
    def arrival_at(self) -> datetime:
        return datetime.combine(self.arrival_date, self.arrival_time)


Ride.seats_available = column_property(
    Ride.seats_offered
    - select(func.count())
    .select_from(ride_passengers)
    .where(ride_passengers.c.ride_id == Ride.id)
    .correlate_except(ride_passengers)
    .scalar_subquery()
)


# Composite indexes supporting the search predicates.
Index("idx_rides_route_departure", Ride.origin_city_key, Ride.destiny_city_key, Ride.departure_date)
Index("idx_rides_driver_created_at", Ride.driver_id, Ride.created_at.desc())
