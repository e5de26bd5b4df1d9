from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RideCreateRequest(BaseModel):
    vehicle_id: int = Field(..., description="One of the driver's vehicles.")
    origin_city: str = Field(..., min_length=1, max_length=60, description="Departure city.")
    pick_point: str = Field(..., min_length=1, max_length=255, description="Pickup point in the departure city.")
    destiny_city: str = Field(..., min_length=1, max_length=60, description="Arrival city.")
    drop_point: str = Field(..., min_length=1, max_length=255, description="Drop point in the arrival city.")
    departure_at: datetime = Field(..., description="Intended departure (local time of the service timezone if naive).")
    arrival_at: datetime = Field(..., description="Estimated arrival.")
    seats_offered: int = Field(..., ge=1, le=8, description="Seats offered to passengers.")
    price_per_person: float = Field(..., ge=0, description="Price per seat.")
    smokers_allowed: bool = Field(default=False, description="Smoking allowed in the vehicle.")
    animals_allowed: bool = Field(default=False, description="Animals allowed in the vehicle.")
    other_preferences: Optional[str] = Field(default=None, max_length=255, description="Free-text preferences.")


class BookingPublic(BaseModel):
    ride_id: int = Field(..., description="Ride id.")
    user_id: int = Field(..., description="Passenger user id.")
    booked: bool = Field(..., description="Whether the user now holds a seat.")
    available_seats: int = Field(..., description="Seats left on the ride after the operation.")


class RideCancelPublic(BaseModel):
    ride_id: int = Field(..., description="Ride id.")
    cancelled_at: datetime = Field(..., description="When the ride was cancelled.")
