from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from carpool_api.db import get_db
from carpool_api.deps import get_current_user, require_driver
from carpool_api.models.user import User
from carpool_api.schemas.ride import BookingPublic, RideCancelPublic, RideCreateRequest
from carpool_api.schemas.search import PresentedRide
from carpool_api.services import rides as ride_service
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
from carpool_api.services.presenter import RidePresenter

router = APIRouter(prefix="/rides", tags=["rides"])


def _forbidden(detail: str) -> HTTPException:
    """Standardized forbidden exception."""
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _not_found() -> HTTPException:
    """Standardized not-found exception."""
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ride not found.")


def _conflict(detail: str) -> HTTPException:
    """Standardized conflict exception."""
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


@router.post(
    "",
    response_model=PresentedRide,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a ride",
    description="Driver publishes a ride with one of their vehicles.",
    operation_id="rides_publish",
)
def publish_ride(
    payload: RideCreateRequest,
    db: Session = Depends(get_db),
    current_driver_user: User = Depends(require_driver),
) -> PresentedRide:
    """
    Publish a new ride.

    Auth:
    - Bearer JWT required
    - role must be 'driver' or 'both'

    Errors:
    - 403 if the vehicle is not one of the driver's
    - 400 for invalid cities or inconsistent departure/arrival
    """
    try:
        ride = ride_service.publish_ride(db, current_driver_user, payload)
    except VehicleNotOwnedError:
        raise _forbidden("The vehicle must belong to the ride's driver.")
    except InvalidRideError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return RidePresenter().present(ride)


@router.get(
    "/{ride_id}",
    response_model=PresentedRide,
    summary="Get ride by id",
    description="Return the public view of a ride.",
    operation_id="rides_get_by_id",
)
def get_ride(ride_id: int, db: Session = Depends(get_db)) -> PresentedRide:
    """Get ride details (no authentication required, same shape as search results)."""
    try:
        ride = ride_service.get_ride(db, ride_id)
    except RideNotFoundError:
        raise _not_found()
    return RidePresenter().present(ride)


@router.post(
    "/{ride_id}/passengers",
    response_model=BookingPublic,
    summary="Book a seat",
    description="Book one seat on a ride for the authenticated user.",
    operation_id="rides_book_seat",
)
def book_seat(
    ride_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BookingPublic:
    """
    Book a seat.

    Errors:
    - 404 if the ride does not exist
    - 409 if the ride is cancelled, full, already booked by the user, or
      driven by the user
    """
    try:
        ride = ride_service.book_seat(db, ride_id, current_user)
    except RideNotFoundError:
        raise _not_found()
    except RideCancelledError:
        raise _conflict("Ride has been cancelled.")
    except OwnRideBookingError:
        raise _conflict("Drivers cannot book their own ride.")
    except AlreadyBookedError:
        raise _conflict("You already hold a seat on this ride.")
    except RideFullError:
        raise _conflict("Ride is full.")
    return BookingPublic(
        ride_id=ride.id,
        user_id=current_user.id,
        booked=True,
        available_seats=int(ride.seats_available),
    )


@router.delete(
    "/{ride_id}/passengers",
    response_model=BookingPublic,
    summary="Leave a ride",
    description="Release the seat the authenticated user holds on a ride.",
    operation_id="rides_leave",
)
def leave_ride(
    ride_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BookingPublic:
    """
    Leave a ride.

    Errors:
    - 404 if the ride does not exist or the user holds no seat on it
    """
    try:
        ride = ride_service.leave_ride(db, ride_id, current_user)
    except RideNotFoundError:
        raise _not_found()
    except NotBookedError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No booking found for this ride.")
    return BookingPublic(
        ride_id=ride.id,
        user_id=current_user.id,
        booked=False,
        available_seats=int(ride.seats_available),
    )


@router.post(
    "/{ride_id}/cancel",
    response_model=RideCancelPublic,
    summary="Cancel a ride",
    description="The ride's driver cancels it; cancelled rides disappear from search.",
    operation_id="rides_cancel",
)
def cancel_ride(
    ride_id: int,
    db: Session = Depends(get_db),
    current_driver_user: User = Depends(require_driver),
) -> RideCancelPublic:
    """
    Cancel a ride.

    Errors:
    - 404 if the ride does not exist
    - 403 if the current driver does not drive this ride
    - 409 if the ride is already cancelled
    """
    try:
        ride = ride_service.cancel_ride(db, ride_id, current_driver_user)
    except RideNotFoundError:
        raise _not_found()
    except NotRideDriverError:
        raise _forbidden("This ride is not driven by the current driver.")
    except RideCancelledError:
        raise _conflict("Ride is already cancelled.")
    return RideCancelPublic(ride_id=ride.id, cancelled_at=ride.cancelled_at)
