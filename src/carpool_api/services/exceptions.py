"""Domain exceptions raised by ride publishing and booking."""


class RideNotFoundError(Exception):
    """Raised when a ride cannot be found."""
    pass


class RideCancelledError(Exception):
    """Raised when an operation targets a cancelled ride."""
    pass


class RideFullError(Exception):
    """Raised when no seat is left on a ride."""
    pass


class AlreadyBookedError(Exception):
    """Raised when the user already holds a seat on the ride."""
    pass


class NotBookedError(Exception):
    """Raised when the user holds no seat on the ride."""
    pass


class OwnRideBookingError(Exception):
    """Raised when a driver tries to book a seat on their own ride."""
    pass


class NotRideDriverError(Exception):
    """Raised when a user other than the ride's driver tries to manage it."""
    pass


class VehicleNotOwnedError(Exception):
    """Raised when a ride is published with someone else's vehicle."""
    pass


class InvalidRideError(Exception):
    """Raised when published ride data is inconsistent (cities, times, seats)."""
    pass
