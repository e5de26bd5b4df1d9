"""
Client-facing shape of a ride.

RidePresenter is a pure mapping from a loaded Ride row to PresentedRide. It
never queries the database; everything it needs (driver, vehicle, derived
seat count) is already loaded on the ride.
"""

from __future__ import annotations

import base64
import logging
from typing import Callable, List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from carpool_api.models.ride import Ride
from carpool_api.schemas.search import (
    DestinyPoint,
    DriverSummary,
    OriginPoint,
    Preferences,
    PresentedRide,
    VehicleSummary,
)
from carpool_api.services.thumbnails import make_thumbnail
from carpool_api.settings import THUMBNAIL_WIDTH

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/jpeg;base64,"


def _data_uri(data: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")


class RidePresenter:
    """
    Maps Ride rows to PresentedRide.

    Args:
        thumbnailer: callable (raw_bytes, width) -> jpeg bytes; it may raise,
            in which case the original photo bytes are used instead.
        thumbnail_width: target thumbnail width in pixels.
    """

    def __init__(
        self,
        thumbnailer: Callable[[bytes, int], bytes] = make_thumbnail,
        thumbnail_width: int = THUMBNAIL_WIDTH,
    ) -> None:
        self._thumbnailer = thumbnailer
        self._thumbnail_width = thumbnail_width

    def photo_thumbnail(self, raw: Optional[bytes]) -> Optional[str]:
        """data: URI of the downscaled photo, the original photo if that fails, None without a photo."""
        if not raw:
            return None
        try:
            return _data_uri(self._thumbnailer(bytes(raw), self._thumbnail_width))
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            logger.debug("Thumbnail generation failed, passing original photo through: %s", exc)
            return _data_uri(bytes(raw))

    @staticmethod
    def estimated_duration(ride: Ride) -> int:
        """Stored duration in minutes, or the departure->arrival delta when none was stored."""
        if ride.estimated_duration:
            return int(ride.estimated_duration)
        delta = ride.arrival_at - ride.departure_at
        return max(0, int(delta.total_seconds() // 60))

    def present(self, ride: Ride) -> PresentedRide:
        driver = ride.driver
        vehicle = ride.vehicle

        return PresentedRide(
            id=ride.id,
            driver=DriverSummary(
                id=driver.id if driver else None,
                nickname=driver.nickname if driver else None,
                photo_thumbnail=self.photo_thumbnail(driver.photo) if driver else None,
                avg_rating=float(driver.avg_rating) if driver and driver.avg_rating is not None else 0.0,
            ),
            date=ride.departure_date.strftime("%d/%m/%Y"),
            departure_time=ride.departure_time.strftime("%H:%M"),
            available_seats=int(ride.seats_available),
            origin=OriginPoint(city=ride.origin_city, pick_point=ride.pick_point),
            destiny=DestinyPoint(city=ride.destiny_city, drop_point=ride.drop_point),
            estimated_duration=self.estimated_duration(ride),
            vehicle=VehicleSummary(
                brand=vehicle.brand if vehicle else None,
                model=vehicle.model if vehicle else None,
                is_electric=bool(vehicle.electric) if vehicle else False,
            ),
            preferences=Preferences(
                smoker=bool(ride.smokers_allowed),
                animals=bool(ride.animals_allowed),
                other=ride.other_preferences,
            ),
            price_per_person=float(ride.price_per_person),
        )

    def present_many(self, rides: Sequence[Ride]) -> List[PresentedRide]:
        return [self.present(r) for r in rides]
