"""
Read-only query surface over published rides.

Every search in this module starts from the same eligibility predicates
(route, seats left, not cancelled). Optional filters are turned into a flat
predicate list by `build_filter_predicates`, which is the only place the
filter set is defined; exact search, counting and metadata aggregation all
apply that list the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Mapping, Optional

from sqlalchemy import ColumnElement, Select, case, func, select
from sqlalchemy.orm import Session

from carpool_api.models.ride import Ride
from carpool_api.models.user import User
from carpool_api.models.vehicle import Vehicle
from carpool_api.schemas.search import DurationRange, FiltersMeta, OrderBy, PriceRange

logger = logging.getLogger(__name__)

DEFAULT_ORDER = (Ride.departure_date.asc(), Ride.departure_time.asc())

_ORDERINGS = {
    OrderBy.PRICE_ASC.value: (Ride.price_per_person.asc(),),
    OrderBy.PRICE_DESC.value: (Ride.price_per_person.desc(),),
    OrderBy.DURATION_ASC.value: (Ride.estimated_duration.asc(),),
    OrderBy.DURATION_DESC.value: (Ride.estimated_duration.desc(),),
}


@dataclass
class SearchPage:
    """One page of exact-date results plus the unpaginated match count."""

    results: List[Ride] = field(default_factory=list)
    total_results: int = 0


# PUBLIC_INTERFACE
def build_filter_predicates(filters: Optional[Mapping[str, Any]]) -> List[ColumnElement[bool]]:
    """
    Translate a sanitized filter map into SQL predicates.

    Keys: electric_only, price_min, price_max, duration_min, duration_max,
    rating_min. Missing or None keys add nothing; electric_only=False adds
    nothing either (it means "electric or not"). Bounds are inclusive.
    """
    if not filters:
        return []

    predicates: List[ColumnElement[bool]] = []
    if filters.get("electric_only"):
        predicates.append(Vehicle.electric.is_(True))
    if filters.get("price_min") is not None:
        predicates.append(Ride.price_per_person >= filters["price_min"])
    if filters.get("price_max") is not None:
        predicates.append(Ride.price_per_person <= filters["price_max"])
    if filters.get("duration_min") is not None:
        predicates.append(Ride.estimated_duration >= filters["duration_min"])
    if filters.get("duration_max") is not None:
        predicates.append(Ride.estimated_duration <= filters["duration_max"])
    if filters.get("rating_min") is not None:
        predicates.append(User.avg_rating >= filters["rating_min"])
    return predicates


def _order_clauses(order_by: Optional[str]) -> tuple:
    """Requested ordering, with departure order as the tie-breaker; unknown keys get departure order."""
    return _ORDERINGS.get(order_by or "", ()) + DEFAULT_ORDER


class RideStore:
    """Ride queries for the search engine. Never mutates anything."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _eligible(self, origin: str, destiny: str) -> List[ColumnElement[bool]]:
        return [
            Ride.origin_city_key == origin,
            Ride.destiny_city_key == destiny,
            Ride.seats_available > 0,
            Ride.cancelled_at.is_(None),
        ]

    def _on_day(self, origin: str, destiny: str, day: date, filters: Optional[Mapping[str, Any]]) -> list:
        return [
            *self._eligible(origin, destiny),
            Ride.departure_date == day,
            *build_filter_predicates(filters),
        ]

    @staticmethod
    def _joined(stmt: Select) -> Select:
        # Inner joins are safe: driver and vehicle are mandatory on every ride.
        return stmt.join(Vehicle, Ride.vehicle_id == Vehicle.id).join(User, Ride.driver_id == User.id)

    # PUBLIC_INTERFACE
    def search_exact(
        self,
        origin: str,
        destiny: str,
        day: date,
        limit: int,
        offset: int,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> SearchPage:
        """
        Rides departing on `day` for the normalized route, one page at a time.

        total_results counts every match for the same predicates, ignoring
        limit/offset.
        """
        predicates = self._on_day(origin, destiny, day, filters)

        stmt = (
            self._joined(select(Ride))
            .where(*predicates)
            .order_by(*_order_clauses(order_by))
            .limit(limit)
            .offset(offset)
        )
        results = list(self.db.scalars(stmt).unique().all())

        count_stmt = self._joined(select(func.count(Ride.id)).select_from(Ride)).where(*predicates)
        total = int(self.db.scalar(count_stmt) or 0)

        logger.debug(
            "search_exact %s->%s on %s: %d on page (offset=%d), %d total",
            origin, destiny, day, len(results), offset, total,
        )
        return SearchPage(results=results, total_results=total)

    # PUBLIC_INTERFACE
    def search_future(self, origin: str, destiny: str, from_day: date, limit: int = 6) -> List[Ride]:
        """Earliest rides departing on or after `from_day`, no filters, capped at `limit`."""
        stmt = (
            select(Ride)
            .where(*self._eligible(origin, destiny), Ride.departure_date >= from_day)
            .order_by(*DEFAULT_ORDER)
            .limit(limit)
        )
        rides = list(self.db.scalars(stmt).unique().all())
        logger.debug("search_future %s->%s from %s: %d rides", origin, destiny, from_day, len(rides))
        return rides

    # PUBLIC_INTERFACE
    def get_filters_meta(
        self,
        origin: str,
        destiny: str,
        day: date,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> FiltersMeta:
        """
        Observed filter ranges over the rides of `day` (filters re-applied if given).

        Used to bound range sliders in the client. An empty candidate set
        yields zero ranges and false flags.
        """
        stmt = self._joined(
            select(
                func.min(Ride.price_per_person),
                func.max(Ride.price_per_person),
                func.min(Ride.estimated_duration),
                func.max(Ride.estimated_duration),
                func.max(case((Vehicle.electric.is_(True), 1), else_=0)),
                func.max(case((User.avg_rating == 0, 1), else_=0)),
            ).select_from(Ride)
        ).where(*self._on_day(origin, destiny, day, filters))

        price_min, price_max, duration_min, duration_max, electric, zero_rated = self.db.execute(stmt).one()

        return FiltersMeta(
            electric_present=bool(electric),
            has_zero_rated_driver=bool(zero_rated),
            price=PriceRange(
                min=float(price_min) if price_min is not None else 0.0,
                max=float(price_max) if price_max is not None else 0.0,
            ),
            duration=DurationRange(
                min=int(duration_min) if duration_min is not None else 0,
                max=int(duration_max) if duration_max is not None else 0,
            ),
        )
