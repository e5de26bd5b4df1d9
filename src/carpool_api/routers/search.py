from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from carpool_api.deps import get_ride_search_service
from carpool_api.schemas.search import DateStruct, SearchFilters, SearchRequest, SearchResponse
from carpool_api.services.ride_search import RideSearchService
from carpool_api.settings import SEARCH_MAX_PAGE

SEARCH_PATH = "/rides/search"

# Integer filters are bound into SQL parameters; keep them inside a 32-bit column.
SQL_INT_MAX = 2**31 - 1

router = APIRouter(tags=["search"])


def _date_struct(year: Optional[int], month: Optional[int], day: Optional[int]) -> Optional[DateStruct]:
    """No date params at all means no date; a partial struct is left for the validator to reject."""
    if year is None and month is None and day is None:
        return None
    return DateStruct(year=year, month=month, day=day)


@router.get(
    SEARCH_PATH,
    response_model=SearchResponse,
    response_model_exclude_none=True,
    summary="Search rides",
    description=(
        "Search rides by origin city, destiny city and date (year/month/day query params). "
        "Input problems are reported in the body status (INVALID_REQUEST, INVALID_CITY, "
        "INVALID_DATE); otherwise the status is EXACT_MATCH, FUTURE_MATCH or NO_MATCH."
    ),
    operation_id="rides_search",
)
def search_rides(
    origin_city: Optional[str] = Query(default=None, alias="originCity", description="Departure city."),
    destiny_city: Optional[str] = Query(default=None, alias="destinyCity", description="Arrival city."),
    year: Optional[int] = Query(default=None, alias="date[year]", description="Departure year."),
    month: Optional[int] = Query(default=None, alias="date[month]", description="Departure month."),
    day: Optional[int] = Query(default=None, alias="date[day]", description="Departure day."),
    page: int = Query(
        default=1,
        le=SEARCH_MAX_PAGE,
        description="1-based page number (values below 1 are treated as 1).",
    ),
    electric_only: Optional[bool] = Query(default=None, alias="filters[electricOnly]"),
    price_min: Optional[float] = Query(default=None, alias="filters[priceMin]"),
    price_max: Optional[float] = Query(default=None, alias="filters[priceMax]"),
    duration_min: Optional[int] = Query(default=None, alias="filters[durationMin]", ge=0, le=SQL_INT_MAX),
    duration_max: Optional[int] = Query(default=None, alias="filters[durationMax]", ge=0, le=SQL_INT_MAX),
    rating_min: Optional[float] = Query(default=None, alias="filters[ratingMin]"),
    order_by: Optional[str] = Query(
        default=None,
        alias="orderBy",
        description="PRICE_ASC, PRICE_DESC, DURATION_ASC or DURATION_DESC; other values keep departure order.",
    ),
    service: RideSearchService = Depends(get_ride_search_service),
) -> SearchResponse:
    """
    Search rides.

    Always answers 200; the outcome is in `status`. Malformed parameter types
    (e.g. page=abc) are answered with 400 INVALID_REQUEST by the app-level
    validation handler.
    """
    request = SearchRequest(
        origin_city=origin_city,
        destiny_city=destiny_city,
        date=_date_struct(year, month, day),
        page=page,
        filters=SearchFilters(
            electric_only=electric_only,
            price_min=price_min,
            price_max=price_max,
            duration_min=duration_min,
            duration_max=duration_max,
            rating_min=rating_min,
        ),
        order_by=order_by,
    )
    return service.search(request)
