"""
Ride search orchestration.

Flow:
1. Validate input (presence, cities, date); each failure is terminal and
   reported as a status, never as an exception.
2. Normalize cities and date.
3. Always run the unfiltered ("global") exact search and its filter ranges,
   so the client can bound its sliders whatever the user picked.
4. Without filters: exact match, else up to 6 future suggestions starting the
   day after the requested date, else no match.
5. With filters and/or an ordering: filtered exact search on the same page;
   an empty result is reported as NO_MATCH together with the requested
   bounds. Filtered searches never fall back to future suggestions.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

from carpool_api.schemas.search import (
    BoundsEcho,
    FiltersEcho,
    Pagination,
    SearchRequest,
    SearchResponse,
    SearchStatus,
)
from carpool_api.services.normalizer import CityDateNormalizer
from carpool_api.services.presenter import RidePresenter
from carpool_api.services.ride_store import RideStore
from carpool_api.settings import SEARCH_FUTURE_LIMIT, SEARCH_MAX_PAGE, SEARCH_PAGE_SIZE

logger = logging.getLogger(__name__)


def _echo_filters(filters: Dict[str, Any]) -> FiltersEcho:
    """Requested bounds, returned with a filtered NO_MATCH."""
    return FiltersEcho(
        electric=bool(filters.get("electric_only", False)),
        price=BoundsEcho(min=filters.get("price_min"), max=filters.get("price_max")),
        duration=BoundsEcho(min=filters.get("duration_min"), max=filters.get("duration_max")),
        rating_min=filters.get("rating_min"),
    )


class RideSearchService:
    """Turns a SearchRequest into a SearchResponse. Stateless between calls."""

    def __init__(
        self,
        store: RideStore,
        normalizer: Optional[CityDateNormalizer] = None,
        presenter: Optional[RidePresenter] = None,
        page_size: int = SEARCH_PAGE_SIZE,
        future_limit: int = SEARCH_FUTURE_LIMIT,
    ) -> None:
        self.store = store
        self.normalizer = normalizer or CityDateNormalizer()
        self.presenter = presenter or RidePresenter()
        self.page_size = page_size
        self.future_limit = future_limit

    def _invalid(self, status: SearchStatus, req: SearchRequest) -> SearchResponse:
        logger.info(
            "Ride search rejected (%s): origin=%r destiny=%r date=%r",
            status.value, req.origin_city, req.destiny_city, req.date,
        )
        return SearchResponse(status=status, rides=[])

    # PUBLIC_INTERFACE
    def search(self, req: SearchRequest) -> SearchResponse:
        """
        Execute the search flow for one request.

        Returns:
            SearchResponse with one of EXACT_MATCH, FUTURE_MATCH, NO_MATCH,
            INVALID_REQUEST, INVALID_CITY, INVALID_DATE. Store errors propagate.
        """
        origin_raw = (req.origin_city or "").strip()
        destiny_raw = (req.destiny_city or "").strip()
        date_struct = req.date.model_dump() if req.date is not None else None

        # 1. Presence
        if not origin_raw or not destiny_raw or date_struct is None:
            return self._invalid(SearchStatus.INVALID_REQUEST, req)

        # 2. Cities
        if not self.normalizer.is_valid_city(origin_raw) or not self.normalizer.is_valid_city(destiny_raw):
            return self._invalid(SearchStatus.INVALID_CITY, req)

        # 3. Date
        if not self.normalizer.is_valid_date(date_struct):
            return self._invalid(SearchStatus.INVALID_DATE, req)

        # 4. Normalize
        origin = self.normalizer.normalize_city(origin_raw)
        destiny = self.normalizer.normalize_city(destiny_raw)
        day = self.normalizer.to_date(date_struct)
        if day is None:
            return self._invalid(SearchStatus.INVALID_REQUEST, req)

        page = min(max(1, req.page or 1), SEARCH_MAX_PAGE)
        limit = self.page_size
        offset = (page - 1) * limit

        # 5. Filters: only keys that were actually set
        filters = req.filters.active() if req.filters is not None else {}
        order_by = req.order_by or None
        has_active_filters = bool(filters) or order_by is not None

        # 6. Global search, always
        global_page = self.store.search_exact(origin, destiny, day, limit, offset)
        global_meta = self.store.get_filters_meta(origin, destiny, day)
        total_global = global_page.total_results

        if not has_active_filters:
            # 7.1 Exact match
            if global_page.results:
                logger.info(
                    "Ride search %s->%s on %s: EXACT_MATCH (%d/%d, page %d)",
                    origin, destiny, day, len(global_page.results), total_global, page,
                )
                return SearchResponse(
                    status=SearchStatus.EXACT_MATCH,
                    rides=self.presenter.present_many(global_page.results),
                    pagination=Pagination(page=page, limit=limit, total_results=total_global),
                    total_results=total_global,
                    filters_meta_global=global_meta,
                )

            # 7.2 Future suggestions; nothing lies after the last representable day
            future = []
            if day < date.max:
                future = self.store.search_future(origin, destiny, day + timedelta(days=1), self.future_limit)
            if future:
                logger.info("Ride search %s->%s on %s: FUTURE_MATCH (%d)", origin, destiny, day, len(future))
                return SearchResponse(
                    status=SearchStatus.FUTURE_MATCH,
                    rides=self.presenter.present_many(future),
                )

            # 7.3 Nothing at all
            logger.info("Ride search %s->%s on %s: NO_MATCH", origin, destiny, day)
            return SearchResponse(status=SearchStatus.NO_MATCH, rides=[])

        # 8. Filtered search
        filtered_page = self.store.search_exact(origin, destiny, day, limit, offset, filters, order_by)

        if filtered_page.results:
            filtered_meta = self.store.get_filters_meta(origin, destiny, day, filters)
            logger.info(
                "Ride search %s->%s on %s with filters=%s order_by=%s: EXACT_MATCH (%d/%d, page %d)",
                origin, destiny, day, filters, order_by,
                len(filtered_page.results), filtered_page.total_results, page,
            )
            return SearchResponse(
                status=SearchStatus.EXACT_MATCH,
                rides=self.presenter.present_many(filtered_page.results),
                pagination=Pagination(page=page, limit=limit, total_results=filtered_page.total_results),
                total_results=total_global,
                filters_meta=filtered_meta,
                filters_meta_global=global_meta,
            )

        logger.info(
            "Ride search %s->%s on %s with filters=%s order_by=%s: NO_MATCH",
            origin, destiny, day, filters, order_by,
        )
        return SearchResponse(
            status=SearchStatus.NO_MATCH,
            rides=[],
            total_results=total_global,
            filters_meta=_echo_filters(filters),
            filters_meta_global=global_meta,
        )
