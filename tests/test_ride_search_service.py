from datetime import date, time, timedelta
from unittest import mock

import pytest

from carpool_api.schemas.search import FiltersEcho, FiltersMeta, SearchRequest, SearchStatus
from carpool_api.services.ride_search import RideSearchService
from carpool_api.services.ride_store import RideStore, SearchPage
from carpool_api.settings import SEARCH_MAX_PAGE
from conftest import SEARCH_DAY


def _date(day=SEARCH_DAY):
    return {"year": day.year, "month": day.month, "day": day.day}


def _request(origin="Paris", destiny="Lyon", date=None, **kwargs):
    return SearchRequest(origin_city=origin, destiny_city=destiny, date=date or _date(), **kwargs)


@pytest.fixture
def service(db, frozen_normalizer):
    return RideSearchService(RideStore(db), normalizer=frozen_normalizer)


# Input validation


@pytest.mark.parametrize(
    "payload",
    [
        {"origin_city": None, "destiny_city": "Lyon", "date": _date()},
        {"origin_city": "Paris", "destiny_city": "   ", "date": _date()},
        {"origin_city": "Paris", "destiny_city": "Lyon", "date": None},
    ],
)
def test_missing_input_is_invalid_request(service, payload):
    response = service.search(SearchRequest(**payload))

    assert response.status == SearchStatus.INVALID_REQUEST
    assert response.rides == []
    assert response.pagination is None


@pytest.mark.parametrize("origin", ["Paris 15", "Lyon!", "<script>"])
def test_bad_city_is_invalid_city(service, origin):
    assert service.search(_request(origin=origin)).status == SearchStatus.INVALID_CITY


@pytest.mark.parametrize(
    "date",
    [
        {"year": 2029, "month": 12, "day": 31},
        {"year": 2030, "month": 2, "day": 29},
        {"year": 2030, "month": 13, "day": 1},
        {"year": 2030, "month": 3},
    ],
)
def test_bad_date_is_invalid_date(service, date):
    assert service.search(_request(date=date)).status == SearchStatus.INVALID_DATE


def test_city_is_checked_before_date(service):
    response = service.search(_request(origin="Paris 15", date={"year": 1999, "month": 1, "day": 1}))
    assert response.status == SearchStatus.INVALID_CITY


def test_invalid_input_never_touches_the_store(frozen_normalizer):
    store = mock.Mock(spec=RideStore)
    service = RideSearchService(store, normalizer=frozen_normalizer)

    service.search(_request(origin="Paris 15"))

    store.search_exact.assert_not_called()
    store.get_filters_meta.assert_not_called()


# Unfiltered search


def test_exact_match(factory, service):
    ride = factory.ride()

    response = service.search(_request())

    assert response.status == SearchStatus.EXACT_MATCH
    assert [r.id for r in response.rides] == [ride.id]
    assert response.pagination.page == 1
    assert response.pagination.limit == 18
    assert response.pagination.total_results == 1
    assert response.total_results == 1
    assert response.filters_meta is None
    assert response.filters_meta_global.price.min == 25.0


def test_cities_are_case_and_accent_insensitive(factory, service):
    ride = factory.ride(origin="Saint-Étienne", destiny="Évry")

    response = service.search(_request(origin="  SAINT-ETIENNE ", destiny="evry"))

    assert response.status == SearchStatus.EXACT_MATCH
    assert [r.id for r in response.rides] == [ride.id]
    assert response.rides[0].origin.city == "Saint-Étienne"


def test_pagination_splits_pages(factory, service):
    for minute in range(20):
        factory.ride(at=time(8, minute))

    first = service.search(_request(page=1))
    second = service.search(_request(page=2))

    assert len(first.rides) == 18
    assert len(second.rides) == 2
    assert first.pagination.total_results == second.pagination.total_results == 20
    assert second.pagination.page == 2
    assert {r.id for r in first.rides}.isdisjoint({r.id for r in second.rides})


@pytest.mark.parametrize("page", [0, -3, None])
def test_page_below_one_is_first_page(factory, service, page):
    factory.ride()

    response = service.search(_request(page=page))

    assert response.pagination.page == 1
    assert len(response.rides) == 1


def test_page_past_the_end_falls_through_to_future(factory, service):
    factory.ride()
    later = factory.ride(day=SEARCH_DAY + timedelta(days=3))

    response = service.search(_request(page=5))

    assert response.status == SearchStatus.FUTURE_MATCH
    assert [r.id for r in response.rides] == [later.id]


def test_future_match_starts_next_day_and_is_capped(factory, service):
    factory.ride(day=SEARCH_DAY - timedelta(days=1))
    expected = [factory.ride(day=SEARCH_DAY + timedelta(days=n)).id for n in range(1, 9)]

    response = service.search(_request())

    assert response.status == SearchStatus.FUTURE_MATCH
    assert [r.id for r in response.rides] == expected[:6]
    assert response.pagination is None
    assert response.total_results is None
    assert response.filters_meta_global is None


def test_no_match(factory, service):
    factory.ride(destiny="Marseille")
    factory.ride(day=SEARCH_DAY - timedelta(days=2))

    response = service.search(_request())

    assert response.status == SearchStatus.NO_MATCH
    assert response.rides == []
    assert response.filters_meta is None


def test_full_and_cancelled_rides_are_never_returned(factory, service):
    full = factory.ride(seats=1)
    factory.book(full)
    factory.ride(cancelled=True)
    factory.ride(day=SEARCH_DAY + timedelta(days=1), cancelled=True)

    assert service.search(_request()).status == SearchStatus.NO_MATCH


def test_search_is_idempotent(factory, service):
    for hour in range(3):
        factory.ride(at=time(9 + hour, 0))

    first = service.search(_request(order_by="PRICE_ASC"))
    second = service.search(_request(order_by="PRICE_ASC"))

    assert first.model_dump() == second.model_dump()


# Filtered search


def test_filtered_exact_match(factory, service):
    cheap = factory.ride(price=10, duration=100)
    factory.ride(price=40, duration=200, electric=True)

    response = service.search(_request(filters={"price_max": 20}))

    assert response.status == SearchStatus.EXACT_MATCH
    assert [r.id for r in response.rides] == [cheap.id]
    assert response.pagination.total_results == 1
    assert response.total_results == 2
    assert isinstance(response.filters_meta, FiltersMeta)
    assert (response.filters_meta.price.min, response.filters_meta.price.max) == (10.0, 10.0)
    assert response.filters_meta.electric_present is False
    assert response.filters_meta_global.electric_present is True
    assert (response.filters_meta_global.price.min, response.filters_meta_global.price.max) == (10.0, 40.0)


def test_filters_accept_camel_case_keys(factory, service):
    factory.ride(electric=False)
    ev = factory.ride(electric=True)

    response = service.search(_request(filters={"electricOnly": True}))

    assert [r.id for r in response.rides] == [ev.id]


def test_filtered_no_match_echoes_requested_bounds(factory, service):
    factory.ride(price=25)
    factory.ride(price=35)

    response = service.search(_request(filters={"price_min": 50, "price_max": 80, "rating_min": 4.0}))

    assert response.status == SearchStatus.NO_MATCH
    assert response.rides == []
    assert response.pagination is None
    assert response.total_results == 2
    assert isinstance(response.filters_meta, FiltersEcho)
    assert response.filters_meta.electric is False
    assert (response.filters_meta.price.min, response.filters_meta.price.max) == (50, 80)
    assert response.filters_meta.duration.min is None
    assert response.filters_meta.rating_min == 4.0
    assert (response.filters_meta_global.price.min, response.filters_meta_global.price.max) == (25.0, 35.0)


def test_filtered_search_never_suggests_future_rides(factory, service):
    factory.ride(day=SEARCH_DAY + timedelta(days=1), price=5)

    response = service.search(_request(filters={"price_max": 10}))

    assert response.status == SearchStatus.NO_MATCH
    assert response.total_results == 0


def test_filtered_search_skips_future_lookup(frozen_normalizer):
    store = mock.Mock(spec=RideStore)
    store.search_exact.return_value = SearchPage()
    store.get_filters_meta.return_value = mock.sentinel.global_meta
    service = RideSearchService(store, normalizer=frozen_normalizer, presenter=mock.Mock())

    with mock.patch("carpool_api.services.ride_search.SearchResponse") as response_cls:
        service.search(_request(order_by="PRICE_DESC"))

    store.search_future.assert_not_called()
    assert store.search_exact.call_count == 2
    store.search_exact.assert_called_with("paris", "lyon", SEARCH_DAY, 18, 0, {}, "PRICE_DESC")
    assert response_cls.call_args.kwargs["status"] == SearchStatus.NO_MATCH


def test_order_by_alone_counts_as_filtering(factory, service):
    cheap = factory.ride(at=time(18, 0), price=10)
    dear = factory.ride(at=time(7, 0), price=50)

    response = service.search(_request(order_by="PRICE_ASC"))

    assert response.status == SearchStatus.EXACT_MATCH
    assert [r.id for r in response.rides] == [cheap.id, dear.id]
    assert isinstance(response.filters_meta, FiltersMeta)


def test_unknown_order_by_keeps_departure_order(factory, service):
    late = factory.ride(at=time(18, 0), price=10)
    early = factory.ride(at=time(7, 0), price=50)

    response = service.search(_request(order_by="CHEAPEST_FIRST"))

    assert [r.id for r in response.rides] == [early.id, late.id]


def test_tightening_filters_never_grows_results(factory, service):
    for price, rating in [(10, 3.0), (20, 4.0), (30, 4.5), (40, 5.0)]:
        factory.ride(price=price, driver=factory.user(avg_rating=rating))

    loose = service.search(_request(filters={"price_max": 35}))
    tight = service.search(_request(filters={"price_max": 35, "rating_min": 4.2}))

    assert loose.pagination.total_results == 3
    assert tight.pagination.total_results == 1
    assert {r.id for r in tight.rides} <= {r.id for r in loose.rides}


# Reference scenarios


def test_two_rides_on_the_day(factory, service):
    factory.ride(at=time(8, 0))
    factory.ride(at=time(17, 0))

    response = service.search(_request())

    assert response.status == SearchStatus.EXACT_MATCH
    assert len(response.rides) == 2
    assert response.pagination.total_results == 2


def test_one_ride_three_days_later(factory, service):
    factory.ride(day=SEARCH_DAY + timedelta(days=3))

    response = service.search(_request())

    assert response.status == SearchStatus.FUTURE_MATCH
    assert len(response.rides) == 1


def test_route_never_served(service):
    response = service.search(_request())

    assert response.status == SearchStatus.NO_MATCH
    assert response.rides == []


def test_electric_only_against_a_thermal_ride(factory, service):
    factory.ride(electric=False, price=21.0, duration=250)

    response = service.search(_request(filters={"electric_only": True}))

    assert response.status == SearchStatus.NO_MATCH
    assert response.filters_meta_global.price.min == response.filters_meta_global.price.max == 21.0
    assert response.filters_meta_global.duration.min == response.filters_meta_global.duration.max == 250


@pytest.mark.parametrize("month, day", [(1, 1), (6, 15), (12, 31)])
def test_last_year_is_always_invalid(service, month, day):
    response = service.search(_request(date={"year": SEARCH_DAY.year - 1, "month": month, "day": day}))

    assert response.status == SearchStatus.INVALID_DATE


# Boundaries


def test_last_representable_day_without_rides_is_no_match(factory, service):
    factory.ride()

    response = service.search(_request(date=_date(date.max)))

    assert response.status == SearchStatus.NO_MATCH
    assert response.rides == []


def test_last_representable_day_skips_future_lookup(frozen_normalizer):
    store = mock.Mock(spec=RideStore)
    store.search_exact.return_value = SearchPage()
    store.get_filters_meta.return_value = None
    service = RideSearchService(store, normalizer=frozen_normalizer)

    response = service.search(_request(date=_date(date.max)))

    assert response.status == SearchStatus.NO_MATCH
    store.search_future.assert_not_called()


def test_huge_page_is_clamped(factory, service):
    factory.ride()

    response = service.search(_request(page=10**19))

    assert response.status == SearchStatus.NO_MATCH


def test_huge_page_offset_stays_bounded(frozen_normalizer):
    store = mock.Mock(spec=RideStore)
    store.search_exact.return_value = SearchPage()
    store.get_filters_meta.return_value = None
    store.search_future.return_value = []
    service = RideSearchService(store, normalizer=frozen_normalizer)

    service.search(_request(page=10**19))

    _, _, _, limit, offset = store.search_exact.call_args.args
    assert offset == (SEARCH_MAX_PAGE - 1) * limit


def test_decomposed_accents_match_composed_cities(factory, service):
    ride = factory.ride(origin="Évry", destiny="Lyon")

    response = service.search(_request(origin="E\u0301vry"))

    assert response.status == SearchStatus.EXACT_MATCH
    assert [r.id for r in response.rides] == [ride.id]
