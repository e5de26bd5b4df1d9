from datetime import time, timedelta

import pytest

from carpool_api.services.ride_store import RideStore, build_filter_predicates
from conftest import SEARCH_DAY


@pytest.fixture
def store(db):
    return RideStore(db)


def _ids(rides):
    return [r.id for r in rides]


def test_build_filter_predicates_skips_unset_and_false():
    assert build_filter_predicates(None) == []
    assert build_filter_predicates({}) == []
    assert build_filter_predicates({"electric_only": False}) == []
    assert len(build_filter_predicates({"electric_only": True, "price_max": 30, "rating_min": 4})) == 3


def test_search_exact_matches_route_and_day_only(factory, store):
    hit = factory.ride()
    factory.ride(destiny="Marseille")
    factory.ride(origin="Lille")
    factory.ride(day=SEARCH_DAY + timedelta(days=1))

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0)

    assert _ids(page.results) == [hit.id]
    assert page.total_results == 1


def test_search_exact_excludes_full_and_cancelled(factory, store):
    open_ride = factory.ride(seats=2)
    factory.book(open_ride)
    full = factory.ride(seats=1)
    factory.book(full)
    factory.ride(cancelled=True)

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0)

    assert _ids(page.results) == [open_ride.id]
    assert page.results[0].seats_available == 1


def test_search_exact_orders_by_departure_time(factory, store):
    late = factory.ride(at=time(18, 0))
    early = factory.ride(at=time(6, 30))
    noon = factory.ride(at=time(12, 0))

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0)

    assert _ids(page.results) == [early.id, noon.id, late.id]


def test_count_ignores_pagination(factory, store):
    for hour in range(5):
        factory.ride(at=time(8 + hour, 0))

    first = store.search_exact("paris", "lyon", SEARCH_DAY, 2, 0)
    last = store.search_exact("paris", "lyon", SEARCH_DAY, 2, 4)

    assert len(first.results) == 2
    assert len(last.results) == 1
    assert first.total_results == last.total_results == 5


@pytest.mark.parametrize(
    "order_by, expected",
    [
        ("PRICE_ASC", ["cheap", "mid", "dear"]),
        ("PRICE_DESC", ["dear", "mid", "cheap"]),
        ("DURATION_ASC", ["dear", "cheap", "mid"]),
        ("DURATION_DESC", ["mid", "cheap", "dear"]),
        ("BY_MOOD", ["mid", "dear", "cheap"]),
        (None, ["mid", "dear", "cheap"]),
    ],
)
def test_orderings(factory, store, order_by, expected):
    rides = {
        "cheap": factory.ride(at=time(15, 0), price=10, duration=200),
        "mid": factory.ride(at=time(7, 0), price=20, duration=300),
        "dear": factory.ride(at=time(11, 0), price=30, duration=120),
    }
    by_id = {r.id: name for name, r in rides.items()}

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0, order_by=order_by)

    assert [by_id[r.id] for r in page.results] == expected


def test_equal_keys_tie_break_on_departure(factory, store):
    later = factory.ride(at=time(16, 0), price=15)
    sooner = factory.ride(at=time(8, 0), price=15)

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0, order_by="PRICE_ASC")

    assert _ids(page.results) == [sooner.id, later.id]


def test_filters_are_inclusive(factory, store):
    low = factory.ride(price=10, duration=60)
    mid = factory.ride(price=20, duration=120)
    factory.ride(price=30, duration=180)

    page = store.search_exact(
        "paris", "lyon", SEARCH_DAY, 18, 0,
        {"price_min": 10, "price_max": 20, "duration_min": 60, "duration_max": 120},
    )

    assert sorted(_ids(page.results)) == sorted([low.id, mid.id])
    assert page.total_results == 2


def test_rating_and_electric_filters(factory, store):
    good_ev = factory.ride(driver=factory.user(avg_rating=4.5), electric=True)
    factory.ride(driver=factory.user(avg_rating=3.9), electric=True)
    factory.ride(driver=factory.user(avg_rating=5.0), electric=False)

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0, {"electric_only": True, "rating_min": 4.0})

    assert _ids(page.results) == [good_ev.id]


def test_electric_only_false_keeps_everything(factory, store):
    factory.ride(electric=True)
    factory.ride(electric=False)

    page = store.search_exact("paris", "lyon", SEARCH_DAY, 18, 0, {"electric_only": False})

    assert page.total_results == 2


def test_search_future_starts_at_given_day_and_caps(factory, store):
    factory.ride(day=SEARCH_DAY)
    expected = [factory.ride(day=SEARCH_DAY + timedelta(days=n)).id for n in range(1, 9)]
    factory.ride(day=SEARCH_DAY + timedelta(days=2), cancelled=True)

    rides = store.search_future("paris", "lyon", SEARCH_DAY + timedelta(days=1), limit=6)

    assert _ids(rides) == expected[:6]


def test_filters_meta_empty_is_zero(store):
    meta = store.get_filters_meta("paris", "lyon", SEARCH_DAY)

    assert meta.model_dump(by_alias=True) == {
        "electric": False,
        "drivers0": False,
        "price": {"min": 0.0, "max": 0.0},
        "duration": {"min": 0, "max": 0},
    }


def test_filters_meta_ranges(factory, store):
    factory.ride(price=12.5, duration=90, electric=True)
    factory.ride(price=40, duration=240, driver=factory.user(avg_rating=0.0))
    factory.ride(price=99, duration=30, destiny="Nice")

    meta = store.get_filters_meta("paris", "lyon", SEARCH_DAY)

    assert meta.electric_present is True
    assert meta.has_zero_rated_driver is True
    assert (meta.price.min, meta.price.max) == (12.5, 40.0)
    assert (meta.duration.min, meta.duration.max) == (90, 240)


def test_filters_meta_reapplies_filters(factory, store):
    factory.ride(price=12.5, duration=90, electric=True)
    factory.ride(price=40, duration=240, driver=factory.user(avg_rating=0.0))

    meta = store.get_filters_meta("paris", "lyon", SEARCH_DAY, {"price_max": 20})

    assert meta.electric_present is True
    assert meta.has_zero_rated_driver is False
    assert (meta.price.min, meta.price.max) == (12.5, 12.5)
