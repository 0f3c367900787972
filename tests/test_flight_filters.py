import pytest
from pydantic import ValidationError

from jetset.flights.filters import (
    FlightFilters,
    SortOrder,
    apply_filters,
    available_airlines,
    count_active_filters,
    filter_flights,
    paginate,
    parse_iso_duration,
    sort_flights,
)
from jetset.flights.models import Airline, BagAllowance, Baggage, FlightPoint, FlightResult, Price


def _flight(fid, amount, stops=0, code="AI", name="AIR INDIA", dep="2099-06-01T08:00:00", arr="2099-06-01T16:00:00", minutes=480, bag_kg=23, refundable=False):
    return FlightResult(
        id=fid,
        airline=Airline(code=code, name=name),
        flight_number=f"{code}-{fid}",
        departure=FlightPoint(airport="JFK", at=dep, date=dep[:10], time=dep[11:16]),
        arrival=FlightPoint(airport="LHR", at=arr, date=arr[:10], time=arr[11:16]),
        duration_minutes=minutes,
        stops=stops,
        price=Price(amount=amount, total=f"{amount:.2f}"),
        baggage=Baggage(checked=BagAllowance(weight=bag_kg)),
        refundable=refundable,
    )


@pytest.fixture
def flights():
    return [
        _flight("1", 642.10, stops=0, code="AI", name="AIR INDIA", dep="2099-06-01T06:30:00", minutes=495, refundable=True),
        _flight("2", 518.75, stops=1, code="EK", name="EMIRATES", dep="2099-06-01T14:05:00", arr="2099-06-02T01:45:00", minutes=700),
        _flight("3", 889.00, stops=0, code="BA", name="BRITISH AIRWAYS", dep="2099-06-01T21:50:00", arr="2099-06-02T06:55:00", minutes=545, refundable=True),
        _flight("4", 476.30, stops=1, code="LH", name="LUFTHANSA", dep="2099-06-01T10:20:00", minutes=835, bag_kg=0),
        _flight("5", 389.99, stops=2, code="6E", name="INDIGO", dep="2099-06-01T02:45:00", minutes=990, bag_kg=15),
    ]


def _ids(results):
    return [f.id for f in results]


def test_no_filters_keeps_everything(flights):
    assert _ids(filter_flights(flights)) == ["1", "2", "3", "4", "5"]


def test_price_range_is_inclusive(flights):
    out = filter_flights(flights, FlightFilters(price=(476.30, 642.10)))
    assert _ids(out) == ["1", "2", "4"]


def test_price_range_must_be_ordered():
    with pytest.raises(ValidationError):
        FlightFilters(price=(900, 100))


@pytest.mark.parametrize(
    "stops, expected",
    [("0", ["1", "3"]), ("1", ["2", "4"]), ("2+", ["5"]), (1, ["2", "4"]), ("any", ["1", "2", "3", "4", "5"])],
)
def test_stops(flights, stops, expected):
    assert _ids(filter_flights(flights, FlightFilters(stops=stops))) == expected


def test_airlines_match_name_or_code_case_insensitively(flights):
    out = filter_flights(flights, FlightFilters(airlines=["emirates", "ba"]))
    assert _ids(out) == ["2", "3"]


@pytest.mark.parametrize(
    "bucket, expected",
    [("early_morning", ["5"]), ("morning", ["1", "4"]), ("afternoon", ["2"]), ("evening", ["3"])],
)
def test_departure_time_buckets(flights, bucket, expected):
    assert _ids(filter_flights(flights, FlightFilters(departure_time=bucket))) == expected


def test_baggage_and_refundable(flights):
    assert _ids(filter_flights(flights, FlightFilters(baggage="cabin_only"))) == ["4"]
    assert "4" not in _ids(filter_flights(flights, FlightFilters(baggage="checked")))
    assert _ids(filter_flights(flights, FlightFilters(refundable=True))) == ["1", "3"]
    assert _ids(filter_flights(flights, FlightFilters(refundable=False))) == ["2", "4", "5"]


def test_filters_are_combined(flights):
    out = filter_flights(flights, FlightFilters(stops="1", baggage="checked"))
    assert _ids(out) == ["2"]


def test_sorting(flights):
    assert _ids(sort_flights(flights, SortOrder.PRICE)) == ["5", "4", "2", "1", "3"]
    assert _ids(sort_flights(flights, "-price")) == ["3", "1", "2", "4", "5"]
    assert _ids(sort_flights(flights, SortOrder.DURATION)) == ["1", "3", "2", "4", "5"]
    assert _ids(sort_flights(flights, SortOrder.DEPARTURE)) == ["5", "1", "4", "2", "3"]
    assert _ids(sort_flights(flights, None)) == ["1", "2", "3", "4", "5"]


def test_sort_is_stable_for_equal_prices():
    same = [_flight(str(i), 100.0) for i in range(4)]
    assert _ids(sort_flights(same, SortOrder.PRICE)) == ["0", "1", "2", "3"]


def test_apply_filters_filters_then_sorts(flights):
    out = apply_filters(flights, FlightFilters(stops="0"), SortOrder.PRICE_DESC)
    assert _ids(out) == ["3", "1"]


def test_paginate_pages_and_clamps():
    items = list(range(23))
    page = paginate(items, page=3, per_page=10)
    assert page.items == [20, 21, 22]
    assert page.total_pages == 3
    assert (page.start_index, page.end_index) == (20, 23)

    assert paginate(items, page=99, per_page=10).current_page == 3
    assert paginate(items, page=0, per_page=10).current_page == 1


def test_paginate_empty_list_has_one_page():
    page = paginate([], page=4)
    assert page.items == []
    assert page.total_pages == 1
    assert page.current_page == 1


def test_available_airlines_is_sorted_and_unique(flights):
    assert available_airlines(flights + flights[:1]) == ["AIR INDIA", "BRITISH AIRWAYS", "EMIRATES", "INDIGO", "LUFTHANSA"]


def test_count_active_filters():
    assert count_active_filters(FlightFilters()) == 0
    assert count_active_filters(FlightFilters(price=(0, 500), stops="0", refundable=False)) == 3


@pytest.mark.parametrize(
    "value, minutes",
    [("PT2H45M", 165), ("PT45M", 45), ("P1DT2H", 1560), ("PT10H", 600), ("", 0), (None, 0), ("2h 45m", 0)],
)
def test_parse_iso_duration(value, minutes):
    assert parse_iso_duration(value) == minutes
