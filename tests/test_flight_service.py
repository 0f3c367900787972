import pytest

from jetset.flights.service import FlightSearchError, FlightService
from jetset.flights.transform import format_duration, transform_offer, transform_offers
from jetset.integrations.clients.mocks.flights import MockFlightDataClient
from jetset.integrations.contracts.interfaces import FlightSearchParams
from jetset.integrations.policy.response_wrappers import IntegrationError

DEPART = "2099-06-01"


def _request(**overrides):
    request = {"from": "JFK", "to": "LHR", "departDate": DEPART, "travelers": 1}
    request.update(overrides)
    return request


@pytest.mark.asyncio
async def test_transform_offer_normalizes_mock_offer(flight_provider):
    raw = await flight_provider.search_flights(FlightSearchParams(origin="JFK", destination="LHR", departure_date=DEPART))
    emirates = transform_offer(raw["data"][1], raw["dictionaries"])

    assert emirates.airline.code == "EK"
    assert emirates.airline.name == "EMIRATES"
    assert emirates.airline.logo.endswith("/EK.png")
    assert emirates.flight_number == "EK-512"
    assert emirates.departure.airport == "JFK"
    assert emirates.departure.time == "14:05"
    assert emirates.arrival.airport == "LHR"
    assert emirates.stops == 1
    assert emirates.stop_details[0].airport == "DXB"
    assert emirates.duration_minutes == 700
    assert emirates.duration_display == "11h 40m"
    assert emirates.price.amount == pytest.approx(518.75)
    assert emirates.baggage.checked.weight == 30
    assert emirates.refundable is False
    assert emirates.aircraft == "AIRBUS A380-800"
    assert emirates.original_offer["id"] == "2"


def test_transform_offers_skips_malformed_entries():
    good = {
        "id": "7",
        "itineraries": [
            {
                "duration": "PT1H10M",
                "segments": [
                    {
                        "departure": {"iataCode": "DEL", "at": "2099-06-01T09:00:00"},
                        "arrival": {"iataCode": "JAI", "at": "2099-06-01T10:10:00"},
                        "carrierCode": "6E",
                        "number": "201",
                    }
                ],
            }
        ],
        "price": {"total": "85.40", "currency": "INR"},
    }
    bad = {"id": "8", "itineraries": [], "price": {"total": "1"}}
    results = transform_offers({"data": [bad, good, {"id": "9", "itineraries": [{"segments": []}], "price": {"total": "2"}}]})

    assert [r.id for r in results] == ["7"]
    assert results[0].airline.name == "6E"
    assert results[0].departure.terminal == "T1"
    assert results[0].aircraft == "Unknown"
    assert results[0].cabin == "ECONOMY"
    assert results[0].baggage.checked.included is False


@pytest.mark.parametrize("minutes, display", [(165, "2h 45m"), (60, "1h 0m"), (0, "0h 0m"), (-5, "0h 0m")])
def test_format_duration(minutes, display):
    assert format_duration(minutes) == display


@pytest.mark.asyncio
async def test_search_returns_normalized_flights(flight_service):
    out = await flight_service.search(_request())

    assert out["success"] is True
    assert len(out["data"]) == 5
    assert out["meta"]["resultCount"] == 5
    assert out["meta"]["source"] == "mock-flight-data"
    assert out["meta"]["searchParams"]["from"] == "JFK"
    assert "EMIRATES" in out["meta"]["airlines"]


@pytest.mark.asyncio
async def test_search_resolves_city_names(flight_service, flight_provider):
    await flight_service.search(_request(**{"from": "New York", "to": "london"}))
    params = flight_provider.searches[-1]
    assert (params.origin, params.destination) == ("JFK", "LHR")


@pytest.mark.asyncio
async def test_search_resolves_through_location_search(flight_service, flight_provider):
    await flight_service.search(_request(to="Heathrow"))
    assert flight_provider.searches[-1].destination == "LHR"


@pytest.mark.asyncio
async def test_search_applies_filters_sort_and_pages(flight_service):
    out = await flight_service.search(_request(filters={"stops": "1"}, sort="price", page=1, perPage=1))

    assert out["meta"]["resultCount"] == 2
    assert [f["airline"]["code"] for f in out["data"]] == ["LH"]
    assert out["meta"]["pagination"]["total_pages"] == 2


@pytest.mark.asyncio
async def test_search_results_are_cached(flight_service, flight_provider):
    await flight_service.search(_request())
    await flight_service.search(_request())
    assert len(flight_provider.searches) == 1


@pytest.mark.asyncio
async def test_one_way_drops_return_date(flight_service, flight_provider):
    await flight_service.search(_request(returnDate="2099-06-10", tripType="oneWay"))
    assert flight_provider.searches[-1].return_date is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"from": None}, "Missing required fields"),
        ({"departDate": "06/01/2099"}, "Invalid date format"),
        ({"departDate": "2001-01-01"}, "today or in the future"),
        ({"returnDate": "2099-05-01"}, "Return date"),
        ({"travelers": 12}, "travelers must be between 1 and 9"),
        ({"travelers": "two"}, "travelers must be a whole number"),
        ({"travelClass": "steerage"}, "travelClass"),
        ({"sort": "cheapest"}, "Invalid sort order"),
        ({"filters": {"stops": "5"}}, "Invalid filters"),
    ],
)
async def test_search_rejects_bad_requests(flight_service, flight_provider, overrides, message):
    with pytest.raises(FlightSearchError) as exc:
        await flight_service.search(_request(**overrides))
    assert message in exc.value.message
    assert flight_provider.searches == []


@pytest.mark.asyncio
async def test_unresolvable_location_reports_field_details(flight_service):
    with pytest.raises(FlightSearchError) as exc:
        await flight_service.search(_request(to="Atlantis"))
    payload = exc.value.to_payload()
    assert payload["success"] is False
    assert payload["details"]["from"] is None
    assert "Atlantis" in payload["details"]["to"]


@pytest.mark.asyncio
async def test_provider_failure_propagates(cache, config):
    service = FlightService(MockFlightDataClient(fail=True), cache, config)
    with pytest.raises(IntegrationError):
        await service.search(_request())


@pytest.mark.asyncio
async def test_search_airports(flight_service):
    locations = await flight_service.search_airports("lon")
    assert [loc["code"] for loc in locations] == ["LHR"]
    assert locations[0]["displayName"] == "HEATHROW, UNITED KINGDOM"

    with pytest.raises(FlightSearchError):
        await flight_service.search_airports("l")


@pytest.mark.asyncio
async def test_analytics_and_cheapest_dates(flight_service):
    booked = await flight_service.most_booked("Delhi", "2099-05")
    assert booked["origin"] == "DEL"
    assert booked["destinations"][0]["destination"] == "DXB"

    with pytest.raises(FlightSearchError):
        await flight_service.most_traveled("DEL", "May 2099")

    dates = await flight_service.cheapest_dates("JFK", "LHR", departure_date=DEPART, one_way=True)
    assert dates[0]["departureDate"] == DEPART
    assert dates[0]["returnDate"] is None


@pytest.mark.asyncio
async def test_price_and_order_require_input(flight_service):
    with pytest.raises(FlightSearchError):
        await flight_service.price_offer({})
    with pytest.raises(FlightSearchError):
        await flight_service.get_order("")

    priced = await flight_service.price_offer({"id": "1"})
    assert priced["flightOffers"] == [{"id": "1"}]
