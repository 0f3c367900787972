"""
Flight data/analytics: mock client.

Returns deterministic offers in the same raw shape as the real flight API
(``data`` + ``dictionaries``) so the normalizer and filters are exercised
exactly as in production.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from jetset.integrations.contracts.interfaces import FlightDataProvider, FlightSearchParams
from jetset.integrations.policy.response_wrappers import IntegrationError, simplify_locations

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

_CARRIERS = {
    "AI": "AIR INDIA",
    "EK": "EMIRATES",
    "BA": "BRITISH AIRWAYS",
    "LH": "LUFTHANSA",
    "6E": "INDIGO",
}

_AIRCRAFT = {"789": "BOEING 787-9", "388": "AIRBUS A380-800", "32N": "AIRBUS A320NEO", "359": "AIRBUS A350-900"}

_AIRPORTS: List[Dict[str, Any]] = [
    {"iataCode": "JFK", "name": "JOHN F KENNEDY INTL", "subType": "AIRPORT", "address": {"cityName": "NEW YORK", "cityCode": "NYC", "countryName": "UNITED STATES OF AMERICA", "countryCode": "US"}},
    {"iataCode": "LHR", "name": "HEATHROW", "subType": "AIRPORT", "address": {"cityName": "LONDON", "cityCode": "LON", "countryName": "UNITED KINGDOM", "countryCode": "GB"}},
    {"iataCode": "DEL", "name": "INDIRA GANDHI INTL", "subType": "AIRPORT", "address": {"cityName": "DELHI", "cityCode": "DEL", "countryName": "INDIA", "countryCode": "IN"}},
    {"iataCode": "DXB", "name": "DUBAI INTL", "subType": "AIRPORT", "address": {"cityName": "DUBAI", "cityCode": "DXB", "countryName": "UNITED ARAB EMIRATES", "countryCode": "AE"}},
    {"iataCode": "CDG", "name": "CHARLES DE GAULLE", "subType": "AIRPORT", "address": {"cityName": "PARIS", "cityCode": "PAR", "countryName": "FRANCE", "countryCode": "FR"}},
    {"iataCode": "BOM", "name": "CHHATRAPATI SHIVAJI INTL", "subType": "AIRPORT", "address": {"cityName": "MUMBAI", "cityCode": "BOM", "countryName": "INDIA", "countryCode": "IN"}},
    {"iataCode": "SIN", "name": "CHANGI", "subType": "AIRPORT", "address": {"cityName": "SINGAPORE", "cityCode": "SIN", "countryName": "SINGAPORE", "countryCode": "SG"}},
]

# carrier, flight number, departure time, duration (h, m), stops, price, checked kg, refundable, aircraft
_OFFER_TEMPLATES = [
    ("AI", "101", "06:30", (8, 15), 0, "642.10", 23, True, "789"),
    ("EK", "512", "14:05", (11, 40), 1, "518.75", 30, False, "388"),
    ("BA", "138", "21:50", (9, 5), 0, "889.00", 23, True, "359"),
    ("LH", "761", "10:20", (13, 55), 1, "476.30", 0, False, "359"),
    ("6E", "1203", "02:45", (16, 30), 2, "389.99", 15, False, "32N"),
]


class MockFlightDataClient(FlightDataProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.searches: List[FlightSearchParams] = []

    @property
    def source(self) -> str:
        return "mock-flight-data"

    def _check(self, operation: str) -> None:
        if self.fail:
            raise IntegrationError(f"[FLIGHTS MOCK] {operation} failed", status_code=500)

    def _offer(self, idx: int, params: FlightSearchParams) -> Dict[str, Any]:
        carrier, number, dep_time, (hours, minutes), stops, price, bag_kg, refundable, aircraft = _OFFER_TEMPLATES[idx]
        departure = f"{params.departure_date}T{dep_time}:00"
        dep_hour, dep_minute = (int(x) for x in dep_time.split(":"))

        total_minutes = hours * 60 + minutes
        hops = [params.origin] + ["DXB", "FRA"][:stops] + [params.destination]
        leg_minutes = total_minutes // (stops + 1)
        segments = []
        start = date.fromisoformat(params.departure_date)
        clock = dep_hour * 60 + dep_minute
        for leg in range(stops + 1):
            leg_start = clock + leg * leg_minutes
            leg_end = leg_start + leg_minutes
            segments.append(
                {
                    "departure": {"iataCode": hops[leg], "terminal": "3" if leg == 0 else None, "at": _clock_to_iso(start, leg_start)},
                    "arrival": {"iataCode": hops[leg + 1], "at": _clock_to_iso(start, leg_end)},
                    "carrierCode": carrier,
                    "number": str(int(number) + leg),
                    "aircraft": {"code": aircraft},
                    "duration": f"PT{leg_minutes // 60}H{leg_minutes % 60}M",
                    "numberOfStops": 0,
                }
            )
        segments[0]["departure"]["at"] = departure

        checked = {"weight": bag_kg, "weightUnit": "KG"} if bag_kg else {"quantity": 0}
        fare_details = [
            {"segmentId": str(i + 1), "cabin": params.travel_class or "ECONOMY", "includedCheckedBags": checked}
            for i in range(len(segments))
        ]
        traveler_price: Dict[str, Any] = {"currency": params.currency, "total": price, "base": f"{float(price) * 0.8:.2f}"}
        if refundable:
            traveler_price["refundableTaxes"] = f"{float(price) * 0.1:.2f}"

        return {
            "type": "flight-offer",
            "id": str(idx + 1),
            "source": "GDS",
            "itineraries": [{"duration": f"PT{hours}H{minutes}M", "segments": segments}],
            "price": {"currency": params.currency, "total": price, "base": f"{float(price) * 0.8:.2f}", "grandTotal": price},
            "travelerPricings": [
                {"travelerId": "1", "fareOption": "STANDARD", "travelerType": "ADULT", "price": traveler_price, "fareDetailsBySegment": fare_details}
            ],
            "validatingAirlineCodes": [carrier],
        }

    async def search_flights(self, params: FlightSearchParams) -> Dict[str, Any]:
        self._check("search_flights")
        self.searches.append(params)
        offers = [self._offer(i, params) for i in range(min(len(_OFFER_TEMPLATES), params.max_results))]
        logger.info("[FLIGHTS MOCK] %s -> %s: %d offers", params.origin, params.destination, len(offers))
        return {
            "data": offers,
            "dictionaries": {"carriers": dict(_CARRIERS), "aircraft": dict(_AIRCRAFT)},
            "meta": {"count": len(offers)},
        }

    async def search_locations(self, keyword: str, sub_type: str = "CITY,AIRPORT", limit: int = 10, country_code: Optional[str] = None) -> List[Dict[str, Any]]:
        self._check("search_locations")
        needle = keyword.strip().upper()
        matches = [
            a for a in _AIRPORTS
            if (needle in a["iataCode"] or needle in a["name"] or needle in a["address"]["cityName"])
            and (not country_code or a["address"]["countryCode"] == country_code.upper())
        ]
        return simplify_locations({"data": matches[:limit]})

    async def get_cheapest_dates(self, origin: str, destination: str, **options: Any) -> List[Dict[str, Any]]:
        self._check("get_cheapest_dates")
        start = date.fromisoformat(options["departure_date"]) if options.get("departure_date") else date.today() + timedelta(days=14)
        return [
            {
                "departureDate": (start + timedelta(days=i)).isoformat(),
                "returnDate": None if options.get("one_way") else (start + timedelta(days=i + 7)).isoformat(),
                "price": {"total": f"{420 + (i * 37) % 150:.2f}", "currency": "USD"},
                "links": {},
            }
            for i in range(5)
        ]

    async def get_most_booked_destinations(self, origin: str, period: str) -> List[Dict[str, Any]]:
        self._check("get_most_booked_destinations")
        return [
            {"destination": code, "flightScore": score, "travelerScore": score - 7}
            for code, score in (("DXB", 100), ("LHR", 87), ("SIN", 64), ("CDG", 51))
        ]

    async def get_most_traveled_destinations(self, origin: str, period: str) -> List[Dict[str, Any]]:
        self._check("get_most_traveled_destinations")
        return [
            {"destination": code, "flightScore": score - 5, "travelerScore": score}
            for code, score in (("LHR", 100), ("DXB", 92), ("JFK", 70), ("BOM", 48))
        ]

    async def price_offer(self, offer: Dict[str, Any]) -> Dict[str, Any]:
        self._check("price_offer")
        return {"type": "flight-offers-pricing", "flightOffers": [offer], "bookingRequirements": {"emailAddressRequired": True}}

    async def get_flight_order(self, order_id: str) -> Dict[str, Any]:
        self._check("get_flight_order")
        return {"type": "flight-order", "id": order_id, "associatedRecords": [{"reference": order_id[-6:].upper()}]}


def _clock_to_iso(start: date, minutes_from_midnight: int) -> str:
    day = start + timedelta(days=minutes_from_midnight // (24 * 60))
    minutes = minutes_from_midnight % (24 * 60)
    return f"{day.isoformat()}T{minutes // 60:02d}:{minutes % 60:02d}:00"
