"""
Flight search policy.

Validates search requests, resolves free-text locations to IATA codes, calls
the configured FlightDataProvider (through the response cache) and returns
normalized, optionally filtered/sorted/paginated results.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from jetset.flights.filters import FlightFilters, SortOrder, apply_filters, available_airlines, paginate
from jetset.flights.transform import transform_offers
from jetset.integrations.contracts.interfaces import FlightDataProvider, FlightSearchParams
from jetset.integrations.policy.response_wrappers import IntegrationError
from jetset.utils.config_loader import AppConfig
from jetset.utils.date_utils import default_analytics_period, is_iso_date, is_past_date

logger = logging.getLogger(__name__)

_IATA_RE = re.compile(r"^[A-Z]{3}$")

TRAVEL_CLASSES = ("ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST")

# Common city names (lowercase) for inputs that are not IATA codes yet
CITY_TO_IATA: Dict[str, str] = {
    "new york": "JFK", "new delhi": "DEL", "los angeles": "LAX", "san francisco": "SFO",
    "chicago": "ORD", "miami": "MIA", "london": "LHR", "paris": "CDG", "tokyo": "NRT",
    "dubai": "DXB", "singapore": "SIN", "hong kong": "HKG", "bangkok": "BKK",
    "sydney": "SYD", "toronto": "YYZ", "mumbai": "BOM", "bangalore": "BLR",
    "hyderabad": "HYD", "chennai": "MAA", "kolkata": "CCU", "goa": "GOI",
    "jaipur": "JAI", "ahmedabad": "AMD", "pune": "PNQ", "kochi": "COK",
    "beijing": "PEK", "shanghai": "PVG", "seoul": "ICN", "istanbul": "IST",
    "rome": "FCO", "amsterdam": "AMS", "frankfurt": "FRA", "berlin": "BER",
    "madrid": "MAD", "barcelona": "BCN", "kuala lumpur": "KUL", "bali": "DPS",
    "maldives": "MLE", "phuket": "HKT", "kathmandu": "KTM", "colombo": "CMB",
    "doha": "DOH", "abu dhabi": "AUH", "riyadh": "RUH", "cairo": "CAI",
    "nairobi": "NBO", "johannesburg": "JNB", "sao paulo": "GRU", "mexico city": "MEX",
    "dallas": "DFW", "houston": "IAH", "seattle": "SEA", "boston": "BOS",
    "washington": "IAD", "atlanta": "ATL", "denver": "DEN", "las vegas": "LAS",
    "orlando": "MCO", "philadelphia": "PHL", "vancouver": "YVR", "melbourne": "MEL",
    "auckland": "AKL", "delhi": "DEL", "bombay": "BOM", "calcutta": "CCU",
    "madras": "MAA", "bengaluru": "BLR", "trivandrum": "TRV", "lucknow": "LKO",
    "chandigarh": "IXC", "indore": "IDR", "varanasi": "VNS", "amritsar": "ATQ",
    "patna": "PAT", "mangalore": "IXE", "coimbatore": "CJB", "srinagar": "SXR",
    "udaipur": "UDR", "jodhpur": "JDH",
}


class FlightSearchError(ValueError):
    """A search request was rejected before reaching the provider (HTTP 400)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


def _int_in_range(value: Any, field: str, default: int, low: int, high: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        parsed = int(str(value))
    except ValueError:
        raise FlightSearchError(f"{field} must be a whole number")
    if not low <= parsed <= high:
        raise FlightSearchError(f"{field} must be between {low} and {high}")
    return parsed


def _currency_code(value: Any, default: str) -> str:
    code = str(value or default).strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise FlightSearchError("currency must be a 3-letter code")
    return code


class FlightService:
    def __init__(self, provider: FlightDataProvider, cache: Any = None, config: Optional[AppConfig] = None):
        self.provider = provider
        self.cache = cache
        self.config = config or AppConfig()

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    def _cached(self, key: str) -> Any:
        if self.cache is None:
            return None
        return self.cache.get_json(key)

    def _store(self, key: str, value: Any, ttl: int) -> None:
        if self.cache is None or ttl <= 0:
            return
        self.cache.set_json(key, value, ttl)

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    async def resolve_location(self, value: Optional[str]) -> Optional[str]:
        """City name or IATA code -> IATA code; unresolved input is returned unchanged."""
        if not value:
            return value
        if _IATA_RE.match(value):
            return value

        mapped = CITY_TO_IATA.get(value.strip().lower())
        if mapped:
            logger.info("Resolved '%s' -> %s (static map)", value, mapped)
            return mapped

        try:
            hits = await self.provider.search_locations(value, "CITY,AIRPORT", limit=1)
        except IntegrationError as e:
            logger.warning("Could not resolve '%s' via location search: %s", value, e)
            hits = []
        if hits:
            code = hits[0].get("code")
            logger.info("Resolved '%s' -> %s (location search)", value, code)
            return code

        logger.warning("Could not resolve '%s' to an IATA code", value)
        return value

    async def search_airports(self, keyword: Optional[str], limit: int = 10, country_code: Optional[str] = None) -> List[Dict[str, Any]]:
        keyword = (keyword or "").strip()
        if len(keyword) < 2:
            raise FlightSearchError("Keyword must be at least 2 characters long")
        limit = max(1, min(int(limit or 10), 50))

        key = f"locations:{keyword.lower()}:{limit}:{country_code or ''}"
        cached = self._cached(key)
        if cached is not None:
            return cached
        locations = await self.provider.search_locations(keyword, "CITY,AIRPORT", limit=limit, country_code=country_code)
        self._store(key, locations, self.config.cache.locations_ttl_seconds)
        return locations

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def build_params(self, request: Dict[str, Any]) -> FlightSearchParams:
        raw_from, raw_to, depart = request.get("from"), request.get("to"), request.get("departDate")
        if not raw_from or not raw_to or not depart:
            raise FlightSearchError("Missing required fields: from, to, and departDate are required")

        origin = await self.resolve_location(str(raw_from))
        destination = await self.resolve_location(str(raw_to))
        bad_from = not _IATA_RE.match(origin or "")
        bad_to = not _IATA_RE.match(destination or "")
        if bad_from or bad_to:
            raise FlightSearchError(
                "Invalid airport codes. Airport codes must be 3-letter IATA codes (e.g., DEL, JAI)",
                details={
                    "from": f'Invalid origin airport code: "{raw_from}"' if bad_from else None,
                    "to": f'Invalid destination airport code: "{raw_to}"' if bad_to else None,
                },
            )

        if not is_iso_date(str(depart)):
            raise FlightSearchError("Invalid date format. Use YYYY-MM-DD format")
        if is_past_date(str(depart)):
            raise FlightSearchError("Departure date must be today or in the future")

        return_date = str(request.get("returnDate") or "").strip() or None
        if request.get("tripType") == "oneWay":
            return_date = None
        if return_date:
            if not is_iso_date(return_date):
                raise FlightSearchError("Invalid date format. Use YYYY-MM-DD format")
            if return_date < str(depart):
                raise FlightSearchError("Return date must be on or after the departure date")

        travel_class = str(request.get("travelClass") or "").strip().upper() or None
        if travel_class and travel_class not in TRAVEL_CLASSES:
            raise FlightSearchError(f"travelClass must be one of {', '.join(TRAVEL_CLASSES)}")

        return FlightSearchParams(
            origin=origin,
            destination=destination,
            departure_date=str(depart),
            return_date=return_date,
            adults=_int_in_range(request.get("travelers"), "travelers", 1, 1, 9),
            travel_class=travel_class,
            max_results=_int_in_range(request.get("max"), "max", self.config.flights.default_max_results, 1, 250),
            currency=_currency_code(request.get("currency"), self.config.flights.default_currency),
            non_stop=bool(request.get("nonStop")),
        )

    async def _raw_offers(self, params: FlightSearchParams) -> Dict[str, Any]:
        key = params.cache_key()
        cached = self._cached(key)
        if cached is not None:
            logger.info("Flight search cache hit for %s", key)
            return cached
        raw = await self.provider.search_flights(params)
        self._store(key, raw, self.config.cache.flight_search_ttl_seconds)
        return raw

    async def search(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a flight search.

        Raises:
            FlightSearchError: the request is invalid (HTTP 400)
            IntegrationError: the provider failed (HTTP 500)
        """
        params = await self.build_params(request)
        filters, order = self.parse_filters(request)
        paging = None
        if request.get("page") is not None:
            paging = self.page_params(request, self.config.pagination.flights_per_page)

        raw = await self._raw_offers(params)
        offers = raw.get("data") or []
        meta: Dict[str, Any] = {
            "searchParams": {
                "from": params.origin,
                "to": params.destination,
                "departDate": params.departure_date,
                "returnDate": params.return_date,
                "travelers": params.adults,
                "travelClass": params.travel_class,
                "max": params.max_results,
            },
            "totalResults": len(offers),
            "source": self.provider.source,
        }

        if not offers:
            meta.update(resultCount=0, message="No flights found for the specified route and date.")
            return {"success": True, "data": [], "meta": meta}

        flights = transform_offers(raw)
        meta["airlines"] = available_airlines(flights)
        flights = apply_filters(flights, filters, order)
        meta["resultCount"] = len(flights)

        if paging is not None:
            page = paginate(flights, *paging)
            flights = page.items
            meta["pagination"] = page.model_dump(exclude={"items"})

        return {"success": True, "data": [f.model_dump() for f in flights], "meta": meta}

    @staticmethod
    def page_params(request: Dict[str, Any], default_per_page: int) -> Tuple[int, int]:
        return (
            _int_in_range(request.get("page"), "page", 1, 1, 10_000),
            _int_in_range(request.get("perPage"), "perPage", default_per_page, 1, 100),
        )

    @staticmethod
    def parse_filters(request: Dict[str, Any]):
        """(FlightFilters | None, SortOrder | None) from the optional ``filters`` and ``sort`` fields."""
        filters = None
        if request.get("filters"):
            try:
                filters = FlightFilters(**request["filters"])
            except (ValidationError, TypeError) as e:
                raise FlightSearchError("Invalid filters", details={"filters": str(e)})
        order = None
        if request.get("sort"):
            try:
                order = SortOrder(request["sort"])
            except ValueError:
                raise FlightSearchError(f"Invalid sort order: {request['sort']}", details={"supported": [s.value for s in SortOrder]})
        return filters, order

    # ------------------------------------------------------------------
    # Dates, analytics, pricing, orders
    # ------------------------------------------------------------------

    async def cheapest_dates(self, origin: Optional[str], destination: Optional[str], **options: Any) -> List[Dict[str, Any]]:
        if not origin or not destination:
            raise FlightSearchError("origin and destination are required")
        origin = await self.resolve_location(origin.strip())
        destination = await self.resolve_location(destination.strip())
        if options.get("departure_date") and not is_iso_date(options["departure_date"]):
            raise FlightSearchError("Invalid date format. Use YYYY-MM-DD format")

        key = f"flights:dates:{origin}:{destination}:" + ":".join(f"{k}={v}" for k, v in sorted(options.items()) if v is not None)
        cached = self._cached(key)
        if cached is not None:
            return cached
        dates = await self.provider.get_cheapest_dates(origin, destination, **options)
        self._store(key, dates, self.config.cache.analytics_ttl_seconds)
        return dates

    async def _analytics(self, kind: str, origin: Optional[str], period: Optional[str]) -> Dict[str, Any]:
        if not origin:
            raise FlightSearchError("origin is required")
        origin = await self.resolve_location(origin.strip())
        period = period or default_analytics_period()
        if not re.match(r"^\d{4}-\d{2}$", period):
            raise FlightSearchError("period must use the YYYY-MM format")

        key = f"flights:analytics:{kind}:{origin}:{period}"
        cached = self._cached(key)
        if cached is None:
            if kind == "most-booked":
                cached = await self.provider.get_most_booked_destinations(origin, period)
            else:
                cached = await self.provider.get_most_traveled_destinations(origin, period)
            self._store(key, cached, self.config.cache.analytics_ttl_seconds)
        return {"type": kind, "origin": origin, "period": period, "destinations": cached}

    async def most_booked(self, origin: Optional[str], period: Optional[str] = None) -> Dict[str, Any]:
        return await self._analytics("most-booked", origin, period)

    async def most_traveled(self, origin: Optional[str], period: Optional[str] = None) -> Dict[str, Any]:
        return await self._analytics("most-traveled", origin, period)

    async def price_offer(self, offer: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not isinstance(offer, dict) or not offer:
            raise FlightSearchError("flightOffer is required")
        return await self.provider.price_offer(offer)

    async def get_order(self, order_id: Optional[str]) -> Dict[str, Any]:
        if not order_id:
            raise FlightSearchError("Order ID is required")
        return await self.provider.get_flight_order(order_id)
