"""
Real flight data/analytics client (Amadeus Self-Service APIs).

Used when AMADEUS_API_KEY / AMADEUS_API_SECRET are configured. An OAuth2
client-credentials token is fetched on demand and reused until it is close to
expiring.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from jetset.integrations.contracts.interfaces import FlightDataProvider, FlightSearchParams
from jetset.integrations.policy.response_wrappers import (
    IntegrationError,
    response_payload,
    simplify_cheapest_dates,
    simplify_destinations,
    simplify_locations,
    upstream_error_detail,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://test.api.amadeus.com"


class AmadeusFlightClient(FlightDataProvider):
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        token_ttl_seconds: int = 29 * 60,
    ) -> None:
        self.api_key = api_key or os.getenv("AMADEUS_API_KEY", "")
        self.api_secret = api_secret or os.getenv("AMADEUS_API_SECRET", "")
        self.base_url = (base_url or os.getenv("AMADEUS_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.token_ttl_seconds = token_ttl_seconds
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def source(self) -> str:
        return "amadeus-api"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds)

    # ------------------------------------------------------------------
    # Token handling
    # ------------------------------------------------------------------

    async def get_access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        if not self.api_key or not self.api_secret:
            raise IntegrationError("Missing flight data API credentials")

        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            url = f"{self.base_url}/v1/security/oauth2/token"
            form = {
                "grant_type": "client_credentials",
                "client_id": self.api_key,
                "client_secret": self.api_secret,
            }
            try:
                async with self._client() as client:
                    response = await client.post(url, data=form)
                    response.raise_for_status()
                    data = response.json()
            except httpx.HTTPStatusError as e:
                payload = response_payload(e.response)
                logger.error("Flight API token request failed: %s", e.response.status_code)
                raise IntegrationError(
                    upstream_error_detail(payload, "Failed to authenticate with flight data API"),
                    status_code=e.response.status_code,
                    payload=payload,
                ) from e
            except httpx.RequestError as e:
                logger.error("Request error connecting to flight data API: %s", e)
                raise IntegrationError(f"Flight data API unreachable: {e}") from e

            token = data.get("access_token")
            if not token:
                raise IntegrationError("Flight data API returned no access token", payload=data)

            self._token = token
            self._token_expires_at = time.monotonic() + self.token_ttl_seconds
            logger.info("Obtained flight data API access token")
            return token

    def clear_token(self) -> None:
        self._token = None
        self._token_expires_at = 0.0

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = await self.get_access_token()
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        clean_params = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                response = await client.request(method, url, params=clean_params, json=json, headers=headers)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                self.clear_token()
            payload = response_payload(e.response)
            detail = upstream_error_detail(payload, "Flight data API request failed")
            logger.error("HTTP error from flight data API on %s: %s %s", path, e.response.status_code, detail)
            raise IntegrationError(detail, status_code=e.response.status_code, payload=payload) from e
        except httpx.RequestError as e:
            logger.error("Request error connecting to flight data API: %s", e)
            raise IntegrationError(f"Flight data API unreachable: {e}") from e

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def search_flights(self, params: FlightSearchParams) -> Dict[str, Any]:
        query = {
            "originLocationCode": params.origin,
            "destinationLocationCode": params.destination,
            "departureDate": params.departure_date,
            "returnDate": params.return_date,
            "adults": params.adults,
            "travelClass": params.travel_class,
            "max": params.max_results,
            "currencyCode": params.currency,
            "nonStop": "true" if params.non_stop else None,
        }
        logger.info("Searching flights %s -> %s on %s", params.origin, params.destination, params.departure_date)
        data = await self._request("GET", "/v2/shopping/flight-offers", params=query)
        return {
            "data": data.get("data") or [],
            "dictionaries": data.get("dictionaries") or {},
            "meta": data.get("meta") or {},
        }

    async def search_locations(self, keyword: str, sub_type: str = "CITY,AIRPORT", limit: int = 10, country_code: Optional[str] = None) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/v1/reference-data/locations",
            params={
                "keyword": keyword,
                "subType": sub_type,
                "page[limit]": limit,
                "view": "LIGHT",
                "sort": "analytics.travelers.score",
                "countryCode": country_code,
            },
        )
        return simplify_locations(data)

    async def get_cheapest_dates(self, origin: str, destination: str, **options: Any) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/v1/shopping/flight-dates",
            params={
                "origin": origin,
                "destination": destination,
                "departureDate": options.get("departure_date"),
                "oneWay": str(bool(options.get("one_way", False))).lower(),
                "duration": options.get("duration"),
                "nonStop": str(bool(options.get("non_stop", False))).lower(),
                "viewBy": options.get("view_by") or "DATE",
            },
        )
        return simplify_cheapest_dates(data)

    async def get_most_booked_destinations(self, origin: str, period: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/v1/travel/analytics/air-traffic/booked",
            params={"originCityCode": origin, "period": period, "max": 10, "sort": "analytics.flights.score"},
        )
        return simplify_destinations(data)

    async def get_most_traveled_destinations(self, origin: str, period: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/v1/travel/analytics/air-traffic/traveled",
            params={"originCityCode": origin, "period": period, "max": 10, "sort": "analytics.travelers.score"},
        )
        return simplify_destinations(data)

    async def price_offer(self, offer: Dict[str, Any]) -> Dict[str, Any]:
        body = {"data": {"type": "flight-offers-pricing", "flightOffers": [offer]}}
        data = await self._request("POST", "/v1/shopping/flight-offers/pricing", json=body)
        return data.get("data") or {}

    async def get_flight_order(self, order_id: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/v1/booking/flight-orders/{quote(order_id, safe='')}")
        return data.get("data") or {}
