"""Flight search, analytics and airport lookup endpoints."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from jetset.api.dependencies import get_config, get_flight_service
from jetset.flights.filters import apply_filters, available_airlines, paginate
from jetset.flights.models import FlightResult
from jetset.flights.service import FlightSearchError, FlightService
from jetset.integrations.policy.response_wrappers import IntegrationError
from jetset.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

api = APIRouter()
flights_api = api
airports_api = APIRouter()


def _upstream_failure(error: str, exc: Exception) -> JSONResponse:
    logger.error("%s: %s", error, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": error, "details": str(exc)})


def _rejected(exc: FlightSearchError) -> JSONResponse:
    return JSONResponse(status_code=400, content=exc.to_payload())


@api.post("/search")
async def search_flights(request: Dict[str, Any] = Body(...), service: FlightService = Depends(get_flight_service)):
    try:
        return await service.search(request)
    except FlightSearchError as e:
        return _rejected(e)
    except IntegrationError as e:
        return _upstream_failure("Flight search failed", e)


@api.post("/filter")
async def filter_flights(
    request: Dict[str, Any] = Body(...),
    config: AppConfig = Depends(get_config),
):
    """Filter/sort/paginate a list of already-normalized flights."""
    try:
        flights: List[FlightResult] = [FlightResult(**f) for f in request.get("flights") or []]
        filters, order = FlightService.parse_filters(request)
        paging = FlightService.page_params(request, config.pagination.flights_per_page)
    except (ValidationError, TypeError) as e:
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid flights", "details": str(e)})
    except FlightSearchError as e:
        return _rejected(e)

    result = apply_filters(flights, filters, order)
    meta: Dict[str, Any] = {"totalResults": len(flights), "resultCount": len(result), "airlines": available_airlines(flights)}
    page = paginate(result, *paging)
    meta["pagination"] = page.model_dump(exclude={"items"})
    return {"success": True, "data": [f.model_dump() for f in page.items], "meta": meta}


@api.get("/cheapest-dates")
async def cheapest_dates(
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    departureDate: Optional[str] = None,
    oneWay: Optional[bool] = None,
    service: FlightService = Depends(get_flight_service),
):
    try:
        dates = await service.cheapest_dates(origin, destination, departure_date=departureDate, one_way=oneWay)
    except FlightSearchError as e:
        return _rejected(e)
    except IntegrationError as e:
        return _upstream_failure("Failed to fetch cheapest dates", e)
    return {"success": True, "data": dates, "meta": {"count": len(dates)}}


@api.get("/analytics")
async def destination_analytics(
    type: str = Query("most-booked"),
    origin: Optional[str] = None,
    period: Optional[str] = None,
    service: FlightService = Depends(get_flight_service),
):
    if type not in ("most-booked", "most-traveled"):
        return JSONResponse(status_code=400, content={"success": False, "error": "type must be most-booked or most-traveled"})
    try:
        if type == "most-booked":
            data = await service.most_booked(origin, period)
        else:
            data = await service.most_traveled(origin, period)
    except FlightSearchError as e:
        return _rejected(e)
    except IntegrationError as e:
        return _upstream_failure("Failed to fetch destination analytics", e)
    return {"success": True, "data": data}


@api.post("/price")
async def price_offer(request: Dict[str, Any] = Body(...), service: FlightService = Depends(get_flight_service)):
    try:
        priced = await service.price_offer(request.get("flightOffer") or request.get("offer"))
    except FlightSearchError as e:
        return _rejected(e)
    except IntegrationError as e:
        return _upstream_failure("Failed to price flight offer", e)
    return {"success": True, "data": priced}


@api.get("/order/{order_id}")
async def flight_order(order_id: str, service: FlightService = Depends(get_flight_service)):
    try:
        order = await service.get_order(order_id)
    except FlightSearchError as e:
        return _rejected(e)
    except IntegrationError as e:
        if e.status_code == 404:
            return JSONResponse(status_code=404, content={"success": False, "error": "Flight order not found"})
        return _upstream_failure("Failed to retrieve flight order", e)
    return {"success": True, "data": order}


@airports_api.get("/search")
async def search_airports(
    keyword: Optional[str] = None,
    limit: int = 10,
    countryCode: Optional[str] = None,
    service: FlightService = Depends(get_flight_service),
):
    try:
        locations = await service.search_airports(keyword, limit=limit, country_code=countryCode)
    except FlightSearchError as e:
        return _rejected(e)
    except IntegrationError as e:
        return _upstream_failure("Airport search failed", e)
    return {"success": True, "data": locations, "meta": {"count": len(locations), "keyword": keyword}}
