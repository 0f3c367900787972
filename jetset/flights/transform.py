"""
Normalize raw flight offers into FlightResult objects.

Raw offers carry ``itineraries[].segments[]``, ``price`` and
``travelerPricings[].fareDetailsBySegment[]``; carrier and aircraft names come
from the response-level ``dictionaries``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from jetset.flights.filters import parse_iso_duration
from jetset.flights.models import (
    Airline,
    BagAllowance,
    Baggage,
    FlightPoint,
    FlightResult,
    Price,
    Segment,
    StopDetail,
)

logger = logging.getLogger(__name__)

AIRLINE_LOGO_URL = "https://pics.avs.io/200/80/{code}.png"


def format_duration(minutes: int) -> str:
    """165 -> '2h 45m'."""
    if minutes <= 0:
        return "0h 0m"
    return f"{minutes // 60}h {minutes % 60}m"


def _point(raw: Dict[str, Any]) -> FlightPoint:
    at = str(raw.get("at") or "")
    return FlightPoint(
        airport=str(raw["iataCode"]),
        terminal=str(raw.get("terminal") or "T1"),
        at=at,
        date=at[:10],
        time=at[11:16],
    )


def _layover(arrival_at: str, next_departure_at: str) -> str:
    try:
        delta = datetime.fromisoformat(next_departure_at) - datetime.fromisoformat(arrival_at)
    except ValueError:
        return ""
    return format_duration(int(delta.total_seconds() // 60))


def _bags(raw: Optional[Dict[str, Any]]) -> BagAllowance:
    if not isinstance(raw, dict):
        return BagAllowance()
    return BagAllowance(
        weight=raw.get("weight"),
        weight_unit=raw.get("weightUnit"),
        quantity=raw.get("quantity"),
    )


def transform_offer(offer: Dict[str, Any], dictionaries: Optional[Dict[str, Any]] = None) -> FlightResult:
    """Transform one offer; raises KeyError/IndexError/ValueError when it is malformed."""
    dictionaries = dictionaries or {}
    carriers = dictionaries.get("carriers") or {}
    aircraft_names = dictionaries.get("aircraft") or {}

    itinerary = offer["itineraries"][0]
    raw_segments = itinerary["segments"]
    if not raw_segments:
        raise ValueError("offer has no segments")
    first, last = raw_segments[0], raw_segments[-1]

    carrier_code = str(first["carrierCode"])
    aircraft_code = (first.get("aircraft") or {}).get("code")

    segments = [
        Segment(
            carrier_code=str(seg["carrierCode"]),
            flight_number=f"{seg['carrierCode']}-{seg.get('number', '')}",
            departure=_point(seg["departure"]),
            arrival=_point(seg["arrival"]),
            duration=seg.get("duration") or "",
            aircraft=aircraft_names.get((seg.get("aircraft") or {}).get("code"), ""),
        )
        for seg in raw_segments
    ]

    stop_details = [
        StopDetail(
            airport=str(raw_segments[i]["arrival"]["iataCode"]),
            duration=_layover(raw_segments[i]["arrival"].get("at", ""), raw_segments[i + 1]["departure"].get("at", "")),
        )
        for i in range(len(raw_segments) - 1)
    ]

    duration = itinerary.get("duration") or ""
    minutes = parse_iso_duration(duration)

    price = offer["price"]
    total = str(price["total"])

    traveler_pricings = offer.get("travelerPricings") or [{}]
    first_pricing = traveler_pricings[0] or {}
    fare_details = (first_pricing.get("fareDetailsBySegment") or [{}])[0] or {}

    return FlightResult(
        id=str(offer["id"]),
        airline=Airline(
            code=carrier_code,
            name=carriers.get(carrier_code, carrier_code),
            logo=AIRLINE_LOGO_URL.format(code=carrier_code),
        ),
        flight_number=f"{carrier_code}-{first.get('number', '')}",
        departure=_point(first["departure"]),
        arrival=_point(last["arrival"]),
        duration=duration,
        duration_display=format_duration(minutes),
        duration_minutes=minutes,
        stops=len(raw_segments) - 1,
        stop_details=stop_details,
        price=Price(amount=float(total), total=total, currency=price.get("currency") or "USD", base=price.get("base")),
        cabin=fare_details.get("cabin") or "ECONOMY",
        baggage=Baggage(
            checked=_bags(fare_details.get("includedCheckedBags")),
            cabin=_bags(fare_details.get("includedCabinBags")),
        ),
        refundable=bool((first_pricing.get("price") or {}).get("refundableTaxes")),
        aircraft=aircraft_names.get(aircraft_code) or aircraft_code or "Unknown",
        segments=segments,
        original_offer=offer,
    )


def transform_offers(response: Dict[str, Any]) -> List[FlightResult]:
    """Transform every offer in a search response, skipping malformed ones."""
    dictionaries = response.get("dictionaries") or {}
    results: List[FlightResult] = []
    for offer in response.get("data") or []:
        try:
            results.append(transform_offer(offer, dictionaries))
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            logger.warning("Skipping malformed flight offer %s: %s", offer.get("id") if isinstance(offer, dict) else "?", e)
    return results
