"""
Flight result filtering, sorting and pagination.

Works on already-normalized FlightResult objects. All filter predicates are
ANDed; sorting is stable so equal keys keep their upstream order.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Iterable, List, Literal, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel, Field, field_validator

from jetset.flights.models import FlightResult, Page

T = TypeVar("T")

DEFAULT_PRICE_RANGE: Tuple[float, float] = (0, 20000)

# Departure-hour buckets, [start, end)
TIME_BUCKETS = {
    "early_morning": (0, 6),
    "morning": (6, 12),
    "afternoon": (12, 18),
    "evening": (18, 24),
}

_ISO_DURATION_RE = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$")


class SortOrder(str, Enum):
    PRICE = "price"
    PRICE_DESC = "-price"
    DURATION = "duration"
    DEPARTURE = "departure"
    ARRIVAL = "arrival"


class FlightFilters(BaseModel):
    price: Tuple[float, float] = DEFAULT_PRICE_RANGE
    stops: Literal["any", "0", "1", "2+"] = "any"
    airlines: List[str] = Field(default_factory=list)
    departure_time: Literal["any", "early_morning", "morning", "afternoon", "evening"] = "any"
    baggage: Literal["any", "checked", "cabin_only"] = "any"
    refundable: Optional[bool] = None

    @field_validator("stops", mode="before")
    @classmethod
    def _stops_as_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("price")
    @classmethod
    def _ordered_range(cls, v):
        low, high = v
        if low > high:
            raise ValueError("price range minimum must not exceed maximum")
        return v


def parse_iso_duration(value: Optional[str]) -> int:
    """ISO-8601 duration to whole minutes. 'PT2H45M' -> 165; invalid -> 0."""
    if not value or not isinstance(value, str):
        return 0
    match = _ISO_DURATION_RE.match(value.strip().upper())
    if not match:
        return 0
    days, hours, minutes, seconds = match.groups()
    total = int(days or 0) * 1440 + int(hours or 0) * 60 + int(minutes or 0)
    return total + int(float(seconds or 0) // 60)


def _departure_hour(flight: FlightResult) -> Optional[int]:
    clock = flight.departure.time or flight.departure.at[11:16]
    try:
        return int(clock.split(":")[0])
    except (ValueError, IndexError):
        return None


def _matches(flight: FlightResult, filters: FlightFilters) -> bool:
    low, high = filters.price
    if not low <= flight.price.amount <= high:
        return False

    if filters.stops == "2+":
        if flight.stops < 2:
            return False
    elif filters.stops != "any" and flight.stops != int(filters.stops):
        return False

    if filters.airlines:
        wanted = {a.strip().lower() for a in filters.airlines}
        if flight.airline.name.lower() not in wanted and flight.airline.code.lower() not in wanted:
            return False

    if filters.departure_time != "any":
        hour = _departure_hour(flight)
        start, end = TIME_BUCKETS[filters.departure_time]
        if hour is None or not start <= hour < end:
            return False

    if filters.baggage == "checked" and not flight.baggage.checked.included:
        return False
    if filters.baggage == "cabin_only" and flight.baggage.checked.included:
        return False

    if filters.refundable is not None and flight.refundable != filters.refundable:
        return False

    return True


def filter_flights(flights: Iterable[FlightResult], filters: Optional[FlightFilters] = None) -> List[FlightResult]:
    filters = filters or FlightFilters()
    return [f for f in flights if _matches(f, filters)]


def sort_flights(flights: Iterable[FlightResult], order: Optional[SortOrder] = None) -> List[FlightResult]:
    flights = list(flights)
    if order is None:
        return flights
    order = SortOrder(order)
    if order is SortOrder.PRICE:
        return sorted(flights, key=lambda f: f.price.amount)
    if order is SortOrder.PRICE_DESC:
        return sorted(flights, key=lambda f: f.price.amount, reverse=True)
    if order is SortOrder.DURATION:
        return sorted(flights, key=lambda f: f.duration_minutes or parse_iso_duration(f.duration))
    if order is SortOrder.DEPARTURE:
        return sorted(flights, key=lambda f: f.departure.at)
    return sorted(flights, key=lambda f: f.arrival.at)


def apply_filters(flights: Iterable[FlightResult], filters: Optional[FlightFilters] = None, order: Optional[SortOrder] = None) -> List[FlightResult]:
    return sort_flights(filter_flights(flights, filters), order)


def paginate(items: Sequence[T], page: int = 1, per_page: int = 10) -> Page:
    """
    Slice one page out of ``items``.

    ``page`` is clamped to [1, total_pages]; an empty list still has one
    (empty) page. ``start_index`` is inclusive and ``end_index`` exclusive.
    """
    per_page = max(1, int(per_page))
    total = len(items)
    total_pages = max(1, math.ceil(total / per_page))
    current = min(max(1, int(page)), total_pages)
    start = (current - 1) * per_page
    end = min(start + per_page, total)
    return Page(
        items=list(items[start:end]),
        total_items=total,
        total_pages=total_pages,
        current_page=current,
        start_index=start,
        end_index=end,
    )


def available_airlines(flights: Iterable[FlightResult]) -> List[str]:
    return sorted({f.airline.name for f in flights if f.airline.name})


def count_active_filters(filters: FlightFilters) -> int:
    active = 0
    if tuple(filters.price) != DEFAULT_PRICE_RANGE:
        active += 1
    if filters.stops != "any":
        active += 1
    if filters.airlines:
        active += 1
    if filters.departure_time != "any":
        active += 1
    if filters.baggage != "any":
        active += 1
    if filters.refundable is not None:
        active += 1
    return active
