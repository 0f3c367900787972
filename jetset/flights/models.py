"""Normalized flight result shapes returned to the frontend."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Airline(BaseModel):
    code: str
    name: str
    logo: str = ""


class FlightPoint(BaseModel):
    airport: str
    terminal: str = "T1"
    at: str = ""          # ISO timestamp as returned upstream
    date: str = ""        # YYYY-MM-DD
    time: str = ""        # HH:MM


class StopDetail(BaseModel):
    airport: str
    duration: str = ""    # layover, "1h 20m"


class Price(BaseModel):
    amount: float
    total: str
    currency: str = "USD"
    base: Optional[str] = None


class BagAllowance(BaseModel):
    weight: Optional[float] = None
    weight_unit: Optional[str] = None
    quantity: Optional[int] = None

    @property
    def included(self) -> bool:
        return bool((self.weight or 0) > 0 or (self.quantity or 0) > 0)


class Baggage(BaseModel):
    checked: BagAllowance = Field(default_factory=BagAllowance)
    cabin: BagAllowance = Field(default_factory=BagAllowance)


class Segment(BaseModel):
    carrier_code: str
    flight_number: str
    departure: FlightPoint
    arrival: FlightPoint
    duration: str = ""
    aircraft: str = ""


class FlightResult(BaseModel):
    id: str
    airline: Airline
    flight_number: str
    departure: FlightPoint
    arrival: FlightPoint
    duration: str = ""
    duration_display: str = ""
    duration_minutes: int = 0
    stops: int = 0
    stop_details: List[StopDetail] = Field(default_factory=list)
    price: Price
    cabin: str = "ECONOMY"
    baggage: Baggage = Field(default_factory=Baggage)
    refundable: bool = False
    aircraft: str = "Unknown"
    segments: List[Segment] = Field(default_factory=list)
    original_offer: Dict[str, Any] = Field(default_factory=dict)


class Page(BaseModel):
    items: List[Any]
    total_items: int
    total_pages: int
    current_page: int
    start_index: int
    end_index: int
