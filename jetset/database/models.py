"""
SQLAlchemy models for users, inquiries, quotes, payments, booking info and
newsletter subscriptions.
Used by postgres_real when DATABASE_URL is set (hosted backend's Postgres).
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4
from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    role: Mapped[str] = mapped_column(String(16), default="user", nullable=False)
    date_of_birth: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD
    address: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    preferences: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Inquiry(Base):
    __tablename__ = "inquiries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    inquiry_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(16), default="normal", nullable=False)

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    customer_country: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    preferred_contact_method: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    budget_range: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    special_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Flight
    flight_origin: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    flight_destination: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    flight_departure_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    flight_return_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    flight_passengers: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    flight_class: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Hotel
    hotel_destination: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    hotel_checkin_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    hotel_checkout_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    hotel_rooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    hotel_guests: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    hotel_room_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Cruise
    cruise_destination: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cruise_departure_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    cruise_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cruise_passengers: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cruise_cabin_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Package
    package_destination: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    package_start_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    package_end_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    package_travelers: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    package_budget_range: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    package_interests: Mapped[list] = mapped_column(JSON, default=list, nullable=False)  # list[str]

    # General
    inquiry_subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    inquiry_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_admin: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Quote(Base):
    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    inquiry_id: Mapped[str] = mapped_column(String(36), ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    admin_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    quote_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    breakdown: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    terms_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    validity_days: Mapped[int] = mapped_column(Integer, default=7, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(String(16), default="unpaid", nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    quote_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    inquiry_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    payment_status: Mapped[str] = mapped_column(String(24), default="pending", nullable=False, index=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    arc_session_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    success_indicator: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    arc_order_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    arc_transaction_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    return_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancel_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class BookingInfo(Base):
    __tablename__ = "booking_info"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    quote_id: Mapped[str] = mapped_column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), unique=True, nullable=False)
    inquiry_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    date_of_birth: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    nationality: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    passport_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    passport_expiry_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    billing_address: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    terms_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="incomplete", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    source: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# Column names exposed to callers per table (payments.metadata is mapped as payment_metadata)
def row_to_dict(row: Base) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for column in row.__table__.columns:
        attr = "payment_metadata" if isinstance(row, Payment) and column.name == "metadata" else column.name
        data[column.name] = getattr(row, attr)
    return data

