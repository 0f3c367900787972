"""
Integrations layer.
This package contains all code used to communicate with external systems:
- The hosted auth backend (sign-in, sign-up, sessions, OAuth)
- The flight data/analytics API
- The hosted-checkout payment gateway
- The transactional email API

Key rule:
- Endpoints MUST NOT call external APIs directly.
- Endpoints call policy services, which call integration clients (under jetset/integrations/clients).
- MOCK clients are used in development and tests; REAL_HTTP clients when credentials are configured.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (jetset/api/main.py).
"""

from .contracts.interfaces import (
    AuthBackend,
    AuthSession,
    AuthUser,
    CheckoutSession,
    CheckoutSessionRequest,
    EmailMessage,
    EmailSender,
    FlightDataProvider,
    FlightSearchParams,
    GatewayOperation,
    GatewayResult,
    InquiryStatus,
    InquiryType,
    PaymentGateway,
    PaymentStatus,
    QuoteStatus,
    UserRole,
)
from .contracts.payments import (
    cancellation_operation,
    validate_checkout_request,
)

__all__ = [
    # interfaces
    "AuthBackend", "AuthSession", "AuthUser", "CheckoutSession",
    "CheckoutSessionRequest", "EmailMessage", "EmailSender",
    "FlightDataProvider", "FlightSearchParams", "GatewayOperation",
    "GatewayResult", "InquiryStatus", "InquiryType", "PaymentGateway",
    "PaymentStatus", "QuoteStatus", "UserRole",
    # payments
    "cancellation_operation", "validate_checkout_request",
]
