"""
Payment service for the hosted-checkout gateway.

Every action of the /api/payments router is a method here. Methods return the
JSON body of a successful response and raise PaymentActionError for anything
the caller should see as an HTTP error. The callback is the exception: it
always resolves to a redirect URL on the frontend.
"""

import logging
import os
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from jetset.integrations.contracts.interfaces import (
    CheckoutSessionRequest,
    GatewayOperation,
    InquiryStatus,
    PaymentGateway,
    PaymentStatus,
    QuoteStatus,
)
from jetset.integrations.contracts.payments import (
    cancellation_operation,
    missing_fields,
    parse_positive_amount,
    status_after_refund,
    validate_checkout_request,
)
from jetset.integrations.policy.response_wrappers import (
    IntegrationError,
    IntegrationResponseError,
    OrderOutcome,
    map_payment_status,
    normalize_checkout_session,
    summarize_order,
    transaction_succeeded,
)
from jetset.utils.config_loader import AppConfig
from jetset.utils.country_codes import normalize_billing_address

logger = logging.getLogger(__name__)

PREMIUM_CABIN_MARKERS = ("PREMIUM", "BUSINESS", "FIRST")


class PaymentActionError(Exception):
    """An action failed in a way the caller sees as an HTTP error."""

    def __init__(self, status_code: int, payload: Dict[str, Any]) -> None:
        super().__init__(payload.get("error") or "Payment action failed")
        self.status_code = status_code
        self.payload = {"success": False, **payload}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _millis() -> int:
    return int(time.time() * 1000)


def _split_name(full_name: Optional[str]) -> List[str]:
    parts = (full_name or "Guest User").split(" ")
    first = parts[0] or "Guest"
    last = " ".join(parts[1:]) or "User"
    return [first, last]


def _billing(address: Any) -> Optional[Dict[str, str]]:
    if not address:
        return None
    try:
        return normalize_billing_address(address)
    except ValueError as e:
        raise PaymentActionError(400, {"error": "Invalid billing address", "details": str(e)}) from e


# ---------------------------------------------------------------------------
# Airline data (card-brand interchange fields for flight bookings)
# ---------------------------------------------------------------------------

def _passenger_name(value: Any) -> str:
    return re.sub(r"[^A-Z\s]", "", str(value or "").upper())[:20]


def _clock(iso_value: Optional[str]) -> str:
    if not iso_value or "T" not in iso_value:
        return "00:00"
    return iso_value.split("T", 1)[1][:5] or "00:00"


def _class_of_service(cabin: Optional[str]) -> str:
    value = (cabin or "").upper()
    if value == "W" or any(marker in value for marker in PREMIUM_CABIN_MARKERS):
        return "W"
    return "Y"


def build_airline_data(
    *,
    amount: float,
    order_id: str,
    customer_first_name: str,
    customer_last_name: str,
    flight_data: Optional[Dict[str, Any]] = None,
    booking_data: Optional[Dict[str, Any]] = None,
    travel_agent_code: str = "JETSET001",
    travel_agent_name: str = "Jetsetters",
    today: Optional[str] = None,
    now_millis: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Airline block of an INITIATE_CHECKOUT request.

    Legs come from the selected flight's first itinerary (or its flat segment
    list); a booking with no segments gets one placeholder leg. Passengers come
    from the booking's traveler list, falling back to the customer's name.
    """
    booking_data = booking_data or {}
    flight = flight_data or booking_data.get("selectedFlight") or booking_data.get("flightData") or {}
    today = today or _now().date().isoformat()
    now_millis = now_millis if now_millis is not None else _millis()

    itineraries = flight.get("itineraries") if isinstance(flight.get("itineraries"), list) else []
    itinerary = itineraries[0] if itineraries else (flight.get("itinerary") or {})
    if isinstance(itinerary.get("segments"), list):
        segments = itinerary["segments"]
    elif isinstance(flight.get("segments"), list):
        segments = flight["segments"]
    else:
        segments = []

    origin = str(flight.get("origin") or booking_data.get("origin") or "XXX")
    destination = str(flight.get("destination") or booking_data.get("destination") or "XXX")
    default_cabin = flight.get("cabin") or booking_data.get("cabinClass")

    legs: List[Dict[str, Any]] = []
    for index, segment in enumerate(segments):
        departure = segment.get("departure") or {}
        arrival = segment.get("arrival") or {}
        departure_at = departure.get("at")
        legs.append(
            {
                "carrierCode": "XD",
                "classOfService": _class_of_service(segment.get("cabin") or default_cabin),
                "departureAirport": str(departure.get("iataCode") or departure.get("airport") or origin)[:3],
                "departureDate": (departure_at or today).split("T")[0],
                "departureTime": _clock(departure_at),
                "destinationAirport": str(arrival.get("iataCode") or arrival.get("airport") or destination)[:3],
                "flightNumber": str(segment.get("number") or segment.get("flightNumber") or index + 1)[:6],
            }
        )
    if not legs:
        legs.append(
            {
                "carrierCode": "XD",
                "classOfService": "Y",
                "departureAirport": origin[:3],
                "departureDate": today,
                "departureTime": "00:00",
                "destinationAirport": destination[:3],
                "flightNumber": "001",
            }
        )

    travelers = booking_data.get("passengerData") or booking_data.get("travelers") or []
    if travelers:
        passengers = [
            {
                "firstName": _passenger_name(p.get("firstName") or (p.get("name") or {}).get("firstName")),
                "lastName": _passenger_name(p.get("lastName") or (p.get("name") or {}).get("lastName")),
            }
            for p in travelers
            if isinstance(p, dict)
        ]
    else:
        passengers = [
            {
                "firstName": _passenger_name(customer_first_name or "GUEST"),
                "lastName": _passenger_name(customer_last_name or "PASSENGER"),
            }
        ]

    reference = str(flight.get("pnr") or flight.get("bookingReference") or order_id or "")[:6].upper() or "JETSET"

    return {
        "bookingReference": reference,
        "documentType": "MCO",
        "itinerary": {"leg": legs, "numberInParty": str(len(passengers))},
        "passenger": passengers,
        "ticket": {
            "issue": {
                "carrierCode": legs[0]["carrierCode"],
                "carrierName": "JETSETTERS",
                "city": "ONLINE",
                "country": "USA",
                "date": today,
                "travelAgentCode": travel_agent_code,
                "travelAgentName": re.sub(r"[^A-Z0-9\s]", "", travel_agent_name.upper())[:25],
            },
            "ticketNumber": f"889{str(now_millis)[-10:]}"[:13],
            "totalFare": f"{float(amount):.2f}",
            "totalFees": "0.00",
            "totalTaxes": "0.00",
        },
    }


class PaymentService:
    """
    Orchestrates gateway calls and the payment/quote/inquiry records they touch.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        db,
        config: AppConfig,
        *,
        enable_airline_data: Optional[bool] = None,
        integrations_mode: str = "mock",
    ) -> None:
        self.gateway = gateway
        self.db = db
        self.config = config
        if enable_airline_data is None:
            enable_airline_data = os.getenv("ARC_ENABLE_AIRLINE_DATA", "").strip().lower() == "true"
        self.enable_airline_data = enable_airline_data
        self.integrations_mode = integrations_mode

    @property
    def frontend_url(self) -> str:
        return (os.getenv("FRONTEND_URL") or self.config.frontend_url).rstrip("/")

    def _redirect(self, path: str, **params: Any) -> str:
        query = urlencode({k: v for k, v in params.items() if v is not None}, quote_via=quote)
        return f"{self.frontend_url}{path}" + (f"?{query}" if query else "")

    def _gateway_failure(self, error: str, exc: IntegrationError) -> PaymentActionError:
        logger.error("%s: %s", error, exc)
        return PaymentActionError(500, {"error": error, "details": str(exc)})

    # ------------------------------------------------------------------
    # Quote checkout
    # ------------------------------------------------------------------

    async def initiate_payment(self, body: Dict[str, Any]) -> Dict[str, Any]:
        quote_id = body.get("quote_id")
        if not quote_id:
            raise PaymentActionError(400, {"error": "quote_id is required"})

        quote_row = self.db.get_quote(quote_id)
        if not quote_row:
            raise PaymentActionError(404, {"error": "Quote not found"})
        if quote_row.get("payment_status") == "paid":
            raise PaymentActionError(400, {"error": "Quote has already been paid"})

        inquiry = self.db.get_inquiry(quote_row.get("inquiry_id")) or {}
        inquiry_id = quote_row.get("inquiry_id")
        billing_address = _billing(body.get("billing_address"))

        return_url = body.get("return_url") or self._redirect("/payment/callback", quote_id=quote_id, inquiry_id=inquiry_id)
        cancel_url = body.get("cancel_url") or self._redirect(f"/inquiry/{inquiry_id}", payment="cancelled")

        try:
            payment = self.db.create_payment(
                {
                    "quote_id": quote_id,
                    "inquiry_id": inquiry_id,
                    "amount": quote_row["total_amount"],
                    "currency": quote_row.get("currency") or "USD",
                    "payment_status": PaymentStatus.PENDING.value,
                    "customer_email": inquiry.get("customer_email"),
                    "customer_name": inquiry.get("customer_name"),
                    "return_url": return_url,
                    "cancel_url": cancel_url,
                }
            )
        except Exception as e:
            logger.exception("Payment record creation failed for quote %s", quote_id)
            raise PaymentActionError(500, {"error": "Failed to create payment record", "details": str(e)}) from e

        first_name, last_name = _split_name(inquiry.get("customer_name"))
        title = quote_row.get("title") or "Travel Booking"
        number = quote_row.get("quote_number") or str(quote_id)[-8:]
        request = CheckoutSessionRequest(
            order_id=payment["id"],
            amount=float(quote_row["total_amount"]),
            currency=payment["currency"],
            description=f"Quote {number} - {title}",
            return_url=return_url,
            cancel_url=cancel_url,
            merchant_name=self.config.gateway.merchant_name,
            reference=quote_row.get("quote_number") or payment["id"],
            customer_email=inquiry.get("customer_email"),
            customer_first_name=first_name,
            customer_last_name=last_name,
            customer_phone=inquiry.get("customer_phone"),
            billing_address=billing_address,
        )
        errors = validate_checkout_request(request)
        if errors:
            self.db.update_payment(payment["id"], {"payment_status": PaymentStatus.FAILED.value, "failure_reason": errors[0]})
            raise PaymentActionError(400, {"error": "Invalid payment request", "details": errors})

        try:
            session = await self.gateway.create_checkout_session(request)
        except (IntegrationError, IntegrationResponseError) as e:
            self.db.update_payment(payment["id"], {"payment_status": PaymentStatus.FAILED.value, "failure_reason": str(e)[:255]})
            logger.error("Payment initiation failed for quote %s: %s", quote_id, e)
            raise PaymentActionError(500, {"error": "Payment initiation failed", "details": str(e)}) from e

        self.db.update_payment(
            payment["id"],
            {
                "arc_session_id": session.session_id,
                "success_indicator": session.success_indicator,
                "arc_order_id": payment["id"],
            },
        )
        logger.info("Checkout session %s created for payment %s", session.session_id, payment["id"])

        return {
            "success": True,
            "sessionId": session.session_id,
            "successIndicator": session.success_indicator,
            "merchantId": self.gateway.merchant_id,
            "paymentId": payment["id"],
            "paymentPageUrl": session.checkout_url,
            "checkoutUrl": session.checkout_url,
            "redirectMethod": "GET",
        }

    async def handle_callback(self, params: Dict[str, Any]) -> str:
        """Settle a returning checkout and pick the frontend page to land on."""
        try:
            return await self._settle_callback(params)
        except Exception:
            logger.exception("Payment callback failed")
            return self._redirect("/payment/failed", error="processing_error")

    async def _settle_callback(self, params: Dict[str, Any]) -> str:
        result_indicator = params.get("resultIndicator")
        session_id = params.get("sessionId") or params.get("session.id")
        quote_id = params.get("quote_id")
        inquiry_id = params.get("inquiry_id")
        order_id = params.get("orderId")

        if session_id:
            payment = self.db.get_payment_by_session(session_id)
        elif quote_id:
            payment = self.db.get_latest_payment_for_quote(quote_id)
        elif order_id:
            payment = self.db.get_payment_by_order(order_id)
        else:
            payment = None

        if not payment:
            logger.warning("Payment not found for callback (session=%s quote=%s order=%s)", session_id, quote_id, order_id)
            if inquiry_id:
                return self._redirect(f"/inquiry/{inquiry_id}", payment="failed", error="invalid_session")
            return self._redirect("/payment/failed", error="invalid_session")

        inquiry_id = payment.get("inquiry_id") or inquiry_id
        indicator = payment.get("success_indicator")
        if result_indicator and indicator and result_indicator != indicator:
            logger.warning("Result indicator mismatch for payment %s", payment["id"])
            if inquiry_id:
                return self._redirect(f"/inquiry/{inquiry_id}", payment="failed", error="invalid_indicator")
            return self._redirect("/payment/failed", error="invalid_indicator", paymentId=payment["id"])

        gateway_order_id = payment.get("arc_order_id") or payment["id"]
        try:
            order = await self.gateway.retrieve_order(gateway_order_id)
        except IntegrationError as e:
            logger.error("Failed to get order status for %s: %s", gateway_order_id, e)
            order = {}
        outcome = summarize_order(order)
        logger.info(
            "Callback outcome for payment %s: result=%s gatewayCode=%s status=%s",
            payment["id"], outcome.result, outcome.gateway_code, outcome.order_status,
        )

        if outcome.is_success:
            self._mark_paid(payment, outcome)
            return self._redirect("/payment/success", paymentId=payment["id"])

        if outcome.is_pending:
            if outcome.needs_pay and outcome.authentication_transaction_id:
                paid = await self._pay_authenticated(payment, gateway_order_id, outcome)
                if paid:
                    return self._redirect("/payment/success", paymentId=payment["id"])
            self.db.update_payment(payment["id"], {"payment_status": PaymentStatus.PENDING.value, "metadata": {"transaction": order}})
            if inquiry_id:
                return self._redirect(f"/inquiry/{inquiry_id}", payment="pending")
            return self._redirect("/payment/pending", paymentId=payment["id"])

        reason = outcome.failure_reason
        self.db.update_payment(
            payment["id"],
            {
                "payment_status": PaymentStatus.FAILED.value,
                "failure_reason": reason,
                "metadata": {"transaction": order, "failureReason": reason},
            },
        )
        logger.info("Payment %s failed: %s", payment["id"], reason)
        return self._redirect("/payment/failed", reason=reason, paymentId=payment["id"])

    async def _pay_authenticated(self, payment: Dict[str, Any], order_id: str, outcome: OrderOutcome) -> bool:
        body = {
            "authentication": {"transactionId": outcome.authentication_transaction_id},
            "session": {"id": payment.get("arc_session_id")},
            "transaction": {"reference": f"PAY-{payment['id']}"},
        }
        try:
            response = await self.gateway.pay(order_id, f"pay-{_millis()}", body)
        except IntegrationError as e:
            logger.error("PAY after authentication failed for payment %s: %s", payment["id"], e)
            return False
        if not transaction_succeeded(response):
            return False
        settled = summarize_order({**outcome.raw, "transaction": [response], "status": (response.get("order") or {}).get("status")})
        self._mark_paid(payment, settled)
        return True

    def _mark_paid(self, payment: Dict[str, Any], outcome: OrderOutcome) -> None:
        now = _now()
        self.db.update_payment(
            payment["id"],
            {
                "payment_status": PaymentStatus.COMPLETED.value,
                "completed_at": now,
                "arc_transaction_id": outcome.transaction_id,
                "payment_method": outcome.card_brand,
                "metadata": {"transaction": outcome.raw},
            },
        )
        if payment.get("quote_id"):
            self.db.update_quote(
                payment["quote_id"],
                {"status": QuoteStatus.PAID.value, "payment_status": "paid", "paid_at": now},
            )
        if payment.get("inquiry_id"):
            self.db.update_inquiry(payment["inquiry_id"], {"status": InquiryStatus.PAID.value})
        logger.info("Payment %s completed", payment["id"])

    def get_payment_details(self, payment_id: Optional[str], quote_id: Optional[str]) -> Dict[str, Any]:
        if not payment_id and not quote_id:
            raise PaymentActionError(400, {"error": "paymentId or quoteId required"})
        payment = self.db.get_payment(payment_id) if payment_id else self.db.get_latest_payment_for_quote(quote_id)
        if not payment:
            raise PaymentActionError(404, {"error": "Payment not found"})
        payment["quote"] = self.db.get_quote(payment.get("quote_id"))
        payment["inquiry"] = self.db.get_inquiry(payment.get("inquiry_id"))
        return {"success": True, "payment": payment}

    # ------------------------------------------------------------------
    # Gateway sessions & direct bookings
    # ------------------------------------------------------------------

    async def gateway_status(self) -> Dict[str, Any]:
        try:
            info = await self.gateway.gateway_information()
        except IntegrationError as e:
            raise self._gateway_failure("Failed to check gateway status", e) from e
        return {
            "success": True,
            "gatewayStatus": info,
            "status": info.get("status", "UNKNOWN"),
            "message": "Gateway is operational",
        }

    async def create_session(self) -> Dict[str, Any]:
        try:
            raw = await self.gateway.create_session()
        except IntegrationError as e:
            raise self._gateway_failure("Failed to create session", e) from e
        return {"success": True, "sessionData": raw, "message": "Payment session created successfully"}

    def create_order(self, body: Dict[str, Any]) -> Dict[str, Any]:
        missing = missing_fields(body, "amount", "orderId", "customerEmail")
        if missing:
            raise PaymentActionError(400, {"error": f"Missing required fields: {', '.join(missing)}"})
        amount = parse_positive_amount(body.get("amount"))
        if amount is None:
            raise PaymentActionError(400, {"error": "Invalid amount"})

        order_id = str(body["orderId"])
        currency = body.get("currency") or "USD"
        customer_name = body.get("customerName") or "Guest User"
        description = body.get("description") or f"Payment for order {order_id}"
        payment = self.db.create_payment(
            {
                "amount": amount,
                "currency": currency,
                "payment_status": PaymentStatus.PENDING.value,
                "customer_email": body["customerEmail"],
                "customer_name": customer_name,
                "arc_order_id": order_id,
                "return_url": body.get("returnUrl"),
                "cancel_url": body.get("cancelUrl"),
                "metadata": {"description": description, "source": "order-create"},
            }
        )
        created = _now()
        order_data = {
            "orderId": order_id,
            "paymentId": payment["id"],
            "amount": amount,
            "currency": currency,
            "customerEmail": body["customerEmail"],
            "customerName": customer_name,
            "description": description,
            "status": "CREATED",
            "createdAt": created.isoformat(),
            "expiresAt": (created + timedelta(hours=24)).isoformat(),
            "returnUrl": body.get("returnUrl"),
            "cancelUrl": body.get("cancelUrl"),
            "merchantId": self.gateway.merchant_id,
        }
        return {"success": True, "orderId": order_id, "orderData": order_data, "message": "Order created successfully"}

    async def hosted_checkout(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if missing_fields(body, "amount", "orderId"):
            raise PaymentActionError(400, {"error": "Missing required fields: amount and orderId are required"})
        amount = parse_positive_amount(body.get("amount"))
        if amount is None:
            raise PaymentActionError(400, {"error": "Invalid amount"})

        order_id = str(body["orderId"])
        currency = body.get("currency") or "USD"
        booking_type = body.get("bookingType") or "flight"
        first_name, last_name = _split_name(body.get("customerName"))
        billing_address = _billing(body.get("billingAddress"))

        return_url = body.get("returnUrl") or self._redirect("/payment/callback", orderId=order_id, bookingType=booking_type)
        cancel_url = body.get("cancelUrl") or self._redirect(f"/{booking_type}-payment", cancelled="true")

        airline = None
        if booking_type == "flight" and self.enable_airline_data:
            airline = build_airline_data(
                amount=amount,
                order_id=order_id,
                customer_first_name=first_name,
                customer_last_name=last_name,
                flight_data=body.get("flightData"),
                booking_data=body.get("bookingData"),
                travel_agent_code=os.getenv("ARC_TRAVEL_AGENT_CODE") or self.config.gateway.travel_agent_code,
                travel_agent_name=os.getenv("ARC_TRAVEL_AGENT_NAME") or self.config.gateway.travel_agent_name,
            )

        request = CheckoutSessionRequest(
            order_id=order_id,
            amount=amount,
            currency=currency,
            description=body.get("description") or f"{booking_type.capitalize()} Booking - {order_id}",
            return_url=return_url,
            cancel_url=cancel_url,
            merchant_name=self.config.gateway.merchant_name,
            customer_email=body.get("customerEmail"),
            customer_first_name=first_name,
            customer_last_name=last_name,
            customer_phone=body.get("customerPhone"),
            billing_address=billing_address,
            airline=airline,
        )
        errors = validate_checkout_request(request)
        if errors:
            raise PaymentActionError(400, {"error": "Invalid payment request", "details": errors})

        try:
            session = await self.gateway.create_checkout_session(request)
        except (IntegrationError, IntegrationResponseError) as e:
            logger.error("Hosted checkout failed for order %s: %s", order_id, e)
            raise PaymentActionError(500, {"error": "Failed to create hosted checkout", "details": str(e)}) from e

        # recorded so verify and the callback can find direct bookings by order id
        payment = self.db.create_payment(
            {
                "amount": amount,
                "currency": currency,
                "payment_status": PaymentStatus.PENDING.value,
                "customer_email": body.get("customerEmail"),
                "customer_name": body.get("customerName"),
                "arc_session_id": session.session_id,
                "success_indicator": session.success_indicator,
                "arc_order_id": order_id,
                "return_url": return_url,
                "cancel_url": cancel_url,
                "metadata": {"bookingType": booking_type, "source": "hosted-checkout"},
            }
        )

        return {
            "success": True,
            "sessionId": session.session_id,
            "successIndicator": session.success_indicator,
            "merchantId": self.gateway.merchant_id,
            "orderId": order_id,
            "paymentId": payment["id"],
            "paymentPageUrl": session.checkout_url,
            "checkoutUrl": session.checkout_url,
            "redirectMethod": "GET",
            "message": "Hosted checkout session created successfully",
        }

    async def process_payment(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if body.get("cardDetails"):
            raise PaymentActionError(400, {"error": "Card details must be entered on the hosted payment page"})
        missing = missing_fields(body, "orderId", "amount", "sessionId")
        if missing:
            raise PaymentActionError(400, {"error": f"Missing required fields: {', '.join(missing)}"})
        amount = parse_positive_amount(body.get("amount"))
        if amount is None:
            raise PaymentActionError(400, {"error": "Invalid amount"})

        order_id = str(body["orderId"])
        currency = body.get("currency") or "USD"
        transaction_id = f"pay-{_millis()}"
        pay_body: Dict[str, Any] = {
            "session": {"id": body["sessionId"]},
            "order": {"amount": f"{amount:.2f}", "currency": currency},
            "transaction": {"reference": f"PAY-{order_id}"},
        }
        billing_address = _billing(body.get("billingAddress"))
        if billing_address:
            pay_body["billing"] = {
                "address": {
                    "street": billing_address["street"],
                    "city": billing_address["city"],
                    "stateProvince": billing_address["state"],
                    "postcodeZip": billing_address["postalCode"],
                    "country": billing_address["country"],
                }
            }

        try:
            response = await self.gateway.pay(order_id, transaction_id, pay_body)
        except IntegrationError as e:
            raise self._gateway_failure("Payment processing failed", e) from e

        payment = self.db.get_payment_by_order(order_id)
        gateway_code = (response.get("response") or {}).get("gatewayCode")
        if not transaction_succeeded(response):
            if payment:
                self.db.update_payment(
                    payment["id"],
                    {"payment_status": PaymentStatus.FAILED.value, "failure_reason": gateway_code or response.get("result")},
                )
            raise PaymentActionError(
                402,
                {
                    "error": "Payment declined",
                    "errorCode": "PAYMENT_DECLINED",
                    "gatewayCode": gateway_code,
                    "transactionId": transaction_id,
                },
            )

        if payment:
            self.db.update_payment(
                payment["id"],
                {
                    "payment_status": PaymentStatus.COMPLETED.value,
                    "completed_at": _now(),
                    "arc_transaction_id": transaction_id,
                },
            )
        order_status = (response.get("order") or {}).get("status") or "CAPTURED"
        return {
            "success": True,
            "transactionId": transaction_id,
            "result": response.get("result"),
            "status": order_status,
            "paymentData": {
                "transactionId": transaction_id,
                "orderId": order_id,
                "amount": amount,
                "currency": currency,
                "gatewayCode": gateway_code,
                "processedAt": _now().isoformat(),
            },
            "message": "Payment processed successfully",
        }

    # ------------------------------------------------------------------
    # Order lifecycle
    # ------------------------------------------------------------------

    async def _order_outcome(self, order_id: str, error: str) -> OrderOutcome:
        try:
            return summarize_order(await self.gateway.retrieve_order(order_id))
        except IntegrationError as e:
            if e.status_code == 404:
                raise PaymentActionError(404, {"error": "Order not found", "details": str(e)}) from e
            raise self._gateway_failure(error, e) from e

    async def verify_payment(self, order_id: Optional[str]) -> Dict[str, Any]:
        if not order_id:
            raise PaymentActionError(400, {"error": "Order ID is required"})
        outcome = await self._order_outcome(order_id, "Payment verification failed")
        status = _status_of(outcome)

        payment = self.db.get_payment_by_order(order_id)
        if payment and payment.get("payment_status") != status.value:
            updates: Dict[str, Any] = {"payment_status": status.value}
            if status == PaymentStatus.COMPLETED and not payment.get("completed_at"):
                updates["completed_at"] = _now()
                updates["arc_transaction_id"] = outcome.transaction_id
                updates["payment_method"] = outcome.card_brand
            self.db.update_payment(payment["id"], updates)

        verified = status in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED)
        return {
            "success": True,
            "verified": verified,
            "orderData": {
                "orderId": order_id,
                "paymentId": payment["id"] if payment else None,
                "status": status.value,
                "gatewayStatus": outcome.order_status,
                "result": outcome.result,
                "gatewayCode": outcome.gateway_code,
                "amount": outcome.amount,
                "currency": outcome.currency,
                "transactionId": outcome.transaction_id,
                "paymentMethod": outcome.card_brand,
            },
            "message": "Payment verification successful" if verified else "Payment not completed",
        }

    async def refund_payment(self, body: Dict[str, Any]) -> Dict[str, Any]:
        missing = missing_fields(body, "orderId", "amount")
        if missing:
            raise PaymentActionError(400, {"error": f"Missing required fields: {', '.join(missing)}"})
        amount = parse_positive_amount(body.get("amount"))
        if amount is None:
            raise PaymentActionError(400, {"error": "Invalid refund amount"})

        order_id = str(body["orderId"])
        reason = body.get("reason") or "Customer request"
        outcome = await self._order_outcome(order_id, "Refund failed")
        captured = outcome.total_captured_amount
        already_refunded = outcome.total_refunded_amount or 0.0
        if captured is not None and amount > captured - already_refunded + 1e-9:
            raise PaymentActionError(400, {"error": "Refund amount exceeds the captured amount"})

        payment = self.db.get_payment_by_order(order_id)
        currency = body.get("currency") or outcome.currency or (payment or {}).get("currency") or "USD"
        transaction_id = f"refund-{_millis()}"
        try:
            response = await self.gateway.refund(order_id, transaction_id, amount, currency)
        except IntegrationError as e:
            raise self._gateway_failure("Refund failed", e) from e
        if not transaction_succeeded(response):
            raise PaymentActionError(
                500,
                {"error": "Refund failed", "details": (response.get("response") or {}).get("gatewayCode") or response.get("result")},
            )

        status = status_after_refund(captured, already_refunded + amount)
        processed_at = _now().isoformat()
        if payment:
            metadata = dict(payment.get("metadata") or {})
            metadata["refunds"] = list(metadata.get("refunds") or []) + [
                {"transactionId": transaction_id, "amount": amount, "reason": reason, "refundedAt": processed_at}
            ]
            self.db.update_payment(payment["id"], {"payment_status": status.value, "metadata": metadata})
        logger.info("Refunded %.2f %s on order %s (%s)", amount, currency, order_id, status.value)

        refund_data = {
            "refundReference": transaction_id,
            "orderId": order_id,
            "amount": amount,
            "currency": currency,
            "reason": reason,
            "status": status.value,
            "processedAt": processed_at,
        }
        return {"success": True, "refundData": refund_data, "refundReference": transaction_id, "message": "Refund processed successfully"}

    async def void_payment(self, body: Dict[str, Any]) -> Dict[str, Any]:
        missing = missing_fields(body, "orderId", "transactionId")
        if missing:
            raise PaymentActionError(400, {"error": f"Missing required fields: {', '.join(missing)}"})
        order_id = str(body["orderId"])
        transaction_id = f"void-{_millis()}"
        try:
            response = await self.gateway.void(order_id, transaction_id, str(body["transactionId"]))
        except IntegrationError as e:
            raise self._gateway_failure("Void failed", e) from e
        if not transaction_succeeded(response):
            raise PaymentActionError(500, {"error": "Void failed", "details": response.get("result")})

        payment = self.db.get_payment_by_order(order_id)
        if payment:
            self.db.update_payment(payment["id"], {"payment_status": PaymentStatus.VOIDED.value})
        return {
            "success": True,
            "voidData": {
                "orderId": order_id,
                "transactionId": transaction_id,
                "targetTransactionId": str(body["transactionId"]),
                "status": PaymentStatus.VOIDED.value,
                "processedAt": _now().isoformat(),
            },
            "message": "Payment voided successfully",
        }

    async def capture_payment(self, body: Dict[str, Any]) -> Dict[str, Any]:
        missing = missing_fields(body, "orderId", "transactionId", "amount")
        if missing:
            raise PaymentActionError(400, {"error": f"Missing required fields: {', '.join(missing)}"})
        amount = parse_positive_amount(body.get("amount"))
        if amount is None:
            raise PaymentActionError(400, {"error": "Invalid capture amount"})

        order_id = str(body["orderId"])
        transaction_id = str(body["transactionId"])
        currency = body.get("currency") or "USD"
        try:
            response = await self.gateway.capture(order_id, transaction_id, amount, currency)
        except IntegrationError as e:
            raise self._gateway_failure("Capture failed", e) from e
        if not transaction_succeeded(response):
            raise PaymentActionError(500, {"error": "Capture failed", "details": response.get("result")})

        payment = self.db.get_payment_by_order(order_id)
        if payment:
            self.db.update_payment(
                payment["id"],
                {"payment_status": PaymentStatus.COMPLETED.value, "completed_at": _now(), "arc_transaction_id": transaction_id},
            )
        return {
            "success": True,
            "captureData": {
                "orderId": order_id,
                "transactionId": transaction_id,
                "amount": amount,
                "currency": currency,
                "status": PaymentStatus.COMPLETED.value,
            },
            "message": "Payment captured successfully",
        }

    async def retrieve_order(self, order_id: Optional[str]) -> Dict[str, Any]:
        if not order_id:
            raise PaymentActionError(400, {"error": "Order ID is required"})
        outcome = await self._order_outcome(order_id, "Failed to retrieve order")
        summary = outcome.model_dump(exclude={"raw"})
        summary.update(isSuccess=outcome.is_success, isPending=outcome.is_pending)
        return {"success": True, "order": outcome.raw, "summary": summary}

    async def refund_or_void_for_cancellation(self, payment_id: str, reason: str = "Booking cancelled") -> Dict[str, Any]:
        """
        Reverse the money behind a cancelled booking.

        Captured payments are refunded for whatever the gateway still holds
        (captured minus already refunded), authorizations are voided. If
        the gateway refuses, the payment is parked as ``refund_pending`` for
        manual follow-up instead of failing the cancellation.
        """
        payment = self.db.get_payment(payment_id)
        if not payment:
            raise PaymentActionError(404, {"error": "Payment not found"})

        try:
            status = PaymentStatus(payment.get("payment_status"))
        except ValueError:
            status = PaymentStatus.PENDING
        operation = cancellation_operation(status)
        if operation is None:
            return {"action": None, "status": status.value, "payment": payment}

        order_id = payment.get("arc_order_id") or payment["id"]
        try:
            if operation == GatewayOperation.REFUND:
                outcome = summarize_order(await self.gateway.retrieve_order(order_id))
                captured = outcome.total_captured_amount
                if captured is None:
                    captured = float(payment["amount"])
                amount = round(captured - (outcome.total_refunded_amount or 0.0), 2)
                new_status = PaymentStatus.REFUNDED
                response = None
                if amount > 0:
                    currency = outcome.currency or payment.get("currency") or "USD"
                    response = await self.gateway.refund(order_id, f"refund-{_millis()}", amount, currency)
            else:
                target = payment.get("arc_transaction_id") or "1"
                response = await self.gateway.void(order_id, f"void-{_millis()}", target)
                new_status = PaymentStatus.VOIDED
            if response is not None and not transaction_succeeded(response):
                raise IntegrationError(f"{operation.value} was not accepted: {response.get('result')}")
        except IntegrationError as e:
            logger.error("%s for cancelled payment %s failed: %s", operation.value, payment_id, e)
            updated = self.db.update_payment(
                payment_id,
                {"payment_status": PaymentStatus.REFUND_PENDING.value, "failure_reason": str(e)[:255]},
            )
            return {"action": operation.value, "status": PaymentStatus.REFUND_PENDING.value, "payment": updated}

        metadata = dict(payment.get("metadata") or {})
        metadata["cancellation"] = {"operation": operation.value, "reason": reason, "at": _now().isoformat()}
        updated = self.db.update_payment(payment_id, {"payment_status": new_status.value, "metadata": metadata})
        logger.info("Cancelled payment %s reversed with %s", payment_id, operation.value)
        return {"action": operation.value, "status": new_status.value, "payment": updated}

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def run_self_test(self) -> Dict[str, Any]:
        """Non-destructive checks: credentials, gateway reachability, session creation."""
        tests: List[Dict[str, Any]] = []

        tests.append(
            {
                "name": "Configuration",
                "status": "PASSED" if self.gateway.is_configured else "FAILED",
                "details": "Merchant credentials present" if self.gateway.is_configured else "Merchant credentials missing",
            }
        )

        try:
            info = await self.gateway.gateway_information()
            tests.append({"name": "Gateway Status Check", "status": "PASSED", "details": f"Gateway status: {info.get('status', 'UNKNOWN')}"})
        except IntegrationError as e:
            tests.append({"name": "Gateway Status Check", "status": "FAILED", "details": str(e)})

        try:
            raw = await self.gateway.create_session()
            session = normalize_checkout_session(raw, checkout_base_url=getattr(self.gateway, "checkout_base_url", ""))
            tests.append({"name": "Session Creation", "status": "PASSED", "details": f"Session {session.session_id} created"})
        except (IntegrationError, IntegrationResponseError) as e:
            tests.append({"name": "Session Creation", "status": "FAILED", "details": str(e)})

        passed = sum(1 for t in tests if t["status"] == "PASSED")
        summary = {
            "totalTests": len(tests),
            "passed": passed,
            "failed": len(tests) - passed,
            "overallStatus": "HEALTHY" if passed == len(tests) else "DEGRADED",
        }
        return {
            "success": True,
            "testResults": {"timestamp": _now().isoformat(), "merchantId": self.gateway.merchant_id, "tests": tests, "summary": summary},
            "message": "Payment integration test completed",
        }

    def health(self) -> Dict[str, Any]:
        return {
            "success": True,
            "status": "healthy",
            "gateway_configured": self.gateway.is_configured,
            "timestamp": _now().isoformat(),
        }

    def debug(self) -> Dict[str, Any]:
        return {
            "success": True,
            "debug": {
                "merchantId": self.gateway.merchant_id,
                "baseUrl": getattr(self.gateway, "base_url", None),
                "checkoutBaseUrl": getattr(self.gateway, "checkout_base_url", None),
                "integrationsMode": self.integrations_mode,
                "gatewayConfigured": self.gateway.is_configured,
                "airlineDataEnabled": self.enable_airline_data,
                "frontendUrl": self.frontend_url,
                "credentials": {
                    "ARC_PAY_MERCHANT_ID": bool(os.getenv("ARC_PAY_MERCHANT_ID")),
                    "ARC_PAY_API_PASSWORD": bool(os.getenv("ARC_PAY_API_PASSWORD")),
                    "ARC_PAY_BASE_URL": bool(os.getenv("ARC_PAY_BASE_URL")),
                },
                "timestamp": _now().isoformat(),
            },
        }


def _status_of(outcome: OrderOutcome) -> PaymentStatus:
    """Stored payment status for a gateway order, preferring the order's own status."""
    try:
        return map_payment_status(outcome.order_status)
    except IntegrationResponseError:
        logger.debug("Unknown order status %r, falling back to transaction result", outcome.order_status)
    if outcome.is_success:
        return PaymentStatus.COMPLETED
    if outcome.is_pending:
        return PaymentStatus.PENDING
    return PaymentStatus.FAILED
