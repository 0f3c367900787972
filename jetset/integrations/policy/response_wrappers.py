from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from jetset.integrations.contracts.interfaces import CheckoutSession, GatewayResult, PaymentStatus


class IntegrationError(RuntimeError):
    """An external call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class IntegrationResponseError(ValueError):
    """An external call succeeded but returned an unusable shape."""

    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class CheckoutSessionModel(BaseModel):
    session_id: str
    success_indicator: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class OrderOutcome(BaseModel):
    order_id: Optional[str] = None
    result: Optional[str] = None
    gateway_code: Optional[str] = None
    order_status: Optional[str] = None
    transaction_id: Optional[str] = None
    authentication_transaction_id: Optional[str] = None
    card_brand: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    total_captured_amount: Optional[float] = None
    total_refunded_amount: Optional[float] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.result == GatewayResult.SUCCESS.value and self.gateway_code in ("APPROVED", None)

    @property
    def is_pending(self) -> bool:
        return self.result == GatewayResult.PENDING.value or self.order_status == "AUTHENTICATED"

    @property
    def needs_pay(self) -> bool:
        return self.order_status == "AUTHENTICATED"

    @property
    def failure_reason(self) -> str:
        return self.gateway_code or self.result or "payment_declined"


def normalize_checkout_session(raw: Dict[str, Any], *, checkout_base_url: str) -> CheckoutSession:
    session = raw.get("session") if isinstance(raw.get("session"), dict) else {}
    session_id = _first_non_empty({"session.id": session.get("id"), **raw}, "session.id", "sessionId", "id")
    model = _build_model(
        CheckoutSessionModel,
        {
            "session_id": str(session_id),
            "success_indicator": raw.get("successIndicator"),
            "raw": raw,
        },
        raw,
    )
    return CheckoutSession(
        session_id=model.session_id,
        success_indicator=model.success_indicator,
        checkout_url=hosted_payment_page_url(checkout_base_url, model.session_id),
        raw=model.raw,
    )


def hosted_payment_page_url(checkout_base_url: str, session_id: str) -> str:
    return f"{checkout_base_url.rstrip('/')}/checkout/pay/{session_id}"


def summarize_order(raw: Dict[str, Any]) -> OrderOutcome:
    """Collapse a gateway order (with its transaction list) to the fields the callback needs."""
    transactions = raw.get("transaction") if isinstance(raw.get("transaction"), list) else []
    latest: Dict[str, Any] = transactions[-1] if transactions and isinstance(transactions[-1], dict) else {}

    latest_response = latest.get("response") or {}
    order_response = raw.get("response") or {}
    latest_txn = latest.get("transaction") or {}
    authentication = raw.get("authentication") or {}

    card = (((raw.get("sourceOfFunds") or {}).get("provided") or {}).get("card") or {})
    if not card:
        card = (((latest.get("sourceOfFunds") or {}).get("provided") or {}).get("card") or {})

    return _build_model(
        OrderOutcome,
        {
            "order_id": _opt_str(raw.get("id")),
            "result": _opt_str(latest.get("result") or raw.get("result")),
            "gateway_code": _opt_str(latest_response.get("gatewayCode") or order_response.get("gatewayCode")),
            "order_status": _opt_str(raw.get("status")),
            "transaction_id": _opt_str(latest_txn.get("id") or raw.get("id")),
            "authentication_transaction_id": _opt_str(
                authentication.get("transactionId")
                or (authentication.get("3ds") or {}).get("transactionId")
                or (latest.get("authentication") or {}).get("transactionId")
            ),
            "card_brand": _opt_str(card.get("brand")),
            "amount": _opt_float(raw.get("amount")),
            "currency": _opt_str(raw.get("currency")),
            "total_captured_amount": _opt_float(raw.get("totalCapturedAmount")),
            "total_refunded_amount": _opt_float(raw.get("totalRefundedAmount")),
            "raw": raw,
        },
        raw,
    )


def transaction_succeeded(raw: Dict[str, Any]) -> bool:
    return str(raw.get("result") or "").upper() == GatewayResult.SUCCESS.value


def response_payload(response: httpx.Response) -> Dict[str, Any]:
    """JSON body of an error response, or its text when it is not JSON."""
    try:
        data = response.json()
    except ValueError:
        return {"text": response.text}
    return data if isinstance(data, dict) else {"data": data}


def upstream_error_detail(payload: Any, default: str = "Upstream request failed") -> str:
    """Human-readable message from a gateway or flight API error body."""
    if not isinstance(payload, dict):
        return default
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("explanation") or error.get("cause") or default)
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        return str(first.get("detail") or first.get("title") or default)
    if isinstance(payload.get("error_description"), str):
        return payload["error_description"]
    if isinstance(payload.get("msg"), str):
        return payload["msg"]
    if isinstance(payload.get("message"), str):
        return payload["message"]
    return default


def map_payment_status(raw_status: Any) -> PaymentStatus:
    value = str(raw_status or "").strip().upper()
    mapping = {
        "SUCCESS": PaymentStatus.COMPLETED,
        "CAPTURED": PaymentStatus.COMPLETED,
        "COMPLETED": PaymentStatus.COMPLETED,
        "AUTHORIZED": PaymentStatus.AUTHORIZED,
        "PENDING": PaymentStatus.PENDING,
        "INITIATED": PaymentStatus.PENDING,
        "AUTHENTICATED": PaymentStatus.PENDING,
        "AUTHENTICATION_INITIATED": PaymentStatus.PENDING,
        "FAILURE": PaymentStatus.FAILED,
        "FAILED": PaymentStatus.FAILED,
        "DECLINED": PaymentStatus.FAILED,
        "ERROR": PaymentStatus.FAILED,
        "REFUNDED": PaymentStatus.REFUNDED,
        "PARTIALLY_REFUNDED": PaymentStatus.PARTIALLY_REFUNDED,
        "CANCELLED": PaymentStatus.VOIDED,
        "VOIDED": PaymentStatus.VOIDED,
    }
    if value not in mapping:
        raise IntegrationResponseError(f"Unsupported payment status '{value}'.")
    return mapping[value]


def simplify_locations(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a location search response into the autocomplete shape the UI renders."""
    items = raw.get("data") if isinstance(raw.get("data"), list) else []
    simplified: List[Dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("iataCode"):
            continue
        address = item.get("address") or {}
        geo = item.get("geoCode") or None
        name = item.get("name") or address.get("cityName") or item["iataCode"]
        country_name = address.get("countryName") or ""
        simplified.append(
            {
                "name": name,
                "code": item["iataCode"],
                "type": item.get("subType"),
                "cityName": address.get("cityName") or item.get("name"),
                "cityCode": address.get("cityCode") or item["iataCode"],
                "country": country_name or address.get("countryCode", ""),
                "countryCode": address.get("countryCode", ""),
                "score": ((item.get("analytics") or {}).get("travelers") or {}).get("score", 0),
                "geoCode": {"latitude": geo.get("latitude"), "longitude": geo.get("longitude")} if geo else None,
                "displayName": f"{name}, {country_name}" if country_name else name,
            }
        )
    return simplified


def simplify_destinations(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = raw.get("data") if isinstance(raw.get("data"), list) else []
    return [
        {
            "destination": item.get("destination"),
            "flightScore": ((item.get("analytics") or {}).get("flights") or {}).get("score", 0),
            "travelerScore": ((item.get("analytics") or {}).get("travelers") or {}).get("score", 0),
        }
        for item in items
        if isinstance(item, dict)
    ]


def simplify_cheapest_dates(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = raw.get("data") if isinstance(raw.get("data"), list) else []
    currencies = ((raw.get("dictionaries") or {}).get("currencies") or {})
    currency = next(iter(currencies), "USD")
    return [
        {
            "departureDate": item.get("departureDate"),
            "returnDate": item.get("returnDate"),
            "price": {"total": (item.get("price") or {}).get("total"), "currency": currency},
            "links": item.get("links"),
        }
        for item in items
        if isinstance(item, dict)
    ]


def _opt_str(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return str(value)


def _opt_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
