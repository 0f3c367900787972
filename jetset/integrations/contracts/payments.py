"""
Payment contract: validation helpers and lifecycle rules for the hosted
checkout flow.
"""

from typing import Any, Dict, List, Optional

from .interfaces import CheckoutSessionRequest, GatewayOperation, PaymentStatus


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def validate_checkout_request(request: CheckoutSessionRequest) -> List[str]:
    """
    Return a list of validation errors.
    Empty list means the request is valid.
    """
    errors: List[str] = []

    if not request.order_id:
        errors.append("order_id is required")
    if request.amount is None or request.amount <= 0:
        errors.append("amount must be greater than zero")
    if not request.currency:
        errors.append("currency is required")
    elif len(request.currency) != 3 or not request.currency.isalpha():
        errors.append("currency must be a 3-letter ISO 4217 code")
    if not request.return_url:
        errors.append("return_url is required")
    if request.billing_address is not None and len(request.billing_address.get("country", "")) != 2:
        errors.append("billing_address.country must be an ISO 3166-1 alpha-2 code")

    return errors


def missing_fields(payload: Dict[str, Any], *names: str) -> List[str]:
    """Names whose values are absent or empty (0 counts as missing, like a falsy amount)."""
    return [name for name in names if not payload.get(name)]


def parse_positive_amount(value: Any) -> Optional[float]:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if amount > 0 else None


# ---------------------------------------------------------------------------
# Lifecycle rules
# ---------------------------------------------------------------------------

def cancellation_operation(status: PaymentStatus) -> Optional[GatewayOperation]:
    """
    Gateway operation that reverses a payment when its booking is cancelled.

    Captured money is refunded; an authorization that was never captured is
    voided. Anything else has nothing to reverse.
    """
    if status in {PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED}:
        return GatewayOperation.REFUND
    if status == PaymentStatus.AUTHORIZED:
        return GatewayOperation.VOID
    return None


def status_after_refund(captured_amount: Optional[float], refunded_amount: float) -> PaymentStatus:
    if captured_amount is not None and refunded_amount + 1e-9 < captured_amount:
        return PaymentStatus.PARTIALLY_REFUNDED
    return PaymentStatus.REFUNDED
