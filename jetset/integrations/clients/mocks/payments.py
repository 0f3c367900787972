"""
Hosted-checkout gateway: mock client.

⚠️  Development/test implementation. No network calls.
    Orders live in memory; the outcome of every checkout is driven by the
    ``scenario`` passed to the constructor (or changed later on the instance):

    - "success":       order CAPTURED, latest transaction SUCCESS/APPROVED
    - "declined":      order FAILED, latest transaction FAILURE/DECLINED
    - "pending":       latest transaction PENDING
    - "authenticated": order AUTHENTICATED (3DS done, PAY still required)
"""

import logging
import uuid
from itertools import count
from typing import Any, Dict, List, Optional

from jetset.integrations.contracts.interfaces import (
    CheckoutSession,
    CheckoutSessionRequest,
    GatewayOperation,
    PaymentGateway,
)
from jetset.integrations.policy.response_wrappers import IntegrationError, hosted_payment_page_url

logger = logging.getLogger(__name__)

SCENARIOS = ("success", "declined", "pending", "authenticated")


class MockPaymentGateway(PaymentGateway):
    """
    Mock hosted-checkout gateway.

    Parameters
    ----------
    scenario : str
        One of SCENARIOS; decides how new checkouts settle. Default "success".
    merchant_id : str
        Reported merchant id. Default "TESTJETSET01".
    checkout_base_url : str
        Base used to build hosted payment page URLs.
    """

    def __init__(
        self,
        scenario: str = "success",
        merchant_id: str = "TESTJETSET01",
        checkout_base_url: str = "https://mock-gateway.local",
        operating: bool = True,
    ):
        if scenario not in SCENARIOS:
            raise ValueError(f"Unknown mock gateway scenario '{scenario}'")
        self.scenario = scenario
        self._merchant_id = merchant_id
        self.checkout_base_url = checkout_base_url
        self.operating = operating

        # In-memory stores (reset on restart)
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self._seq = count(1)

        logger.info("[GATEWAY MOCK] Client initialised (scenario=%s)", scenario)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def merchant_id(self) -> str:
        return self._merchant_id

    @property
    def is_configured(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record(self, operation: str, **details: Any) -> None:
        self.calls.append({"operation": operation, **details})

    def _get_order(self, order_id: str) -> Dict[str, Any]:
        order = self.orders.get(order_id)
        if order is None:
            raise IntegrationError(f"Order '{order_id}' not found", status_code=404, payload={"error": {"cause": "INVALID_REQUEST", "explanation": "Order not found"}})
        return order

    def _transaction(self, result: str, gateway_code: str, txn_type: str, txn_id: str, amount: float, currency: str) -> Dict[str, Any]:
        return {
            "result": result,
            "response": {"gatewayCode": gateway_code},
            "transaction": {"id": txn_id, "type": txn_type, "amount": amount, "currency": currency},
        }

    def add_order(self, order_id: str, amount: float, currency: str = "USD", scenario: Optional[str] = None) -> Dict[str, Any]:
        """Create an order the way a finished hosted checkout would leave it."""
        scenario = scenario or self.scenario
        order: Dict[str, Any] = {
            "id": order_id,
            "amount": amount,
            "currency": currency,
            "totalCapturedAmount": 0.0,
            "totalRefundedAmount": 0.0,
            "transaction": [],
        }
        if scenario == "success":
            order["status"] = "CAPTURED"
            order["totalCapturedAmount"] = amount
            order["transaction"].append(self._transaction("SUCCESS", "APPROVED", "PAYMENT", "1", amount, currency))
            order["sourceOfFunds"] = {"provided": {"card": {"brand": "MASTERCARD", "number": "512345xxxxxx0008"}}}
        elif scenario == "declined":
            order["status"] = "FAILED"
            order["transaction"].append(self._transaction("FAILURE", "DECLINED", "PAYMENT", "1", amount, currency))
        elif scenario == "pending":
            order["status"] = "INITIATED"
            order["transaction"].append(self._transaction("PENDING", "PENDING", "AUTHENTICATION", "1", amount, currency))
        else:
            order["status"] = "AUTHENTICATED"
            order["authentication"] = {"transactionId": f"auth-{order_id}"}
            order["transaction"].append(self._transaction("PENDING", "PENDING", "AUTHENTICATION", "1", amount, currency))
        self.orders[order_id] = order
        return order

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        session_id = f"SESSION{next(self._seq):010d}"
        indicator = uuid.uuid4().hex[:16]
        self.sessions[session_id] = {"order_id": request.order_id, "success_indicator": indicator}
        self.add_order(request.order_id, float(request.amount), request.currency)
        self._record(
            GatewayOperation.INITIATE_CHECKOUT.value,
            order_id=request.order_id,
            amount=request.amount,
            billing_address=request.billing_address,
            airline=request.airline,
        )
        logger.info("[GATEWAY MOCK] Checkout session %s for order %s", session_id, request.order_id)
        raw = {
            "merchant": self._merchant_id,
            "result": "SUCCESS",
            "session": {"id": session_id, "updateStatus": "SUCCESS", "version": "1"},
            "successIndicator": indicator,
        }
        return CheckoutSession(
            session_id=session_id,
            success_indicator=indicator,
            checkout_url=hosted_payment_page_url(self.checkout_base_url, session_id),
            raw=raw,
        )

    async def create_session(self) -> Dict[str, Any]:
        session_id = f"SESSION{next(self._seq):010d}"
        self.sessions[session_id] = {}
        self._record("CREATE_SESSION", session_id=session_id)
        return {
            "merchant": self._merchant_id,
            "result": "SUCCESS",
            "session": {"id": session_id, "updateStatus": "NO_UPDATE", "version": "1"},
        }

    # ------------------------------------------------------------------
    # Orders & transactions
    # ------------------------------------------------------------------

    async def retrieve_order(self, order_id: str) -> Dict[str, Any]:
        return dict(self._get_order(order_id))

    async def retrieve_transaction(self, order_id: str, transaction_id: str) -> Dict[str, Any]:
        order = self._get_order(order_id)
        for txn in order["transaction"]:
            if txn["transaction"]["id"] == transaction_id:
                return dict(txn)
        raise IntegrationError(f"Transaction '{transaction_id}' not found", status_code=404)

    async def pay(self, order_id: str, transaction_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        order = self._get_order(order_id)
        self._record(GatewayOperation.PAY.value, order_id=order_id, transaction_id=transaction_id, body=body)
        if self.scenario == "declined":
            txn = self._transaction("FAILURE", "DECLINED", "PAYMENT", transaction_id, order["amount"], order["currency"])
            order["status"] = "FAILED"
        else:
            txn = self._transaction("SUCCESS", "APPROVED", "PAYMENT", transaction_id, order["amount"], order["currency"])
            order["status"] = "CAPTURED"
            order["totalCapturedAmount"] = order["amount"]
        order["transaction"].append(txn)
        return {**txn, "order": {"id": order_id, "status": order["status"]}}

    async def refund(self, order_id: str, transaction_id: str, amount: float, currency: str) -> Dict[str, Any]:
        order = self._get_order(order_id)
        self._record(GatewayOperation.REFUND.value, order_id=order_id, transaction_id=transaction_id, amount=amount)
        refundable = order["totalCapturedAmount"] - order["totalRefundedAmount"]
        if amount > refundable + 1e-9:
            raise IntegrationError(
                "Requested refund exceeds the captured amount",
                status_code=400,
                payload={"error": {"cause": "INVALID_REQUEST", "explanation": "Requested refund exceeds the captured amount"}},
            )
        order["totalRefundedAmount"] += amount
        fully = order["totalRefundedAmount"] + 1e-9 >= order["totalCapturedAmount"]
        order["status"] = "REFUNDED" if fully else "PARTIALLY_REFUNDED"
        txn = self._transaction("SUCCESS", "APPROVED", "REFUND", transaction_id, amount, currency)
        order["transaction"].append(txn)
        return {**txn, "order": {"id": order_id, "status": order["status"]}}

    async def void(self, order_id: str, transaction_id: str, target_transaction_id: str) -> Dict[str, Any]:
        order = self._get_order(order_id)
        self._record(GatewayOperation.VOID.value, order_id=order_id, transaction_id=transaction_id, target=target_transaction_id)
        order["status"] = "CANCELLED"
        txn = self._transaction("SUCCESS", "APPROVED", "VOID_AUTHORIZATION", transaction_id, order["amount"], order["currency"])
        order["transaction"].append(txn)
        return {**txn, "order": {"id": order_id, "status": order["status"]}}

    async def capture(self, order_id: str, transaction_id: str, amount: float, currency: str) -> Dict[str, Any]:
        order = self._get_order(order_id)
        self._record(GatewayOperation.CAPTURE.value, order_id=order_id, transaction_id=transaction_id, amount=amount)
        order["status"] = "CAPTURED"
        order["totalCapturedAmount"] = order["totalCapturedAmount"] + amount
        txn = self._transaction("SUCCESS", "APPROVED", "CAPTURE", transaction_id, amount, currency)
        order["transaction"].append(txn)
        return {**txn, "order": {"id": order_id, "status": order["status"]}}

    async def gateway_information(self) -> Dict[str, Any]:
        if not self.operating:
            raise IntegrationError("Payment gateway unreachable", status_code=503)
        return {"status": "OPERATING", "gatewayVersion": "mock"}
