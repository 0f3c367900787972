"""
Real hosted-checkout gateway client (ARC Pay, Mastercard gateway REST API).

Used when ARC_PAY_MERCHANT_ID / ARC_PAY_API_PASSWORD are configured.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Optional

import httpx

from jetset.integrations.contracts.interfaces import (
    CheckoutSession,
    CheckoutSessionRequest,
    GatewayOperation,
    PaymentGateway,
)
from jetset.integrations.policy.response_wrappers import (
    IntegrationError,
    normalize_checkout_session,
    response_payload,
    upstream_error_detail,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.arcpay.travel/api/rest/version/100"
DEFAULT_CHECKOUT_BASE_URL = "https://api.arcpay.travel"


def clean_base_url(url: str) -> str:
    """Drop a trailing ``/merchant/<id>`` suffix and pin the REST API to version 100."""
    url = (url or DEFAULT_BASE_URL).strip().rstrip("/")
    if "/merchant/" in url:
        url = url.split("/merchant/", 1)[0]
    return re.sub(r"/version/\d+$", "/version/100", url)


class ArcPayClient(PaymentGateway):
    def __init__(
        self,
        merchant_id: Optional[str] = None,
        api_password: Optional[str] = None,
        base_url: Optional[str] = None,
        checkout_base_url: Optional[str] = None,
        session_timeout_seconds: int = 900,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._merchant_id = merchant_id or os.getenv("ARC_PAY_MERCHANT_ID", "")
        self._api_password = api_password or os.getenv("ARC_PAY_API_PASSWORD", "")
        self.base_url = clean_base_url(base_url or os.getenv("ARC_PAY_BASE_URL", DEFAULT_BASE_URL))
        self.checkout_base_url = (checkout_base_url or DEFAULT_CHECKOUT_BASE_URL).rstrip("/")
        self.session_timeout_seconds = session_timeout_seconds
        self.timeout_seconds = timeout_seconds
        if not self.is_configured:
            logger.warning("Payment gateway credentials are not set.")

    @property
    def merchant_id(self) -> str:
        return self._merchant_id

    @property
    def is_configured(self) -> bool:
        return bool(self._merchant_id and self._api_password)

    @property
    def merchant_url(self) -> str:
        return f"{self.base_url}/merchant/{self._merchant_id}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds)

    async def _request(self, method: str, url: str, *, json: Optional[Dict[str, Any]] = None, authenticated: bool = True) -> Dict[str, Any]:
        if authenticated and not self.is_configured:
            raise IntegrationError("Payment gateway not configured. Please contact support.")

        auth = (f"merchant.{self._merchant_id}", self._api_password) if authenticated else None
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        try:
            logger.info("Gateway request %s %s", method, url)
            async with self._client() as client:
                response = await client.request(method, url, json=json, headers=headers, auth=auth)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            payload = response_payload(e.response)
            detail = upstream_error_detail(payload, "Payment gateway request failed")
            logger.error("HTTP error from payment gateway: %s %s", e.response.status_code, detail)
            raise IntegrationError(detail, status_code=e.response.status_code, payload=payload) from e
        except httpx.RequestError as e:
            logger.error("Request error connecting to payment gateway: %s", e)
            raise IntegrationError(f"Payment gateway unreachable: {e}") from e

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        body: Dict[str, Any] = {
            "apiOperation": GatewayOperation.INITIATE_CHECKOUT.value,
            "interaction": {
                "operation": "PURCHASE",
                "returnUrl": request.return_url,
                "cancelUrl": request.cancel_url,
                "merchant": {"name": request.merchant_name},
                "displayControl": {"billingAddress": "MANDATORY", "customerEmail": "MANDATORY"},
                "timeout": self.session_timeout_seconds,
            },
            "order": {
                "id": request.order_id,
                "reference": request.reference or request.order_id,
                "amount": f"{float(request.amount):.2f}",
                "currency": request.currency,
                "description": request.description,
            },
        }

        if request.customer_email:
            customer: Dict[str, Any] = {"email": request.customer_email}
            if request.customer_first_name:
                customer["firstName"] = request.customer_first_name
            if request.customer_last_name:
                customer["lastName"] = request.customer_last_name
            phone = re.sub(r"\D", "", request.customer_phone or "")
            if phone:
                customer["mobilePhone"] = phone
            body["customer"] = customer

        if request.billing_address:
            address = request.billing_address
            body["billing"] = {
                "address": {
                    "street": address["street"],
                    "city": address["city"],
                    "stateProvince": address["state"],
                    "postcodeZip": address["postalCode"],
                    "country": address["country"],
                }
            }

        if request.airline:
            body["airline"] = request.airline

        data = await self._request("POST", f"{self.merchant_url}/session", json=body)
        session = normalize_checkout_session(data, checkout_base_url=self.checkout_base_url)
        logger.info("Gateway checkout session created for order %s", request.order_id)
        return session

    async def create_session(self) -> Dict[str, Any]:
        return await self._request("POST", f"{self.merchant_url}/session", json={})

    # ------------------------------------------------------------------
    # Orders & transactions
    # ------------------------------------------------------------------

    async def retrieve_order(self, order_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.merchant_url}/order/{order_id}")

    async def retrieve_transaction(self, order_id: str, transaction_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.merchant_url}/order/{order_id}/transaction/{transaction_id}")

    async def _transaction(self, order_id: str, transaction_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"{self.merchant_url}/order/{order_id}/transaction/{transaction_id}", json=body)

    async def pay(self, order_id: str, transaction_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._transaction(order_id, transaction_id, {"apiOperation": GatewayOperation.PAY.value, **body})

    async def refund(self, order_id: str, transaction_id: str, amount: float, currency: str) -> Dict[str, Any]:
        return await self._transaction(
            order_id,
            transaction_id,
            {
                "apiOperation": GatewayOperation.REFUND.value,
                "transaction": {"amount": f"{float(amount):.2f}", "currency": currency},
            },
        )

    async def void(self, order_id: str, transaction_id: str, target_transaction_id: str) -> Dict[str, Any]:
        return await self._transaction(
            order_id,
            transaction_id,
            {
                "apiOperation": GatewayOperation.VOID.value,
                "transaction": {"targetTransactionId": target_transaction_id},
            },
        )

    async def capture(self, order_id: str, transaction_id: str, amount: float, currency: str) -> Dict[str, Any]:
        return await self._transaction(
            order_id,
            transaction_id,
            {
                "apiOperation": GatewayOperation.CAPTURE.value,
                "transaction": {"amount": f"{float(amount):.2f}", "currency": currency},
            },
        )

    async def gateway_information(self) -> Dict[str, Any]:
        return await self._request("GET", f"{self.base_url}/information", authenticated=False)
