"""
Payment action router.

One endpoint, /api/payments, keyed by the ``action`` query parameter. Each
action maps to the HTTP methods it accepts and a PaymentService method.
"""

import inspect
import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse, Response

from jetset.api.dependencies import get_payment_service
from jetset.integrations.policy.payment_service import PaymentActionError, PaymentService

logger = logging.getLogger(__name__)

api = APIRouter()
payments_api = api

Handler = Callable[[PaymentService, Dict[str, Any], Dict[str, Any]], Any]

ACTIONS: Dict[str, Tuple[Tuple[str, ...], Handler]] = {
    "initiate-payment": (("POST",), lambda s, q, b: s.initiate_payment(b)),
    "payment-callback": (("GET", "POST"), lambda s, q, b: s.handle_callback({**b, **q})),
    "get-payment-details": (("GET",), lambda s, q, b: s.get_payment_details(q.get("paymentId"), q.get("quoteId"))),
    "gateway-status": (("GET",), lambda s, q, b: s.gateway_status()),
    "session-create": (("POST",), lambda s, q, b: s.create_session()),
    "order-create": (("POST",), lambda s, q, b: s.create_order(b)),
    "hosted-checkout": (("POST",), lambda s, q, b: s.hosted_checkout(b)),
    "payment-process": (("POST",), lambda s, q, b: s.process_payment(b)),
    "payment-verify": (("GET",), lambda s, q, b: s.verify_payment(q.get("orderId"))),
    "payment-refund": (("POST",), lambda s, q, b: s.refund_payment(b)),
    "payment-void": (("POST",), lambda s, q, b: s.void_payment(b)),
    "payment-capture": (("POST",), lambda s, q, b: s.capture_payment(b)),
    "payment-retrieve": (("GET",), lambda s, q, b: s.retrieve_order(q.get("orderId"))),
    "test": (("POST",), lambda s, q, b: s.run_self_test()),
    "health": (("GET",), lambda s, q, b: s.health()),
    "debug": (("GET",), lambda s, q, b: s.debug()),
}

SUPPORTED_ACTIONS = list(ACTIONS)


async def _read_body(request: Request) -> Dict[str, Any]:
    """JSON or form body as a dict; anything unreadable is an empty body."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return {}
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return dict(form)
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring non-JSON payments body")
        return {}
    return data if isinstance(data, dict) else {}


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


@api.api_route("/payments", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"], tags=["Payments"])
async def payments_router(
    request: Request,
    action: Optional[str] = None,
    service: PaymentService = Depends(get_payment_service),
):
    if request.method == "OPTIONS":
        return Response(status_code=200)

    if not action:
        return _error(400, "Missing action parameter", supportedActions=SUPPORTED_ACTIONS)
    if action not in ACTIONS:
        return _error(400, f"Unknown action: {action}", supportedActions=SUPPORTED_ACTIONS)

    methods, handler = ACTIONS[action]
    if request.method not in methods:
        return _error(405, "Method not allowed")

    query = dict(request.query_params)
    try:
        body = await _read_body(request)
        result = handler(service, query, body)
        if inspect.isawaitable(result):
            result = await result
    except PaymentActionError as e:
        return JSONResponse(status_code=e.status_code, content=e.payload)
    except Exception as e:
        logger.exception("Payment action %s failed: %s", action, e)
        return _error(500, "Internal server error", details=str(e))

    if action == "payment-callback":
        return RedirectResponse(url=result, status_code=302)
    return JSONResponse(content=jsonable_encoder(result))
