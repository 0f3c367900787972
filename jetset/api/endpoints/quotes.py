"""
Quote endpoints.

Admins draft, send, edit and delete quotes. The customer who owns the
inquiry can read its quotes, accept a sent quote and attach traveler
(booking) details to it before paying.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from jetset.api.dependencies import get_config, get_db, get_email_service, require_admin, require_user
from jetset.controllers.inquiry_controller import is_admin, owns_inquiry
from jetset.controllers.quote_controller import QuoteController, QuoteStateError
from jetset.integrations.contracts.interfaces import AuthUser
from jetset.integrations.policy.email_service import EmailService
from jetset.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

api = APIRouter()
quotes_api = api


def _require_id(quote_id: Optional[str]) -> str:
    if not quote_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quote ID is required")
    return quote_id


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote not found")


def _state_error(e: QuoteStateError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": str(e)})


def _accessible(db, quote_id: str, user: AuthUser) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """(quote, inquiry) when the user is an admin or owns the quote's inquiry."""
    quote = db.get_quote(quote_id)
    if not quote:
        raise _not_found()
    inquiry = db.get_inquiry(quote.get("inquiry_id")) or {}
    if not (is_admin(user) or owns_inquiry(user, inquiry)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return quote, inquiry


@api.post("", status_code=status.HTTP_201_CREATED)
async def create_quote_or_booking_info(
    id: Optional[str] = None,
    endpoint: Optional[str] = None,
    payload: Dict[str, Any] = Body(...),
    user: AuthUser = Depends(require_user),
    db=Depends(get_db),
    config: AppConfig = Depends(get_config),
):
    controller = QuoteController(db, config)

    if endpoint == "booking-info":
        quote, inquiry = _accessible(db, _require_id(id), user)
        try:
            booking_info = controller.save_booking_info(quote, inquiry, payload, user)
        except QuoteStateError as e:
            return _state_error(e)
        return {"success": True, "message": "Booking information saved", "data": {"bookingInfo": booking_info}}

    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    quote = controller.create_quote(payload, user)
    return {"success": True, "message": "Quote created successfully", "data": {"quote": quote}}


@api.put("")
async def update_quote(
    id: Optional[str] = None,
    action: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    user: AuthUser = Depends(require_user),
    db=Depends(get_db),
    config: AppConfig = Depends(get_config),
    emails: EmailService = Depends(get_email_service),
):
    quote_id = _require_id(id)
    controller = QuoteController(db, config)

    if action == "accept":
        _accessible(db, quote_id, user)
        try:
            quote = controller.accept_quote(quote_id)
        except QuoteStateError as e:
            return _state_error(e)
        return {"success": True, "message": "Quote accepted", "data": {"quote": quote}}

    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    if action == "send":
        try:
            quote = controller.send_quote(quote_id)
        except QuoteStateError as e:
            return _state_error(e)
        if not quote:
            raise _not_found()
        inquiry = db.get_inquiry(quote.get("inquiry_id"))
        if inquiry and inquiry.get("customer_email"):
            try:
                await emails.send_quote(quote, inquiry)
            except Exception as e:
                logger.warning("Quote %s sent but customer email failed: %s", quote["id"], e)
        return {"success": True, "message": "Quote sent to customer", "data": {"quote": quote}}

    quote = controller.update_quote(quote_id, payload or {})
    if not quote:
        raise _not_found()
    return {"success": True, "message": "Quote updated successfully", "data": {"quote": quote}}


@api.delete("")
async def delete_quote(
    id: Optional[str] = None,
    admin: AuthUser = Depends(require_admin),
    db=Depends(get_db),
    config: AppConfig = Depends(get_config),
):
    if not QuoteController(db, config).delete_quote(_require_id(id)):
        raise _not_found()
    logger.info("Quote %s deleted by %s", id, admin.id)
    return {"success": True, "message": "Quote deleted successfully"}


@api.get("")
async def get_quotes(
    id: Optional[str] = None,
    endpoint: Optional[str] = None,
    inquiryId: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: Optional[int] = None,
    user: AuthUser = Depends(require_user),
    db=Depends(get_db),
    config: AppConfig = Depends(get_config),
):
    controller = QuoteController(db, config)

    if id:
        quote, inquiry = _accessible(db, id, user)
        if endpoint == "booking-info":
            return {"success": True, "data": {"bookingInfo": controller.get_booking_info(id)}}
        return {"success": True, "data": {"quote": quote, "inquiry": inquiry or None}}

    if inquiryId:
        inquiry = db.get_inquiry(inquiryId)
        if not inquiry:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inquiry not found")
        if not (is_admin(user) or owns_inquiry(user, inquiry)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        quotes = controller.list_for_inquiry(inquiryId)
        return {"success": True, "data": {"quotes": quotes, "count": len(quotes)}}

    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    quotes = controller.list_quotes(status_filter, limit=limit)
    return {"success": True, "data": {"quotes": quotes, "count": len(quotes)}}
