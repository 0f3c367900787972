"""
Inquiry (quote request) endpoints.

Guests and signed-in users submit inquiries; owners read their own; admins
list, update and delete. Lookups are keyed by query parameters (``id``,
``endpoint``) the way the frontend calls them.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from jetset.api.dependencies import get_db, get_email_service, optional_user, require_admin
from jetset.controllers.inquiry_controller import InquiryController, is_admin, owns_inquiry
from jetset.integrations.contracts.interfaces import AuthUser
from jetset.integrations.policy.email_service import EmailService

logger = logging.getLogger(__name__)

api = APIRouter()
inquiries_api = api

SUBMITTED_MESSAGE = (
    "Your inquiry has been submitted successfully! "
    "Our travel experts will get back to you within 24 hours."
)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inquiry not found")


def _require_id(inquiry_id: Optional[str]) -> str:
    if not inquiry_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inquiry ID is required")
    return inquiry_id


@api.post("", status_code=status.HTTP_201_CREATED)
async def create_inquiry(
    payload: Dict[str, Any] = Body(...),
    user: Optional[AuthUser] = Depends(optional_user),
    db=Depends(get_db),
    emails: EmailService = Depends(get_email_service),
):
    inquiry = InquiryController(db).create_inquiry(payload, user)
    try:
        await emails.send_inquiry_confirmation(inquiry)
    except Exception as e:
        logger.warning("Inquiry %s saved but confirmation email failed: %s", inquiry["id"], e)
    return {"success": True, "message": SUBMITTED_MESSAGE, "data": {"inquiry": inquiry}}


@api.get("")
async def get_inquiries(
    id: Optional[str] = None,
    endpoint: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    inquiry_type: Optional[str] = None,
    limit: int = 50,
    sort: str = "created_at:desc",
    user: Optional[AuthUser] = Depends(optional_user),
    db=Depends(get_db),
):
    controller = InquiryController(db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    if id:
        inquiry = controller.get_inquiry(id)
        if not inquiry:
            raise _not_found()
        if not (is_admin(user) or owns_inquiry(user, inquiry)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return {"success": True, "data": {"inquiry": inquiry}}

    if endpoint == "my":
        inquiries = controller.list_for_user(user)
        return {"success": True, "data": {"inquiries": inquiries, "count": len(inquiries)}}

    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    if endpoint == "stats":
        return {"success": True, "data": controller.stats()}

    inquiries = controller.list_inquiries(status_filter, inquiry_type, limit=limit, sort=sort)
    return {"success": True, "data": {"inquiries": inquiries, "count": len(inquiries)}}


@api.put("")
@api.patch("")
async def update_inquiry(
    id: Optional[str] = None,
    payload: Dict[str, Any] = Body(...),
    admin: AuthUser = Depends(require_admin),
    db=Depends(get_db),
):
    inquiry = InquiryController(db).update_inquiry(_require_id(id), payload)
    if not inquiry:
        raise _not_found()
    logger.info("Inquiry %s updated by %s", id, admin.id)
    return {"success": True, "message": "Inquiry updated successfully", "data": {"inquiry": inquiry}}


@api.delete("")
async def delete_inquiry(
    id: Optional[str] = None,
    admin: AuthUser = Depends(require_admin),
    db=Depends(get_db),
):
    if not InquiryController(db).delete_inquiry(_require_id(id)):
        raise _not_found()
    logger.info("Inquiry %s deleted by %s", id, admin.id)
    return {"success": True, "message": "Inquiry deleted successfully"}
