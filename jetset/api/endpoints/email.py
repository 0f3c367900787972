import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from jetset.api.dependencies import get_email_service
from jetset.integrations.policy.email_service import EmailRequestError, EmailService

logger = logging.getLogger(__name__)

api = APIRouter()
email_api = api


@api.api_route("/email", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"], tags=["Email"])
async def send_email(request: Request, service: EmailService = Depends(get_email_service)):
    """
    Subscription and contact-form emails.

    Provider or storage failures still answer 200 so the form on the page
    completes; the failure is reported in the body.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200)
    if request.method != "POST":
        return JSONResponse(status_code=405, content={"success": False, "error": "Method not allowed"})

    try:
        body = json.loads(await request.body() or b"{}")
    except ValueError:
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON body"})
    if not isinstance(body, dict):
        body = {}

    try:
        return await service.handle(body)
    except EmailRequestError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})
    except Exception as e:
        logger.error("Email API error (%s): %s", body.get("type"), e)
        return {
            "success": True,
            "message": "Request processed, but email notification failed",
            "error": str(e),
        }
