"""
Sign-up, login and session endpoints in front of the hosted auth backend.

Responses carry the flat session shape the browser mirrors into local
storage, so the frontend can restore a session without another round trip.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header
from fastapi.responses import JSONResponse

from jetset.api.dependencies import bearer_token, get_auth_backend, get_db, require_user
from jetset.integrations.contracts.interfaces import AuthBackend, AuthSession, AuthUser, UserRole
from jetset.integrations.policy.response_wrappers import IntegrationError
from jetset.utils.validation import is_valid_email

logger = logging.getLogger(__name__)

api = APIRouter()
auth_api = api

OAUTH_PROVIDERS = ("google", "facebook", "apple", "github")


def _field(body: Dict[str, Any], *names: str) -> str:
    for name in names:
        value = body.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _mirror_user(db, user: AuthUser) -> Dict[str, Any]:
    """Keep the users table in step with the auth backend; its role wins."""
    row = db.get_user(user.id)
    if row is None:
        row = db.create_user(
            {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": UserRole.USER.value,
            }
        )
    user.role = row.get("role") or user.role
    user.first_name = user.first_name or row.get("first_name") or ""
    user.last_name = user.last_name or row.get("last_name") or ""
    return row


def _session_payload(session: AuthSession) -> Dict[str, Any]:
    return {
        "success": True,
        **session.user.to_public_dict(),
        "token": session.access_token,
        "refreshToken": session.refresh_token,
        "expiresAt": session.expires_at,
        "session": session.to_storage() if session.access_token else None,
    }


def _bad_request(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@api.post("/signup")
async def signup(
    body: Dict[str, Any] = Body(...),
    auth: AuthBackend = Depends(get_auth_backend),
    db=Depends(get_db),
):
    email = _field(body, "email").lower()
    password = body.get("password") or ""
    first_name = _field(body, "firstName", "first_name")
    last_name = _field(body, "lastName", "last_name")
    if not email or not password:
        return _bad_request("Email and password are required")
    if not is_valid_email(email):
        return _bad_request("Please enter a valid email address")

    try:
        session = await auth.sign_up(email, password, {"first_name": first_name, "last_name": last_name})
    except IntegrationError as e:
        logger.info("Sign-up rejected for %s: %s", email, e)
        return _bad_request(str(e), status_code=e.status_code if e.status_code in (400, 409, 422) else 400)

    session.user.first_name = session.user.first_name or first_name
    session.user.last_name = session.user.last_name or last_name
    _mirror_user(db, session.user)
    logger.info("New user %s signed up", session.user.id)

    payload = _session_payload(session)
    if not session.access_token:
        payload["message"] = "Please check your email to confirm your account"
    return JSONResponse(status_code=201, content=payload)


@api.post("/login")
async def login(
    body: Dict[str, Any] = Body(...),
    auth: AuthBackend = Depends(get_auth_backend),
    db=Depends(get_db),
):
    email = _field(body, "email").lower()
    password = body.get("password") or ""
    if not email or not password:
        return _bad_request("Email and password are required")
    try:
        session = await auth.sign_in_with_password(email, password)
    except IntegrationError as e:
        logger.info("Login failed for %s: %s", email, e)
        return _bad_request("Invalid credentials", status_code=401)

    _mirror_user(db, session.user)
    return _session_payload(session)


@api.post("/refresh")
async def refresh(
    body: Dict[str, Any] = Body(...),
    auth: AuthBackend = Depends(get_auth_backend),
    db=Depends(get_db),
):
    token = _field(body, "refreshToken", "refresh_token")
    if not token:
        return _bad_request("refreshToken is required")
    try:
        session = await auth.refresh_session(token)
    except IntegrationError as e:
        logger.info("Session refresh failed: %s", e)
        return _bad_request("Session expired, please sign in again", status_code=401)

    _mirror_user(db, session.user)
    return _session_payload(session)


@api.post("/logout")
async def logout(
    authorization: Optional[str] = Header(default=None),
    auth: AuthBackend = Depends(get_auth_backend),
):
    token = bearer_token(authorization)
    if token:
        try:
            await auth.sign_out(token)
        except IntegrationError as e:
            # the local session is cleared regardless
            logger.warning("Sign-out failed upstream: %s", e)
    return {"success": True, "message": "Signed out"}


@api.get("/oauth/{provider}")
async def oauth(provider: str, redirect_to: Optional[str] = None, auth: AuthBackend = Depends(get_auth_backend)):
    provider = provider.lower()
    if provider not in OAUTH_PROVIDERS:
        return _bad_request(f"Unsupported provider: {provider}")
    return {"success": True, "provider": provider, "url": auth.oauth_url(provider, redirect_to)}


@api.get("/session")
async def current_session(user: AuthUser = Depends(require_user)):
    return {"success": True, "isAuthenticated": True, "user": user.to_public_dict()}
