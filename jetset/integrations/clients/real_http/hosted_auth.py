"""
Real hosted auth client (Supabase GoTrue REST API).

Used when SUPABASE_URL / SUPABASE_ANON_KEY are configured.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from jetset.integrations.contracts.interfaces import AuthBackend, AuthSession, AuthUser, UserRole
from jetset.integrations.policy.response_wrappers import (
    IntegrationError,
    IntegrationResponseError,
    response_payload,
    upstream_error_detail,
)

logger = logging.getLogger(__name__)


def user_from_payload(data: Dict[str, Any]) -> AuthUser:
    if not isinstance(data, dict) or not data.get("id"):
        raise IntegrationResponseError("Auth response is missing the user id.", payload=data if isinstance(data, dict) else {})
    meta = data.get("user_metadata") or {}
    app_meta = data.get("app_metadata") or {}
    return AuthUser(
        id=str(data["id"]),
        email=str(data.get("email") or ""),
        first_name=meta.get("first_name") or meta.get("firstName") or "",
        last_name=meta.get("last_name") or meta.get("lastName") or "",
        role=app_meta.get("role") or meta.get("role") or UserRole.USER.value,
        metadata=meta,
    )


def session_from_payload(data: Dict[str, Any]) -> AuthSession:
    user = user_from_payload(data.get("user") or {})
    return AuthSession(
        user=user,
        access_token=data.get("access_token") or "",
        refresh_token=data.get("refresh_token") or "",
        expires_at=data.get("expires_at"),
    )


class HostedAuthClient(AuthBackend):
    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.url = (url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.anon_key = anon_key or os.getenv("SUPABASE_ANON_KEY", "")
        self.timeout_seconds = timeout_seconds
        if not self.url:
            logger.warning("Hosted auth URL is not set.")

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds)

    async def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None, access_token: Optional[str] = None) -> Dict[str, Any]:
        if not self.url or not self.anon_key:
            raise IntegrationError("Hosted auth backend is not configured.")

        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        try:
            async with self._client() as client:
                response = await client.request(method, f"{self.auth_url}{path}", json=json, headers=headers)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            payload = response_payload(e.response)
            detail = upstream_error_detail(payload, "Authentication request failed")
            logger.warning("Auth backend returned %s on %s: %s", e.response.status_code, path, detail)
            raise IntegrationError(detail, status_code=e.response.status_code, payload=payload) from e
        except httpx.RequestError as e:
            logger.error("Request error connecting to auth backend: %s", e)
            raise IntegrationError(f"Auth backend unreachable: {e}") from e

    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        data = await self._request("POST", "/signup", json={"email": email, "password": password, "data": metadata or {}})
        if "access_token" in data:
            return session_from_payload(data)
        # Email confirmation pending: the backend returns the bare user.
        return AuthSession(user=user_from_payload(data.get("user") or data), access_token="")

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._request("POST", "/token?grant_type=password", json={"email": email, "password": password})
        return session_from_payload(data)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        data = await self._request("POST", "/token?grant_type=refresh_token", json={"refresh_token": refresh_token})
        return session_from_payload(data)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", access_token=access_token)

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            data = await self._request("GET", "/user", access_token=access_token)
        except IntegrationError as e:
            if e.status_code in (401, 403):
                return None
            raise
        return user_from_payload(data)

    def oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        query = {"provider": provider}
        if redirect_to:
            query["redirect_to"] = redirect_to
        return f"{self.auth_url}/authorize?{urlencode(query)}"
