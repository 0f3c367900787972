"""
Hosted auth backend: mock client.

Users and tokens live in memory. Tokens are opaque random strings.
"""

import logging
import secrets
import time
import uuid
from typing import Any, Dict, Optional

from jetset.integrations.contracts.interfaces import AuthBackend, AuthSession, AuthUser, UserRole
from jetset.integrations.policy.response_wrappers import IntegrationError

logger = logging.getLogger(__name__)


class MockAuthBackend(AuthBackend):
    """
    In-memory auth backend.

    Parameters
    ----------
    session_ttl_seconds : int
        Lifetime of issued access tokens. Default 3600.
    base_url : str
        Used to build OAuth authorize URLs.
    """

    def __init__(self, session_ttl_seconds: int = 3600, base_url: str = "https://auth.mock.local"):
        self.session_ttl_seconds = session_ttl_seconds
        self.base_url = base_url.rstrip("/")
        self._users: Dict[str, Dict[str, Any]] = {}       # email -> {user, password}
        self._access: Dict[str, str] = {}                 # access token -> email
        self._refresh: Dict[str, str] = {}                # refresh token -> email

    def add_user(self, email: str, password: str, first_name: str = "", last_name: str = "", role: str = UserRole.USER.value) -> AuthUser:
        """Seed a user directly (tests, local admin accounts)."""
        user = AuthUser(id=str(uuid.uuid4()), email=email.lower(), first_name=first_name, last_name=last_name, role=role)
        self._users[user.email] = {"user": user, "password": password}
        return user

    def _issue(self, user: AuthUser) -> AuthSession:
        access = secrets.token_urlsafe(24)
        refresh = secrets.token_urlsafe(24)
        self._access[access] = user.email
        self._refresh[refresh] = user.email
        return AuthSession(
            user=user,
            access_token=access,
            refresh_token=refresh,
            expires_at=int(time.time()) + self.session_ttl_seconds,
        )

    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        key = (email or "").strip().lower()
        if key in self._users:
            raise IntegrationError("User already registered", status_code=422, payload={"msg": "User already registered"})
        if len(password or "") < 6:
            raise IntegrationError("Password should be at least 6 characters", status_code=422)
        meta = metadata or {}
        user = self.add_user(
            key,
            password,
            first_name=meta.get("first_name", ""),
            last_name=meta.get("last_name", ""),
        )
        user.metadata = dict(meta)
        logger.info("[AUTH MOCK] Signed up %s", user.id)
        return self._issue(user)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        record = self._users.get((email or "").strip().lower())
        if record is None or record["password"] != password:
            raise IntegrationError("Invalid login credentials", status_code=400, payload={"error_description": "Invalid login credentials"})
        return self._issue(record["user"])

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        email = self._refresh.pop(refresh_token, None)
        if email is None or email not in self._users:
            raise IntegrationError("Invalid Refresh Token", status_code=400)
        return self._issue(self._users[email]["user"])

    async def sign_out(self, access_token: str) -> None:
        email = self._access.pop(access_token, None)
        if email is None:
            return
        for token, owner in list(self._refresh.items()):
            if owner == email:
                del self._refresh[token]

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        email = self._access.get(access_token)
        if email is None or email not in self._users:
            return None
        return self._users[email]["user"]

    def oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        url = f"{self.base_url}/auth/v1/authorize?provider={provider}"
        if redirect_to:
            url += f"&redirect_to={redirect_to}"
        return url
