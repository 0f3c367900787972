"""
Request dependencies shared by the routers.

jetset.api.main wires the process-wide clients into the module globals below
at import time; tests replace them with ``app.dependency_overrides``.
"""

import logging
from typing import Any, Optional

from fastapi import Depends, Header, HTTPException, status

from jetset.flights.service import FlightService
from jetset.integrations.contracts.interfaces import AuthBackend, AuthUser
from jetset.integrations.policy.email_service import EmailService
from jetset.integrations.policy.payment_service import PaymentService
from jetset.integrations.policy.response_wrappers import IntegrationError
from jetset.utils.config_loader import AppConfig, get_app_config

logger = logging.getLogger(__name__)

# Set by jetset.api.main
postgres_db: Any = None
redis_cache: Any = None
payment_gateway: Any = None
flight_provider: Any = None
auth_backend: Optional[AuthBackend] = None
email_sender: Any = None
integrations_mode: str = "mock"


def _wired(value: Any, name: str) -> Any:
    if value is None:
        raise RuntimeError(f"{name} has not been initialised")
    return value


def get_config() -> AppConfig:
    return get_app_config()


def get_db():
    return _wired(postgres_db, "Database")


def get_cache():
    return _wired(redis_cache, "Cache")


def get_auth_backend() -> AuthBackend:
    return _wired(auth_backend, "Auth backend")


def get_payment_service(db=Depends(get_db), config: AppConfig = Depends(get_config)) -> PaymentService:
    return PaymentService(_wired(payment_gateway, "Payment gateway"), db, config, integrations_mode=integrations_mode)


def get_email_service(db=Depends(get_db), config: AppConfig = Depends(get_config)) -> EmailService:
    return EmailService(_wired(email_sender, "Email sender"), db, config)


def get_flight_service(cache=Depends(get_cache), config: AppConfig = Depends(get_config)) -> FlightService:
    return FlightService(_wired(flight_provider, "Flight provider"), cache=cache, config=config)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def optional_user(
    authorization: Optional[str] = Header(default=None),
    auth: AuthBackend = Depends(get_auth_backend),
    db=Depends(get_db),
) -> Optional[AuthUser]:
    """The caller's user, or None for guests and bad tokens."""
    token = bearer_token(authorization)
    if not token:
        return None
    try:
        user = await auth.get_user(token)
    except IntegrationError as e:
        logger.warning("Could not resolve access token: %s", e)
        return None
    if user is None:
        return None

    # The users table is authoritative for roles
    row = db.get_user(user.id)
    if row and row.get("role"):
        user.role = row["role"]
    return user


async def require_user(user: Optional[AuthUser] = Depends(optional_user)) -> AuthUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


async def require_admin(
    user: AuthUser = Depends(require_user),
    config: AppConfig = Depends(get_config),
) -> AuthUser:
    if user.role not in config.auth.admin_roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
