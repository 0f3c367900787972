"""
Application configuration loader (gateway, flights, email, auth, cache, quotes).

Non-secret settings live in ``config/app_config.yml``; credentials and
deployment URLs are read from the environment by the clients themselves.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class GatewayConfig(BaseModel):
    base_url: str = "https://api.arcpay.travel/api/rest/version/100"
    checkout_base_url: str = "https://api.arcpay.travel"
    merchant_name: str = "JetSet Travel"
    session_timeout_seconds: int = Field(default=900, ge=60, le=3600)
    timeout_seconds: float = Field(default=30.0, gt=0)
    travel_agent_code: str = "JETSET001"
    travel_agent_name: str = "Jetsetters"


class FlightsConfig(BaseModel):
    base_url: str = "https://test.api.amadeus.com"
    timeout_seconds: float = Field(default=30.0, gt=0)
    token_ttl_seconds: int = Field(default=29 * 60, ge=60)
    default_max_results: int = Field(default=10, ge=1, le=250)
    default_currency: str = "USD"


class EmailConfig(BaseModel):
    api_url: str = "https://api.resend.com/emails"
    from_address: str = "JetSetters <noreply@jetsetterss.com>"
    admin_address: str = "jetsetters721@gmail.com"
    company_name: str = "JetSetters"
    timeout_seconds: float = Field(default=15.0, gt=0)


class AuthConfig(BaseModel):
    timeout_seconds: float = Field(default=15.0, gt=0)
    admin_roles: list[str] = Field(default_factory=lambda: ["admin", "staff"])


class CacheConfig(BaseModel):
    flight_search_ttl_seconds: int = Field(default=300, ge=0)
    analytics_ttl_seconds: int = Field(default=3600, ge=0)
    locations_ttl_seconds: int = Field(default=86400, ge=0)


class PaginationConfig(BaseModel):
    flights_per_page: int = Field(default=10, ge=1, le=100)


class QuotesConfig(BaseModel):
    validity_days: int = Field(default=7, ge=1, le=90)
    default_currency: str = "USD"


class AppConfig(BaseModel):
    frontend_url: str = "https://www.jetsetterss.com"
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    flights: FlightsConfig = Field(default_factory=FlightsConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    quotes: QuotesConfig = Field(default_factory=QuotesConfig)


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load and validate the application configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to config/app_config.yml

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "app_config.yml"

    if not config_path.exists():
        raise FileNotFoundError(f"App config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    try:
        cfg = AppConfig(**data)
        logger.info("Successfully loaded app config from %s", config_path)
        return cfg
    except ValidationError as e:
        logger.error("App config validation failed: %s", e)
        raise


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Process-wide config, loaded once."""
    return load_app_config()
