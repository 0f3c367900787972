"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from datetime import datetime
from urllib.parse import parse_qs, urlparse

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import jetset.api.dependencies as deps
from jetset.api.endpoints.auth import auth_api
from jetset.api.endpoints.email import email_api
from jetset.api.endpoints.flights import airports_api, flights_api
from jetset.api.endpoints.inquiries import inquiries_api
from jetset.api.endpoints.payments import payments_api
from jetset.api.endpoints.profile import profile_api
from jetset.api.endpoints.quotes import quotes_api
from jetset.error_handler import ErrorHandler
from jetset.utils.validation import FormValidationError

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="JetSet Travel API",
    description="Flight search, inquiries, quotes and hosted-checkout payments",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

error_handler = ErrorHandler()

# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================


def _should_use_real_integrations() -> bool:
    mode = os.getenv("INTEGRATIONS_MODE", "").strip().lower()
    if mode in {"real", "live"}:
        return True
    if mode in {"mock", "test"}:
        return False
    return bool(os.getenv("ARC_PAY_MERCHANT_ID") or os.getenv("AMADEUS_API_KEY") or os.getenv("SUPABASE_URL"))


# Initialize databases: use real Postgres/Redis when env is set, else in-memory stubs
if os.getenv("DATABASE_URL"):
    from jetset.database.postgres_real import PostgresDB

    postgres_db = PostgresDB(connection_string=os.environ["DATABASE_URL"])
else:
    from jetset.database.postgres import PostgresDB

    postgres_db = PostgresDB()

if os.getenv("REDIS_URL"):
    from jetset.database.redis_real import RedisCache

    redis_cache = RedisCache(url=os.environ["REDIS_URL"])
else:
    from jetset.database.redis import RedisCache

    redis_cache = RedisCache()

if _should_use_real_integrations():
    from jetset.integrations.clients.real_http.amadeus import AmadeusFlightClient
    from jetset.integrations.clients.real_http.arcpay import ArcPayClient
    from jetset.integrations.clients.real_http.hosted_auth import HostedAuthClient
    from jetset.integrations.clients.real_http.resend_email import ResendEmailClient

    deps.integrations_mode = "real"
    deps.payment_gateway = ArcPayClient()
    deps.flight_provider = AmadeusFlightClient()
    deps.auth_backend = HostedAuthClient()
    deps.email_sender = ResendEmailClient()
else:
    from jetset.integrations.clients.mocks.auth import MockAuthBackend
    from jetset.integrations.clients.mocks.email import MockEmailSender
    from jetset.integrations.clients.mocks.flights import MockFlightDataClient
    from jetset.integrations.clients.mocks.payments import MockPaymentGateway

    deps.integrations_mode = "mock"
    deps.payment_gateway = MockPaymentGateway()
    deps.flight_provider = MockFlightDataClient()
    deps.auth_backend = MockAuthBackend()
    deps.email_sender = MockEmailSender()

deps.postgres_db = postgres_db
deps.redis_cache = redis_cache

# Register routers
app.include_router(payments_api, prefix="/api")
app.include_router(email_api, prefix="/api")
app.include_router(flights_api, prefix="/api/flights", tags=["Flights"])
app.include_router(airports_api, prefix="/api/airports", tags=["Flights"])
app.include_router(auth_api, prefix="/api/auth", tags=["Auth"])
app.include_router(profile_api, prefix="/api/profile", tags=["Profile"])
app.include_router(inquiries_api, prefix="/api/inquiries", tags=["Inquiries"])
app.include_router(quotes_api, prefix="/api/quotes", tags=["Quotes"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================
@app.exception_handler(FormValidationError)
async def form_validation_handler(request: Request, exc: FormValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "validation_error",
            "message": exc.message,
            "field_errors": exc.field_errors,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {"success": False}
    if isinstance(exc.detail, dict):
        content.update(exc.detail)
    else:
        content["error"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    payload = error_handler.handle_exception(exc, {"operation": f"{request.method} {request.url.path}"})
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {"service": "JetSet Travel API", "status": "healthy", "version": "1.0.0", "timestamp": datetime.now().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check (Postgres, Redis)."""
    db_ok = postgres_db.ping()
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": {"postgres": "connected" if db_ok else "unreachable", "redis": redis_cache.ping()},
        "integrations": deps.integrations_mode,
        "timestamp": datetime.now().isoformat(),
    }


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================
@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    logger.info("Starting JetSet Travel API (integrations=%s)...", deps.integrations_mode)

    # Log sanitized DB target details (no credentials) for connectivity debugging.
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        try:
            parsed = urlparse(db_url)
            query = parse_qs(parsed.query or "")
            logger.info(
                "DATABASE_URL target: scheme=%s host=%s port=%s db=%s sslmode=%s",
                parsed.scheme,
                parsed.hostname,
                parsed.port or 5432,
                (parsed.path or "").lstrip("/"),
                (query.get("sslmode") or [""])[0],
            )
        except ValueError as e:
            logger.warning("Could not parse DATABASE_URL for startup logging: %s", e)
    else:
        logger.info("DATABASE_URL not set; using in-memory PostgresDB stub")

    try:
        postgres_db.create_tables()
        logger.info("Database tables initialized")
    except Exception as e:
        logger.error("Error initializing database: %s", e)

    if redis_cache.ping():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down JetSet Travel API...")
