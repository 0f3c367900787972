from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PaymentStatus(str, Enum):
    """Values stored in ``payments.payment_status``."""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUND_PENDING = "refund_pending"
    VOIDED = "voided"
    CANCELLED = "cancelled"


class GatewayOperation(str, Enum):
    INITIATE_CHECKOUT = "INITIATE_CHECKOUT"
    PAY = "PAY"
    REFUND = "REFUND"
    VOID = "VOID"
    CAPTURE = "CAPTURE"


class GatewayResult(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILURE = "FAILURE"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


class InquiryType(str, Enum):
    FLIGHT = "flight"
    HOTEL = "hotel"
    CRUISE = "cruise"
    PACKAGE = "package"
    GENERAL = "general"


class InquiryStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    QUOTED = "quoted"
    BOOKED = "booked"
    PAID = "paid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    PAID = "paid"
    EXPIRED = "expired"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class CheckoutSessionRequest:
    order_id: str
    amount: float
    currency: str
    description: str
    return_url: str
    cancel_url: str
    merchant_name: str = "JetSet Travel"
    reference: Optional[str] = None
    customer_email: Optional[str] = None
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_phone: Optional[str] = None
    billing_address: Optional[Dict[str, str]] = None   # already normalized (ISO-2 country)
    airline: Optional[Dict[str, Any]] = None


@dataclass
class CheckoutSession:
    session_id: str
    checkout_url: str
    success_indicator: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FlightSearchParams:
    origin: str                          # IATA
    destination: str                     # IATA
    departure_date: str                  # ISO format: YYYY-MM-DD
    return_date: Optional[str] = None
    adults: int = 1
    travel_class: Optional[str] = None   # ECONOMY, PREMIUM_ECONOMY, BUSINESS, FIRST
    max_results: int = 10
    currency: str = "USD"
    non_stop: bool = False

    def cache_key(self) -> str:
        parts = [f"{k}={v}" for k, v in sorted(asdict(self).items()) if v not in (None, "")]
        return "flights:search:" + "&".join(parts)


@dataclass
class EmailMessage:
    to: List[str]
    subject: str
    html: str
    text: Optional[str] = None
    from_address: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass
class AuthUser:
    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str = UserRole.USER.value
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN.value, UserRole.STAFF.value)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
        }


@dataclass
class AuthSession:
    user: AuthUser
    access_token: str
    refresh_token: str = ""
    expires_at: Optional[int] = None     # unix seconds

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc).timestamp() >= self.expires_at

    def to_storage(self) -> Dict[str, Any]:
        """Flat shape the browser mirrors into local storage."""
        return {
            "user": self.user.to_public_dict(),
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "isAuthenticated": True,
        }

    @classmethod
    def from_storage(cls, data: Dict[str, Any]) -> Optional["AuthSession"]:
        if not data or not data.get("token") or not isinstance(data.get("user"), dict):
            return None
        user = data["user"]
        return cls(
            user=AuthUser(
                id=str(user.get("id", "")),
                email=str(user.get("email", "")),
                first_name=user.get("firstName", ""),
                last_name=user.get("lastName", ""),
                role=user.get("role", UserRole.USER.value),
            ),
            access_token=data["token"],
            refresh_token=data.get("refresh_token") or "",
            expires_at=data.get("expires_at"),
        )


# ---------------------------------------------------------------------------
# Abstract integration interfaces
# ---------------------------------------------------------------------------

class PaymentGateway(ABC):
    """Every hosted-checkout gateway client must implement this interface."""

    @property
    @abstractmethod
    def merchant_id(self) -> str:
        """Merchant identifier shown to the checkout page."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present."""

    @abstractmethod
    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        """INITIATE_CHECKOUT for a hosted payment page."""

    @abstractmethod
    async def create_session(self) -> Dict[str, Any]:
        """Create an empty gateway session (hosted fields)."""

    @abstractmethod
    async def retrieve_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch the gateway's view of an order, including its transactions."""

    @abstractmethod
    async def retrieve_transaction(self, order_id: str, transaction_id: str) -> Dict[str, Any]:
        """Fetch a single transaction of an order."""

    @abstractmethod
    async def pay(self, order_id: str, transaction_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """PAY transaction."""

    @abstractmethod
    async def refund(self, order_id: str, transaction_id: str, amount: float, currency: str) -> Dict[str, Any]:
        """REFUND a captured amount."""

    @abstractmethod
    async def void(self, order_id: str, transaction_id: str, target_transaction_id: str) -> Dict[str, Any]:
        """VOID an authorization that was not captured."""

    @abstractmethod
    async def capture(self, order_id: str, transaction_id: str, amount: float, currency: str) -> Dict[str, Any]:
        """CAPTURE an authorized amount."""

    @abstractmethod
    async def gateway_information(self) -> Dict[str, Any]:
        """Gateway status/information endpoint."""


class FlightDataProvider(ABC):

    @property
    @abstractmethod
    def source(self) -> str:
        """Label reported in search metadata."""

    @abstractmethod
    async def search_flights(self, params: FlightSearchParams) -> Dict[str, Any]:
        """Raw offers response: ``{"data": [...], "dictionaries": {...}}``."""

    @abstractmethod
    async def search_locations(self, keyword: str, sub_type: str = "CITY,AIRPORT", limit: int = 10, country_code: Optional[str] = None) -> List[Dict[str, Any]]:
        """Keyword airport/city search, already simplified."""

    @abstractmethod
    async def get_cheapest_dates(self, origin: str, destination: str, **options: Any) -> List[Dict[str, Any]]:
        """Cheapest departure dates for a route."""

    @abstractmethod
    async def get_most_booked_destinations(self, origin: str, period: str) -> List[Dict[str, Any]]:
        """Analytics: most booked destinations for a period (YYYY-MM)."""

    @abstractmethod
    async def get_most_traveled_destinations(self, origin: str, period: str) -> List[Dict[str, Any]]:
        """Analytics: most traveled destinations for a period (YYYY-MM)."""

    @abstractmethod
    async def price_offer(self, offer: Dict[str, Any]) -> Dict[str, Any]:
        """Confirm the price of a flight offer."""

    @abstractmethod
    async def get_flight_order(self, order_id: str) -> Dict[str, Any]:
        """Retrieve a flight order."""


class AuthBackend(ABC):

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        """Register a user and return a session."""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Email/password sign-in."""

    @abstractmethod
    async def refresh_session(self, refresh_token: str) -> AuthSession:
        """Exchange a refresh token for a new session."""

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""

    @abstractmethod
    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        """Resolve a bearer token to a user, or None when invalid."""

    @abstractmethod
    def oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        """Authorize URL for a third-party OAuth provider."""


class EmailSender(ABC):

    @abstractmethod
    async def send(self, message: EmailMessage) -> Dict[str, Any]:
        """Send one message; return the provider's response."""
