"""Controller for admin quotes and the traveler booking details attached to them."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import json
import logging
import random

from jetset.integrations.contracts.interfaces import AuthUser, InquiryStatus, QuoteStatus
from jetset.utils.config_loader import AppConfig
from jetset.utils.country_codes import normalize_billing_address, normalize_country_code
from jetset.utils.validation import (
    add_error,
    optional_str,
    parse_amount,
    parse_int,
    raise_if_errors,
    require_str,
    validate_date_iso,
    validate_email,
    validate_in,
    validate_phone,
)

logger = logging.getLogger(__name__)

QUOTE_STATUSES = [s.value for s in QuoteStatus]
EDITABLE_FIELDS = ("title", "description", "total_amount", "currency", "breakdown", "terms_conditions", "validity_days", "status")
BOOKABLE_STATUSES = (QuoteStatus.SENT.value, QuoteStatus.ACCEPTED.value)


class QuoteStateError(ValueError):
    """The quote exists but is in the wrong state for the requested change."""


def generate_quote_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"Q-{now.strftime('%Y%m%d')}-{random.randint(0, 9999):04d}"


def _breakdown(value: Any, errors: Dict[str, str]) -> Any:
    if value in (None, ""):
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            add_error(errors, "breakdown", "breakdown must be valid JSON")
            return {}
    if not isinstance(value, (dict, list)):
        add_error(errors, "breakdown", "breakdown must be an object or a list of line items")
        return {}
    return value


def _currency(payload: Dict[str, Any], errors: Dict[str, str], default: str) -> str:
    value = optional_str(payload, "currency").upper() or default
    if len(value) != 3 or not value.isalpha():
        add_error(errors, "currency", "currency must be a 3-letter code")
    return value


class QuoteController:
    def __init__(self, db, config: AppConfig):
        self.db = db
        self.config = config

    def _unique_number(self) -> str:
        for _ in range(10):
            number = generate_quote_number()
            if not self.db.list_quotes({"quote_number": number}, limit=1):
                return number
        raise RuntimeError("Could not allocate a unique quote number")

    def create_quote(self, payload: Dict[str, Any], admin: AuthUser) -> Dict[str, Any]:
        errors: Dict[str, str] = {}
        inquiry_id = require_str(payload, "inquiry_id", errors, label="Inquiry")
        if inquiry_id and not self.db.get_inquiry(inquiry_id):
            add_error(errors, "inquiry_id", "Inquiry not found")
        record = {
            "inquiry_id": inquiry_id,
            "admin_id": admin.id,
            "title": require_str(payload, "title", errors, label="Title"),
            "description": optional_str(payload, "description") or None,
            "total_amount": parse_amount(payload, "total_amount", errors),
            "currency": _currency(payload, errors, self.config.quotes.default_currency),
            "breakdown": _breakdown(payload.get("breakdown"), errors),
            "terms_conditions": optional_str(payload, "terms_conditions") or None,
            "validity_days": parse_int(payload, "validity_days", errors, min_value=1, max_value=90, default=self.config.quotes.validity_days),
            "status": QuoteStatus.DRAFT.value,
            "payment_status": "unpaid",
        }
        raise_if_errors(errors)

        record["quote_number"] = self._unique_number()
        quote = self.db.create_quote(record)
        if self.db.get_inquiry(inquiry_id).get("status") == InquiryStatus.PENDING.value:
            self.db.update_inquiry(inquiry_id, {"status": InquiryStatus.PROCESSING.value})
        logger.info("Quote %s created for inquiry %s", quote["quote_number"], inquiry_id)
        return quote

    def send_quote(self, quote_id: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        quote = self.db.get_quote(quote_id)
        if not quote:
            return None
        if quote["status"] in (QuoteStatus.PAID.value, QuoteStatus.CANCELLED.value):
            raise QuoteStateError(f"A {quote['status']} quote cannot be sent")
        now = now or datetime.now(timezone.utc)
        validity = quote.get("validity_days") or self.config.quotes.validity_days
        sent = self.db.update_quote(
            quote_id,
            {"status": QuoteStatus.SENT.value, "sent_at": now, "expires_at": now + timedelta(days=validity)},
        )
        if sent.get("inquiry_id"):
            self.db.update_inquiry(sent["inquiry_id"], {"status": InquiryStatus.QUOTED.value})
        logger.info("Quote %s sent (expires %s)", sent["quote_number"], sent["expires_at"])
        return sent

    def accept_quote(self, quote_id: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        quote = self.db.get_quote(quote_id)
        if not quote:
            return None
        if quote["status"] != QuoteStatus.SENT.value:
            raise QuoteStateError("Only sent quotes can be accepted")
        now = now or datetime.now(timezone.utc)
        expires_at = quote.get("expires_at")
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at is not None and expires_at < now:
            raise QuoteStateError("This quote has expired")
        accepted = self.db.update_quote(quote_id, {"status": QuoteStatus.ACCEPTED.value, "accepted_at": now})
        self.db.update_inquiry(accepted["inquiry_id"], {"status": InquiryStatus.BOOKED.value})
        return accepted

    def update_quote(self, quote_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        errors: Dict[str, str] = {}
        updates: Dict[str, Any] = {}
        payload = payload or {}
        for field in EDITABLE_FIELDS:
            if field not in payload:
                continue
            if field == "total_amount":
                updates[field] = parse_amount(payload, field, errors)
            elif field == "validity_days":
                updates[field] = parse_int(payload, field, errors, min_value=1, max_value=90, required=True)
            elif field == "currency":
                updates[field] = _currency(payload, errors, self.config.quotes.default_currency)
            elif field == "breakdown":
                updates[field] = _breakdown(payload[field], errors)
            elif field == "status":
                updates[field] = validate_in(payload[field], QUOTE_STATUSES, errors, "status")
            else:
                updates[field] = optional_str(payload, field) or None
        if "title" in updates and not updates["title"]:
            add_error(errors, "title", "Title is required")
        if not updates:
            add_error(errors, "payload", "No fields to update")
        raise_if_errors(errors)
        return self.db.update_quote(quote_id, updates)

    def delete_quote(self, quote_id: str) -> bool:
        return self.db.delete_quote(quote_id)

    def get_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        return self.db.get_quote(quote_id)

    def list_for_inquiry(self, inquiry_id: str) -> List[Dict[str, Any]]:
        return self.db.list_quotes({"inquiry_id": inquiry_id})

    def list_quotes(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.db.list_quotes({"status": status}, limit=limit)

    # ------------------------------------------------------------------
    # Booking info
    # ------------------------------------------------------------------

    def save_booking_info(
        self,
        quote: Dict[str, Any],
        inquiry: Dict[str, Any],
        payload: Dict[str, Any],
        user: AuthUser,
    ) -> Dict[str, Any]:
        if quote["status"] not in BOOKABLE_STATUSES:
            raise QuoteStateError("Booking information can only be submitted for active or accepted quotes")

        errors: Dict[str, str] = {}
        record: Dict[str, Any] = {
            "inquiry_id": quote["inquiry_id"],
            "user_id": user.id,
            "full_name": require_str(payload, "full_name", errors, label="Full name"),
            "email": validate_email(payload.get("email"), errors),
            "phone": validate_phone(payload.get("phone"), errors, required=True),
            "date_of_birth": validate_date_iso(payload.get("date_of_birth"), errors, "date_of_birth", required=False, not_future=True) or None,
            "passport_number": optional_str(payload, "passport_number").upper() or None,
            "passport_expiry_date": validate_date_iso(
                payload.get("passport_expiry_date") or payload.get("passport_expiry"),
                errors,
                "passport_expiry_date",
                required=False,
                not_past=True,
            ) or None,
            "special_requests": optional_str(payload, "special_requests") or None,
        }
        nationality = optional_str(payload, "nationality")
        if nationality:
            record["nationality"] = normalize_country_code(nationality)
        if payload.get("billing_address"):
            try:
                record["billing_address"] = normalize_billing_address(payload["billing_address"])
            except ValueError as e:
                add_error(errors, "billing_address", str(e))
        if "terms_accepted" in payload:
            accepted = payload.get("terms_accepted") in (True, "true", "1", 1)
            record["terms_accepted"] = accepted
            record["terms_accepted_at"] = datetime.now(timezone.utc) if accepted else None
        raise_if_errors(errors)

        passport_ok = inquiry.get("inquiry_type") != "flight" or (record["passport_number"] and record["passport_expiry_date"])
        existing = self.db.get_booking_info(quote["id"]) or {}
        complete = bool(record.get("terms_accepted", existing.get("terms_accepted"))) and bool(passport_ok)
        record["status"] = "completed" if complete else "incomplete"

        saved = self.db.upsert_booking_info(quote["id"], record)
        logger.info("Booking info for quote %s saved (%s)", quote["id"], record["status"])
        return saved

    def get_booking_info(self, quote_id: str) -> Optional[Dict[str, Any]]:
        return self.db.get_booking_info(quote_id)
