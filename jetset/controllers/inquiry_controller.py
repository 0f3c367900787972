"""Controller for travel inquiry (quote request) forms."""
from typing import Any, Dict, List, Optional
import logging

from jetset.integrations.contracts.interfaces import AuthUser, InquiryStatus, InquiryType
from jetset.utils.country_codes import normalize_country_code
from jetset.utils.validation import (
    add_error,
    optional_str,
    parse_int,
    raise_if_errors,
    require_str,
    validate_date_iso,
    validate_email,
    validate_in,
    validate_phone,
)

logger = logging.getLogger(__name__)

INQUIRY_TYPES = [t.value for t in InquiryType]
INQUIRY_STATUSES = [s.value for s in InquiryStatus]
PRIORITIES = ["low", "normal", "high", "urgent"]
CONTACT_METHODS = ["email", "phone", "whatsapp"]

REQUIRED_BY_TYPE = {
    "flight": ("flight_origin", "flight_destination", "flight_departure_date"),
    "hotel": ("hotel_destination", "hotel_checkin_date", "hotel_checkout_date"),
    "cruise": ("cruise_destination", "cruise_departure_date"),
    "package": ("package_destination", "package_start_date"),
    "general": (),
}

TEXT_FIELDS = {
    "flight": ("flight_origin", "flight_destination", "flight_class"),
    "hotel": ("hotel_destination", "hotel_room_type"),
    "cruise": ("cruise_destination", "cruise_cabin_type"),
    "package": ("package_destination", "package_budget_range"),
    "general": ("inquiry_subject", "inquiry_message"),
}

DATE_FIELDS = {
    "flight": ("flight_departure_date", "flight_return_date"),
    "hotel": ("hotel_checkin_date", "hotel_checkout_date"),
    "cruise": ("cruise_departure_date",),
    "package": ("package_start_date", "package_end_date"),
    "general": (),
}

COUNT_FIELDS = {
    "flight": ("flight_passengers",),
    "hotel": ("hotel_rooms", "hotel_guests"),
    "cruise": ("cruise_duration", "cruise_passengers"),
    "package": ("package_travelers",),
    "general": (),
}

# (start, end) pairs where end may not precede start
DATE_RANGES = (
    ("flight_departure_date", "flight_return_date"),
    ("hotel_checkin_date", "hotel_checkout_date"),
    ("package_start_date", "package_end_date"),
)

ADMIN_EDITABLE = {"status", "priority", "assigned_admin", "internal_notes", "special_requirements", "budget_range"}


def is_admin(user: Optional[AuthUser]) -> bool:
    return bool(user and user.is_admin)


def owns_inquiry(user: Optional[AuthUser], inquiry: Dict[str, Any]) -> bool:
    """Owner by user id; rows created before sign-in (no user id) match on email."""
    if not user:
        return False
    if inquiry.get("user_id"):
        return str(inquiry["user_id"]) == str(user.id)
    email = (inquiry.get("customer_email") or "").lower()
    return bool(email) and email == (user.email or "").lower()


class InquiryController:
    def __init__(self, db):
        self.db = db

    def create_inquiry(self, payload: Dict[str, Any], user: Optional[AuthUser] = None) -> Dict[str, Any]:
        payload = dict(payload or {})
        if user:
            payload["customer_email"] = user.email
            full_name = f"{user.first_name} {user.last_name}".strip()
            if user.first_name and user.last_name:
                payload["customer_name"] = full_name

        errors: Dict[str, str] = {}
        inquiry_type = validate_in(payload.get("inquiry_type"), INQUIRY_TYPES, errors, "inquiry_type")
        record: Dict[str, Any] = {
            "inquiry_type": inquiry_type,
            "customer_name": require_str(payload, "customer_name", errors, label="Name"),
            "customer_email": validate_email(payload.get("customer_email"), errors, field="customer_email").lower(),
            "customer_phone": validate_phone(payload.get("customer_phone"), errors, field="customer_phone") or None,
            "preferred_contact_method": validate_in(
                payload.get("preferred_contact_method"), CONTACT_METHODS, errors, "preferred_contact_method", required=False
            ) or None,
            "budget_range": optional_str(payload, "budget_range") or None,
            "special_requirements": optional_str(payload, "special_requirements") or None,
        }
        country = optional_str(payload, "customer_country")
        if country:
            record["customer_country"] = normalize_country_code(country)

        if inquiry_type in REQUIRED_BY_TYPE:
            for field in REQUIRED_BY_TYPE[inquiry_type]:
                if not optional_str(payload, field):
                    add_error(errors, field, f"{field} is required for {inquiry_type} inquiries")
            for field in TEXT_FIELDS[inquiry_type]:
                record[field] = optional_str(payload, field) or None
            for field in DATE_FIELDS[inquiry_type]:
                record[field] = validate_date_iso(payload.get(field), errors, field, required=False, not_past=True) or None
            for field in COUNT_FIELDS[inquiry_type]:
                if optional_str(payload, field):
                    record[field] = parse_int(payload, field, errors, min_value=1, max_value=99)
            if inquiry_type == "package":
                interests = payload.get("package_interests") or []
                if isinstance(interests, str):
                    interests = [s.strip() for s in interests.split(",") if s.strip()]
                record["package_interests"] = list(interests)
            if inquiry_type == "general" and not optional_str(payload, "inquiry_message"):
                add_error(errors, "inquiry_message", "Message is required for general inquiries")

        for start, end in DATE_RANGES:
            if record.get(start) and record.get(end) and start not in errors and end not in errors and record[end] < record[start]:
                add_error(errors, end, f"{end} cannot be before {start}")

        raise_if_errors(errors)

        if user:
            record["user_id"] = user.id
        inquiry = self.db.create_inquiry(record)
        logger.info("Created %s inquiry %s (%s)", inquiry_type, inquiry["id"], "authenticated" if user else "guest")
        return inquiry

    def get_inquiry(self, inquiry_id: str) -> Optional[Dict[str, Any]]:
        return self.db.get_inquiry(inquiry_id)

    def list_for_user(self, user: AuthUser) -> List[Dict[str, Any]]:
        """The user's inquiries plus guest rows submitted with the same email."""
        rows = {r["id"]: r for r in self.db.list_inquiries({"user_id": user.id})}
        for row in self.db.list_inquiries({"customer_email": (user.email or "").lower()}):
            if not row.get("user_id"):
                rows.setdefault(row["id"], row)
        return sorted(rows.values(), key=lambda r: r["created_at"], reverse=True)

    def list_inquiries(
        self,
        status: Optional[str] = None,
        inquiry_type: Optional[str] = None,
        limit: Optional[int] = 50,
        sort: str = "created_at:desc",
    ) -> List[Dict[str, Any]]:
        column, _, direction = (sort or "created_at:desc").partition(":")
        return self.db.list_inquiries(
            {"status": status, "inquiry_type": inquiry_type},
            order_by=column or "created_at",
            descending=direction.lower() != "asc",
            limit=limit,
        )

    def update_inquiry(self, inquiry_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        errors: Dict[str, str] = {}
        updates = {k: v for k, v in (payload or {}).items() if k in ADMIN_EDITABLE}
        if not updates:
            add_error(errors, "payload", "No fields to update")
        if "status" in updates:
            validate_in(updates["status"], INQUIRY_STATUSES, errors, "status")
        if "priority" in updates:
            validate_in(updates["priority"], PRIORITIES, errors, "priority")
        raise_if_errors(errors)
        return self.db.update_inquiry(inquiry_id, updates)

    def delete_inquiry(self, inquiry_id: str) -> bool:
        return self.db.delete_inquiry(inquiry_id)

    def stats(self) -> Dict[str, Any]:
        return self.db.inquiry_stats()
