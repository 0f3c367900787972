"""Controller for the signed-in user's profile and "My Trips" view."""
from typing import Any, Dict, List
import logging

from jetset.integrations.contracts.interfaces import AuthUser
from jetset.utils.country_codes import normalize_country_code
from jetset.utils.validation import (
    add_error,
    optional_str,
    raise_if_errors,
    validate_date_iso,
    validate_phone,
)

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "postalCode", "country")


def public_profile(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "email": row["email"],
        "first_name": row.get("first_name") or "",
        "last_name": row.get("last_name") or "",
        "phone": row.get("phone"),
        "date_of_birth": row.get("date_of_birth"),
        "address": row.get("address") or {},
        "preferences": row.get("preferences") or {},
        "role": row.get("role") or "user",
    }


class ProfileController:
    def __init__(self, db):
        self.db = db

    def get_profile(self, user: AuthUser) -> Dict[str, Any]:
        row = self.db.get_user(user.id)
        if not row:
            # first visit after sign-in through another client
            row = self.db.create_user(
                {"id": user.id, "email": user.email, "first_name": user.first_name, "last_name": user.last_name, "role": user.role}
            )
        return public_profile(row)

    def update_profile(self, user: AuthUser, payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = payload or {}
        errors: Dict[str, str] = {}
        if "email" in payload and (payload.get("email") or "").strip().lower() != (user.email or "").lower():
            add_error(errors, "email", "Email cannot be changed here")

        updates: Dict[str, Any] = {}
        for field in ("first_name", "last_name"):
            if field in payload:
                value = optional_str(payload, field)
                if not value:
                    add_error(errors, field, f"{field} cannot be empty")
                elif len(value) > 100:
                    add_error(errors, field, f"{field} is too long")
                updates[field] = value
        if "phone" in payload:
            updates["phone"] = validate_phone(payload.get("phone"), errors) or None
        if "date_of_birth" in payload:
            updates["date_of_birth"] = validate_date_iso(payload.get("date_of_birth"), errors, "date_of_birth", required=False, not_future=True) or None
        if "address" in payload:
            address = payload.get("address") or {}
            if not isinstance(address, dict):
                add_error(errors, "address", "address must be an object")
            else:
                cleaned = {k: str(address.get(k) or "").strip() for k in ADDRESS_FIELDS if address.get(k) is not None}
                if cleaned.get("country"):
                    cleaned["country"] = normalize_country_code(cleaned["country"])
                updates["address"] = cleaned
        if "preferences" in payload:
            preferences = payload.get("preferences")
            if not isinstance(preferences, dict):
                add_error(errors, "preferences", "preferences must be an object")
            else:
                updates["preferences"] = preferences
        raise_if_errors(errors)

        self.get_profile(user)
        row = self.db.update_user(user.id, updates)
        logger.info("Profile %s updated (%s)", user.id, ", ".join(sorted(updates)) or "no changes")
        return public_profile(row)

    def trips(self, inquiries: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Inquiries with their quotes and payments, newest first."""
        trips: List[Dict[str, Any]] = []
        for inquiry in inquiries:
            quotes = self.db.list_quotes({"inquiry_id": inquiry["id"]})
            payments = self.db.list_payments({"inquiry_id": inquiry["id"]})
            trips.append({"inquiry": inquiry, "quotes": quotes, "payments": payments})
        return {
            "trips": trips,
            "summary": {
                "inquiries": len(trips),
                "quotes": sum(len(t["quotes"]) for t in trips),
                "paid": sum(1 for t in trips for p in t["payments"] if p.get("payment_status") == "completed"),
            },
        }
