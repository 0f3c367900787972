"""
Lightweight in-memory PostgresDB replacement for local development.

Implements the same interface as jetset.database.postgres_real so the API can
run without the hosted backend's database. Records are plain dicts with the
same keys as the SQLAlchemy tables in jetset.database.models. It is NOT
intended for production use.
"""

from __future__ import annotations

import copy
import uuid
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from jetset.database.models import BookingInfo, Inquiry, Payment, Quote, Subscription, User, utcnow

# Column defaults applied on insert (everything else defaults to None)
_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "users": {"role": "user", "address": dict, "preferences": dict},
    "inquiries": {"status": "pending", "priority": "normal", "package_interests": list},
    "quotes": {"currency": "USD", "breakdown": dict, "validity_days": 7, "status": "draft", "payment_status": "unpaid"},
    "payments": {"currency": "USD", "payment_status": "pending", "metadata": dict},
    "booking_info": {"billing_address": dict, "terms_accepted": False, "status": "incomplete"},
    "subscriptions": {"status": "active"},
}


def _columns(model) -> List[str]:
    return [c.name for c in model.__table__.columns]


def _matches(record: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    for key, expected in (filters or {}).items():
        if expected is None:
            continue
        value = record.get(key)
        if isinstance(expected, (list, tuple, set)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _sort_key(column: str):
    # None sorts first ascending / last descending, like NULLS FIRST
    return lambda r: (r.get(column) is not None, r.get(column) if r.get(column) is not None else 0)


class PostgresDB:
    """
    In-memory stand-in for the Postgres-backed data access layer.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {
            "users": {},
            "inquiries": {},
            "quotes": {},
            "payments": {},
            "booking_info": {},
            "subscriptions": {},
        }
        self._columns = {
            "users": _columns(User),
            "inquiries": _columns(Inquiry),
            "quotes": _columns(Quote),
            "payments": _columns(Payment),
            "booking_info": _columns(BookingInfo),
            "subscriptions": _columns(Subscription),
        }

    # ------------------------------------------------------------------ #
    # Schema / lifecycle
    # ------------------------------------------------------------------ #
    def create_tables(self) -> None:
        """
        No-op for the in-memory implementation. Kept for compatibility
        with the startup hook in `jetset/api/main.py`.
        """
        return None

    def ping(self) -> bool:
        return True

    # ------------------------------------------------------------------ #
    # Generic helpers
    # ------------------------------------------------------------------ #
    def _insert(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        record: Dict[str, Any] = {}
        for column in self._columns[table]:
            default = _DEFAULTS[table].get(column)
            record[column] = default() if callable(default) else default
        record.update({k: copy.deepcopy(v) for k, v in data.items() if k in record})
        record["id"] = record.get("id") or str(uuid.uuid4())
        if "created_at" in record:
            record["created_at"] = now
        if "updated_at" in record:
            record["updated_at"] = now
        self._tables[table][record["id"]] = record
        return dict(record)

    def _get(self, table: str, record_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        record = self._tables[table].get(str(record_id))
        return dict(record) if record else None

    def _update(self, table: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = self._tables[table].get(str(record_id))
        if record is None:
            return None
        for k, v in (updates or {}).items():
            if k in record and k not in ("id", "created_at"):
                record[k] = copy.deepcopy(v)
        if "updated_at" in record:
            record["updated_at"] = utcnow()
        return dict(record)

    def _delete(self, table: str, record_id: str) -> bool:
        return self._tables[table].pop(str(record_id), None) is not None

    def _list(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        column = order_by if order_by in self._columns[table] else "created_at"
        key = _sort_key(column)
        # insertion order breaks ties between equal timestamps
        indexed = [(i, dict(r)) for i, r in enumerate(self._tables[table].values()) if _matches(r, filters)]
        indexed.sort(key=lambda pair: (key(pair[1]), pair[0]), reverse=descending)
        rows = [r for _, r in indexed]
        return rows[:limit] if limit else rows

    # ------------------------------------------------------------------ #
    # Users
    # ------------------------------------------------------------------ #
    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get("users", user_id)

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        wanted = (email or "").strip().lower()
        for record in self._tables["users"].values():
            if record["email"] == wanted:
                return dict(record)
        return None

    def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a user; an existing id or email is updated instead (mirrors sign-up retries)."""
        email = (data.get("email") or "").strip().lower()
        existing = self.get_user(data.get("id")) or self.get_user_by_email(email)
        if existing:
            return self._update("users", existing["id"], {k: v for k, v in data.items() if k != "id"})
        return self._insert("users", {**data, "email": email})

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("users", user_id, updates)

    # ------------------------------------------------------------------ #
    # Inquiries
    # ------------------------------------------------------------------ #
    def create_inquiry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("inquiries", data)

    def get_inquiry(self, inquiry_id: str) -> Optional[Dict[str, Any]]:
        return self._get("inquiries", inquiry_id)

    def list_inquiries(self, filters: Optional[Dict[str, Any]] = None, order_by: str = "created_at", descending: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._list("inquiries", filters, order_by, descending, limit)

    def update_inquiry(self, inquiry_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("inquiries", inquiry_id, updates)

    def delete_inquiry(self, inquiry_id: str) -> bool:
        deleted = self._delete("inquiries", inquiry_id)
        if deleted:
            for quote in self.list_quotes({"inquiry_id": inquiry_id}):
                self.delete_quote(quote["id"])
        return deleted

    def inquiry_stats(self) -> Dict[str, Any]:
        rows = list(self._tables["inquiries"].values())
        return {
            "total": len(rows),
            "by_status": dict(Counter(r["status"] for r in rows)),
            "by_type": dict(Counter(r["inquiry_type"] for r in rows)),
        }

    # ------------------------------------------------------------------ #
    # Quotes
    # ------------------------------------------------------------------ #
    def create_quote(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("quotes", data)

    def get_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        return self._get("quotes", quote_id)

    def list_quotes(self, filters: Optional[Dict[str, Any]] = None, order_by: str = "created_at", descending: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._list("quotes", filters, order_by, descending, limit)

    def update_quote(self, quote_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("quotes", quote_id, updates)

    def delete_quote(self, quote_id: str) -> bool:
        for record_id, record in list(self._tables["booking_info"].items()):
            if record["quote_id"] == quote_id:
                del self._tables["booking_info"][record_id]
        return self._delete("quotes", quote_id)

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #
    def create_payment(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("payments", data)

    def get_payment(self, payment_id: str) -> Optional[Dict[str, Any]]:
        return self._get("payments", payment_id)

    def get_payment_by_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        rows = self._list("payments", {"arc_session_id": session_id}, limit=1)
        return rows[0] if rows and session_id else None

    def get_payment_by_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Payment whose gateway order id (or own id) is ``order_id``."""
        rows = self._list("payments", {"arc_order_id": order_id}, limit=1)
        return rows[0] if rows and order_id else self.get_payment(order_id)

    def get_latest_payment_for_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        rows = self._list("payments", {"quote_id": quote_id}, limit=1)
        return rows[0] if rows and quote_id else None

    def list_payments(self, filters: Optional[Dict[str, Any]] = None, order_by: str = "created_at", descending: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._list("payments", filters, order_by, descending, limit)

    def update_payment(self, payment_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("payments", payment_id, updates)

    # ------------------------------------------------------------------ #
    # Booking info
    # ------------------------------------------------------------------ #
    def upsert_booking_info(self, quote_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        existing = self.get_booking_info(quote_id)
        if existing:
            return self._update("booking_info", existing["id"], data)
        return self._insert("booking_info", {**data, "quote_id": quote_id})

    def get_booking_info(self, quote_id: str) -> Optional[Dict[str, Any]]:
        rows = self._list("booking_info", {"quote_id": quote_id}, limit=1)
        return rows[0] if rows and quote_id else None

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #
    def add_subscription(self, email: str, source: Optional[str] = None) -> Tuple[Dict[str, Any], bool]:
        """Returns (record, created). Subscribing twice keeps the first row."""
        existing = self.get_subscription(email)
        if existing:
            return existing, False
        return self._insert("subscriptions", {"email": email.strip().lower(), "source": source}), True

    def get_subscription(self, email: str) -> Optional[Dict[str, Any]]:
        rows = self._list("subscriptions", {"email": (email or "").strip().lower()}, limit=1)
        return rows[0] if rows else None
