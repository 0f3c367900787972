"""
Real Postgres-backed DB for production when DATABASE_URL is set.
Implements the same interface as jetset.database.postgres (in-memory stub);
every method returns plain dicts keyed by column name.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple, Type
from uuid import uuid4

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.orm import Session, sessionmaker

from jetset.database.models import (
    Base,
    BookingInfo,
    Inquiry,
    Payment,
    Quote,
    Subscription,
    User,
    row_to_dict,
    utcnow,
)


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace; pin the psycopg driver."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    s = re.sub(r"^postgres(ql)?://", "postgresql+psycopg://", s)
    return s


def _attr(model: Type[Base], column: str) -> str:
    # payments.metadata is mapped as payment_metadata
    return "payment_metadata" if model is Payment and column == "metadata" else column


class PostgresDB:
    """
    Postgres data access using SQLAlchemy. Use when DATABASE_URL is set.
    """

    def __init__(self, connection_string: str) -> None:
        connection_string = _normalize_connection_string(connection_string)
        self.engine = create_engine(connection_string, pool_pre_ping=True, pool_size=5, max_overflow=10)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    @contextmanager
    def _session(self) -> Session:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ------------------------------------------------------------------ #
    # Generic helpers
    # ------------------------------------------------------------------ #
    def _insert(self, model: Type[Base], data: Dict[str, Any]) -> Dict[str, Any]:
        columns = {c.name for c in model.__table__.columns}
        values = {_attr(model, k): v for k, v in data.items() if k in columns and k not in ("created_at", "updated_at")}
        values.setdefault("id", str(uuid4()))
        with self._session() as s:
            row = model(**values)
            s.add(row)
            s.flush()
            s.refresh(row)
            return row_to_dict(row)

    def _get(self, model: Type[Base], record_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        with self._session() as s:
            row = s.get(model, str(record_id))
            return row_to_dict(row) if row else None

    def _first(self, model: Type[Base], *conditions, newest: bool = True) -> Optional[Dict[str, Any]]:
        with self._session() as s:
            order = model.created_at.desc() if newest else model.created_at.asc()
            stmt = select(model).where(*conditions).order_by(order).limit(1)
            row = s.execute(stmt).scalar_one_or_none()
            return row_to_dict(row) if row else None

    def _update(self, model: Type[Base], record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        columns = {c.name for c in model.__table__.columns}
        with self._session() as s:
            row = s.get(model, str(record_id))
            if not row:
                return None
            for k, v in (updates or {}).items():
                if k in columns and k not in ("id", "created_at"):
                    setattr(row, _attr(model, k), v)
            if "updated_at" in columns:
                row.updated_at = utcnow()
            s.add(row)
            s.flush()
            s.refresh(row)
            return row_to_dict(row)

    def _delete(self, model: Type[Base], record_id: str) -> bool:
        with self._session() as s:
            row = s.get(model, str(record_id))
            if not row:
                return False
            s.delete(row)
            return True

    def _list(
        self,
        model: Type[Base],
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        columns = {c.name for c in model.__table__.columns}
        with self._session() as s:
            stmt = select(model)
            for key, expected in (filters or {}).items():
                if expected is None or key not in columns:
                    continue
                col = getattr(model, _attr(model, key))
                if isinstance(expected, (list, tuple, set)):
                    stmt = stmt.where(col.in_(list(expected)))
                else:
                    stmt = stmt.where(col == expected)
            col = getattr(model, order_by if order_by in columns else "created_at")
            stmt = stmt.order_by(col.desc() if descending else col.asc())
            if limit:
                stmt = stmt.limit(limit)
            return [row_to_dict(r) for r in s.execute(stmt).scalars().all()]

    # ------------------------------------------------------------------ #
    # Users
    # ------------------------------------------------------------------ #
    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self._first(User, User.email == (email or "").strip().lower())

    def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        email = (data.get("email") or "").strip().lower()
        existing = self.get_user(data.get("id")) or self.get_user_by_email(email)
        if existing:
            return self._update(User, existing["id"], {k: v for k, v in data.items() if k != "id"})
        return self._insert(User, {**data, "email": email})

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update(User, user_id, updates)

    # ------------------------------------------------------------------ #
    # Inquiries
    # ------------------------------------------------------------------ #
    def create_inquiry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert(Inquiry, data)

    def get_inquiry(self, inquiry_id: str) -> Optional[Dict[str, Any]]:
        return self._get(Inquiry, inquiry_id)

    def list_inquiries(self, filters: Optional[Dict[str, Any]] = None, order_by: str = "created_at", descending: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._list(Inquiry, filters, order_by, descending, limit)

    def update_inquiry(self, inquiry_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update(Inquiry, inquiry_id, updates)

    def delete_inquiry(self, inquiry_id: str) -> bool:
        # quotes and booking info go with it (ON DELETE CASCADE)
        return self._delete(Inquiry, inquiry_id)

    def inquiry_stats(self) -> Dict[str, Any]:
        with self._session() as s:
            by_status = dict(s.execute(select(Inquiry.status, func.count()).group_by(Inquiry.status)).all())
            by_type = dict(s.execute(select(Inquiry.inquiry_type, func.count()).group_by(Inquiry.inquiry_type)).all())
        return {"total": sum(by_status.values()), "by_status": by_status, "by_type": by_type}

    # ------------------------------------------------------------------ #
    # Quotes
    # ------------------------------------------------------------------ #
    def create_quote(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert(Quote, data)

    def get_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        return self._get(Quote, quote_id)

    def list_quotes(self, filters: Optional[Dict[str, Any]] = None, order_by: str = "created_at", descending: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._list(Quote, filters, order_by, descending, limit)

    def update_quote(self, quote_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update(Quote, quote_id, updates)

    def delete_quote(self, quote_id: str) -> bool:
        return self._delete(Quote, quote_id)

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #
    def create_payment(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert(Payment, data)

    def get_payment(self, payment_id: str) -> Optional[Dict[str, Any]]:
        return self._get(Payment, payment_id)

    def get_payment_by_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        if not session_id:
            return None
        return self._first(Payment, Payment.arc_session_id == session_id)

    def get_payment_by_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        if not order_id:
            return None
        return self._first(Payment, Payment.arc_order_id == order_id) or self.get_payment(order_id)

    def get_latest_payment_for_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        if not quote_id:
            return None
        return self._first(Payment, Payment.quote_id == quote_id)

    def list_payments(self, filters: Optional[Dict[str, Any]] = None, order_by: str = "created_at", descending: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._list(Payment, filters, order_by, descending, limit)

    def update_payment(self, payment_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update(Payment, payment_id, updates)

    # ------------------------------------------------------------------ #
    # Booking info
    # ------------------------------------------------------------------ #
    def upsert_booking_info(self, quote_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        existing = self.get_booking_info(quote_id)
        if existing:
            return self._update(BookingInfo, existing["id"], data)
        return self._insert(BookingInfo, {**data, "quote_id": quote_id})

    def get_booking_info(self, quote_id: str) -> Optional[Dict[str, Any]]:
        if not quote_id:
            return None
        return self._first(BookingInfo, BookingInfo.quote_id == quote_id)

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #
    def add_subscription(self, email: str, source: Optional[str] = None) -> Tuple[Dict[str, Any], bool]:
        existing = self.get_subscription(email)
        if existing:
            return existing, False
        return self._insert(Subscription, {"email": email.strip().lower(), "source": source}), True

    def get_subscription(self, email: str) -> Optional[Dict[str, Any]]:
        return self._first(Subscription, Subscription.email == (email or "").strip().lower())
