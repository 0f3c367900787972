"""
Quote expiration job.

Sent quotes carry an ``expires_at`` timestamp. This job flips overdue ones to
``expired`` and, when an email service is supplied, reminds customers whose
quote expires within the next few days. It is run from
``scripts/expire_quotes.py`` (cron) and is safe to run repeatedly.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jetset.integrations.contracts.interfaces import QuoteStatus

logger = logging.getLogger(__name__)

REMINDER_WINDOW_DAYS = 3


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _sent_quotes(db) -> List[Dict[str, Any]]:
    return [q for q in db.list_quotes({"status": QuoteStatus.SENT.value}) if q.get("expires_at")]


def expire_quotes(db, now: Optional[datetime] = None) -> int:
    """Mark unpaid sent quotes past their expiry as expired; returns how many changed."""
    return len(_expire(db, _aware(now) or datetime.now(timezone.utc)))


def _expire(db, now: datetime) -> List[Dict[str, Any]]:
    expired = []
    for quote in _sent_quotes(db):
        if quote.get("payment_status") == "paid":
            continue
        if _aware(quote["expires_at"]) < now:
            expired.append(db.update_quote(quote["id"], {"status": QuoteStatus.EXPIRED.value}))
    if expired:
        logger.info("Expired %d quote(s)", len(expired))
    return expired


def quotes_expiring_soon(db, now: datetime, days: int = REMINDER_WINDOW_DAYS) -> List[Dict[str, Any]]:
    horizon = now + timedelta(days=days)
    return [
        q for q in _sent_quotes(db)
        if q.get("payment_status") != "paid" and now <= _aware(q["expires_at"]) <= horizon
    ]


def days_until(expires_at: datetime, now: datetime) -> int:
    return math.ceil((_aware(expires_at) - now).total_seconds() / 86400)


async def run_expiration_check(db, email_service=None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Send expiry reminders, then expire overdue quotes and notify their customers.

    Email failures are logged per quote and never stop the run.
    """
    now = _aware(now) or datetime.now(timezone.utc)
    try:
        expiring = quotes_expiring_soon(db, now)
        if email_service is not None:
            for quote in expiring:
                await _notify(db, quote, email_service.send_quote_expiring, days_until(quote["expires_at"], now))

        expired = _expire(db, now)
        if email_service is not None:
            for quote in expired:
                await _notify(db, quote, email_service.send_quote_expired)
    except Exception as e:
        logger.exception("Quote expiration check failed: %s", e)
        return {"success": False, "error": str(e)}

    logger.info("Quote expiration check: %d expiring soon, %d expired", len(expiring), len(expired))
    return {"success": True, "expiringSoon": len(expiring), "expired": len(expired)}


async def _notify(db, quote: Dict[str, Any], send, *args: Any) -> None:
    inquiry = db.get_inquiry(quote.get("inquiry_id")) if quote.get("inquiry_id") else None
    if not inquiry or not inquiry.get("customer_email"):
        logger.warning("Quote %s has no customer email; skipping notification", quote["id"])
        return
    try:
        await send(quote, inquiry, *args)
    except Exception as e:
        logger.warning("Failed to email customer about quote %s: %s", quote["id"], e)
