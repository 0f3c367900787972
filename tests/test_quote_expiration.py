from datetime import datetime, timedelta, timezone

import pytest

from jetset.jobs.quote_expiration import days_until, expire_quotes, quotes_expiring_soon, run_expiration_check

NOW = datetime(2099, 3, 1, 12, 0, tzinfo=timezone.utc)


def _quote(db, inquiry, number, expires_at, status="sent", payment_status="unpaid"):
    return db.create_quote(
        {
            "inquiry_id": inquiry["id"],
            "quote_number": number,
            "title": f"Trip {number}",
            "total_amount": 500.0,
            "status": status,
            "payment_status": payment_status,
            "expires_at": expires_at,
        }
    )


@pytest.fixture
def quotes(db, flight_inquiry):
    return {
        "overdue": _quote(db, flight_inquiry, "Q-1", NOW - timedelta(hours=1)),
        "soon": _quote(db, flight_inquiry, "Q-2", NOW + timedelta(days=1, hours=2)),
        "later": _quote(db, flight_inquiry, "Q-3", NOW + timedelta(days=10)),
        "paid": _quote(db, flight_inquiry, "Q-4", NOW - timedelta(days=2), payment_status="paid"),
        "draft": _quote(db, flight_inquiry, "Q-5", NOW - timedelta(days=2), status="draft"),
        "naive": _quote(db, flight_inquiry, "Q-6", (NOW - timedelta(minutes=5)).replace(tzinfo=None)),
    }


def test_expire_quotes_only_touches_unpaid_sent_quotes(db, quotes):
    assert expire_quotes(db, now=NOW) == 2

    statuses = {name: db.get_quote(q["id"])["status"] for name, q in quotes.items()}
    assert statuses == {"overdue": "expired", "soon": "sent", "later": "sent", "paid": "sent", "draft": "draft", "naive": "expired"}

    assert expire_quotes(db, now=NOW) == 0


def test_quotes_expiring_soon_window(db, quotes):
    assert [q["quote_number"] for q in quotes_expiring_soon(db, NOW)] == ["Q-2"]
    assert sorted(q["quote_number"] for q in quotes_expiring_soon(db, NOW, days=30)) == ["Q-2", "Q-3"]


@pytest.mark.parametrize(
    "delta, days",
    [(timedelta(days=1, hours=2), 2), (timedelta(hours=3), 1), (timedelta(days=3), 3)],
)
def test_days_until_rounds_up(delta, days):
    assert days_until(NOW + delta, NOW) == days


def test_days_until_accepts_iso_strings():
    assert days_until("2099-03-03T12:00:00Z", NOW) == 2


@pytest.mark.asyncio
async def test_run_expiration_check_reminds_and_notifies(db, email_service, email_sender, quotes):
    result = await run_expiration_check(db, email_service, now=NOW)

    assert result == {"success": True, "expiringSoon": 1, "expired": 2}
    subjects = [m.subject for m in email_sender.sent]
    assert subjects[0] == "Reminder: Quote Q-2 expires soon"
    assert "expires in 2 days" in email_sender.sent[0].text
    assert subjects[1:] == ["Your Travel Quote Has Expired", "Your Travel Quote Has Expired"]


@pytest.mark.asyncio
async def test_email_failures_do_not_stop_the_run(db, email_service, email_sender, quotes):
    email_sender.fail = True
    result = await run_expiration_check(db, email_service, now=NOW)
    assert result["success"] is True
    assert db.get_quote(quotes["overdue"]["id"])["status"] == "expired"


@pytest.mark.asyncio
async def test_without_email_service_only_expires(db, quotes):
    result = await run_expiration_check(db, now=NOW)
    assert result["expired"] == 2


@pytest.mark.asyncio
async def test_storage_failure_is_reported(db):
    class BrokenDB:
        def list_quotes(self, *args, **kwargs):
            raise RuntimeError("connection reset")

    result = await run_expiration_check(BrokenDB(), now=NOW)
    assert result == {"success": False, "error": "connection reset"}
