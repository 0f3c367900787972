import pytest

from jetset.api.dependencies import get_email_service
from jetset.api.main import app
from jetset.integrations.clients.mocks.email import MockEmailSender
from jetset.integrations.policy.email_service import EmailRequestError, EmailService, strip_html


def test_subscription_sends_welcome_and_admin_notice(client, email_sender, db):
    resp = client.post("/api/email", json={"type": "subscription", "email": "ada@example.com", "source": "footer"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["subscription"]["created"] is True
    assert [m.to for m in email_sender.sent] == [["ada@example.com"], ["jetsetters721@gmail.com"]]
    assert email_sender.sent[1].subject == "New Subscriber: ada@example.com"
    assert db.get_subscription("ada@example.com") is not None


def test_repeat_subscription_is_not_new(client):
    client.post("/api/email", json={"type": "subscription", "email": "ada@example.com"})
    body = client.post("/api/email", json={"type": "subscription", "email": "ada@example.com"}).json()
    assert body["data"]["subscription"]["created"] is False


def test_contact_escapes_user_input(client, email_sender):
    resp = client.post(
        "/api/email",
        json={"type": "contact", "name": "<script>x</script>", "email": "ada@example.com", "message": "Hi & <b>bye</b>"},
    )

    assert resp.status_code == 200
    customer, admin = email_sender.sent
    assert "<script>" not in customer.html
    assert "&lt;script&gt;" in customer.html
    assert "Hi &amp; &lt;b&gt;bye&lt;/b&gt;" in admin.html
    assert admin.reply_to == "ada@example.com"
    assert "Hi & <b>bye</b>" in admin.text


def test_company_email_overrides_admin_address(client, email_sender, monkeypatch):
    monkeypatch.setenv("COMPANY_EMAIL", "desk@jetset.test")
    client.post("/api/email", json={"type": "subscription", "email": "ada@example.com"})
    assert email_sender.sent[1].to == ["desk@jetset.test"]


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"type": "fax"}, 'Invalid type. Use "subscription" or "contact"'),
        ({"type": "subscription"}, "Email is required"),
        ({"type": "subscription", "email": "not-an-email"}, "Please enter a valid email address"),
        ({"type": "contact", "name": "Ada", "email": "ada@example.com"}, "Name, email, and message are required"),
        ({"type": "contact", "name": "Ada", "email": "nope", "message": "hi"}, "Please enter a valid email address"),
    ],
)
def test_bad_requests_are_400(client, email_sender, payload, error):
    resp = client.post("/api/email", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": error}
    assert email_sender.sent == []


def test_malformed_subscription_email_is_not_stored(client, db):
    resp = client.post("/api/email", json={"type": "subscription", "email": "ada@", "source": "footer"})
    assert resp.status_code == 400
    assert db._tables["subscriptions"] == {}


def test_invalid_json_and_methods(client):
    resp = client.post("/api/email", content=b"{oops", headers={"content-type": "application/json"})
    assert resp.status_code == 400

    assert client.get("/api/email").status_code == 405
    assert client.options("/api/email").status_code == 200


def test_provider_outage_still_answers_200(client, db, config):
    app.dependency_overrides[get_email_service] = lambda: EmailService(MockEmailSender(fail=True), db, config)

    resp = client.post("/api/email", json={"type": "contact", "name": "Ada", "email": "ada@example.com", "message": "hi"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Request processed, but email notification failed"
    assert "provider unavailable" in body["error"]


@pytest.mark.asyncio
async def test_quote_and_expiry_emails(email_service, email_sender, sent_quote, flight_inquiry):
    await email_service.send_quote(sent_quote, flight_inquiry)
    await email_service.send_quote_expiring(sent_quote, flight_inquiry, 1)
    await email_service.send_quote_expired(sent_quote, flight_inquiry)

    quote_mail, reminder, expired = email_sender.sent
    assert quote_mail.subject == "Your Quote Q-20990101-0001 - JetSetters"
    assert "1,250.00 USD" in quote_mail.html
    assert f"https://app.jetset.test/inquiry/{flight_inquiry['id']}" in quote_mail.html
    assert "expires in 1 day." in reminder.text
    assert expired.subject == "Your Travel Quote Has Expired"
    assert "USD 1,250.00" in expired.text


@pytest.mark.asyncio
async def test_direct_validation_errors(email_service):
    with pytest.raises(EmailRequestError):
        await email_service.handle({})


def test_strip_html():
    assert strip_html("<p>Fish &amp; <b>chips</b></p>\n<br>  tonight") == "Fish & chips tonight"
