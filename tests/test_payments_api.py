import pytest

from jetset.api.endpoints.payments import SUPPORTED_ACTIONS

FRONTEND = "https://app.jetset.test"


def test_missing_action_lists_supported_actions(client):
    resp = client.get("/api/payments")
    assert resp.status_code == 400
    body = resp.json()
    assert body == {"success": False, "error": "Missing action parameter", "supportedActions": SUPPORTED_ACTIONS}
    assert "initiate-payment" in body["supportedActions"]


def test_unknown_action(client):
    resp = client.post("/api/payments?action=teleport")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unknown action: teleport"


@pytest.mark.parametrize(
    "method, action",
    [("get", "initiate-payment"), ("post", "gateway-status"), ("put", "payment-refund"), ("delete", "health")],
)
def test_wrong_method_is_405(client, method, action):
    resp = client.request(method.upper(), f"/api/payments?action={action}")
    assert resp.status_code == 405
    assert resp.json() == {"success": False, "error": "Method not allowed"}


def test_options_preflight(client):
    resp = client.options("/api/payments?action=initiate-payment")
    assert resp.status_code == 200


def test_health_and_gateway_status(client):
    health = client.get("/api/payments?action=health").json()
    assert health["status"] == "healthy"
    assert health["gateway_configured"] is True

    status = client.get("/api/payments?action=gateway-status").json()
    assert status["status"] == "OPERATING"


def test_initiate_payment_and_callback_redirect(client, db, sent_quote):
    resp = client.post("/api/payments?action=initiate-payment", json={"quote_id": sent_quote["id"]})
    assert resp.status_code == 200
    out = resp.json()
    assert out["redirectMethod"] == "GET"

    callback = client.get(
        "/api/payments",
        params={"action": "payment-callback", "resultIndicator": out["successIndicator"], "sessionId": out["sessionId"]},
        follow_redirects=False,
    )
    assert callback.status_code == 302
    assert callback.headers["location"] == f"{FRONTEND}/payment/success?paymentId={out['paymentId']}"
    assert db.get_quote(sent_quote["id"])["status"] == "paid"


def test_callback_accepts_form_posts(client, sent_quote):
    out = client.post("/api/payments?action=initiate-payment", json={"quote_id": sent_quote["id"]}).json()

    callback = client.post(
        "/api/payments?action=payment-callback",
        data={"resultIndicator": "forged", "sessionId": out["sessionId"]},
        follow_redirects=False,
    )
    assert callback.status_code == 302
    assert "error=invalid_indicator" in callback.headers["location"]


def test_action_errors_use_their_status(client):
    resp = client.post("/api/payments?action=initiate-payment", json={"quote_id": "missing"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Quote not found"}

    resp = client.post("/api/payments?action=payment-process", json={"cardDetails": {"number": "4111"}})
    assert resp.status_code == 400


def test_non_json_body_is_treated_as_empty(client):
    resp = client.post("/api/payments?action=hosted-checkout", content=b"not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Missing required fields")


def test_hosted_checkout_then_verify(client):
    created = client.post(
        "/api/payments?action=hosted-checkout",
        json={"amount": 320.5, "orderId": "ORD-API", "customerEmail": "ada@example.com", "customerName": "Ada Traveler"},
    ).json()
    assert created["orderId"] == "ORD-API"

    verified = client.get("/api/payments?action=payment-verify&orderId=ORD-API").json()
    assert verified["verified"] is True
    assert verified["orderData"]["paymentId"] == created["paymentId"]


def test_payment_details_by_quote(client, db, sent_quote):
    client.post("/api/payments?action=initiate-payment", json={"quote_id": sent_quote["id"]})
    resp = client.get(f"/api/payments?action=get-payment-details&quoteId={sent_quote['id']}")
    assert resp.status_code == 200
    payment = resp.json()["payment"]
    assert payment["quote"]["id"] == sent_quote["id"]
    assert payment["payment_status"] == "pending"


def test_self_test_reports_healthy_mock(client):
    body = client.post("/api/payments?action=test").json()
    assert body["testResults"]["summary"]["overallStatus"] == "HEALTHY"
