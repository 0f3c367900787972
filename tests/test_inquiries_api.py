from jetset.api.endpoints.inquiries import SUBMITTED_MESSAGE

FLIGHT_FORM = {
    "inquiry_type": "flight",
    "customer_name": "Guest Flyer",
    "customer_email": "Guest@Example.com",
    "customer_phone": "+1 (555) 123-4567",
    "customer_country": "United Kingdom",
    "flight_origin": "JFK",
    "flight_destination": "LHR",
    "flight_departure_date": "2099-06-01",
    "flight_return_date": "2099-06-10",
    "flight_passengers": "2",
}


def test_guest_can_submit_flight_inquiry(client, email_sender):
    resp = client.post("/api/inquiries", json=FLIGHT_FORM)

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == SUBMITTED_MESSAGE
    inquiry = body["data"]["inquiry"]
    assert inquiry["customer_email"] == "guest@example.com"
    assert inquiry["customer_country"] == "GB"
    assert inquiry["flight_passengers"] == 2
    assert inquiry["status"] == "pending"
    assert inquiry.get("user_id") is None
    assert [m.to for m in email_sender.sent] == [["guest@example.com"], ["jetsetters721@gmail.com"]]


def test_signed_in_inquiry_takes_identity_from_session(client, customer):
    user, headers = customer
    form = {**FLIGHT_FORM, "customer_email": "someone@else.com"}

    inquiry = client.post("/api/inquiries", json=form, headers=headers).json()["data"]["inquiry"]

    assert inquiry["user_id"] == user.id
    assert inquiry["customer_email"] == "ada@example.com"
    assert inquiry["customer_name"] == "Ada Traveler"


def test_invalid_inquiry_returns_field_errors(client):
    form = {
        **FLIGHT_FORM,
        "customer_email": "nope",
        "flight_destination": "",
        "flight_return_date": "2099-05-01",
    }
    resp = client.post("/api/inquiries", json=form)

    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "validation_error"
    assert set(body["field_errors"]) == {"customer_email", "flight_destination", "flight_return_date"}


def test_general_inquiry_needs_a_message(client):
    resp = client.post(
        "/api/inquiries",
        json={"inquiry_type": "general", "customer_name": "Ada", "customer_email": "ada@example.com"},
    )
    assert resp.status_code == 422
    assert "inquiry_message" in resp.json()["field_errors"]


def test_confirmation_email_failure_does_not_fail_submission(client, email_sender):
    email_sender.fail = True
    assert client.post("/api/inquiries", json=FLIGHT_FORM).status_code == 201


def test_reading_inquiries_requires_sign_in(client, flight_inquiry):
    resp = client.get(f"/api/inquiries?id={flight_inquiry['id']}")
    assert resp.status_code == 401


def test_owner_reads_legacy_inquiry_by_email(client, customer, flight_inquiry):
    _, headers = customer
    resp = client.get(f"/api/inquiries?id={flight_inquiry['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["inquiry"]["id"] == flight_inquiry["id"]

    mine = client.get("/api/inquiries?endpoint=my", headers=headers).json()["data"]
    assert mine["count"] == 1


def test_other_users_are_denied(client, login, flight_inquiry):
    _, headers = login("mallory@example.com")
    resp = client.get(f"/api/inquiries?id={flight_inquiry['id']}", headers=headers)
    assert resp.status_code == 403
    assert resp.json() == {"success": False, "error": "Access denied"}

    assert client.get("/api/inquiries", headers=headers).status_code == 403
    assert client.get("/api/inquiries?id=missing", headers=headers).status_code == 404


def test_admin_lists_filters_and_stats(client, admin, db, flight_inquiry):
    _, headers = admin
    db.create_inquiry({"inquiry_type": "hotel", "customer_name": "B", "customer_email": "b@example.com", "status": "pending"})

    listed = client.get("/api/inquiries?status=pending", headers=headers).json()["data"]
    assert listed["count"] == 1
    assert listed["inquiries"][0]["inquiry_type"] == "hotel"

    stats = client.get("/api/inquiries?endpoint=stats", headers=headers).json()["data"]
    assert stats["total"] == 2
    assert stats["by_type"]["flight"] == 1


def test_admin_updates_and_deletes(client, admin, customer, flight_inquiry):
    _, headers = admin
    resp = client.put(f"/api/inquiries?id={flight_inquiry['id']}", json={"status": "processing", "priority": "high", "customer_email": "x@y.z"}, headers=headers)
    assert resp.status_code == 200
    updated = resp.json()["data"]["inquiry"]
    assert updated["status"] == "processing"
    assert updated["priority"] == "high"
    assert updated["customer_email"] == "ada@example.com"

    bad = client.patch(f"/api/inquiries?id={flight_inquiry['id']}", json={"status": "teleported"}, headers=headers)
    assert bad.status_code == 422

    assert client.put("/api/inquiries", json={"status": "pending"}, headers=headers).json()["error"] == "Inquiry ID is required"
    assert client.put("/api/inquiries?id=missing", json={"status": "pending"}, headers=headers).status_code == 404

    _, customer_headers = customer
    assert client.delete(f"/api/inquiries?id={flight_inquiry['id']}", headers=customer_headers).status_code == 403
    assert client.delete(f"/api/inquiries?id={flight_inquiry['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/inquiries?id={flight_inquiry['id']}", headers=headers).status_code == 404
