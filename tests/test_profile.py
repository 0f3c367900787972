def test_profile_requires_sign_in(client):
    assert client.get("/api/profile").status_code == 401


def test_get_profile(client, customer):
    user, headers = customer
    body = client.get("/api/profile", headers=headers).json()
    assert body["success"] is True
    assert body["data"]["email"] == user.email
    assert body["data"]["first_name"] == "Ada"
    assert body["data"]["address"] == {}


def test_profile_row_created_on_first_visit(client, auth_backend, db):
    user = auth_backend.add_user("new@example.com", "secret123", first_name="Nia")
    token = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"}).json()["token"]
    db._tables["users"].pop(user.id, None)

    profile = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"}).json()["data"]
    assert profile["first_name"] == "Nia"
    assert db.get_user(user.id) is not None


def test_update_profile(client, customer, db):
    user, headers = customer
    resp = client.put(
        "/api/profile",
        json={
            "first_name": "Augusta",
            "phone": "+44 20 7946 0958",
            "date_of_birth": "1990-12-10",
            "address": {"street": " 1 Main St ", "city": "London", "country": "United Kingdom"},
            "preferences": {"seat": "aisle"},
        },
        headers=headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Profile updated successfully"
    profile = body["data"]
    assert profile["first_name"] == "Augusta"
    assert profile["last_name"] == "Traveler"
    assert profile["address"] == {"street": "1 Main St", "city": "London", "country": "GB"}
    assert db.get_user(user.id)["preferences"] == {"seat": "aisle"}


def test_update_profile_validation(client, customer):
    _, headers = customer
    resp = client.put(
        "/api/profile",
        json={
            "email": "other@example.com",
            "first_name": "",
            "phone": "12",
            "date_of_birth": "2999-01-01",
            "address": "London",
            "preferences": ["aisle"],
        },
        headers=headers,
    )
    assert resp.status_code == 422
    assert set(resp.json()["field_errors"]) == {"email", "first_name", "phone", "date_of_birth", "address", "preferences"}


def test_trips_groups_quotes_and_payments(client, customer, db, sent_quote, flight_inquiry):
    _, headers = customer
    db.create_payment({"quote_id": sent_quote["id"], "inquiry_id": flight_inquiry["id"], "amount": 1250.0, "payment_status": "completed"})
    db.create_inquiry({"inquiry_type": "hotel", "customer_name": "Someone", "customer_email": "someone@example.com"})

    data = client.get("/api/profile/trips", headers=headers).json()["data"]

    assert data["summary"] == {"inquiries": 1, "quotes": 1, "paid": 1}
    trip = data["trips"][0]
    assert trip["inquiry"]["id"] == flight_inquiry["id"]
    assert trip["quotes"][0]["id"] == sent_quote["id"]
