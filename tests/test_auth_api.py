import pytest

from jetset.integrations.contracts.interfaces import AuthSession, AuthUser


def test_signup_returns_session_and_mirrors_user(client, db):
    resp = client.post(
        "/api/auth/signup",
        json={"email": "Grace@Example.com", "password": "hopper1", "firstName": "Grace", "lastName": "Hopper"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["email"] == "grace@example.com"
    assert body["firstName"] == "Grace"
    assert body["role"] == "user"
    assert body["token"]
    assert body["session"]["isAuthenticated"] is True
    assert body["session"]["user"]["id"] == body["id"]

    row = db.get_user(body["id"])
    assert row["role"] == "user"
    assert row["last_name"] == "Hopper"


@pytest.mark.parametrize(
    "payload, status, message",
    [
        ({"email": "", "password": "x"}, 400, "Email and password are required"),
        ({"email": "not-an-email", "password": "secret1"}, 400, "Please enter a valid email address"),
        ({"email": "grace@example.com", "password": "123"}, 422, "Password should be at least 6 characters"),
    ],
)
def test_signup_rejections(client, payload, status, message):
    resp = client.post("/api/auth/signup", json=payload)
    assert resp.status_code == status
    assert resp.json() == {"success": False, "message": message}


def test_duplicate_signup(client):
    client.post("/api/auth/signup", json={"email": "grace@example.com", "password": "hopper1"})
    resp = client.post("/api/auth/signup", json={"email": "grace@example.com", "password": "hopper1"})
    assert resp.status_code == 422
    assert resp.json()["message"] == "User already registered"


def test_login_with_wrong_password_is_401(client, auth_backend):
    auth_backend.add_user("ada@example.com", "secret123")
    resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Invalid credentials"}


def test_users_table_role_wins(client, auth_backend, db):
    user = auth_backend.add_user("ops@jetset.test", "secret123", role="user")
    db.create_user({"id": user.id, "email": user.email, "role": "admin"})

    body = client.post("/api/auth/login", json={"email": "ops@jetset.test", "password": "secret123"}).json()
    assert body["role"] == "admin"


def test_session_requires_bearer_token(client, customer):
    user, headers = customer
    resp = client.get("/api/auth/session", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == user.email

    resp = client.get("/api/auth/session")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Authentication required"}

    resp = client.get("/api/auth/session", headers={"Authorization": "Bearer stale"})
    assert resp.status_code == 401


def test_refresh_rotates_tokens(client, auth_backend):
    auth_backend.add_user("ada@example.com", "secret123")
    login = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret123"}).json()

    refreshed = client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["token"] != login["token"]

    again = client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
    assert again.status_code == 401

    assert client.post("/api/auth/refresh", json={}).status_code == 400


def test_logout_revokes_token(client, customer):
    _, headers = customer
    assert client.post("/api/auth/logout", headers=headers).json()["success"] is True
    assert client.get("/api/auth/session", headers=headers).status_code == 401
    assert client.post("/api/auth/logout").status_code == 200


def test_oauth_url(client):
    body = client.get("/api/auth/oauth/Google", params={"redirect_to": "https://app.jetset.test/auth/callback"}).json()
    assert body["provider"] == "google"
    assert body["url"].startswith("https://auth.mock.local/auth/v1/authorize?provider=google")

    resp = client.get("/api/auth/oauth/myspace")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Unsupported provider: myspace"


def test_session_storage_shape():
    session = AuthSession(user=AuthUser(id="u-1", email="ada@example.com", first_name="Ada", role="staff"), access_token="at", refresh_token="rt", expires_at=1)

    stored = session.to_storage()
    assert stored["isAuthenticated"] is True
    assert stored["user"] == {"id": "u-1", "email": "ada@example.com", "firstName": "Ada", "lastName": "", "role": "staff"}

    restored = AuthSession.from_storage(stored)
    assert restored.user.is_admin
    assert restored.refresh_token == "rt"
    assert restored.is_expired

    assert AuthSession.from_storage({"user": stored["user"]}) is None
    assert not AuthSession(user=restored.user, access_token="at").is_expired
