from notes_api.models.refresh_token import RefreshToken
from tests.conftest import API, PASSWORD, bearer, login, signup


# ─── Signup ───────────────────────────────────────────────────────────────────

def test_signup(client):
    body = signup(client, "New.User@Example.com")
    assert body["email"] == "new.user@example.com"
    assert isinstance(body["id"], int)
    assert "password_hash" not in body


def test_signup_duplicate_email_is_case_insensitive(client):
    signup(client, "dup@example.com")
    response = client.post(f"{API}/auth/signup", json={"email": "DUP@example.com", "password": PASSWORD})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "duplicate_entry"
    assert response.json()["error"]["details"][0]["field"] == "email"


def test_signup_short_password(client):
    response = client.post(f"{API}/auth/signup", json={"email": "short@example.com", "password": "short"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "validation_failed"
    assert error["details"][0]["field"] == "password"


def test_signup_invalid_email(client):
    response = client.post(f"{API}/auth/signup", json={"email": "not-an-email", "password": PASSWORD})
    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["field"] == "email"


# ─── Login ────────────────────────────────────────────────────────────────────

def test_login_returns_token_pair(client):
    signup(client, "login@example.com")
    body = login(client, "LOGIN@example.com")

    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 15 * 60
    assert len(body["refresh_token"]) == 64
    assert body["user"]["email"] == "login@example.com"


def test_login_wrong_password(client):
    signup(client, "wrong@example.com")
    response = client.post(f"{API}/auth/login", json={"email": "wrong@example.com", "password": "nope-nope-nope"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "invalid_credentials"


def test_login_unknown_user(client):
    response = client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "invalid_credentials"


# ─── /me and bearer handling ──────────────────────────────────────────────────

def test_me(client, alice, auth_headers):
    response = client.get(f"{API}/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == alice["user"]["id"]


def test_me_without_token(client):
    response = client.get(f"{API}/me")

    assert response.status_code == 401
    body = response.json()
    assert body["error"]["code"] == "unauthorized"
    assert body["request_id"]
    assert response.headers["X-Request-ID"] == body["request_id"]


def test_me_with_garbage_token(client):
    response = client.get(f"{API}/me", headers=bearer("garbage"))
    assert response.status_code == 401
    assert response.json()["error"] == {"code": "invalid_token", "message": "Token is invalid"}


def test_me_with_expired_token(client, clock, auth_headers):
    clock.advance(minutes=16)
    response = client.get(f"{API}/me", headers=auth_headers)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "token_expired"


def test_request_id_is_echoed(client):
    response = client.get(f"{API}/me", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["request_id"] == "req-123"


# ─── Refresh / logout ─────────────────────────────────────────────────────────

def test_refresh_issues_new_access_token(client, clock, alice):
    clock.advance(minutes=20)

    response = client.post(f"{API}/auth/refresh", json={"refresh_token": alice["refresh_token"]})

    assert response.status_code == 200
    body = response.json()
    assert body["expires_in"] == 15 * 60
    assert client.get(f"{API}/me", headers=bearer(body["access_token"])).status_code == 200


def test_refresh_with_unknown_token(client):
    response = client.post(f"{API}/auth/refresh", json={"refresh_token": "f" * 64})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "invalid_token"


def test_expired_refresh_token_is_deleted(client, clock, db, alice):
    clock.advance(days=31)

    first = client.post(f"{API}/auth/refresh", json={"refresh_token": alice["refresh_token"]})
    second = client.post(f"{API}/auth/refresh", json={"refresh_token": alice["refresh_token"]})

    assert first.json()["error"]["code"] == "token_expired"
    assert second.json()["error"]["code"] == "invalid_token"
    assert db.query(RefreshToken).count() == 0


def test_logout_revokes_refresh_token(client, alice):
    payload = {"refresh_token": alice["refresh_token"]}

    response = client.request("DELETE", f"{API}/auth/logout", json=payload)
    assert response.status_code == 200
    assert response.json() == {"message": "logged_out"}

    refreshed = client.post(f"{API}/auth/refresh", json=payload)
    assert refreshed.status_code == 401
    assert refreshed.json()["error"]["code"] == "invalid_token"


def test_logout_twice_succeeds(client, alice):
    payload = {"refresh_token": alice["refresh_token"]}
    assert client.request("DELETE", f"{API}/auth/logout", json=payload).status_code == 200
    assert client.request("DELETE", f"{API}/auth/logout", json=payload).status_code == 200


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
