from datetime import timedelta

from servicehub.core.security import create_access_token


def _signup(client, email="jane@example.com", password="secret123", name="Jane"):
    return client.post("/api/auth/signup", json={"email": email, "password": password, "name": name})


def test_health_ok(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/api/health").status_code == 200


def test_signup_returns_token_and_public_profile(client):
    response = _signup(client)
    assert response.status_code == 201
    payload = response.json()
    assert payload["message"] == "User created successfully"
    assert payload["token"]
    assert payload["user"]["email"] == "jane@example.com"
    assert "password" not in payload["user"]


def test_signup_rejects_short_password(client):
    response = _signup(client, password="12345")
    assert response.status_code == 400
    assert response.json()["error"] == "Password must be at least 6 characters long"


def test_signup_rejects_duplicate_email(client):
    assert _signup(client).status_code == 201
    response = _signup(client, name="Other Jane")
    assert response.status_code == 400
    assert response.json()["error"] == "User with this email already exists"


def test_signup_missing_fields_returns_field_errors(client):
    response = client.post("/api/auth/signup", json={"email": "a@example.com", "password": "secret123"})
    assert response.status_code == 400
    errors = response.json()["errors"]
    assert any(error["field"] == "name" for error in errors)


def test_signin_and_me(client):
    _signup(client)
    signin = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "secret123"})
    assert signin.status_code == 200
    token = signin.json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Jane"


def test_signin_rejects_bad_credentials(client):
    _signup(client)
    wrong_password = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "nope-nope"})
    unknown_user = client.post("/api/auth/signin", json={"email": "who@example.com", "password": "secret123"})

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"error": "Invalid email or password"}


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == "Access token required"


def test_me_rejects_invalid_and_expired_tokens(client):
    user_id = _signup(client).json()["user"]["id"]
    expired = create_access_token(user_id, expires_delta=timedelta(seconds=-1))

    for token in ("not-a-jwt", expired):
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"


def test_token_for_missing_user_is_rejected(client):
    token = create_access_token(9999)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
