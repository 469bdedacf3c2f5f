from datetime import timedelta

from bson import ObjectId

from tests.conftest import signup


def test_register_returns_public_user(client, db) -> None:
    resp = client.post("/api/register", json={"name": "Alice", "email": "alice@example.com", "password": "pw"})
    assert resp.status_code == 200
    body = resp.json()
    assert body == {"message": "User registered", "user": {"name": "Alice", "email": "alice@example.com"}}

    stored = db["user"].find_one({"email": "alice@example.com"})
    assert stored["passwordHash"] != "pw"
    assert "passwordHash" not in resp.text


def test_register_requires_every_field(client) -> None:
    resp = client.post("/api/register", json={"name": "Alice", "email": "alice@example.com"})
    assert resp.status_code == 400
    assert "password" in resp.json()["error"]

    resp = client.post("/api/register", json={"name": "", "email": "alice@example.com", "password": "pw"})
    assert resp.status_code == 400


def test_duplicate_email_conflicts_and_keeps_original_password(client) -> None:
    payload = {"name": "Alice", "email": "alice@example.com", "password": "first"}
    assert client.post("/api/register", json=payload).status_code == 200

    resp = client.post("/api/register", json={**payload, "password": "second"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email already exists"}

    assert client.post("/api/login", json={"email": "alice@example.com", "password": "first"}).status_code == 200
    assert client.post("/api/login", json={"email": "alice@example.com", "password": "second"}).status_code == 400


def test_login_returns_token_and_user(client, app) -> None:
    client.post("/api/register", json={"name": "Alice", "email": "alice@example.com", "password": "pw"})
    resp = client.post("/api/login", json={"email": "alice@example.com", "password": "pw"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == {"name": "Alice", "email": "alice@example.com"}

    claims = app.state.tokens.verify(body["token"])
    assert claims["email"] == "alice@example.com"
    assert ObjectId.is_valid(claims["userId"])


def test_bad_password_and_unknown_email_look_the_same(client) -> None:
    client.post("/api/register", json={"name": "Alice", "email": "alice@example.com", "password": "pw"})
    wrong_password = client.post("/api/login", json={"email": "alice@example.com", "password": "nope"})
    unknown_email = client.post("/api/login", json={"email": "nobody@example.com", "password": "pw"})
    assert wrong_password.status_code == unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json() == {"error": "Invalid credentials"}


def test_profile_requires_token(client) -> None:
    resp = client.get("/api/profile")
    assert resp.status_code == 401
    assert resp.json() == {"error": "No token provided"}

    resp = client.get("/api/profile", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401


def test_profile_rejects_invalid_and_expired_tokens(client, app) -> None:
    resp = client.get("/api/profile", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}

    expired = app.state.tokens.issue({"userId": str(ObjectId()), "email": "a@example.com"}, ttl=timedelta(seconds=-1))
    resp = client.get("/api/profile", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Token has expired"}


def test_profile_returns_current_user(client) -> None:
    headers = signup(client, "alice@example.com", name="Alice")
    resp = client.get("/api/profile", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"user": {"name": "Alice", "email": "alice@example.com"}}


def test_profile_of_vanished_user_is_not_found(client, db) -> None:
    headers = signup(client, "alice@example.com")
    db["user"].delete_many({})
    resp = client.get("/api/profile", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}
