# tests/test_auth_api.py
from datetime import datetime, timedelta, timezone

import jwt

from estore import accounts
from estore.models import User
from estore.security import create_token


def test_signup_and_login(client):
    r = client.post("/signup", json={"name": "Carol", "email": "Carol@Example.com", "password": "pw"})
    assert r.status_code == 201
    assert r.json()["user"]["role"] == "user"

    r = client.post("/login", json={"email": "carol@example.com", "password": "pw"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["email"] == "carol@example.com"
    assert "password" not in body["user"]
    assert body["token_type"] == "bearer"

    me = client.get("/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["name"] == "Carol"


def test_signup_cannot_choose_role(client, engine):
    r = client.post("/signup", json={"name": "Eve", "email": "eve@example.com", "password": "pw", "role": "admin"})
    assert r.status_code == 201
    assert accounts.get_user(engine, r.json()["user"]["id"]).role == "user"


def test_signup_missing_fields(client):
    r = client.post("/signup", json={"name": "Carol", "email": "carol@example.com"})
    assert r.status_code == 400


def test_signup_duplicate_email(client, alice):
    r = client.post("/signup", json={"name": "Alice 2", "email": "alice@example.com", "password": "x"})
    assert r.status_code == 409


def test_login_failures(client, alice):
    r = client.post("/login", json={"email": "alice@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid password"

    r = client.post("/login", json={"email": "nobody@example.com", "password": "x"})
    assert r.status_code == 401
    assert r.json()["detail"] == "User not found"

    r = client.post("/login", json={"email": "alice@example.com"})
    assert r.status_code == 400


def test_bad_tokens(client, alice, settings):
    assert client.get("/me").status_code == 401
    assert client.get("/me", headers={"Authorization": "Bearer not-a-token"}).status_code == 401

    expired = jwt.encode(
        {"sub": str(alice.id), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm="HS256",
    )
    r = client.get("/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"

    forged = jwt.encode({"sub": str(alice.id), "role": "admin"}, "other-secret", algorithm="HS256")
    assert client.get("/me", headers={"Authorization": f"Bearer {forged}"}).status_code == 401


def test_role_comes_from_database_not_token(client, alice, settings):
    token = create_token(User(id=alice.id, name="Alice", email=alice.email, role="admin"), settings)
    r = client.post(
        "/products",
        json={"name": "Mouse", "price": 5, "stock": 1},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 403


def test_health(client):
    assert client.get("/health").json()["database"] == "ok"
