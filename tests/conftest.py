# tests/conftest.py
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from estore import accounts, catalog
from estore.config import Settings
from estore.database import create_db_engine, init_db
from estore.main import create_app

PASSWORDS = {
    "alice@example.com": "alice-pw",
    "bob@example.com": "bob-pw",
    "admin@example.com": "admin-pw",
}


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(accounts, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'estore.db'}",
        jwt_secret="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def alice(engine):
    return accounts.signup(engine, "Alice", "alice@example.com", PASSWORDS["alice@example.com"])


@pytest.fixture
def bob(engine):
    return accounts.signup(engine, "Bob", "bob@example.com", PASSWORDS["bob@example.com"])


@pytest.fixture
def admin(engine):
    return accounts.create_admin(engine, "Admin", "admin@example.com", PASSWORDS["admin@example.com"])


def auth_headers(client, email):
    r = client.post("/login", json={"email": email, "password": PASSWORDS[email]})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def alice_headers(client, alice):
    return auth_headers(client, alice.email)


@pytest.fixture
def bob_headers(client, bob):
    return auth_headers(client, bob.email)


@pytest.fixture
def admin_headers(client, admin):
    return auth_headers(client, admin.email)


@pytest.fixture
def product(engine):
    return catalog.create_product(engine, {
        "name": "Laptop",
        "description": "14 inch, 16GB RAM",
        "price": Decimal("100.00"),
        "stock": 5,
        "category": "electronics",
    })
