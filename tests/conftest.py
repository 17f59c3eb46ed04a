import mongomock
import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext

import security
from config import Settings
from database import utcnow
from main import create_app

PASSWORD = "secret123"
WEBHOOK_SECRET = "whsec_test"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Cheap bcrypt rounds so registration-heavy tests stay quick."""
    monkeypatch.setattr(security, "pwd_context", CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-secret", payment_webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def db():
    return mongomock.MongoClient()["storefront_test"]


@pytest.fixture
def client(settings, db):
    app = create_app(settings, database=db)
    with TestClient(app) as c:
        yield c


def register(client, email, name="Shopper", password=PASSWORD):
    res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    res = client.post("/api/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['token']}"}


def add_product(db, name="Tee", price=10.0, **extra):
    now = utcnow()
    doc = {
        "name": name,
        "price": price,
        "stock": 10,
        "images": [f"/img/{name.lower()}.jpg"],
        "rating": 0,
        "review_count": 0,
        "view_count": 0,
        "added_to_cart_count": 0,
        "trending_score": 0,
        "created_at": now,
        "updated_at": now,
    }
    doc.update(extra)
    return str(db["product"].insert_one(doc).inserted_id)


@pytest.fixture
def alice(client):
    return register(client, "alice@shopmail.com", name="Alice")


@pytest.fixture
def bob(client):
    return register(client, "bob@shopmail.com", name="Bob")


@pytest.fixture
def admin(client, db):
    headers = register(client, "root@shopmail.com", name="Root")
    db["user"].update_one({"email": "root@shopmail.com"}, {"$set": {"role": "admin"}})
    return headers
