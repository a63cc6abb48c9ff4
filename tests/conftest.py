from datetime import timedelta

import mongomock
import pytest

import database

database.db = mongomock.MongoClient()["celenk_test"]

from fastapi.testclient import TestClient  # noqa: E402

import checkout  # noqa: E402
import config  # noqa: E402
import main  # noqa: E402
import ratelimit  # noqa: E402


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    for name in database.db.list_collection_names():
        database.db.drop_collection(name)
    ratelimit.clear()
    for name in ("EMAILJS_SERVICE_ID", "EMAILJS_PUBLIC_KEY", "EMAILJS_PRIVATE_KEY", "EMAILJS_TEMPLATE_ADMIN",
                 "EMAILJS_TEMPLATE_CUSTOMER", "ADMIN_EMAIL", "ADMIN_PASSWORD_HASH"):
        monkeypatch.setattr(config, name, None)
    monkeypatch.setattr(config, "ADMIN_USERNAME", "admin")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "s3cret")
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")
    monkeypatch.setattr(config, "PAYTR_MERCHANT_ID", "")
    monkeypatch.setattr(config, "PAYTR_MERCHANT_KEY", "")
    monkeypatch.setattr(config, "PAYTR_MERCHANT_SALT", "")
    monkeypatch.setattr(config, "PAYTR_TEST_MODE", False)
    yield


@pytest.fixture
def db():
    return database.db


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def admin_client(client):
    res = client.post("/api/admin/auth", json={"username": "admin", "password": "s3cret"})
    assert res.status_code == 200
    return client


@pytest.fixture
def future_date():
    return (checkout.store_today() + timedelta(days=7)).isoformat()


@pytest.fixture
def order_payload(future_date):
    def make(**overrides):
        payload = {
            "sender": {"firstName": "Ayşe", "lastName": "Yılmaz", "phone": "0532 123 45 67",
                       "email": "ayse.yilmaz@gmail.com", "wreathText": "Hayırlı olsun"},
            "recipient": {"firstName": "Mehmet", "lastName": "Demir", "phone": "0533 987 65 43",
                          "deliveryLocation": "İşyeri", "deliveryAddress": "Bağdat Cad. No:12"},
            "delivery": {"city": "İstanbul", "district": "Kadıköy", "deliveryDate": future_date,
                         "deliveryTime": "10:00-12:00"},
            "items": [{"productId": "p1", "productName": "Açılış Çelengi", "quantity": 2, "price": 250}],
            "paymentMethod": "bank_transfer",
        }
        payload.update(overrides)
        return payload
    return make
