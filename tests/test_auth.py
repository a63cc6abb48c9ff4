import jwt

import auth
import config


def test_login_sets_session_cookie(client):
    res = client.post("/api/admin/auth", json={"username": "admin", "password": "s3cret"})
    assert res.status_code == 200
    assert "adminSession" in res.cookies
    assert "httponly" in res.headers["set-cookie"].lower()
    assert client.get("/api/admin/auth").json()["username"] == "admin"


def test_wrong_password_is_rejected(client):
    res = client.post("/api/admin/auth", json={"username": "admin", "password": "nope"})
    assert res.status_code == 401
    assert client.get("/api/admin/auth").status_code == 401


def test_not_configured_returns_503(client, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_PASSWORD", None)
    res = client.post("/api/admin/auth", json={"username": "admin", "password": "s3cret"})
    assert res.status_code == 503


def test_password_hash_is_preferred(client, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_PASSWORD", None)
    monkeypatch.setattr(config, "ADMIN_PASSWORD_HASH", auth.hash_password("hashed-pass"))
    assert client.post("/api/admin/auth", json={"username": "admin", "password": "hashed-pass"}).status_code == 200


def test_logout_clears_session(admin_client):
    assert admin_client.delete("/api/admin/auth").status_code == 200
    assert admin_client.get("/api/admin/auth").status_code == 401


def test_tampered_or_foreign_token_is_rejected(client):
    forged = jwt.encode({"sub": "admin", "iat": 0, "exp": 4102444800}, "other-secret", algorithm="HS256")
    client.cookies.set("adminSession", forged)
    assert client.get("/api/admin/auth").status_code == 401
    assert client.get("/api/customers").status_code == 401


def test_expired_token_is_rejected(client):
    expired = jwt.encode({"sub": "admin", "iat": 0, "exp": 1}, "test-secret", algorithm="HS256")
    client.cookies.set("adminSession", expired)
    res = client.get("/api/admin/auth")
    assert res.status_code == 401
    assert res.json()["detail"] == "Session expired"


def test_login_is_rate_limited_and_reset_on_success(client):
    for _ in range(4):
        assert client.post("/api/admin/auth", json={"username": "admin", "password": "x"}).status_code == 401
    assert client.post("/api/admin/auth", json={"username": "admin", "password": "s3cret"}).status_code == 200
    for _ in range(5):
        assert client.post("/api/admin/auth", json={"username": "admin", "password": "x"}).status_code == 401
    res = client.post("/api/admin/auth", json={"username": "admin", "password": "s3cret"})
    assert res.status_code == 429
    assert int(res.headers["Retry-After"]) > 0
