import httpx

import config
import notifications

CONTACT = {
    "name": "Ayşe Yılmaz",
    "email": "ayse@gmail.com",
    "phone": "05321234567",
    "subject": "Toplu sipariş hakkında",
    "message": "Merhaba, açılış için on adet çelenk siparişi vermek istiyoruz.",
}


def test_whatsapp_message_is_stored_and_listed(client, admin_client, db):
    res = client.post("/api/whatsapp-messages", json={"orderNumber": "1234", "message": "Teslimat saati?"})
    assert res.status_code == 200
    assert res.json()["success"] is True

    stored = db["whatsapp_message"].find_one({"orderNumber": "1234"})
    assert stored["type"] == "support_request"
    assert stored["status"] == "new"
    assert stored["read"] is False
    assert stored["createdAt"] is not None

    body = admin_client.get("/api/whatsapp-messages").json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["messages"][0]["message"] == "Teslimat saati?"
    assert body["messages"][0]["id"] == res.json()["id"]


def test_whatsapp_message_requires_order_number_and_text(client):
    assert client.post("/api/whatsapp-messages", json={"message": "Merhaba"}).status_code == 422
    assert client.post("/api/whatsapp-messages", json={"orderNumber": "1234", "message": ""}).status_code == 422


def test_whatsapp_message_list_requires_admin(client):
    assert client.get("/api/whatsapp-messages").status_code == 401


def test_contact_message_is_stored_and_emailed(client, db, monkeypatch):
    monkeypatch.setattr(config, "EMAILJS_SERVICE_ID", "service")
    monkeypatch.setattr(config, "EMAILJS_PUBLIC_KEY", "public")
    monkeypatch.setattr(config, "EMAILJS_TEMPLATE_ADMIN", "tpl_admin")
    sent = []

    def fake_post(url, json=None, **kwargs):
        sent.append(json)
        return httpx.Response(200, text="OK", request=httpx.Request("POST", url))

    monkeypatch.setattr(notifications.httpx, "post", fake_post)
    res = client.post("/api/contact", json=CONTACT)
    assert res.status_code == 200
    assert res.json()["message"].startswith("Mesajınız başarıyla gönderildi")

    stored = db["contact"].find_one({"email": "ayse@gmail.com"})
    assert stored["status"] == "new"
    assert stored["read"] is False
    assert stored["ip"]

    params = sent[0]["template_params"]
    assert sent[0]["template_id"] == "tpl_admin"
    assert params["to_email"] == "info@celenkdiyari.com"
    assert params["subject"] == "Yeni İletişim Formu Mesajı: Toplu sipariş hakkında"
    assert params["from_name"] == "Ayşe Yılmaz"


def test_contact_email_falls_back_to_log(client, caplog):
    res = client.post("/api/contact", json={**CONTACT, "phone": ""})
    assert res.status_code == 200
    assert "Telefon: Belirtilmemiş" in caplog.text


def test_contact_store_failure_still_sends(client, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("database down")

    sent = []
    monkeypatch.setattr("main.create_document", broken)
    monkeypatch.setattr(notifications, "send_email", lambda *a, **kw: sent.append(a) or {"success": True})
    assert client.post("/api/contact", json=CONTACT).status_code == 200
    assert len(sent) == 1


def test_invalid_contact_fields_are_rejected(client):
    assert client.post("/api/contact", json={**CONTACT, "subject": "Soru"}).status_code == 422
    assert client.post("/api/contact", json={**CONTACT, "phone": "123"}).status_code == 422
    assert client.post("/api/contact", json={**CONTACT, "email": "not-an-email"}).status_code == 422


def test_contact_form_is_rate_limited(client):
    for _ in range(5):
        assert client.post("/api/contact", json=CONTACT).status_code == 200
    res = client.post("/api/contact", json=CONTACT)
    assert res.status_code == 429
    assert "Retry-After" in res.headers
