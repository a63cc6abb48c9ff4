"""
PayTR hosted payment page integration.

The storefront asks for a token, then sends the customer to the PayTR iframe page. PayTR later
posts the result to the callback endpoint, which is the only place an order becomes paid.
"""
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

import config
from utils import to_ascii

logger = logging.getLogger("celenk.paytr")

IFRAME_URL = "https://www.paytr.com/odeme/guvenli/{token}"
CURRENCY = "TL"

STATUS_SUCCESS = "success"

ERROR_CODES = {
    "1": "Banka tarafından kart reddedildi",
    "2": "Kart limiti yetersiz",
    "3": "Kart bilgileri hatalı",
    "4": "Kart süresi dolmuş",
    "5": "Kart sahibi tarafından işlem iptal edildi",
    "6": "Banka tarafından işlem reddedildi",
}


class PayTRError(Exception):
    pass


@dataclass
class PayTRConfig:
    merchant_id: str
    merchant_key: str
    merchant_salt: str
    test_mode: bool
    base_url: str

    @property
    def configured(self) -> bool:
        return bool(self.merchant_id and self.merchant_key and self.merchant_salt)


def get_config() -> PayTRConfig:
    return PayTRConfig(
        merchant_id=config.PAYTR_MERCHANT_ID,
        merchant_key=config.PAYTR_MERCHANT_KEY,
        merchant_salt=config.PAYTR_MERCHANT_SALT,
        test_mode=config.PAYTR_TEST_MODE,
        base_url=config.PAYTR_BASE_URL,
    )


def _hmac_b64(key: str, message: str) -> str:
    digest = hmac.new(key.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def encode_basket(items: List[Dict[str, Any]]) -> str:
    """Encode order items as PayTR's base64 JSON basket: [[name, unit price, quantity], ...]."""
    basket = []
    for item in items:
        name = to_ascii(item.get("productName") or item.get("name") or "Urun")
        if len(name) < 10:
            name = f"Celenk Diyari - {name}"
        basket.append([name, f"{float(item.get('price') or 0):.2f}", int(item.get("quantity") or 1)])
    return base64.b64encode(json.dumps(basket, ensure_ascii=False).encode()).decode()


def payment_token(cfg: PayTRConfig, request: Dict[str, Any]) -> str:
    hash_str = (
        f"{cfg.merchant_id}{request['user_ip']}{request['merchant_oid']}{request['email']}"
        f"{request['payment_amount']}{request['user_basket']}{request['no_installment']}"
        f"{request['max_installment']}{request['currency']}{request['test_mode']}"
    )
    return _hmac_b64(cfg.merchant_key, hash_str + cfg.merchant_salt)


def callback_hash(cfg: PayTRConfig, merchant_oid: str, status: str, total_amount: str) -> str:
    return _hmac_b64(cfg.merchant_key, f"{merchant_oid}{cfg.merchant_salt}{status}{total_amount}")


def verify_callback(cfg: PayTRConfig, data: Dict[str, Any]) -> bool:
    expected = callback_hash(cfg, str(data.get("merchant_oid", "")), str(data.get("status", "")),
                             str(data.get("total_amount", "")))
    return hmac.compare_digest(expected, str(data.get("hash", "")))


def build_payment_request(cfg: PayTRConfig, order: Dict[str, Any], user_ip: str) -> Dict[str, Any]:
    sender = order.get("sender") or {}
    delivery = order.get("delivery") or {}
    address = ", ".join(p for p in (delivery.get("deliveryAddress") or
                                    (order.get("recipient") or {}).get("deliveryAddress"),
                                    delivery.get("district"), delivery.get("city")) if p)
    request = {
        "merchant_id": cfg.merchant_id,
        "user_ip": user_ip,
        "merchant_oid": order["orderNumber"],
        "email": sender.get("email") or "",
        "payment_amount": int(round(float(order.get("total") or 0) * 100)),
        "user_basket": encode_basket(order.get("items") or []),
        "debug_on": 1 if cfg.test_mode else 0,
        "no_installment": 0,
        "max_installment": 0,
        "user_name": f"{sender.get('firstName', '')} {sender.get('lastName', '')}".strip(),
        "user_address": address or "-",
        "user_phone": sender.get("phone") or "",
        "merchant_ok_url": f"{config.BASE_URL}/payment/success",
        "merchant_fail_url": f"{config.BASE_URL}/payment/failed",
        "timeout_limit": 30,
        "currency": CURRENCY,
        "test_mode": 1 if cfg.test_mode else 0,
    }
    request["paytr_token"] = payment_token(cfg, request)
    return request


def request_token(cfg: PayTRConfig, payment_request: Dict[str, Any]) -> str:
    """Ask PayTR for an iframe token; raises PayTRError on any failure."""
    url = f"{cfg.base_url}/odeme/api/get-token"
    try:
        response = httpx.post(url, data={k: str(v) for k, v in payment_request.items()})
        result = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("PayTR token request failed: %s", e)
        raise PayTRError("PayTR ödeme isteği oluşturulamadı") from e
    if response.status_code >= 400 or result.get("status") != STATUS_SUCCESS:
        reason = result.get("reason") or result.get("error") or "PayTR API error"
        logger.error("PayTR rejected token request for %s: %s", payment_request.get("merchant_oid"), reason)
        raise PayTRError(reason)
    return result["token"]


def iframe_url(token: str) -> str:
    return IFRAME_URL.format(token=token)


def failure_reason(code: Optional[str], message: Optional[str]) -> Optional[str]:
    return message or ERROR_CODES.get(code or "")
