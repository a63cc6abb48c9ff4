"""Singleton site settings document."""
import copy
import logging
from typing import Any, Dict

import config
from database import get_db, now_utc
from schemas import SettingsUpdate

logger = logging.getLogger("celenk.settings")

SETTINGS_COLLECTION = "settings"
SETTINGS_DOC_ID = "site-settings"

NESTED_SECTIONS = [
    "contact", "socialMedia", "seo", "theme", "business", "notifications", "security", "holidayClosure",
]

DEFAULT_SETTINGS: Dict[str, Any] = {
    "siteName": config.STORE_NAME,
    "siteDescription": "Özel günlerinizde sevdiklerinizi mutlu edecek çelenkler",
    "siteKeywords": "çelenk, çiçek, açılış, cenaze, tören, ferforje, saksı bitkisi",
    "siteUrl": config.BASE_URL,
    "logoUrl": "/images/logo.png",
    "faviconUrl": "/favicon.ico",
    "contact": {
        "phone": config.DEFAULT_WHATSAPP_PHONE,
        "email": "info@celenkdiyari.com",
        "address": "İstanbul, Türkiye",
        "whatsapp": config.DEFAULT_WHATSAPP_PHONE,
        "workingHours": "Pazartesi - Cumartesi: 09:00 - 18:00",
    },
    "socialMedia": {"facebook": "", "instagram": "", "twitter": "", "linkedin": "", "youtube": ""},
    "seo": {"metaTitle": config.STORE_NAME, "metaDescription": "", "metaKeywords": "",
            "googleAnalytics": "", "facebookPixel": ""},
    "theme": {"primaryColor": "#16a34a", "secondaryColor": "#059669", "accentColor": "#10b981",
              "fontFamily": "Geist"},
    "business": {
        "currency": "TL",
        "taxRate": 18,
        "shippingCost": 50,
        "freeShippingThreshold": 500,
        "minOrderAmount": 100,
        "bankTransfer": {"bankName": "", "accountHolder": "", "iban": ""},
    },
    "notifications": {"emailNotifications": True, "smsNotifications": True,
                      "orderNotifications": True, "stockNotifications": True},
    "security": {"maintenanceMode": False, "allowRegistration": True, "requireEmailVerification": False},
    "holidayClosure": {"isEnabled": False, "startDate": "", "endDate": "",
                       "message": "Özel günlerde hizmet vermiyoruz. Anlayışınız için teşekkür ederiz.",
                       "showCountdown": True},
    "orderBlockedDays": [],
}


def get_settings() -> Dict[str, Any]:
    """Return the settings document, creating the default one on first read."""
    col = get_db()[SETTINGS_COLLECTION]
    doc = col.find_one({"_id": SETTINGS_DOC_ID})
    if doc is None:
        now = now_utc()
        doc = {"_id": SETTINGS_DOC_ID, **copy.deepcopy(DEFAULT_SETTINGS),
               "createdAt": now, "updatedAt": now, "updatedBy": "admin"}
        col.insert_one(doc)
        logger.info("Default site settings created")
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return doc


def peek_settings() -> Dict[str, Any]:
    """Read settings without creating them; an empty dict when none are stored."""
    doc = get_db()[SETTINGS_COLLECTION].find_one({"_id": SETTINGS_DOC_ID})
    return doc or {}


def update_settings(update: SettingsUpdate) -> Dict[str, Any]:
    """Merge an update into the stored settings.

    Scalar fields overwrite, each nested section is merged key by key into the stored section,
    and the blocked-day list is replaced as a whole.
    """
    current = get_settings()
    data = update.model_dump(by_alias=True, exclude_none=True)
    payload: Dict[str, Any] = {"updatedAt": now_utc(), "updatedBy": "admin"}
    for key, value in data.items():
        if key in NESTED_SECTIONS:
            payload[key] = {**(current.get(key) or {}), **value}
        else:
            payload[key] = value
    get_db()[SETTINGS_COLLECTION].update_one({"_id": SETTINGS_DOC_ID}, {"$set": payload})
    return get_settings()


def whatsapp_phone(settings: Dict[str, Any]) -> str:
    contact = settings.get("contact") or {}
    return contact.get("whatsapp") or contact.get("phone") or config.DEFAULT_WHATSAPP_PHONE
