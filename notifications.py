"""
Order notifications: EmailJS email and WhatsApp deep links.

Everything in here is best-effort. Callers get a result dict back and nothing raises; the order
document is the source of truth and a lost notification is only logged.
"""
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

import config
from database import get_db, now_utc
import site_settings
from utils import format_try

logger = logging.getLogger("celenk.notifications")

PAYMENT_LABELS = {
    "credit_card": "Kredi Kartı",
    "bank_transfer": "Havale/EFT",
    "whatsapp": "WhatsApp İletişim",
}
PAYMENT_STATUS_LABELS = {
    "pending": "Beklemede",
    "paid": "Ödendi",
    "failed": "Başarısız",
    "refunded": "İade Edildi",
}
NOT_GIVEN = "Belirtilmemiş"
DEFAULT_CONTACT_EMAIL = "info@celenkdiyari.com"


# WhatsApp

def normalize_phone(phone: str) -> str:
    return re.sub(r"[\s\-+()]", "", phone or "")


def whatsapp_link(phone: str, message: str) -> str:
    return f"https://wa.me/{normalize_phone(phone)}?text={quote(message, safe='')}"


def _full_name(person: Optional[Dict[str, Any]]) -> str:
    person = person or {}
    return f"{person.get('firstName') or ''} {person.get('lastName') or ''}".strip()


def _item_lines(items: List[Dict[str, Any]]) -> List[str]:
    lines = []
    for index, item in enumerate(items, start=1):
        price = float(item.get("price") or 0)
        quantity = int(item.get("quantity") or 1)
        lines.append(f"\n{index}. {item.get('productName') or 'Ürün'}")
        if item.get("variantName"):
            lines.append(f"   • Seçenek: {item['variantName']}")
        lines.append(f"   • Miktar: {quantity} adet")
        lines.append(f"   • Birim Fiyat: {format_try(price)}")
        lines.append(f"   • Toplam: {format_try(price * quantity)}")
    return lines


def _invoice_lines(invoice: Optional[Dict[str, Any]]) -> List[str]:
    if not invoice or not invoice.get("needInvoice"):
        return ["\n📄 FATURA BİLGİLERİ:", "• Fatura İsteniyor: Hayır"]
    individual = invoice.get("invoiceType") == "individual"
    lines = [
        "\n📄 FATURA BİLGİLERİ:",
        "• Fatura İsteniyor: Evet",
        f"• Fatura Tipi: {'Bireysel' if individual else 'Kurumsal'}",
    ]
    if not individual:
        lines.append(f"• Firma Adı: {invoice.get('companyName') or NOT_GIVEN}")
        lines.append(f"• Vergi Dairesi: {invoice.get('taxOffice') or NOT_GIVEN}")
    lines.append(f"• {'TC Kimlik No' if individual else 'Vergi No'}: {invoice.get('taxNumber') or NOT_GIVEN}")
    lines.append(f"• Fatura Adresi: {invoice.get('address') or NOT_GIVEN}")
    lines.append(f"• İl: {invoice.get('city') or NOT_GIVEN}")
    lines.append(f"• İlçe: {invoice.get('district') or NOT_GIVEN}")
    if invoice.get("postalCode"):
        lines.append(f"• Posta Kodu: {invoice['postalCode']}")
    return lines


def build_order_message(order: Dict[str, Any], settings: Optional[Dict[str, Any]] = None) -> str:
    """Format the order summary the customer sends to the store over WhatsApp."""
    sender = order.get("sender") or {}
    recipient = order.get("recipient") or {}
    delivery = order.get("delivery") or {}
    method = order.get("paymentMethod")
    lines = [
        "🎉 YENİ ÇELENK SİPARİŞİ",
        "═══════════════════════════════════",
        "",
        "📋 SİPARİŞ BİLGİLERİ:",
        f"• Sipariş No: {order.get('orderNumber')}",
        f"• Ödeme Yöntemi: {PAYMENT_LABELS.get(method, method)}",
        "",
        "👤 ALICI BİLGİLERİ:",
        f"• Ad Soyad: {_full_name(recipient)}",
        f"• Telefon: {recipient.get('phone') or NOT_GIVEN}",
        f"• Teslimat Yeri: {recipient.get('deliveryLocation') or NOT_GIVEN}",
        f"• Adres: {recipient.get('deliveryAddress') or NOT_GIVEN}",
        "",
        "👤 GÖNDERİCİ BİLGİLERİ:",
        f"• Ad Soyad: {_full_name(sender)}",
        f"• Telefon: {sender.get('phone') or NOT_GIVEN}",
        f"• E-posta: {sender.get('email') or NOT_GIVEN}",
    ]
    if (sender.get("wreathText") or "").strip():
        lines.append(f"• Çelenk Yazısı: {sender['wreathText']}")
    if (sender.get("additionalInfo") or "").strip():
        lines.append(f"• Ek Bilgi: {sender['additionalInfo']}")
    lines += [
        "",
        "🚚 TESLİMAT BİLGİLERİ:",
        f"• Şehir: {delivery.get('city') or NOT_GIVEN}",
        f"• İlçe/Semt: {delivery.get('district') or NOT_GIVEN}",
        f"• Teslimat Tarihi: {delivery.get('deliveryDate') or NOT_GIVEN}",
        f"• Teslimat Saati: {delivery.get('deliveryTime') or NOT_GIVEN}",
        f"• Teslimat Yeri: {delivery.get('deliveryLocation') or NOT_GIVEN}",
        "",
        "🛒 SİPARİŞ DETAYLARI:",
    ]
    lines += _item_lines(order.get("items") or [])
    lines += [
        "",
        "💰 FİYAT DETAYLARI:",
        f"• Ara Toplam: {format_try(float(order.get('subtotal') or 0))}",
        f"• Kargo Ücreti: {format_try(float(order.get('shippingCost') or 0))}",
        f"• Toplam Tutar: {format_try(float(order.get('total') or 0))}",
    ]
    lines += _invoice_lines(order.get("invoice"))
    if method == "bank_transfer":
        bank = ((settings or {}).get("business") or {}).get("bankTransfer") or {}
        lines += ["", "🏦 HAVALE/EFT BİLGİLERİ:"]
        if bank.get("bankName"):
            lines.append(f"• Banka: {bank['bankName']}")
        if bank.get("accountHolder"):
            lines.append(f"• Alıcı: {bank['accountHolder']}")
        if bank.get("iban"):
            lines.append(f"• IBAN: {bank['iban']}")
        lines.append(
            f"⚠️ ÖNEMLİ: Havale/EFT yaparken açıklama kısmına sipariş numaranızı "
            f"({order.get('orderNumber')}) yazmanız gerekmektedir."
        )
    lines += [
        "",
        "═══════════════════════════════════",
        "📞 İletişim için bu numaradan ulaşabilirsiniz.",
        "Teşekkür ederiz! 🌹",
    ]
    return "\n".join(lines)


def prepare_whatsapp(order: Dict[str, Any]) -> Dict[str, Any]:
    """Build the WhatsApp link for an order; bank transfer messages are also logged for the admin panel."""
    try:
        settings = site_settings.peek_settings()
        message = build_order_message(order, settings)
        url = whatsapp_link(site_settings.whatsapp_phone(settings), message)
    except Exception as e:
        logger.error("Error preparing WhatsApp message for order %s: %s", order.get("orderNumber"), e)
        return {"success": False, "error": str(e)}

    if order.get("paymentMethod") == "bank_transfer":
        sender = order.get("sender") or {}
        try:
            get_db()["whatsapp_message"].insert_one({
                "orderNumber": order.get("orderNumber"),
                "message": message,
                "type": "order_notification",
                "paymentMethod": "bank_transfer",
                "customerName": _full_name(sender),
                "customerPhone": sender.get("phone"),
                "customerEmail": sender.get("email"),
                "status": "sent",
                "createdAt": now_utc(),
            })
        except Exception as e:
            logger.error("Error logging WhatsApp message for order %s: %s", order.get("orderNumber"), e)
    return {"success": True, "whatsappUrl": url, "message": message}


# Email

def emailjs_configured(template_id: Optional[str]) -> bool:
    return bool(config.EMAILJS_SERVICE_ID and config.EMAILJS_PUBLIC_KEY and template_id)


def template_params(order: Dict[str, Any], settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    settings = settings or {}
    contact = settings.get("contact") or {}
    sender = order.get("sender") or {}
    recipient = order.get("recipient") or {}
    delivery = order.get("delivery") or {}
    items = order.get("items") or []
    address_parts = [delivery.get("deliveryAddress") or recipient.get("deliveryAddress"),
                     delivery.get("district"), delivery.get("city")]
    note_parts = []
    for label, value in (("Çelenk Yazısı", sender.get("wreathText")),
                         ("Ek Bilgi", sender.get("additionalInfo")),
                         ("Teslimat Tarihi", delivery.get("deliveryDate")),
                         ("Teslimat Saati", delivery.get("deliveryTime")),
                         ("Teslimat Konumu", delivery.get("deliveryLocation"))):
        if value:
            note_parts.append(f"{label}: {value}")
    if order.get("notes"):
        note_parts.append(order["notes"])
    params = {
        "to_email": sender.get("email") or "",
        "to_name": _full_name(sender),
        "from_name": settings.get("siteName") or config.STORE_NAME,
        "subject": f"Sipariş Onayı - {order.get('orderNumber')}",
        "order_id": order.get("orderNumber"),
        "order_number": order.get("orderNumber"),
        "order_status": order.get("status"),
        "customer_name": _full_name(sender),
        "customer_email": sender.get("email") or "",
        "customer_phone": sender.get("phone") or "",
        "sender_name": _full_name(sender),
        "sender_phone": sender.get("phone") or "",
        "recipient_name": _full_name(recipient),
        "recipient_phone": recipient.get("phone") or "",
        "items_list": "\n".join(
            f"{i.get('productName')} x{i.get('quantity')} = "
            f"{format_try(float(i.get('price') or 0) * int(i.get('quantity') or 1))}"
            for i in items
        ),
        "products": " + ".join(str(i.get("productName")) for i in items),
        "subtotal": format_try(float(order.get("subtotal") or 0)),
        "shipping_cost": format_try(float(order.get("shippingCost") or 0)),
        "total_amount": format_try(float(order.get("total") or 0)),
        "delivery_address": ", ".join(p for p in address_parts if p) or NOT_GIVEN,
        "payment_method": PAYMENT_LABELS.get(order.get("paymentMethod"), order.get("paymentMethod") or NOT_GIVEN),
        "payment_status": PAYMENT_STATUS_LABELS.get(order.get("paymentStatus"), "Beklemede"),
        "order_note": "\n".join(note_parts),
        "company_name": settings.get("siteName") or config.STORE_NAME,
        "company_email": contact.get("email") or "",
        "company_phone": contact.get("phone") or "",
    }
    invoice = order.get("invoice")
    if invoice and invoice.get("needInvoice"):
        params["invoice_type"] = "Bireysel" if invoice.get("invoiceType") == "individual" else "Kurumsal"
        params["invoice_tax_number"] = invoice.get("taxNumber") or ""
        params["invoice_address"] = invoice.get("address") or ""
        params["invoice_city"] = invoice.get("city") or ""
        params["invoice_district"] = invoice.get("district") or ""
        if invoice.get("invoiceType") == "corporate":
            params["invoice_company_name"] = invoice.get("companyName") or ""
            params["invoice_tax_office"] = invoice.get("taxOffice") or ""
    return params


def _fallback_body(params: Dict[str, Any]) -> str:
    return (
        f"{params['subject']}\n\n"
        f"Sipariş No: {params['order_number']}\n"
        f"Müşteri: {params['customer_name']} ({params['customer_phone']}, {params['customer_email']})\n"
        f"Alıcı: {params['recipient_name']} ({params['recipient_phone']})\n"
        f"Ürünler:\n{params['items_list']}\n"
        f"Ara Toplam: {params['subtotal']}  Kargo: {params['shipping_cost']}  Toplam: {params['total_amount']}\n"
        f"Teslimat Adresi: {params['delivery_address']}\n"
        f"Ödeme: {params['payment_method']} ({params['payment_status']})\n"
        f"{params['order_note']}"
    )


def send_email(template_id: Optional[str], params: Dict[str, Any], body: Optional[str] = None) -> Dict[str, Any]:
    """Send one EmailJS template email; log the body instead when EmailJS is not configured."""
    body = body if body is not None else _fallback_body(params)
    if not emailjs_configured(template_id):
        logger.warning("EmailJS not configured, logging email to %s instead:\n%s",
                       params.get("to_email"), body)
        return {"success": True, "messageId": "logged-fallback"}
    payload = {
        "service_id": config.EMAILJS_SERVICE_ID,
        "template_id": template_id,
        "user_id": config.EMAILJS_PUBLIC_KEY,
        "template_params": params,
    }
    if config.EMAILJS_PRIVATE_KEY:
        payload["accessToken"] = config.EMAILJS_PRIVATE_KEY
    try:
        response = httpx.post(config.EMAILJS_API_URL, json=payload)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("EmailJS send failed for %s: %s", params.get("to_email"), e)
        logger.info("Undelivered email body:\n%s", body)
        return {"success": False, "error": str(e)}
    logger.info("Email sent to %s", params.get("to_email"))
    return {"success": True, "messageId": response.text}


def send_admin_notification(order: Dict[str, Any]) -> Dict[str, Any]:
    if not config.ADMIN_EMAIL:
        logger.warning("ADMIN_EMAIL not set, skipping admin notification for order %s", order.get("orderNumber"))
        return {"success": False, "error": "ADMIN_EMAIL not set"}
    params = template_params(order, site_settings.peek_settings())
    params["to_email"] = config.ADMIN_EMAIL
    params["to_name"] = "Admin"
    params["subject"] = f"Yeni Sipariş - {order.get('orderNumber')}"
    return send_email(config.EMAILJS_TEMPLATE_ADMIN, params)


def send_order_confirmation(order: Dict[str, Any]) -> Dict[str, Any]:
    if not (order.get("sender") or {}).get("email"):
        logger.info("No customer email on order %s, skipping confirmation", order.get("orderNumber"))
        return {"success": False, "error": "no customer email"}
    params = template_params(order, site_settings.peek_settings())
    return send_email(config.EMAILJS_TEMPLATE_CUSTOMER, params)


def notify_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """Send the admin notification and the customer confirmation for an order, never raising."""
    results: Dict[str, Any] = {}
    for name, send in (("admin", send_admin_notification), ("customer", send_order_confirmation)):
        try:
            results[name] = send(order)
        except Exception as e:
            logger.exception("Error sending %s email for order %s", name, order.get("orderNumber"))
            results[name] = {"success": False, "error": str(e)}
    return results


def send_contact_email(contact: Dict[str, Any]) -> Dict[str, Any]:
    """Forward a contact form message to the store's inbox, never raising."""
    settings = site_settings.peek_settings()
    store_contact = settings.get("contact") or {}
    params = {
        "to_email": config.ADMIN_EMAIL or store_contact.get("email") or DEFAULT_CONTACT_EMAIL,
        "to_name": "Admin",
        "from_email": contact["email"],
        "from_name": contact["name"],
        "subject": f"Yeni İletişim Formu Mesajı: {contact['subject']}",
        "message": contact["message"],
        "phone": contact.get("phone") or NOT_GIVEN,
        "company_name": settings.get("siteName") or config.STORE_NAME,
        "company_email": store_contact.get("email") or "",
    }
    body = (
        f"{params['subject']}\n\n"
        f"Gönderen: {params['from_name']} <{params['from_email']}>\n"
        f"Telefon: {params['phone']}\n\n"
        f"{params['message']}"
    )
    try:
        return send_email(config.EMAILJS_TEMPLATE_ADMIN, params, body=body)
    except Exception as e:
        logger.exception("Error sending contact email from %s", contact.get("email"))
        return {"success": False, "error": str(e)}
