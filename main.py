import os
import re
import math
import time
import secrets
import logging
from typing import Optional, Dict, Any

from fastapi import FastAPI, HTTPException, Depends, Request, Response, UploadFile, File
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

import config
import database
from database import get_db, create_document, get_documents, to_client, find_by_id, object_id, now_utc
from schemas import (
    Product, OrderCreate, OrderStatusUpdate, QuoteRequest, DistrictPricing, CityPricing, PricingConfig,
    PricingCreate, PricingUpdate, SettingsUpdate, BlogPostCreate, BlogPostUpdate, AdminLogin, CamelModel,
    WhatsAppMessageCreate, ContactMessage, ORDER_STATUSES,
)
from auth import AdminSession, SESSION_COOKIE, require_admin, current_admin, verify_admin, admin_configured, \
    create_session_token
from cart import Cart
from checkout import ORDER_COLLECTION, OrderBlocked, place_order
from utils import slugify
import notifications
import paytr
import pricing
import ratelimit
import site_settings

# Logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("celenk")

config.warn_missing_config()

app = FastAPI(title="Çelenk Diyarı API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in config.ALLOWED_ORIGINS] if config.ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")

PRODUCT_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"
BLOG_COLLECTION = "blog"
WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 200


# Error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _validation_detail(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())


# Health
@app.get("/")
def root():
    return {"name": config.STORE_NAME, "status": "ok"}


@app.get("/test")
def test_database():
    response: Dict[str, Any] = {"backend": "running", "database": "not configured", "collections": []}
    if database.db is None:
        return response
    try:
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "connected"
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        response["database"] = f"error: {str(e)[:80]}"
    return response


# Products
@app.get("/api/products")
def list_products(response: Response, category: Optional[str] = None, q: Optional[str] = None):
    query: Dict[str, Any] = {}
    if category:
        query["category"] = category
    if q:
        query["$or"] = [
            {"name": {"$regex": q, "$options": "i"}},
            {"description": {"$regex": q, "$options": "i"}},
        ]
    response.headers["Cache-Control"] = PRODUCT_CACHE_CONTROL
    return get_documents("product", query, sort=[("createdAt", -1)])


@app.get("/api/products/{product_id}")
def get_product(product_id: str, response: Response):
    p = find_by_id("product", product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    response.headers["Cache-Control"] = PRODUCT_CACHE_CONTROL
    return to_client(p)


@app.post("/api/products")
def create_product(data: Product, admin: AdminSession = Depends(require_admin)):
    product_id = create_document("product", data)
    logger.info("Product created: %s (%s)", data.name, product_id)
    return to_client(find_by_id("product", product_id))


@app.put("/api/products/{product_id}")
def update_product(product_id: str, data: Product, admin: AdminSession = Depends(require_admin)):
    oid = object_id(product_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Product not found")
    res = get_db()["product"].update_one(
        {"_id": oid}, {"$set": {**data.model_dump(by_alias=True), "updatedAt": now_utc()}}
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Product not found")
    return to_client(find_by_id("product", product_id))


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, admin: AdminSession = Depends(require_admin)):
    oid = object_id(product_id)
    if oid is None or get_db()["product"].delete_one({"_id": oid}).deleted_count == 0:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("Product deleted: %s", product_id)
    return {"success": True}


# Checkout
@app.post("/api/checkout/quote")
def checkout_quote(data: QuoteRequest):
    cart = Cart(data.items)
    shipping, source = 0.0, "none"
    if data.city:
        shipping, source = pricing.resolve_shipping_cost(data.city, data.district)
    subtotal = cart.total_price()
    return {
        "items": [i.model_dump(by_alias=True) for i in cart.items],
        "itemCount": cart.total_items(),
        "subtotal": subtotal,
        "shippingCost": round(shipping, 2),
        "shippingSource": source,
        "total": round(subtotal + shipping, 2),
    }


# Orders
@app.get("/api/orders")
def list_orders(orderNumber: Optional[str] = None, status: Optional[str] = None, limit: int = 100,
                admin: Optional[AdminSession] = Depends(current_admin)):
    if orderNumber:
        o = get_db()[ORDER_COLLECTION].find_one({"orderNumber": orderNumber})
        return {"exists": o is not None, "orderNumber": orderNumber, "order": to_client(o)}
    if admin is None:
        raise HTTPException(status_code=401, detail="Unauthorized. Admin authentication required.")
    query = {"status": status} if status else {}
    return get_documents(ORDER_COLLECTION, query, limit=min(limit, 100), sort=[("createdAt", -1)])


@app.post("/api/orders")
def create_order(data: OrderCreate, request: Request):
    ratelimit.enforce(request, "order", ratelimit.ORDER_RULE)
    try:
        return place_order(data)
    except OrderBlocked as e:
        raise HTTPException(status_code=403, detail=str(e))


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, admin: AdminSession = Depends(require_admin)):
    o = find_by_id(ORDER_COLLECTION, order_id)
    if not o:
        raise HTTPException(status_code=404, detail="Order not found")
    return to_client(o)


@app.put("/api/orders/{order_id}")
def update_order_status(order_id: str, data: OrderStatusUpdate, admin: AdminSession = Depends(require_admin)):
    oid = object_id(order_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Order not found")
    update: Dict[str, Any] = {"status": data.status, "updatedAt": now_utc()}
    if data.status not in ORDER_STATUSES:
        logger.warning("Order %s set to non-standard status %r", order_id, data.status)
    if data.payment_status:
        update["paymentStatus"] = data.payment_status
    res = get_db()[ORDER_COLLECTION].update_one({"_id": oid}, {"$set": update})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info("Order %s status set to %s by %s", order_id, data.status, admin.username)
    return to_client(find_by_id(ORDER_COLLECTION, order_id))


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, admin: AdminSession = Depends(require_admin)):
    o = find_by_id(ORDER_COLLECTION, order_id)
    if not o:
        raise HTTPException(status_code=404, detail="Order not found")
    if o.get("paymentStatus") == "paid":
        logger.warning("Deleting paid order %s (%s)", o.get("orderNumber"), order_id)
    get_db()[ORDER_COLLECTION].delete_one({"_id": o["_id"]})
    return {"success": True}


# Customers
@app.get("/api/customers")
def list_customers(limit: int = 200, admin: AdminSession = Depends(require_admin)):
    return get_documents("customer", limit=limit, sort=[("lastOrderDate", -1)])


# Pricing
@app.get("/api/pricing")
def get_pricing(city: Optional[str] = None, district: Optional[str] = None):
    if not city:
        return pricing.list_pricing()
    entry = pricing.find_district_price(city, district) if district else None
    if entry is None:
        entry = pricing.find_city_price(city)
    return {"pricing": entry}


@app.get("/api/pricing/resolve")
def resolve_pricing(city: str, district: Optional[str] = None):
    cost, source = pricing.resolve_shipping_cost(city, district)
    return {"city": city, "district": district, "shippingCost": cost, "source": source}


@app.post("/api/pricing")
def create_pricing(data: PricingCreate, admin: AdminSession = Depends(require_admin)):
    try:
        if data.type == "district":
            entry_id = pricing.upsert_district(DistrictPricing(**data.pricing))
        elif data.type == "city":
            entry_id = pricing.upsert_city(CityPricing(**data.pricing))
        else:
            pricing.update_config(PricingConfig(**data.pricing).model_dump(by_alias=True))
            entry_id = pricing.CONFIG_DOC_ID
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e))
    return {"success": True, "id": entry_id}


@app.put("/api/pricing")
def update_pricing(data: PricingUpdate, admin: AdminSession = Depends(require_admin)):
    try:
        found = pricing.update_entry(data.type, data.id, data.pricing)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e))
    if not found:
        raise HTTPException(status_code=404, detail="Pricing entry not found")
    return {"success": True, "id": data.id}


@app.delete("/api/pricing")
def delete_pricing(type: Optional[str] = None, id: Optional[str] = None,
                   admin: AdminSession = Depends(require_admin)):
    if type not in ("district", "city") or not id:
        raise HTTPException(status_code=400, detail="type (district|city) and id are required")
    if not pricing.delete_entry(type, id):
        raise HTTPException(status_code=404, detail="Pricing entry not found")
    return {"success": True}


# Settings
@app.get("/api/settings")
def get_site_settings():
    return site_settings.get_settings()


@app.put("/api/settings")
def update_site_settings(data: SettingsUpdate, admin: AdminSession = Depends(require_admin)):
    updated = site_settings.update_settings(data)
    logger.info("Site settings updated by %s", admin.username)
    return updated


# Blog
def _reading_stats(content: str) -> Dict[str, int]:
    words = len(content.split())
    return {"wordCount": words, "readingTime": max(1, math.ceil(words / WORDS_PER_MINUTE))}


def _excerpt(content: str) -> str:
    if len(content) <= EXCERPT_LENGTH:
        return content
    return content[:EXCERPT_LENGTH] + "..."


def _find_post(id_or_slug: str) -> Optional[Dict[str, Any]]:
    col = get_db()[BLOG_COLLECTION]
    oid = object_id(id_or_slug)
    post = col.find_one({"_id": oid}) if oid is not None else None
    return post or col.find_one({"slug": id_or_slug})


@app.get("/api/blog")
def list_blog_posts(status: str = "published", category: Optional[str] = None, featured: Optional[bool] = None,
                    search: Optional[str] = None, limit: int = 50,
                    admin: Optional[AdminSession] = Depends(current_admin)):
    if status != "published" and admin is None:
        raise HTTPException(status_code=401, detail="Unauthorized. Admin authentication required.")
    query: Dict[str, Any] = {}
    if status != "all":
        query["status"] = status
    if category:
        query["category"] = category
    if featured is not None:
        query["featured"] = featured
    if search:
        query["$or"] = [
            {"title": {"$regex": search, "$options": "i"}},
            {"excerpt": {"$regex": search, "$options": "i"}},
            {"content": {"$regex": search, "$options": "i"}},
        ]
    posts = get_documents(BLOG_COLLECTION, query, limit=limit, sort=[("createdAt", -1)])
    col = get_db()[BLOG_COLLECTION]
    stats = {
        "total": col.count_documents({}),
        "published": col.count_documents({"status": "published"}),
        "draft": col.count_documents({"status": "draft"}),
        "totalViews": sum(int(p.get("views") or 0) for p in col.find({}, {"views": 1})),
    }
    return {"posts": posts, "stats": stats}


@app.get("/api/blog/{id_or_slug}")
def get_blog_post(id_or_slug: str, admin: Optional[AdminSession] = Depends(current_admin)):
    post = _find_post(id_or_slug)
    if not post or (post.get("status") != "published" and admin is None):
        raise HTTPException(status_code=404, detail="Blog post not found")
    col = get_db()[BLOG_COLLECTION]
    if post.get("status") == "published":
        col.update_one({"_id": post["_id"]}, {"$inc": {"views": 1}})
        post["views"] = int(post.get("views") or 0) + 1
    related = get_documents(
        BLOG_COLLECTION,
        {"category": post.get("category"), "status": "published", "_id": {"$ne": post["_id"]}},
        limit=3, sort=[("createdAt", -1)],
    )
    return {"post": to_client(post), "relatedPosts": related}


@app.post("/api/blog")
def create_blog_post(data: BlogPostCreate, admin: AdminSession = Depends(require_admin)):
    slug = slugify(data.slug or data.title)
    if not slug:
        raise HTTPException(status_code=400, detail="Title must produce a slug")
    if get_db()[BLOG_COLLECTION].find_one({"slug": slug}):
        raise HTTPException(status_code=400, detail="A post with this slug already exists")
    doc = data.model_dump(by_alias=True)
    doc.update(_reading_stats(data.content))
    doc["slug"] = slug
    doc["excerpt"] = data.excerpt or _excerpt(data.content)
    doc["views"] = 0
    doc["likes"] = 0
    doc["publishedAt"] = now_utc() if data.status == "published" else None
    post_id = create_document(BLOG_COLLECTION, doc)
    logger.info("Blog post created: %s (%s)", slug, post_id)
    return to_client(find_by_id(BLOG_COLLECTION, post_id))


@app.put("/api/blog/{post_id}")
def update_blog_post(post_id: str, data: BlogPostUpdate, admin: AdminSession = Depends(require_admin)):
    post = find_by_id(BLOG_COLLECTION, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Blog post not found")
    update = data.model_dump(by_alias=True, exclude_none=True)
    if "slug" in update:
        update["slug"] = slugify(update["slug"])
    if "content" in update:
        update.update(_reading_stats(update["content"]))
    if update.get("status") == "published" and not post.get("publishedAt"):
        update["publishedAt"] = now_utc()
    update["updatedAt"] = now_utc()
    get_db()[BLOG_COLLECTION].update_one({"_id": post["_id"]}, {"$set": update})
    return to_client(find_by_id(BLOG_COLLECTION, post_id))


@app.delete("/api/blog/{post_id}")
def delete_blog_post(post_id: str, admin: AdminSession = Depends(require_admin)):
    oid = object_id(post_id)
    if oid is None or get_db()[BLOG_COLLECTION].delete_one({"_id": oid}).deleted_count == 0:
        raise HTTPException(status_code=404, detail="Blog post not found")
    return {"success": True}


@app.post("/api/blog/{post_id}/like")
def like_blog_post(post_id: str):
    post = _find_post(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Blog post not found")
    get_db()[BLOG_COLLECTION].update_one({"_id": post["_id"]}, {"$inc": {"likes": 1}})
    return {"likes": int(post.get("likes") or 0) + 1}


# Admin auth
@app.post("/api/admin/auth")
def admin_login(data: AdminLogin, request: Request, response: Response):
    ratelimit.enforce(request, "admin", ratelimit.LOGIN_RULE)
    if not admin_configured():
        raise HTTPException(status_code=503, detail="Admin credentials are not configured")
    if not data.username or not data.password:
        raise HTTPException(status_code=400, detail="Kullanıcı adı ve şifre gereklidir")
    if not verify_admin(data.username, data.password):
        logger.warning("Failed admin login for %s from %s", data.username, ratelimit.client_ip(request))
        raise HTTPException(status_code=401, detail="Kullanıcı adı veya şifre hatalı")
    ratelimit.reset(f"admin:{ratelimit.client_ip(request)}")
    response.set_cookie(
        SESSION_COOKIE,
        create_session_token(data.username),
        max_age=config.SESSION_MAX_AGE_HOURS * 3600,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("Admin %s logged in", data.username)
    return {"success": True, "username": data.username}


@app.get("/api/admin/auth")
def admin_session(admin: AdminSession = Depends(require_admin)):
    return {"authenticated": True, "username": admin.username, "issuedAt": admin.issued_at}


@app.delete("/api/admin/auth")
def admin_logout(response: Response):
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"success": True}


# Payments
class PaymentStart(CamelModel):
    order_number: Optional[str] = None
    order: Optional[OrderCreate] = None


def _payment_order(data: PaymentStart) -> Dict[str, Any]:
    if data.order_number:
        existing = get_db()[ORDER_COLLECTION].find_one({"orderNumber": data.order_number})
        if existing:
            return to_client(existing)
    if data.order is None:
        raise HTTPException(status_code=400, detail="Sipariş bulunamadı")
    payload = data.order.model_copy(update={
        "payment_method": "credit_card",
        "order_number": data.order.order_number or data.order_number,
    })
    try:
        return place_order(payload)["order"]
    except OrderBlocked as e:
        raise HTTPException(status_code=403, detail=str(e))


@app.post("/api/payments/paytr")
def start_paytr_payment(data: PaymentStart, request: Request):
    ratelimit.enforce(request, "payment", ratelimit.PAYMENT_RULE)
    cfg = paytr.get_config()
    if not cfg.configured:
        raise HTTPException(status_code=503, detail="Kredi kartı ile ödeme şu anda kullanılamıyor")
    order = _payment_order(data)
    payment_request = paytr.build_payment_request(cfg, order, ratelimit.client_ip(request))
    try:
        token = paytr.request_token(cfg, payment_request)
    except paytr.PayTRError as e:
        whatsapp = notifications.prepare_whatsapp(order)
        return JSONResponse(status_code=502, content={
            "success": False,
            "error": str(e),
            "orderNumber": order["orderNumber"],
            "fallbackPaymentMethod": "whatsapp",
            "whatsappUrl": whatsapp.get("whatsappUrl"),
        })
    get_db()[ORDER_COLLECTION].update_one(
        {"orderNumber": order["orderNumber"]},
        {"$set": {"paymentDetails": {"provider": "paytr", "merchantOid": order["orderNumber"],
                                     "paymentAmount": payment_request["payment_amount"]},
                  "updatedAt": now_utc()}},
    )
    logger.info("PayTR token issued for order %s", order["orderNumber"])
    return {
        "success": True,
        "token": token,
        "iframeUrl": paytr.iframe_url(token),
        "orderNumber": order["orderNumber"],
    }


@app.post("/api/payments/paytr/callback")
async def paytr_callback(request: Request):
    form = await request.form()
    data = {k: str(v) for k, v in form.items()}
    cfg = paytr.get_config()
    if not cfg.test_mode and not paytr.verify_callback(cfg, data):
        logger.warning("PayTR callback with bad hash for %s", data.get("merchant_oid"))
        return PlainTextResponse("PAYTR notification failed: bad hash", status_code=400)

    merchant_oid = data.get("merchant_oid")
    try:
        col = get_db()[ORDER_COLLECTION]
        order = col.find_one({"orderNumber": merchant_oid})
        if not order:
            logger.warning("PayTR callback for unknown order %s", merchant_oid)
            return PlainTextResponse("OK")
        if order.get("paymentStatus") == "paid":
            logger.info("PayTR callback for already paid order %s ignored", merchant_oid)
            return PlainTextResponse("OK")
        details = {**(order.get("paymentDetails") or {}), "provider": "paytr", "merchantOid": merchant_oid,
                   "totalAmount": data.get("total_amount"), "paymentType": data.get("payment_type")}
        if data.get("status") == paytr.STATUS_SUCCESS:
            details["paidAt"] = now_utc()
            col.update_one({"_id": order["_id"]}, {"$set": {
                "status": "confirmed", "paymentStatus": "paid", "paymentDetails": details, "updatedAt": now_utc(),
            }})
            logger.info("Payment received for order %s", merchant_oid)
            notifications.notify_order(to_client(col.find_one({"_id": order["_id"]})))
        else:
            details["failedReasonCode"] = data.get("failed_reason_code")
            details["failedReason"] = paytr.failure_reason(data.get("failed_reason_code"),
                                                           data.get("failed_reason_msg"))
            col.update_one({"_id": order["_id"]}, {"$set": {
                "status": "cancelled", "paymentStatus": "failed", "paymentDetails": details, "updatedAt": now_utc(),
            }})
            logger.info("Payment failed for order %s: %s", merchant_oid, details["failedReason"])
    except Exception:
        logger.exception("Error handling PayTR callback for %s", merchant_oid)
    return PlainTextResponse("OK")


# Messages
WHATSAPP_MESSAGE_COLLECTION = "whatsapp_message"
CONTACT_COLLECTION = "contact"


@app.get("/api/whatsapp-messages")
def list_whatsapp_messages(admin: AdminSession = Depends(require_admin)):
    messages = get_documents(WHATSAPP_MESSAGE_COLLECTION, limit=100, sort=[("createdAt", -1)])
    return {"success": True, "messages": messages, "count": len(messages)}


@app.post("/api/whatsapp-messages")
def create_whatsapp_message(data: WhatsAppMessageCreate, request: Request):
    ratelimit.enforce(request, "whatsapp", ratelimit.CONTACT_RULE)
    doc = {**data.model_dump(by_alias=True), "status": "new", "read": False}
    message_id = create_document(WHATSAPP_MESSAGE_COLLECTION, doc)
    logger.info("WhatsApp message saved for order %s: %s", data.order_number, message_id)
    return {"success": True, "id": message_id, "message": "WhatsApp message saved successfully"}


@app.post("/api/contact")
def submit_contact(data: ContactMessage, request: Request):
    ratelimit.enforce(request, "contact", ratelimit.CONTACT_RULE)
    contact = data.model_dump(by_alias=True)
    try:
        create_document(CONTACT_COLLECTION, {**contact, "ip": ratelimit.client_ip(request),
                                             "status": "new", "read": False})
    except Exception:
        logger.exception("Could not store contact message from %s", data.email)
    notifications.send_contact_email(contact)
    return {
        "success": True,
        "message": "Mesajınız başarıyla gönderildi. En kısa sürede size geri dönüş yapacağız.",
    }


# Uploads
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/avif": "avif",
}


@app.post("/api/upload/image")
async def upload_image(file: UploadFile = File(...), admin: AdminSession = Depends(require_admin)):
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Sadece resim dosyaları yüklenebilir")
    contents = await file.read()
    if len(contents) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="Dosya boyutu 5MB'dan küçük olmalıdır")
    ext = (file.filename or "").rsplit(".", 1)[-1].lower() if "." in (file.filename or "") else ""
    if not re.fullmatch(r"[a-z0-9]{1,5}", ext):
        ext = IMAGE_EXTENSIONS.get(file.content_type)
    if not ext:
        raise HTTPException(status_code=400, detail="Desteklenmeyen resim formatı")
    file_name = f"{int(time.time() * 1000)}_{secrets.token_hex(4)}.{ext}"
    target_dir = os.path.join(config.UPLOAD_DIR, "products")
    os.makedirs(target_dir, exist_ok=True)
    with open(os.path.join(target_dir, file_name), "wb") as fh:
        fh.write(contents)
    logger.info("Image uploaded: products/%s (%d bytes)", file_name, len(contents))
    return {
        "success": True,
        "url": f"/uploads/products/{file_name}",
        "fileName": f"products/{file_name}",
        "size": len(contents),
        "type": file.content_type,
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
