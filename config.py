import os
import logging

logger = logging.getLogger("celenk.config")

# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "celenk")

# Site
STORE_NAME = os.getenv("STORE_NAME", "Çelenk Diyarı")
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
DEFAULT_WHATSAPP_PHONE = os.getenv("DEFAULT_WHATSAPP_PHONE", "+90 535 561 26 56")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
# Turkey has stayed on UTC+3 all year since 2016
STORE_UTC_OFFSET_HOURS = int(os.getenv("STORE_UTC_OFFSET_HOURS", "3"))

# Admin
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH")
SESSION_SECRET = os.getenv("SESSION_SECRET", "devsecret_change_me")
SESSION_MAX_AGE_HOURS = int(os.getenv("SESSION_MAX_AGE_HOURS", "24"))
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"

# Email (EmailJS)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
EMAILJS_API_URL = os.getenv("EMAILJS_API_URL", "https://api.emailjs.com/api/v1.0/email/send")
EMAILJS_SERVICE_ID = os.getenv("EMAILJS_SERVICE_ID")
EMAILJS_PUBLIC_KEY = os.getenv("EMAILJS_PUBLIC_KEY")
EMAILJS_PRIVATE_KEY = os.getenv("EMAILJS_PRIVATE_KEY")
EMAILJS_TEMPLATE_CUSTOMER = os.getenv("EMAILJS_TEMPLATE_CUSTOMER")
EMAILJS_TEMPLATE_ADMIN = os.getenv("EMAILJS_TEMPLATE_ADMIN")

# PayTR
PAYTR_MERCHANT_ID = os.getenv("PAYTR_MERCHANT_ID", "")
PAYTR_MERCHANT_KEY = os.getenv("PAYTR_MERCHANT_KEY", "")
PAYTR_MERCHANT_SALT = os.getenv("PAYTR_MERCHANT_SALT", "")
PAYTR_TEST_MODE = os.getenv("PAYTR_TEST_MODE", "false").lower() == "true"
PAYTR_BASE_URL = os.getenv("PAYTR_BASE_URL", "https://www.paytr.com")


def warn_missing_config():
    """Log a warning for every integration that is not configured."""
    if not DATABASE_URL:
        logger.warning("DATABASE_URL is not set, database features are unavailable")
    if not ADMIN_USERNAME or not (ADMIN_PASSWORD or ADMIN_PASSWORD_HASH):
        logger.warning("ADMIN_USERNAME and ADMIN_PASSWORD must be set for the admin panel")
    if not ADMIN_EMAIL:
        logger.warning("ADMIN_EMAIL is not set, admin notifications may not work")
    if not (EMAILJS_SERVICE_ID and EMAILJS_PUBLIC_KEY):
        logger.warning("EmailJS is not configured, emails will be logged instead of sent")
    if not (PAYTR_MERCHANT_ID and PAYTR_MERCHANT_KEY and PAYTR_MERCHANT_SALT):
        logger.warning("PayTR is not configured, card payments are disabled")
    if SESSION_SECRET == "devsecret_change_me":
        logger.warning("SESSION_SECRET is using the development default")
