"""
Çelenk Diyarı Database Schemas

Each Pydantic model below represents one MongoDB collection or a request body. Field names are
snake_case in Python and camelCase on the wire and in storage (the storefront reads the documents
as they are stored), so every model inherits the camelCase alias generator from `CamelModel`.

These schemas are used for validation before inserting/updating documents.
"""
from typing import List, Optional, Dict, Any, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


PaymentMethod = Literal["credit_card", "bank_transfer", "whatsapp"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]

ORDER_STATUSES = ["pending", "confirmed", "processing", "preparing", "shipped", "delivered", "cancelled"]


# Catalog

class ProductVariant(CamelModel):
    id: str
    name: str
    price: float = Field(..., gt=0)
    in_stock: bool = True
    attributes: Dict[str, str] = {}


class Product(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    features: str = ""
    price: float = Field(..., gt=0)
    category: List[str]
    in_stock: bool = True
    images: List[str]
    variants: List[ProductVariant] = []

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Union[str, List[str], None]):
        if isinstance(v, str):
            v = [v]
        v = [c.strip() for c in (v or []) if c and c.strip()]
        if not v:
            raise ValueError("at least one category is required")
        return v

    @field_validator("images", mode="before")
    @classmethod
    def drop_blank_images(cls, v):
        v = [img.strip() for img in (v or []) if isinstance(img, str) and img.strip()]
        if not v:
            raise ValueError("at least one image is required")
        return v


# Cart

class CartItem(CamelModel):
    product_id: str
    name: str
    price: float = Field(..., ge=0)  # captured price at add-to-cart time
    quantity: int = Field(1, ge=1)
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    image: Optional[str] = None


class QuoteRequest(CamelModel):
    items: List[CartItem] = []
    city: Optional[str] = None
    district: Optional[str] = None


# Orders

class Sender(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    wreath_text: str = ""
    additional_info: str = ""


class Recipient(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    delivery_location: str = ""
    delivery_address: str = ""


class Delivery(CamelModel):
    city: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    delivery_date: Optional[str] = None  # YYYY-MM-DD
    delivery_time: Optional[str] = None
    delivery_location: Optional[str] = None
    delivery_address: Optional[str] = None


class Invoice(CamelModel):
    need_invoice: bool = False
    invoice_type: Literal["individual", "corporate"] = "individual"
    company_name: Optional[str] = None
    tax_office: Optional[str] = None
    tax_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    postal_code: Optional[str] = None

    def is_complete(self) -> bool:
        if not self.tax_number or not self.address or not self.city or not self.district:
            return False
        if self.invoice_type == "individual":
            return len(self.tax_number) == 11
        if not self.company_name or not self.tax_office:
            return False
        return len(self.tax_number) in (10, 11)


class OrderItem(CamelModel):
    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    image: Optional[str] = None


class OrderCreate(CamelModel):
    sender: Sender
    recipient: Recipient
    delivery: Delivery
    invoice: Optional[Invoice] = None
    items: List[OrderItem] = Field(..., min_length=1)
    payment_method: PaymentMethod = "whatsapp"
    order_number: Optional[str] = None
    shipping_method: str = "standard"
    notes: str = ""

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_payment_method(cls, v):
        if isinstance(v, str):
            lowered = v.strip().lower()
            if "havale" in lowered or "eft" in lowered or lowered == "bank_transfer":
                return "bank_transfer"
            if lowered in ("card", "kredi_karti", "credit_card"):
                return "credit_card"
            return lowered
        return v


class Order(CamelModel):
    order_number: str
    sender: Sender
    recipient: Recipient
    delivery: Delivery
    invoice: Optional[Invoice] = None
    items: List[OrderItem]
    subtotal: float
    shipping_cost: float
    total: float
    payment_method: PaymentMethod
    shipping_method: str = "standard"
    status: str = Field("pending", description="pending|confirmed|processing|preparing|shipped|delivered|cancelled")
    payment_status: PaymentStatus = "pending"
    notes: str = ""


class OrderStatusUpdate(CamelModel):
    status: str = Field(..., min_length=1)
    payment_status: Optional[PaymentStatus] = None


# Pricing

class DistrictPricing(CamelModel):
    city: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    base_price: float = Field(..., ge=0)
    express_price: Optional[float] = Field(None, ge=0)
    is_active: bool = True


class CityPricing(CamelModel):
    city: str = Field(..., min_length=1)
    base_price: float = Field(..., ge=0)
    express_price: Optional[float] = Field(None, ge=0)
    is_active: bool = True


class PricingConfig(CamelModel):
    default_price: float = Field(25, ge=0)
    default_express_price: float = Field(50, ge=0)


class PricingCreate(BaseModel):
    type: Literal["district", "city", "config"]
    pricing: Dict[str, Any]


class PricingUpdate(BaseModel):
    type: Literal["district", "city"]
    id: str
    pricing: Dict[str, Any]


# Settings

class OrderBlockedDay(CamelModel):
    name: str = ""
    start_date: str
    end_date: str
    message: str = ""
    is_active: bool = True


class SettingsUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    site_name: Optional[str] = None
    site_description: Optional[str] = None
    site_keywords: Optional[str] = None
    site_url: Optional[str] = None
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    contact: Optional[Dict[str, Any]] = None
    social_media: Optional[Dict[str, Any]] = None
    seo: Optional[Dict[str, Any]] = None
    theme: Optional[Dict[str, Any]] = None
    business: Optional[Dict[str, Any]] = None
    notifications: Optional[Dict[str, Any]] = None
    security: Optional[Dict[str, Any]] = None
    holiday_closure: Optional[Dict[str, Any]] = None
    order_blocked_days: Optional[List[OrderBlockedDay]] = None

    @field_validator("business")
    @classmethod
    def check_shipping_cost(cls, v: Optional[Dict[str, Any]]):
        cost = (v or {}).get("shippingCost")
        if cost is None:
            return v
        if isinstance(cost, bool) or not isinstance(cost, (int, float)) or cost < 0:
            raise ValueError("shippingCost must be a non-negative number")
        return v


# Blog

class BlogPostCreate(CamelModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    category: str = "Genel"
    tags: List[str] = []
    status: Literal["draft", "published"] = "draft"
    author: str = "Admin"
    featured: bool = False
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    image: Optional[str] = None


class BlogPostUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[Literal["draft", "published"]] = None
    author: Optional[str] = None
    featured: Optional[bool] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    image: Optional[str] = None


# Messages

class WhatsAppMessageCreate(CamelModel):
    order_number: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = "support_request"


class ContactMessage(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: Optional[str] = None
    subject: str = Field(..., min_length=5, max_length=100)
    message: str = Field(..., min_length=10, max_length=1000)

    @field_validator("name", "subject", "message")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if v and not 10 <= len(v) <= 15:
            raise ValueError("phone must be 10-15 characters")
        return v or None


# Admin

class AdminLogin(BaseModel):
    username: str = ""
    password: str = ""
