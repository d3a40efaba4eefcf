"""Database Models - Pydantic models for all entities."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ==================== ENUMS ====================


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ProductCategory(str, Enum):
    BOOKS = "books"
    ELECTRONICS = "electronics"
    FURNITURE = "furniture"
    CLOTHING = "clothing"
    VEHICLES = "vehicles"
    SERVICES = "services"
    OTHER = "other"


class ProductCondition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ProductStatus(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    SOLD = "sold"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    MOMO = "momo"
    VNPAY = "vnpay"


class ReportType(str, Enum):
    USER = "user"
    PRODUCT = "product"


class ReportReason(str, Enum):
    INAPPROPRIATE = "inappropriate"
    FAKE = "fake"
    SPAM = "spam"
    SCAM = "scam"
    HARASSMENT = "harassment"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


# ==================== COMMISSION ====================


def compute_commission(amount: float, rate: float) -> tuple[float, float]:
    """Split a payment amount into (admin_commission, seller_amount).

    Raises ValueError for a negative amount or a rate outside 0..1.
    """
    if amount < 0:
        raise ValueError(f"Payment amount must be >= 0, got {amount}")
    if not 0 <= rate <= 1:
        raise ValueError(f"Commission rate must be within 0..1, got {rate}")
    commission = amount * rate
    return commission, amount - commission


# ==================== DOCUMENTS ====================


class Document(BaseModel):
    """Fields shared by every stored document."""
    model_config = ConfigDict(extra="ignore", use_enum_values=True, validate_default=True)

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class User(Document):
    """User model. The password hash is never serialized."""
    name: str
    email: str
    password: Optional[str] = Field(default=None, exclude=True)
    role: UserRole = UserRole.USER
    avatar: str = ""
    bio: str = ""
    location: str = ""
    rating: float = 0.0
    rating_count: int = 0
    favorites: list[str] = []

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class Product(Document):
    """Product listing."""
    title: str
    description: str
    price: float = Field(ge=0)
    images: list[str] = []
    category: ProductCategory
    condition: ProductCondition
    status: ProductStatus = ProductStatus.AVAILABLE
    seller: str
    buyer: Optional[str] = None
    location: str = ""
    views: int = 0
    favorites: int = 0


class Payment(Document):
    """Marketplace payment with commission split."""
    order_id: str
    request_id: Optional[str] = None
    amount: float = Field(ge=0)
    product_id: str
    buyer_id: str
    seller_id: str
    payment_method: PaymentMethod = PaymentMethod.MOMO
    payment_status: PaymentStatus = PaymentStatus.PENDING
    admin_commission_rate: float = Field(default=0.1, ge=0, le=1)
    admin_commission: float = 0.0
    seller_amount: float = 0.0
    shipping_address: Optional[str] = None
    transaction_id: Optional[str] = None
    pay_url: Optional[str] = None
    extra_data: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    received_successfully: bool = False
    received_successfully_deadline: Optional[datetime] = None
    received_confirmed_at: Optional[datetime] = None


class Chat(Document):
    """Conversation between users, optionally about a product."""
    participants: list[str]
    product: Optional[str] = None
    last_message: Optional[str] = None
    unread_count: dict[str, int] = {}


class Message(Document):
    chat: str
    sender: str
    content: str
    attachments: list[str] = []
    is_read: bool = False


class Comment(Document):
    """Product comment; replies carry the parent comment id."""
    product: str
    user: str
    content: str
    parent: Optional[str] = None
    likes: list[str] = []


class Rating(Document):
    rater: str
    rated: str
    rating: int = Field(ge=1, le=5)
    comment: str = ""


class Report(Document):
    type: ReportType
    reporter: str
    reported: str
    product: Optional[str] = None
    reason: ReportReason
    description: str = ""
    status: ReportStatus = ReportStatus.PENDING
    admin_notes: str = ""
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
