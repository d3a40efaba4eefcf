"""
API Pydantic Models

Request bodies shared by the routers, plus response serialization helpers.
"""
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from studenthub.services.models import (
    ProductCategory,
    ProductCondition,
    ProductStatus,
    ReportReason,
    UserRole,
)


def serialize(model: BaseModel, **extra: Any) -> dict[str, Any]:
    """JSON-ready dict of a stored model with extra (populated) fields merged in."""
    data = model.model_dump(mode="json")
    data.update(extra)
    return data


def pagination(total: int, page: int, limit: int) -> dict[str, int]:
    return {"total": total, "page": page, "limit": limit, "pages": -(-total // limit) if limit else 0}


# ==================== USER MODELS ====================

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    location: Optional[str] = None
    role: Optional[UserRole] = None


class AdminUserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    location: Optional[str] = None


class RateUserRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""


class ReportRequest(BaseModel):
    reason: ReportReason
    description: str = ""


# ==================== PRODUCT MODELS ====================

class AdminProductUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[ProductCategory] = None
    condition: Optional[ProductCondition] = None
    status: Optional[ProductStatus] = None
    location: Optional[str] = None


# ==================== CHAT MODELS ====================

class CreateChatRequest(BaseModel):
    receiver_id: str
    product_id: Optional[str] = None


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)
    attachments: list[str] = []


# ==================== COMMENT MODELS ====================

class CreateCommentRequest(BaseModel):
    product_id: str
    content: str = Field(min_length=1)


class CommentContentRequest(BaseModel):
    content: str = Field(min_length=1)


# ==================== PAYMENT MODELS ====================

class CreatePaymentRequest(BaseModel):
    product_id: str


class CreateVnpayPaymentRequest(BaseModel):
    product_id: str
    bank_code: Optional[str] = None
    locale: Optional[str] = "vn"


class VnpayQueryRequest(BaseModel):
    order_id: str
    transaction_date: str


class VnpayRefundRequest(BaseModel):
    order_id: str
    transaction_date: str
    amount: float = Field(gt=0)
    transaction_type: str = "02"
