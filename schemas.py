"""
Database Schemas and request bodies for the storefront API

Each collection model maps to a MongoDB collection. Python attributes are
snake_case; stored documents and JSON bodies use the camelCase aliases.

Collections:
- users
- products
- orders
"""
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

MAX_CART_QUANTITY = 100


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"


class OrderStatus(str, Enum):
    ORDERED = "Ordered"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


def _check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("Invalid product ID format")
    return value


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]


class MongoModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )


# Collections

class CartLine(MongoModel):
    product: ObjectId
    quantity: int = Field(..., ge=1)


class User(MongoModel):
    """
    Users collection schema
    Collection name: "users"
    """
    username: str = Field(..., description="Unique login name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="BCrypt password hash")
    cart: List[CartLine] = Field(default_factory=list)
    order_history: List[ObjectId] = Field(default_factory=list, description="Order ids, oldest first")


class Product(MongoModel):
    """
    Products collection schema
    Collection name: "products"
    """
    name: str
    category: str = Field(..., description="Top, Pants, Dress")
    price: float = Field(..., ge=0)
    size: str = Field(..., description="S, M, L, XL")
    description: str
    image_url: str


class ShippingAddress(MongoModel):
    user_name: str
    street_address: str
    city: str
    province: str
    zip_code: str

    @field_validator("user_name", "street_address", "city", "province", "zip_code")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class Order(MongoModel):
    """
    Orders collection schema
    Collection name: "orders"

    ``products`` is a copy of the cart taken at checkout; only ``status``
    changes afterwards.
    """
    user: ObjectId
    products: List[CartLine] = Field(..., min_length=1)
    total_amount: float = Field(..., ge=0)
    currency: Currency
    shipping_address: ShippingAddress
    status: OrderStatus = Field(OrderStatus.ORDERED, validate_default=True)
    order_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# Request bodies

class RegisterRequest(MongoModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("username")
    @classmethod
    def username_charset(cls, v: str) -> str:
        if not USERNAME_RE.match(v):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not PASSWORD_RE.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return v


class LoginRequest(MongoModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class AddToCartRequest(MongoModel):
    product_id: ObjectIdStr
    quantity: int = Field(..., ge=1, le=MAX_CART_QUANTITY)


class CheckoutRequest(MongoModel):
    shipping_address: ShippingAddress
    currency: Currency
    total_amount: float = Field(..., ge=0)


class OrderStatusRequest(MongoModel):
    status: OrderStatus


class ProductFilters(BaseModel):
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    size: Optional[str] = None
