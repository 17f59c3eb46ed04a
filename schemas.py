"""
Database Schemas

MongoDB collection schemas as Pydantic models.
Each model represents a collection in the database; the lowercased class
name is the collection name:
- User -> "user"
- Product -> "product"
- ReturnRequest -> "return"
References between collections are stored as ObjectId.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


OrderStatus = Literal[
    "placed", "confirmed", "shipped", "delivered", "cancelled", "returned",
    "Processing", "Shipped", "Delivered", "Cancelled", "Returned",
]
PaymentStatus = Literal["pending", "paid", "failed"]
PaymentMethodName = Literal["COD", "RAZORPAY", "STRIPE", "UPI", "WALLET"]
ReturnStatus = Literal["Requested", "Approved", "Rejected", "Picked", "Refunded"]


class ApiModel(BaseModel):
    """Request body base: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class Rewards(BaseModel):
    points: int = 0
    tier: str = "Bronze"


class PaymentMethod(BaseModel):
    type: str
    label: Optional[str] = None
    masked_value: Optional[str] = None
    is_default: bool = False


class User(Document):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address, lowercased, unique")
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: Literal["user", "admin"] = "user"
    phone: Optional[str] = None
    phone_verified: bool = False
    sms_verification_code: Optional[str] = None
    sms_verification_expires: Optional[datetime] = None
    email_verified: bool = False
    email_verification_code: Optional[str] = None
    email_verification_expires: Optional[datetime] = None
    reset_password_token: Optional[str] = None
    reset_password_expires: Optional[datetime] = None
    wishlist: List[ObjectId] = Field(default_factory=list)
    rewards: Rewards = Field(default_factory=Rewards)
    payment_methods: List[PaymentMethod] = Field(default_factory=list)


class Variant(BaseModel):
    size: Optional[str] = None
    color: Optional[str] = None
    stock: int = Field(0, ge=0)


class Product(Document):
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    mrp: Optional[float] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    images: List[str] = Field(default_factory=list)
    category_id: Optional[ObjectId] = None
    collection: Optional[str] = None
    variants: List[Variant] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    is_new: bool = False
    is_best_seller: bool = False
    is_limited: Optional[bool] = None
    rating: float = Field(0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    view_count: int = 0
    added_to_cart_count: int = 0
    trending_score: float = 0
    drop_date: Optional[datetime] = None
    release_date: Optional[datetime] = None
    product_specifications: Dict[str, Any] = Field(default_factory=dict)


class Category(Document):
    name: str
    slug: str
    is_active: bool = True


class CartItem(Document):
    product_id: ObjectId
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0, description="Price snapshot taken from the product")
    size: Optional[str] = None
    color: Optional[str] = None


class Cart(Document):
    user_id: ObjectId
    items: List[CartItem] = Field(default_factory=list)


class ShippingAddress(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    landmark: Optional[str] = None
    instructions: Optional[str] = None


class OrderItem(Document):
    product_id: ObjectId
    name: str = Field(..., description="Snapshot of product name")
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None
    color: Optional[str] = None
    price: float = Field(..., ge=0, description="Snapshot of product price")
    image: Optional[str] = None


class Order(Document):
    user_id: ObjectId
    items: List[OrderItem]
    shipping_address: Optional[Dict[str, Any]] = None
    payment_method: PaymentMethodName
    payment_status: PaymentStatus = "pending"
    order_status: OrderStatus = "placed"
    total_amount: float = Field(..., ge=0)
    payment_id: Optional[str] = None
    invoice_url: Optional[str] = None
    tracking_url: Optional[str] = None
    return_eligible: bool = False


class Review(Document):
    user_id: ObjectId
    product_id: ObjectId
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    body: Optional[str] = None


class Address(Document):
    user_id: ObjectId
    name: Optional[str] = None
    phone: Optional[str] = None
    line1: str
    line2: Optional[str] = None
    city: str
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str
    landmark: Optional[str] = None
    instructions: Optional[str] = None
    is_default: bool = False


class ReturnRequest(Document):
    """
    Return requests collection schema
    Collection name: "return"
    """
    user_id: ObjectId
    order_id: Optional[ObjectId] = None
    product_id: Optional[ObjectId] = None
    reason: str
    comment: Optional[str] = None
    status: ReturnStatus = "Requested"
