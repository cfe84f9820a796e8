# brewshop/models.py

"""
The Contract: Define what our data looks like
"""

from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field, Relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- 1. Enums ---
# Enums restrict data to specific values. This prevents "typo" bugs in your data.
class UserTier(str, Enum):
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    BREWING = "BREWING"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Orders in these states never count toward loyalty thresholds
NON_QUALIFYING_STATUSES = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

# Orders the customer actually received (or is about to)
COMPLETED_STATUSES = (OrderStatus.DELIVERED, OrderStatus.OUT_FOR_DELIVERY)


class NotificationType(str, Enum):
    PROMO = "promo"
    ORDER = "order"
    SYSTEM = "system"


# --- 2. Database Tables ---

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    tier: UserTier = Field(default=UserTier.SILVER)
    total_spent: float = Field(default=0)
    order_count: int = Field(default=0)
    points: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)

    orders: List["Order"] = Relationship(back_populates="user")


class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str = ""
    price: float
    category: str
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    image: Optional[str] = None
    is_archived: bool = Field(default=False)


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    total: float
    discount: float = Field(default=0)
    vip_discount: float = Field(default=0)
    shipping_fee: float = Field(default=0)
    applied_coupon: Optional[str] = None
    shipping_address: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)

    user: User = Relationship(back_populates="orders")
    items: List["OrderItem"] = Relationship(back_populates="order")


class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    quantity: int
    size: str = Field(default="M")
    # Price taken from the catalog at checkout time, never from the client
    unit_price: float

    order: Order = Relationship(back_populates="items")
    product: Product = Relationship()


class GiftCard(SQLModel, table=True):
    """
    A gift card moves Active -> Redeemed, or expires by time.
    is_redeemed is only ever flipped through a conditional update
    guarded on is_redeemed == False (see giftcards.claim_gift_card).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True)
    balance: float
    original_amount: float
    sender_id: int = Field(foreign_key="user.id")
    recipient_email: str
    message: Optional[str] = None
    expires_at: datetime
    is_redeemed: bool = Field(default=False)
    redeemed_at: Optional[datetime] = None
    redeemed_by_id: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)

    sender: User = Relationship(
        sa_relationship_kwargs={"foreign_keys": "GiftCard.sender_id"}
    )


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: NotificationType = Field(default=NotificationType.SYSTEM)
    message: str
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
