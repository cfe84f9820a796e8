# brewshop/schemas.py
"""
Request and response bodies for the API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ActionResult(BaseModel):
    """Uniform envelope every user facing operation answers with."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # HTTP status for the API layer, not part of the body
    status_code: int = Field(default=200, exclude=True)

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, status_code: int = 400) -> "ActionResult":
        return cls(success=False, error=error, status_code=status_code)


class OrderItemRequest(BaseModel):
    # Price/name fields sent by older clients are dropped, never trusted
    model_config = ConfigDict(extra="ignore")

    product_id: int
    quantity: int = Field(ge=1)
    size: Optional[str] = None


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: List[OrderItemRequest]
    coupon_code: Optional[str] = None
    shipping_details: Optional[Dict[str, Any]] = None


class CreateGiftCardRequest(BaseModel):
    amount: float = Field(ge=25, le=500)
    recipient_email: EmailStr
    message: Optional[str] = Field(default=None, max_length=200)


class RedeemGiftCardRequest(BaseModel):
    code: str = Field(min_length=1)


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    response: str
