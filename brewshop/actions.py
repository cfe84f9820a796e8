# brewshop/actions.py
"""
User facing operations.

Every action answers with an ActionResult and never raises:
- BrewShopError subclasses carry a message that is safe to show
- anything else is logged with its traceback and reported generically
"""

import logging
from datetime import datetime
from functools import wraps
from typing import Optional

from sqlmodel import Session

from brewshop import giftcards, loyalty, notifications, orders, pricing
from brewshop.exceptions import BrewShopError, ProductNotFoundError
from brewshop.models import Product, User
from brewshop.schemas import ActionResult, CreateGiftCardRequest, CreateOrderRequest, RedeemGiftCardRequest
from brewshop.tiers import resolve_tier_benefits

logger = logging.getLogger(__name__)


def action(generic_error: str):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return ActionResult.ok(func(*args, **kwargs))
            except BrewShopError as e:
                logger.info("%s rejected: %s %s", func.__name__, e.message, e.context)
                return ActionResult.fail(e.message, status_code=e.status_code)
            except Exception:
                logger.exception("%s failed", func.__name__)
                return ActionResult.fail(generic_error, status_code=500)
        return wrapper
    return decorator


def _order_payload(order):
    payload = order.model_dump(mode="json")
    payload["items"] = [item.model_dump(mode="json") for item in order.items]
    return payload


# --- Orders ---

@action("Failed to create order")
def create_order(session: Session, user: User, request: CreateOrderRequest):
    return orders.create_order(
        session,
        user,
        request.items,
        coupon_code=request.coupon_code,
        shipping_details=request.shipping_details,
    )


@action("Failed to fetch orders")
def list_orders(session: Session, user: User):
    return [_order_payload(order) for order in orders.list_orders(session, user)]


@action("Failed to fetch last order")
def get_last_successful_order(session: Session, user: User):
    return _order_payload(orders.get_last_successful_order(session, user))


@action("Failed to reorder")
def quick_reorder(session: Session, user: User, order_id: int):
    return orders.quick_reorder(session, user, order_id)


# --- Loyalty ---

@action("Failed to load loyalty status")
def get_loyalty_status(session: Session, user: User):
    return loyalty.get_loyalty_status(session, user.id)


# --- Pricing ---

@action("Failed to calculate price")
def get_dynamic_price(session: Session, user: Optional[User], product_id: int, now: Optional[datetime] = None):
    product = session.get(Product, product_id)
    if not product or product.is_archived:
        raise ProductNotFoundError(product_id)
    # Anonymous visitors get the lowest tier
    benefits = resolve_tier_benefits(user.tier if user else None)
    return pricing.calculate_happy_hour_price(product.price, product.tags, benefits, now)


# --- Gift cards ---

@action("Failed to create gift card")
def create_gift_card(session: Session, user: User, request: CreateGiftCardRequest):
    return giftcards.create_gift_card(
        session,
        user,
        request.amount,
        str(request.recipient_email),
        request.message,
    )


@action("Failed to redeem gift card")
def redeem_gift_card(session: Session, user: User, request: RedeemGiftCardRequest):
    return giftcards.redeem_gift_card(session, user, request.code)


@action("Failed to load gift card")
def get_gift_card(session: Session, code: str):
    return giftcards.get_gift_card_by_code(session, code)


# --- Notifications ---

@action("Failed to load notifications")
def list_notifications(session: Session, user: User, unread_only: bool = False):
    return [
        notification.model_dump(mode="json")
        for notification in notifications.list_notifications(session, user, unread_only)
    ]


@action("Failed to update notifications")
def mark_notifications_read(session: Session, user: User):
    return {"updated": notifications.mark_notifications_read(session, user)}
