# brewshop/orders.py
"""
Checkout and order history.

create_order() is the only place an order is born. It treats the cart as a
list of (product, quantity) pairs and nothing more: prices come from the
catalog, the tier and coupon eligibility are looked up again for the user.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from brewshop.exceptions import (
    EmptyCartError,
    OrderNotFoundError,
    ProductNotFoundError,
    UserNotFoundError,
)
from brewshop.loyalty import check_loyalty_upgrade
from brewshop.models import (
    COMPLETED_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    User,
    UserTier,
    as_utc,
    utcnow,
)
from brewshop.pricing import calculate_order_pricing, find_coupon, round_half_up
from brewshop.schemas import OrderItemRequest
from brewshop.tiers import coerce_tier, resolve_tier_benefits

logger = logging.getLogger(__name__)

POINTS_PER_UNIT = 10


class ReengagementStatus(BaseModel):
    should_show: bool
    product_name: Optional[str] = None
    product_image: Optional[str] = None


class OrderReceipt(BaseModel):
    order_id: int
    points_earned: int
    applied_coupon: Optional[str] = None
    discount: float
    vip_discount: float
    shipping_fee: float
    total: float
    user_tier: UserTier
    loyalty_upgrade: Optional[UserTier] = None


def get_reengagement_status(session: Session, user_id: int) -> ReengagementStatus:
    """
    The comeback offer is shown to customers who cancelled at least one order
    and never completed any.
    """
    completed = session.exec(
        select(Order.id).where(Order.user_id == user_id, Order.status.in_(COMPLETED_STATUSES))
    ).first()
    if completed is not None:
        return ReengagementStatus(should_show=False)

    last_cancelled = session.exec(
        select(Order)
        .where(Order.user_id == user_id, Order.status == OrderStatus.CANCELLED)
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).first()
    if not last_cancelled or not last_cancelled.items:
        return ReengagementStatus(should_show=False)

    product = last_cancelled.items[0].product
    return ReengagementStatus(should_show=True, product_name=product.name, product_image=product.image)


def _load_products(session: Session, items: List[OrderItemRequest]) -> Dict[int, Product]:
    product_ids = {item.product_id for item in items}
    products = session.exec(select(Product).where(Product.id.in_(list(product_ids)))).all()
    by_id = {product.id: product for product in products if not product.is_archived}
    for product_id in product_ids:
        if product_id not in by_id:
            raise ProductNotFoundError(product_id)
    return by_id


def create_order(
    session: Session,
    user: User,
    items: List[OrderItemRequest],
    coupon_code: Optional[str] = None,
    shipping_details: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> OrderReceipt:
    if not items:
        raise EmptyCartError()

    # Re-read the user so the tier is whatever the database says it is
    user = session.get(User, user.id)
    if not user:
        raise UserNotFoundError()

    products = _load_products(session, items)
    subtotal = sum(products[item.product_id].price * item.quantity for item in items)

    user_tier = coerce_tier(user.tier)
    benefits = resolve_tier_benefits(user_tier)

    coupon = find_coupon(coupon_code)
    coupon_eligible = False
    if coupon and coupon.requires_reengagement:
        coupon_eligible = get_reengagement_status(session, user.id).should_show

    pricing = calculate_order_pricing(subtotal, benefits, coupon_code, coupon_eligible)
    points_earned = int(round_half_up(Decimal(str(pricing.total)) * POINTS_PER_UNIT, places=0))

    order = Order(
        user_id=user.id,
        status=OrderStatus.PENDING,
        total=pricing.total,
        discount=pricing.discount,
        vip_discount=pricing.vip_discount,
        shipping_fee=pricing.shipping_fee,
        applied_coupon=pricing.applied_coupon,
        shipping_address=shipping_details or {},
        created_at=as_utc(now) if now else utcnow(),
    )
    try:
        session.add(order)
        session.flush()
        for item in items:
            session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    size=item.size or "M",
                    unit_price=products[item.product_id].price,
                )
            )
        user.points += points_earned
        user.total_spent = round(user.total_spent + pricing.total, 2)
        user.order_count += 1
        session.add(user)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(order)

    logger.info(
        "Order %s created for user %s: total=%.2f coupon=%s tier=%s",
        order.id, user.id, pricing.total, pricing.applied_coupon, user_tier.value,
    )

    loyalty = check_loyalty_upgrade(session, user.id)

    return OrderReceipt(
        order_id=order.id,
        points_earned=points_earned,
        applied_coupon=pricing.applied_coupon,
        discount=pricing.discount,
        vip_discount=pricing.vip_discount,
        shipping_fee=pricing.shipping_fee,
        total=pricing.total,
        user_tier=user_tier,
        loyalty_upgrade=loyalty.tier if loyalty.just_upgraded else None,
    )


def list_orders(session: Session, user: User) -> List[Order]:
    statement = select(Order).where(Order.user_id == user.id).order_by(Order.created_at.desc(), Order.id.desc())
    return list(session.exec(statement).all())


def get_last_successful_order(session: Session, user: User) -> Order:
    order = session.exec(
        select(Order)
        .where(Order.user_id == user.id, Order.status.in_(COMPLETED_STATUSES))
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).first()
    if not order:
        raise OrderNotFoundError("No recent orders found")
    return order


def quick_reorder(session: Session, user: User, order_id: int) -> OrderReceipt:
    """Place the same items again, at today's prices."""
    original = session.get(Order, order_id)
    # Someone else's order looks exactly like a missing one
    if not original or original.user_id != user.id:
        raise OrderNotFoundError(order_id=order_id)

    items = [
        OrderItemRequest(product_id=item.product_id, quantity=item.quantity, size=item.size)
        for item in original.items
        if item.product and not item.product.is_archived
    ]
    if not items:
        raise OrderNotFoundError("No available products from the original order", order_id=order_id)

    return create_order(session, user, items, shipping_details=original.shipping_address)
