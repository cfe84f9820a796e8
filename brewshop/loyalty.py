# brewshop/loyalty.py
"""
Loyalty progression.

Tiers move one way only: SILVER -> GOLD (5 orders) -> PLATINUM (10 orders).
Only qualifying orders count, i.e. anything that was not cancelled or refunded.

check_loyalty_upgrade() runs after every successful order.
get_loyalty_status() is the read-only version used by dashboards.
"""

import logging
from typing import Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import func, update
from sqlmodel import Session, select

from brewshop.models import (
    NON_QUALIFYING_STATUSES,
    Notification,
    NotificationType,
    Order,
    User,
    UserTier,
)
from brewshop.tiers import LOWEST_TIER, coerce_tier, next_tier_for

logger = logging.getLogger(__name__)


class LoyaltyStatus(BaseModel):
    tier: UserTier
    order_count: int
    total_spent: float
    orders_to_next_tier: int
    next_tier: Optional[UserTier]
    just_upgraded: bool = False


def default_status() -> LoyaltyStatus:
    next_tier, threshold = next_tier_for(LOWEST_TIER)
    return LoyaltyStatus(
        tier=LOWEST_TIER,
        order_count=0,
        total_spent=0,
        orders_to_next_tier=threshold,
        next_tier=next_tier,
    )


def qualifying_totals(session: Session, user_id: int) -> Tuple[int, float]:
    """Count and sum of the user's orders that were not cancelled or refunded."""
    statement = select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)).where(
        Order.user_id == user_id,
        Order.status.not_in(NON_QUALIFYING_STATUSES),
    )
    count, total = session.exec(statement).one()
    return int(count), round(float(total), 2)


def _evaluate(tier: UserTier, order_count: int) -> UserTier:
    # Climb as far as the current count allows, one step at a time
    while True:
        step = next_tier_for(tier)
        if step is None or order_count < step[1]:
            return tier
        tier = step[0]


def _build_status(tier: UserTier, order_count: int, total_spent: float, just_upgraded: bool) -> LoyaltyStatus:
    step = next_tier_for(tier)
    if step is None:
        next_tier, remaining = None, 0
    else:
        next_tier, threshold = step
        remaining = max(0, threshold - order_count)
    return LoyaltyStatus(
        tier=tier,
        order_count=order_count,
        total_spent=total_spent,
        orders_to_next_tier=remaining,
        next_tier=next_tier,
        just_upgraded=just_upgraded,
    )


def get_loyalty_status(session: Session, user_id: int) -> LoyaltyStatus:
    user = session.get(User, user_id)
    if not user:
        return default_status()

    order_count, total_spent = qualifying_totals(session, user_id)
    return _build_status(coerce_tier(user.tier), order_count, total_spent, just_upgraded=False)


def promote_tier(session: Session, user_id: int, expected: UserTier, new_tier: UserTier) -> bool:
    """
    Move the user from `expected` to `new_tier`, guarded on the stored tier.
    Returns False when the tier is no longer `expected`. Does not commit.
    """
    statement = update(User).where(User.id == user_id, User.tier == expected).values(tier=new_tier)
    result = session.execute(statement)
    return result.rowcount == 1


def check_loyalty_upgrade(session: Session, user_id: int) -> LoyaltyStatus:
    """
    Recompute the user's qualifying orders and upgrade the tier if a threshold is met.
    The tier change and its notification are committed together, or not at all.
    Database errors propagate to the caller.
    """
    user = session.get(User, user_id)
    if not user:
        logger.warning("Loyalty check for unknown user %s", user_id)
        return default_status()

    current = coerce_tier(user.tier)
    order_count, total_spent = qualifying_totals(session, user_id)

    new_tier = _evaluate(current, order_count)
    if new_tier == current:
        return _build_status(current, order_count, total_spent, just_upgraded=False)

    try:
        upgraded = promote_tier(session, user_id, user.tier, new_tier)
        if upgraded:
            session.add(
                Notification(
                    user_id=user_id,
                    type=NotificationType.PROMO,
                    message=f"Congratulations! You reached {new_tier.value} status. Enjoy your new perks.",
                )
            )
            session.commit()
        else:
            session.rollback()
    except Exception:
        session.rollback()
        raise

    if not upgraded:
        # A concurrent checkout already moved the tier; report what it left behind
        logger.info("User %s tier changed concurrently, skipping upgrade to %s", user_id, new_tier.value)
        return get_loyalty_status(session, user_id)

    logger.info("User %s upgraded %s -> %s (%s qualifying orders)", user_id, current.value, new_tier.value, order_count)
    return _build_status(new_tier, order_count, total_spent, just_upgraded=True)
