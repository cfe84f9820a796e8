# brewshop/pricing.py
"""
Checkout and happy-hour price calculations.

Both calculators are pure: the caller passes in the tier benefits it
resolved for the authenticated user, plus the already-checked coupon
eligibility and the current time. Nothing here reads the session or the
database, and no client-declared price or discount is ever accepted.
"""

from datetime import datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from brewshop.config import get_settings
from brewshop.tiers import TierBenefits

HAPPY_HOUR_START = time(14, 0)
HAPPY_HOUR_END = time(17, 0)
PRICE_FLOOR_RATIO = 0.50
PASTRY_TAG = "PASTRY"


def round_half_up(value, places: int = 2) -> float:
    """Round half-up, the way the storefront rounds, instead of Python's half-to-even."""
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def round2(value) -> float:
    """Round half-up to cents."""
    return round_half_up(value, 2)


class Coupon(BaseModel):
    code: str
    discount_rate: float
    # Only offered to customers who cancelled and never completed an order
    requires_reengagement: bool = False


COUPONS: Dict[str, Coupon] = {
    "COFFEE10": Coupon(code="COFFEE10", discount_rate=0.10, requires_reengagement=True),
}


def normalize_coupon_code(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return code.strip().upper() or None


def find_coupon(code: Optional[str]) -> Optional[Coupon]:
    key = normalize_coupon_code(code)
    return COUPONS.get(key) if key else None


class PricingBreakdown(BaseModel):
    subtotal: float
    discount: float
    vip_discount: float
    shipping_fee: float
    total: float
    applied_coupon: Optional[str] = None


def calculate_order_pricing(
    subtotal: float,
    benefits: TierBenefits,
    coupon_code: Optional[str] = None,
    coupon_eligible: bool = False,
) -> PricingBreakdown:
    """
    Combine the VIP discount, an optional coupon and the shipping fee.

    Steps, each rounded to cents:
    1. vip_discount = subtotal * benefits.vip_discount
    2. coupon discount = subtotal * coupon.discount_rate, only for a known coupon
       whose eligibility check passed (coupon_eligible)
    3. shipping is free for tiers with free_shipping, otherwise the tier fee
    4. total = max(0, subtotal - discount - vip_discount) + shipping
    """
    if subtotal < 0:
        raise ValueError("Subtotal cannot be negative")

    subtotal = round2(subtotal)
    vip_discount = round2(subtotal * benefits.vip_discount)

    discount = 0.0
    applied_coupon = None
    coupon = find_coupon(coupon_code)
    if coupon and (coupon_eligible or not coupon.requires_reengagement):
        discount = round2(subtotal * coupon.discount_rate)
        applied_coupon = coupon.code

    shipping_fee = 0.0 if benefits.free_shipping else round2(benefits.shipping_fee)

    after_discounts = max(0.0, round2(subtotal - discount - vip_discount))
    total = round2(after_discounts + shipping_fee)

    return PricingBreakdown(
        subtotal=subtotal,
        discount=discount,
        vip_discount=vip_discount,
        shipping_fee=shipping_fee,
        total=total,
        applied_coupon=applied_coupon,
    )


# --- Happy Hour ---

class DynamicPrice(BaseModel):
    original_price: float
    final_price: float
    discount_percent: float
    is_happy_hour: bool


def local_time(now: Optional[datetime] = None) -> datetime:
    """Convert an aware `now` into the shop's timezone."""
    tz = ZoneInfo(get_settings().happy_hour_timezone)
    return (now or datetime.now(timezone.utc)).astimezone(tz)


def is_happy_hour(now: Optional[datetime] = None) -> bool:
    current = local_time(now).time()
    return HAPPY_HOUR_START <= current < HAPPY_HOUR_END


def calculate_happy_hour_price(
    price: float,
    tags: Iterable[str],
    benefits: TierBenefits,
    now: Optional[datetime] = None,
) -> DynamicPrice:
    active = is_happy_hour(now) and PASTRY_TAG in set(tags or [])

    final_price = price
    discount_percent = 0.0
    if active:
        discount_percent = round2(benefits.happy_hour_discount * 100)
        final_price = price * (1 - benefits.happy_hour_discount)

        # Never below half of the base price
        floor = price * PRICE_FLOOR_RATIO
        if final_price < floor:
            final_price = floor
            discount_percent = PRICE_FLOOR_RATIO * 100

    return DynamicPrice(
        original_price=price,
        final_price=round2(final_price),
        discount_percent=discount_percent,
        is_happy_hour=active,
    )
