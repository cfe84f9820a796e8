# brewshop/tiers.py
"""
Static loyalty tier configuration.
Pure lookups only: no database access, no ambient session state.
The caller resolves the user's tier and passes it in explicitly.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from brewshop.exceptions import InvalidTierError
from brewshop.models import UserTier

logger = logging.getLogger(__name__)


class AiAccess(str, Enum):
    NONE = "NONE"
    BASIC = "BASIC"
    FULL = "FULL"


class TierBenefits(BaseModel):
    model_config = ConfigDict(frozen=True)

    ai_access: AiAccess
    happy_hour_discount: float
    shipping_fee: float
    vip_discount: float
    free_shipping: bool = False


TIER_BENEFITS: Dict[UserTier, TierBenefits] = {
    UserTier.SILVER: TierBenefits(
        ai_access=AiAccess.NONE,
        happy_hour_discount=0.05,
        shipping_fee=29.90,
        vip_discount=0,
    ),
    UserTier.GOLD: TierBenefits(
        ai_access=AiAccess.BASIC,
        happy_hour_discount=0.10,
        shipping_fee=29.90,
        vip_discount=0.05,
    ),
    UserTier.PLATINUM: TierBenefits(
        ai_access=AiAccess.FULL,
        happy_hour_discount=0.15,
        shipping_fee=0,
        vip_discount=0.10,
        free_shipping=True,
    ),
}

# current tier -> (next tier, qualifying orders needed to reach it)
TIER_PROGRESSION: Dict[UserTier, Tuple[UserTier, int]] = {
    UserTier.SILVER: (UserTier.GOLD, 5),
    UserTier.GOLD: (UserTier.PLATINUM, 10),
}

LOWEST_TIER = UserTier.SILVER


def parse_tier(value: Union[UserTier, str]) -> UserTier:
    """Strict conversion. Raises InvalidTierError for anything unknown."""
    if isinstance(value, UserTier):
        return value
    try:
        return UserTier(str(value).strip().upper())
    except ValueError:
        raise InvalidTierError(value) from None


def coerce_tier(value: Optional[Union[UserTier, str]]) -> UserTier:
    """Lenient conversion: a missing or unknown tier falls back to the lowest tier."""
    if value is None:
        return LOWEST_TIER
    try:
        return parse_tier(value)
    except InvalidTierError:
        logger.warning("Unknown tier %r, falling back to %s", value, LOWEST_TIER.value)
        return LOWEST_TIER


def resolve_tier_benefits(tier: Optional[Union[UserTier, str]]) -> TierBenefits:
    return TIER_BENEFITS[coerce_tier(tier)]


def next_tier_for(tier: UserTier) -> Optional[Tuple[UserTier, int]]:
    """(next tier, threshold) or None when the tier is terminal."""
    return TIER_PROGRESSION.get(tier)
