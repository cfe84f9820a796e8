# brewshop/giftcards.py
"""
Gift card issuance and redemption.

Lifecycle: Active -> Redeemed (terminal), or Active -> Expired once expires_at passes.
Payment for a card is simulated; no charge happens here.

Double-spend protection relies on the database, not on application locks:
the redeem step is an UPDATE ... WHERE is_redeemed = false, and zero affected
rows means another request won the race.
"""

import logging
import math
import secrets
from datetime import datetime
from random import Random
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import update
from sqlmodel import Session, select

from brewshop.exceptions import (
    CodeGenerationError,
    GiftCardAlreadyRedeemedError,
    GiftCardExpiredError,
    GiftCardNotFoundError,
    ValidationFailedError,
)
from brewshop.models import GiftCard, User, as_utc, utcnow

logger = logging.getLogger(__name__)

# No I, O, 0 or 1, they are too easy to misread
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "GC-"
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 5

MIN_AMOUNT = 25
MAX_AMOUNT = 500
MAX_MESSAGE_LENGTH = 200

POINTS_PER_UNIT = 10


class GiftCardData(BaseModel):
    code: str
    balance: float
    original_amount: float
    recipient_email: str
    message: Optional[str] = None
    expires_at: datetime


class RedemptionResult(BaseModel):
    balance: float
    message: Optional[str] = None
    points_credited: int


class GiftCardInfo(BaseModel):
    code: str
    balance: float
    message: Optional[str] = None
    is_redeemed: bool
    is_expired: bool
    sender_name: Optional[str] = None


def generate_gift_card_code(rng: Optional[Random] = None) -> str:
    rng = rng or secrets.SystemRandom()
    return CODE_PREFIX + "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def add_one_year(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        # Feb 29 -> Feb 28
        return moment.replace(year=moment.year + 1, day=28)


def _code_exists(session: Session, code: str) -> bool:
    return session.exec(select(GiftCard.id).where(GiftCard.code == code)).first() is not None


def create_gift_card(
    session: Session,
    sender: User,
    amount: float,
    recipient_email: str,
    message: Optional[str] = None,
    now: Optional[datetime] = None,
    rng: Optional[Random] = None,
) -> GiftCardData:
    if not MIN_AMOUNT <= amount <= MAX_AMOUNT:
        raise ValidationFailedError(f"Amount must be between {MIN_AMOUNT} and {MAX_AMOUNT}", amount=amount)
    if message and len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationFailedError("Message is too long")

    code = None
    for _ in range(MAX_CODE_ATTEMPTS):
        candidate = generate_gift_card_code(rng)
        if not _code_exists(session, candidate):
            code = candidate
            break
    if code is None:
        raise CodeGenerationError(MAX_CODE_ATTEMPTS)

    now = as_utc(now) if now else utcnow()
    gift_card = GiftCard(
        code=code,
        balance=amount,
        original_amount=amount,
        sender_id=sender.id,
        recipient_email=recipient_email,
        message=message or None,
        expires_at=add_one_year(now),
        created_at=now,
    )
    session.add(gift_card)
    session.commit()
    session.refresh(gift_card)

    logger.info("Gift card created: %s | %.2f | to %s", code, amount, recipient_email)
    return GiftCardData(
        code=gift_card.code,
        balance=gift_card.balance,
        original_amount=gift_card.original_amount,
        recipient_email=gift_card.recipient_email,
        message=gift_card.message,
        expires_at=as_utc(gift_card.expires_at),
    )


def claim_gift_card(session: Session, gift_card_id: int, redeemer_id: int, now: datetime) -> bool:
    """
    Flip is_redeemed false -> true, guarded on the current value.
    Returns False when another request already claimed the card.
    Does not commit.
    """
    statement = (
        update(GiftCard)
        .where(GiftCard.id == gift_card_id, GiftCard.is_redeemed == False)  # noqa: E712
        .values(is_redeemed=True, redeemed_at=now, redeemed_by_id=redeemer_id)
    )
    result = session.execute(statement)
    return result.rowcount == 1


def redeem_gift_card(
    session: Session,
    redeemer: User,
    code: str,
    now: Optional[datetime] = None,
) -> RedemptionResult:
    code = code.strip().upper()
    now = as_utc(now) if now else utcnow()

    gift_card = session.exec(
        select(GiftCard).where(GiftCard.code == code, GiftCard.is_redeemed == False)  # noqa: E712
    ).first()
    if not gift_card:
        raise GiftCardNotFoundError(code=code)

    if now > as_utc(gift_card.expires_at):
        raise GiftCardExpiredError(code)

    balance = gift_card.balance
    message = gift_card.message
    points = math.floor(balance * POINTS_PER_UNIT)

    try:
        claimed = claim_gift_card(session, gift_card.id, redeemer.id, now)
        if claimed:
            session.execute(
                update(User).where(User.id == redeemer.id).values(points=User.points + points)
            )
            session.commit()
        else:
            session.rollback()
    except Exception:
        session.rollback()
        raise

    if not claimed:
        raise GiftCardAlreadyRedeemedError(code)

    # The bulk updates bypassed the identity map
    session.expire_all()

    logger.info("Gift card redeemed: %s | %.2f | by user %s", code, balance, redeemer.id)
    return RedemptionResult(balance=balance, message=message, points_credited=points)


def get_gift_card_by_code(session: Session, code: str, now: Optional[datetime] = None) -> GiftCardInfo:
    code = code.strip().upper()
    gift_card = session.exec(select(GiftCard).where(GiftCard.code == code)).first()
    if not gift_card:
        raise GiftCardNotFoundError("Gift card not found", code=code)

    now = as_utc(now) if now else utcnow()
    return GiftCardInfo(
        code=gift_card.code,
        balance=gift_card.balance,
        message=gift_card.message,
        is_redeemed=gift_card.is_redeemed,
        is_expired=now > as_utc(gift_card.expires_at),
        sender_name=gift_card.sender.name if gift_card.sender else None,
    )
