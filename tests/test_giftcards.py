from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from random import Random

import pytest
from sqlmodel import SQLModel, Session, create_engine, select

from brewshop import actions, giftcards
from brewshop.exceptions import (
    CodeGenerationError,
    GiftCardAlreadyRedeemedError,
    GiftCardExpiredError,
    GiftCardNotFoundError,
    ValidationFailedError,
)
from brewshop.giftcards import (
    CODE_ALPHABET,
    add_one_year,
    claim_gift_card,
    create_gift_card,
    generate_gift_card_code,
    get_gift_card_by_code,
    redeem_gift_card,
)
from brewshop.models import GiftCard, User
from brewshop.schemas import RedeemGiftCardRequest

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


class FixedRandom(Random):
    """Always picks the first symbol, so every code is GC-AAAAAAAA."""

    def choice(self, seq):
        return seq[0]


class TestCodes:
    def test_alphabet(self):
        assert len(CODE_ALPHABET) == 32
        assert len(set(CODE_ALPHABET)) == 32
        assert not set("IO01") & set(CODE_ALPHABET)

    def test_generated_codes(self):
        rng = Random(1234)
        for _ in range(200):
            code = generate_gift_card_code(rng)
            assert len(code) == 11
            assert code.startswith("GC-")
            assert set(code[3:]) <= set(CODE_ALPHABET)

    def test_default_generator(self):
        code = generate_gift_card_code()
        assert len(code) == 11

    def test_add_one_year(self):
        assert add_one_year(NOW) == datetime(2027, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert add_one_year(datetime(2028, 2, 29, tzinfo=timezone.utc)) == datetime(2029, 2, 28, tzinfo=timezone.utc)


class TestIssue:
    def test_create(self, session, make_user):
        sender = make_user()
        card = create_gift_card(session, sender, 100, "friend@example.com", "Enjoy!", now=NOW)

        assert card.balance == 100
        assert card.original_amount == 100
        assert card.recipient_email == "friend@example.com"
        assert card.message == "Enjoy!"
        assert card.expires_at == datetime(2027, 3, 1, 10, 0, tzinfo=timezone.utc)

        stored = session.exec(select(GiftCard).where(GiftCard.code == card.code)).one()
        assert stored.sender_id == sender.id
        assert stored.is_redeemed is False

    @pytest.mark.parametrize("amount", [0, 24.99, 500.01, 1000])
    def test_amount_out_of_range(self, session, make_user, amount):
        with pytest.raises(ValidationFailedError):
            create_gift_card(session, make_user(), amount, "friend@example.com")

    @pytest.mark.parametrize("amount", [25, 500])
    def test_amount_bounds_inclusive(self, session, make_user, amount):
        assert create_gift_card(session, make_user(), amount, "friend@example.com").balance == amount

    def test_message_too_long(self, session, make_user):
        with pytest.raises(ValidationFailedError):
            create_gift_card(session, make_user(), 50, "friend@example.com", "x" * 201)

    def test_collision_retries_exhausted(self, session, make_user):
        sender = make_user()
        first = create_gift_card(session, sender, 50, "friend@example.com", rng=FixedRandom())
        assert first.code == "GC-AAAAAAAA"

        with pytest.raises(CodeGenerationError):
            create_gift_card(session, sender, 50, "friend@example.com", rng=FixedRandom())

    def test_collision_retry_succeeds(self, session, make_user, monkeypatch):
        sender = make_user()
        create_gift_card(session, sender, 50, "friend@example.com", rng=FixedRandom())

        codes = iter(["GC-AAAAAAAA", "GC-AAAAAAAA", "GC-BBBBBBBB"])
        monkeypatch.setattr(giftcards, "generate_gift_card_code", lambda rng=None: next(codes))
        card = create_gift_card(session, sender, 50, "friend@example.com")
        assert card.code == "GC-BBBBBBBB"


class TestRedeem:
    def test_issue_and_redeem_once(self, session, make_user):
        sender = make_user()
        redeemer = make_user(points=5)
        card = create_gift_card(session, sender, 100, "friend@example.com", "Happy birthday", now=NOW)

        result = redeem_gift_card(session, redeemer, card.code, now=NOW + timedelta(days=3))
        assert result.balance == 100
        assert result.message == "Happy birthday"
        assert result.points_credited == 1000

        session.refresh(redeemer)
        assert redeemer.points == 1005

        stored = session.exec(select(GiftCard).where(GiftCard.code == card.code)).one()
        assert stored.is_redeemed is True
        assert stored.redeemed_by_id == redeemer.id

        with pytest.raises(GiftCardNotFoundError):
            redeem_gift_card(session, redeemer, card.code, now=NOW + timedelta(days=4))

        session.refresh(redeemer)
        assert redeemer.points == 1005

    def test_code_lookup_is_case_insensitive(self, session, make_user):
        card = create_gift_card(session, make_user(), 30, "friend@example.com", now=NOW)
        result = redeem_gift_card(session, make_user(), f"  {card.code.lower()} ", now=NOW)
        assert result.balance == 30

    def test_points_are_floored(self, session, make_user):
        card = create_gift_card(session, make_user(), 25.55, "friend@example.com", now=NOW)
        assert redeem_gift_card(session, make_user(), card.code, now=NOW).points_credited == 255

    def test_unknown_code(self, session, make_user):
        with pytest.raises(GiftCardNotFoundError):
            redeem_gift_card(session, make_user(), "GC-ZZZZZZZZ", now=NOW)

    def test_expired_card_is_not_marked(self, session, make_user):
        card = create_gift_card(session, make_user(), 100, "friend@example.com", now=NOW)

        with pytest.raises(GiftCardExpiredError):
            redeem_gift_card(session, make_user(), card.code, now=NOW + timedelta(days=366))

        stored = session.exec(select(GiftCard).where(GiftCard.code == card.code)).one()
        assert stored.is_redeemed is False

    def test_lost_race_raises_already_redeemed(self, session, make_user, monkeypatch):
        redeemer = make_user()
        card = create_gift_card(session, make_user(), 100, "friend@example.com", now=NOW)

        # Another request claims the card between our lookup and our update
        monkeypatch.setattr(giftcards, "claim_gift_card", lambda *args: False)
        with pytest.raises(GiftCardAlreadyRedeemedError):
            redeem_gift_card(session, redeemer, card.code, now=NOW)

        session.refresh(redeemer)
        assert redeemer.points == 0

    def test_claim_is_conditional(self, session, make_user):
        redeemer = make_user()
        card = create_gift_card(session, make_user(), 100, "friend@example.com", now=NOW)
        stored = session.exec(select(GiftCard).where(GiftCard.code == card.code)).one()

        assert claim_gift_card(session, stored.id, redeemer.id, NOW) is True
        assert claim_gift_card(session, stored.id, redeemer.id, NOW) is False
        session.rollback()


def test_concurrent_redemptions_succeed_once(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'giftcards.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        sender = User(name="Sender", email="sender@example.com")
        redeemer = User(name="Redeemer", email="redeemer@example.com")
        session.add_all([sender, redeemer])
        session.commit()
        card = create_gift_card(session, sender, 100, "redeemer@example.com")
        redeemer_id = redeemer.id

    def attempt(_):
        with Session(engine) as session:
            user = session.get(User, redeemer_id)
            return actions.redeem_gift_card(session, user, RedeemGiftCardRequest(code=card.code))

    attempts = 8
    with ThreadPoolExecutor(max_workers=attempts) as pool:
        results = list(pool.map(attempt, range(attempts)))

    assert sum(result.success for result in results) == 1
    assert sum(not result.success for result in results) == attempts - 1

    with Session(engine) as session:
        assert session.get(User, redeemer_id).points == 1000

    engine.dispose()


class TestLookup:
    def test_public_info(self, session, make_user):
        sender = make_user(name="Maya")
        card = create_gift_card(session, sender, 60, "friend@example.com", "Hi", now=NOW)

        info = get_gift_card_by_code(session, card.code, now=NOW)
        assert info.balance == 60
        assert info.sender_name == "Maya"
        assert info.is_redeemed is False
        assert info.is_expired is False

        info = get_gift_card_by_code(session, card.code, now=NOW + timedelta(days=400))
        assert info.is_expired is True

    def test_missing(self, session):
        with pytest.raises(GiftCardNotFoundError):
            get_gift_card_by_code(session, "GC-NOPE2345")
