import pytest

from app.core.exceptions import InsufficientPointsError, NotFoundError
from app.crud import crud_loyalty
from app.models.loyalty import LoyaltyReward


def test_earn_creates_account_and_audit_row(db_session):
    crud_loyalty.earn(db_session, user_id="user_a", amount=50, reason="Deal delivered")

    account = crud_loyalty.get_account(db_session, "user_a")
    assert account.balance == 50
    assert account.lifetime_earned == 50

    history = crud_loyalty.list_transactions(db_session, "user_a")
    assert [(t.amount, t.type) for t in history] == [(50, "earned")]


def test_spend_more_than_balance_fails_and_keeps_balance(db_session):
    crud_loyalty.earn(db_session, user_id="user_a", amount=30, reason="Bonus")

    with pytest.raises(InsufficientPointsError):
        crud_loyalty.spend(db_session, user_id="user_a", amount=31, reason="Discount")

    account = crud_loyalty.get_account(db_session, "user_a")
    assert account.balance == 30
    assert len(crud_loyalty.list_transactions(db_session, "user_a")) == 1


def test_spend_without_account_fails(db_session):
    with pytest.raises(InsufficientPointsError):
        crud_loyalty.spend(db_session, user_id="user_nobody", amount=1, reason="Discount")


def test_spend_exact_balance_reaches_zero(db_session):
    crud_loyalty.earn(db_session, user_id="user_a", amount=40, reason="Bonus")
    tx = crud_loyalty.spend(db_session, user_id="user_a", amount=40, reason="Discount")

    assert tx.amount == -40
    account = crud_loyalty.get_account(db_session, "user_a")
    assert account.balance == 0
    assert account.lifetime_earned == 40


def test_redeem_reward_spends_points_cost(db_session):
    reward = LoyaltyReward(name="Free delivery", points_cost=100, is_active=True)
    db_session.add(reward)
    db_session.commit()
    crud_loyalty.earn(db_session, user_id="user_a", amount=150, reason="Bonus")

    tx = crud_loyalty.redeem_reward(db_session, user_id="user_a", reward_id=reward.id)

    assert tx.reason == "Reward redeemed: Free delivery"
    assert crud_loyalty.get_account(db_session, "user_a").balance == 50


def test_inactive_reward_cannot_be_redeemed(db_session):
    reward = LoyaltyReward(name="Old promo", points_cost=10, is_active=False)
    db_session.add(reward)
    db_session.commit()
    crud_loyalty.earn(db_session, user_id="user_a", amount=50, reason="Bonus")

    with pytest.raises(NotFoundError):
        crud_loyalty.redeem_reward(db_session, user_id="user_a", reward_id=reward.id)
