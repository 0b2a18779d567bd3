# app/api/v1/endpoints/loyalty.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.crud import crud_loyalty
from app.schemas.loyalty import (
    LoyaltyOverview,
    LoyaltyReward,
    LoyaltyTransaction,
    SpendRequest,
)
from app.schemas.token import TokenPayload

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])


@router.get("", response_model=LoyaltyOverview)
def get_loyalty(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Balance and recent history. Users without an account see zeros."""
    account = crud_loyalty.get_account(db, current_user.sub)
    if account is None:
        account = {"user_id": current_user.sub, "balance": 0, "lifetime_earned": 0}
    return {
        "account": account,
        "transactions": crud_loyalty.list_transactions(db, current_user.sub),
    }


@router.get("/rewards", response_model=List[LoyaltyReward])
def list_rewards(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_loyalty.list_rewards(db)


@router.post("/spend", response_model=LoyaltyTransaction)
def spend_points(
    spend_in: SpendRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_loyalty.spend(
        db,
        user_id=current_user.sub,
        amount=spend_in.amount,
        reason=spend_in.reason,
        reference_id=spend_in.reference_id,
    )


@router.post("/rewards/{reward_id}/redeem", response_model=LoyaltyTransaction)
def redeem_reward(
    reward_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_loyalty.redeem_reward(db, user_id=current_user.sub, reward_id=reward_id)
