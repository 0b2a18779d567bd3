# app/api/v1/endpoints/referrals.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.config import settings
from app.crud import crud_profile, crud_referral
from app.schemas.referral import Referral, ReferralApply, ReferralSummary
from app.schemas.token import TokenPayload

router = APIRouter(prefix="/referrals", tags=["Referrals"])


@router.get("", response_model=ReferralSummary)
def get_my_referrals(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """The user's own code and everyone who joined with it."""
    profile = crud_profile.get_by_user_id(db, current_user.sub)
    referrals = crud_referral.list_for_referrer(db, current_user.sub)
    paid = sum(1 for r in referrals if r.bonus_paid)
    return ReferralSummary(
        referral_code=profile.referral_code if profile else None,
        bonus_points=settings.LOYALTY_POINTS_REFERRAL_BONUS,
        paid_count=paid,
        pending_count=len(referrals) - paid,
        referrals=[Referral.model_validate(r) for r in referrals],
    )


@router.post("/apply", response_model=Referral, status_code=status.HTTP_201_CREATED)
def apply_referral_code(
    referral_in: ReferralApply,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_referral.apply_code(db, referred_id=current_user.sub, code=referral_in.code)
