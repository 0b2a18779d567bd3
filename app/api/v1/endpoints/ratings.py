# app/api/v1/endpoints/ratings.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.core.config import settings
from app.crud import crud_deal
from app.schemas.rating import Rating, RatingCreate, RatingSummary
from app.schemas.token import TokenPayload
from app.utils import notifications

router = APIRouter(tags=["Ratings"])


@router.post(
    "/deals/{deal_id}/ratings", response_model=Rating, status_code=status.HTTP_201_CREATED
)
def rate_deal(
    deal_id: str,
    rating_in: RatingCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    deal = crud_deal.get_for_participant(db, deal_id, current_user.sub)
    rating = crud.rating.create_for_deal(
        db, deal=deal, rater_id=current_user.sub, obj_in=rating_in
    )
    notifications.notify_points_earned(
        db,
        user_id=current_user.sub,
        amount=settings.LOYALTY_POINTS_RATING_BONUS,
        reason="Rating left",
    )
    return rating


@router.get("/users/{user_id}/ratings", response_model=List[Rating])
def list_ratings(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.rating.get_multi_for_user(db, rated_id=user_id)


@router.get("/users/{user_id}/ratings/summary", response_model=RatingSummary)
def rating_summary(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return RatingSummary(**crud.rating.get_summary(db, rated_id=user_id))
