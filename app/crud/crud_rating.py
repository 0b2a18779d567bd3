# app/crud/crud_rating.py
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DomainValidationError, DuplicateError
from app.crud import crud_loyalty
from app.crud.base import CRUDBase
from app.models.deal import Deal
from app.models.rating import Rating
from app.schemas.rating import RatingCreate

logger = logging.getLogger(__name__)


class CRUDRating(CRUDBase[Rating, RatingCreate, RatingCreate]):
    def create_for_deal(
        self, db: Session, *, deal: Deal, rater_id: str, obj_in: RatingCreate
    ) -> Rating:
        """
        One rating per participant per delivered deal. The rated party is
        the other participant; the rater earns a small points bonus.
        """
        if deal.status != "delivered":
            raise DomainValidationError("Deals can only be rated after delivery")

        existing = (
            db.query(self.model)
            .filter(self.model.deal_id == deal.id, self.model.rater_id == rater_id)
            .first()
        )
        if existing:
            raise DuplicateError(
                f"Deal {deal.id} has already been rated by this user",
                details={"rating_id": existing.id},
            )

        db_obj = self.model(
            deal_id=deal.id,
            rater_id=rater_id,
            rated_id=deal.counterparty_of(rater_id),
            score=obj_in.score,
            comment=obj_in.comment,
        )
        try:
            db.add(db_obj)
            db.flush()
            crud_loyalty.earn(
                db,
                user_id=rater_id,
                amount=settings.LOYALTY_POINTS_RATING_BONUS,
                reason="Rating left",
                reference_id=deal.id,
                commit=False,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(db_obj)
        logger.info(f"Rating {db_obj.id} on deal {deal.id}: {obj_in.score}/5")
        return db_obj

    def get_multi_for_user(self, db: Session, *, rated_id: str) -> List[Rating]:
        return (
            db.query(self.model)
            .filter(self.model.rated_id == rated_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def get_summary(self, db: Session, *, rated_id: str) -> dict:
        average, count = (
            db.query(func.avg(self.model.score), func.count(self.model.id))
            .filter(self.model.rated_id == rated_id)
            .one()
        )
        return {
            "user_id": rated_id,
            "average": round(float(average), 2) if average is not None else None,
            "count": count,
        }


rating = CRUDRating(Rating)
