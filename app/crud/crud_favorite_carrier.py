# app/crud/crud_favorite_carrier.py
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import DomainValidationError, DuplicateError, NotFoundError
from app.crud.base import CRUDBase
from app.models.favorite_carrier import FavoriteCarrier
from app.schemas.favorite import FavoriteCreate


class CRUDFavoriteCarrier(CRUDBase[FavoriteCarrier, FavoriteCreate, FavoriteCreate]):
    def add(self, db: Session, *, client_id: str, obj_in: FavoriteCreate) -> FavoriteCarrier:
        if obj_in.carrier_id == client_id:
            raise DomainValidationError("Cannot add yourself to favourites")
        existing = (
            db.query(self.model)
            .filter(
                self.model.client_id == client_id,
                self.model.carrier_id == obj_in.carrier_id,
            )
            .first()
        )
        if existing:
            raise DuplicateError("Carrier is already in favourites")

        db_obj = self.model(client_id=client_id, **obj_in.model_dump())
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_multi_by_client(self, db: Session, *, client_id: str) -> List[FavoriteCarrier]:
        return (
            db.query(self.model)
            .filter(self.model.client_id == client_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def remove_for_client(self, db: Session, *, client_id: str, carrier_id: str) -> None:
        deleted = (
            db.query(self.model)
            .filter(self.model.client_id == client_id, self.model.carrier_id == carrier_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFoundError("Favourite carrier", carrier_id)
        db.commit()


favorite_carrier = CRUDFavoriteCarrier(FavoriteCarrier)
