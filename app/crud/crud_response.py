# app/crud/crud_response.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import (
    DomainValidationError,
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
)
from app.crud.base import CRUDBase
from app.models.order import Order
from app.models.response import Response
from app.schemas.response import ResponseCreate

logger = logging.getLogger(__name__)


class CRUDResponse(CRUDBase[Response, ResponseCreate, ResponseCreate]):
    def get_by_order_and_carrier(
        self, db: Session, *, order_id: str, carrier_id: str
    ) -> Optional[Response]:
        return (
            db.query(self.model)
            .filter(self.model.order_id == order_id, self.model.carrier_id == carrier_id)
            .first()
        )

    def create_for_order(
        self, db: Session, *, order: Order, carrier_id: str, obj_in: ResponseCreate
    ) -> Response:
        """One bid per carrier per order, only while the order is open."""
        if order.status != "open":
            raise DomainValidationError(
                f"Order {order.id} is {order.status} and no longer accepts responses"
            )
        if order.client_id == carrier_id:
            raise PermissionDeniedError("Clients cannot respond to their own orders")
        if self.get_by_order_and_carrier(db, order_id=order.id, carrier_id=carrier_id):
            raise DuplicateError(
                f"Carrier has already responded to order {order.id}",
                details={"order_id": order.id},
            )

        db_obj = self.model(
            **obj_in.model_dump(), order_id=order.id, carrier_id=carrier_id
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Response {db_obj.id} from carrier {carrier_id} on order {order.id}")
        return db_obj

    def get_multi_by_order(self, db: Session, *, order_id: str) -> List[Response]:
        return (
            db.query(self.model)
            .filter(self.model.order_id == order_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def get_multi_by_carrier(self, db: Session, *, carrier_id: str) -> List[Response]:
        return (
            db.query(self.model)
            .filter(self.model.carrier_id == carrier_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def get_or_404(self, db: Session, response_id: str) -> Response:
        obj = self.get(db, response_id)
        if not obj:
            raise NotFoundError("Response", response_id)
        return obj


response = CRUDResponse(Response)
