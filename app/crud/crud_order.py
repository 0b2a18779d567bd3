# app/crud/crud_order.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, PermissionDeniedError, InvalidTransitionError
from app.crud.base import CRUDBase
from app.models.order import Order
from app.schemas.order import OrderCreate

logger = logging.getLogger(__name__)

# Orders only ever move forward
VALID_ORDER_TRANSITIONS = {
    "open": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),  # Terminal state
    "cancelled": set(),  # Terminal state
}


class CRUDOrder(CRUDBase[Order, OrderCreate, OrderCreate]):
    def create_with_client(
        self, db: Session, *, obj_in: OrderCreate, client_id: str
    ) -> Order:
        db_obj = self.model(**obj_in.model_dump(), client_id=client_id, status="open")
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Order {db_obj.id} created by client {client_id}")
        return db_obj

    def get_or_404(self, db: Session, order_id: str) -> Order:
        order = self.get(db, order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    def get_multi_by_client(
        self, db: Session, *, client_id: str, status: Optional[str] = None
    ) -> List[Order]:
        query = db.query(self.model).filter(self.model.client_id == client_id)
        if status:
            query = query.filter(self.model.status == status)
        return query.order_by(self.model.created_at.desc()).all()

    def get_open(
        self,
        db: Session,
        *,
        cargo_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Order]:
        """Open orders visible to carriers."""
        query = db.query(self.model).filter(self.model.status == "open")
        if cargo_type:
            query = query.filter(self.model.cargo_type == cargo_type)
        return (
            query.order_by(self.model.created_at.desc()).offset(skip).limit(limit).all()
        )

    def set_status(self, order: Order, new_status: str) -> None:
        """Change status in the current unit of work. Caller commits."""
        if new_status not in VALID_ORDER_TRANSITIONS.get(order.status, set()):
            raise InvalidTransitionError("Order", order.status, new_status)
        order.status = new_status

    def cancel(self, db: Session, *, order_id: str, client_id: str) -> Order:
        order = self.get_or_404(db, order_id)
        if order.client_id != client_id:
            raise PermissionDeniedError("Only the order's client can cancel it")
        if order.status != "open":
            raise InvalidTransitionError("Order", order.status, "cancelled")
        self.set_status(order, "cancelled")
        db.commit()
        db.refresh(order)
        logger.info(f"Order {order_id} cancelled")
        return order


order = CRUDOrder(Order)
