# app/crud/crud_message.py
from typing import List

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.message import Message
from app.schemas.message import MessageCreate


class CRUDMessage(CRUDBase[Message, MessageCreate, MessageCreate]):
    def create_for_deal(
        self, db: Session, *, deal_id: str, sender_id: str, obj_in: MessageCreate
    ) -> Message:
        db_obj = self.model(
            deal_id=deal_id, sender_id=sender_id, content=obj_in.content, is_system=False
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_multi_by_deal(
        self, db: Session, *, deal_id: str, skip: int = 0, limit: int = 200
    ) -> List[Message]:
        """Chronological, oldest first, as a chat renders it."""
        return (
            db.query(self.model)
            .filter(self.model.deal_id == deal_id)
            .order_by(self.model.created_at.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )


message = CRUDMessage(Message)
