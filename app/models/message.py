# app/models/message.py
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.db.base_class import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(
        String, primary_key=True, default=lambda: f"msg_{uuid.uuid4().hex[:12]}"
    )
    # Exactly one of deal_id / order_id is set
    deal_id = Column(
        String, ForeignKey("deals.id", ondelete="CASCADE"), nullable=True, index=True
    )
    order_id = Column(
        String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True
    )
    sender_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    is_system = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
