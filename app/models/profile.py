# app/models/profile.py
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base_class import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(
        String, primary_key=True, default=lambda: f"prf_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, unique=True, index=True)
    full_name = Column(String, nullable=True)
    phone = Column(String(32), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    role = Column(String, nullable=False, default="client", server_default="client")  # client | carrier | admin

    # Carrier details
    carrier_type = Column(String, nullable=True)  # driver | company
    company_name = Column(String, nullable=True)
    vehicle_type = Column(String, nullable=True)

    is_verified = Column(Boolean, nullable=False, default=False, server_default="false")
    referral_code = Column(String(16), nullable=True, unique=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
