# app/models/kyc_document.py
import uuid
from sqlalchemy import Column, String, Text, Float, Boolean, Date, DateTime, JSON
from sqlalchemy.sql import func
from app.db.base_class import Base


class KycDocument(Base):
    __tablename__ = "kyc_documents"

    id = Column(
        String, primary_key=True, default=lambda: f"kyc_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)

    # Declared identity
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    middle_name = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    passport_series = Column(String(8), nullable=True)
    passport_number = Column(String(32), nullable=True)
    passport_country = Column(String(64), nullable=True)
    passport_expiry = Column(Date, nullable=True)

    # Uploaded media
    passport_front_url = Column(String, nullable=True)
    passport_back_url = Column(String, nullable=True)
    selfie_url = Column(String, nullable=True)
    video_selfie_url = Column(String, nullable=True)

    # Automated checks
    data_match_score = Column(Float, nullable=True)  # 0-1
    fraud_score = Column(Float, nullable=True)  # 0-100
    risk_level = Column(String, nullable=True)  # low | medium | high
    face_match_score = Column(Float, nullable=True)
    face_match_verified = Column(Boolean, nullable=True)
    liveness_score = Column(Float, nullable=True)
    liveness_verified = Column(Boolean, nullable=True)
    liveness_data = Column(JSON, nullable=True)
    auto_verified = Column(Boolean, nullable=False, default=False, server_default="false")

    status = Column(String, nullable=False, default="pending", server_default="pending")
    # Values: 'not_started', 'pending', 'verified', 'rejected', 'manual_review'
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
