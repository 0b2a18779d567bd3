# app/schemas/kyc.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date
from enum import Enum


class KycStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    MANUAL_REVIEW = "manual_review"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class KycSubmit(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    date_of_birth: date
    passport_series: str = Field(..., min_length=2, max_length=8)
    passport_number: str = Field(..., min_length=4, max_length=32)
    passport_country: str = "UZ"
    passport_expiry: Optional[date] = None
    passport_front_url: str
    passport_back_url: Optional[str] = None
    selfie_url: str
    video_selfie_url: Optional[str] = None


class KycDocumentCheck(BaseModel):
    """Passport data check recorded by an admin; the submitter never sets these."""
    data_match_score: float = Field(..., ge=0, le=1)
    fraud_score: float = Field(..., ge=0, le=100)
    risk_level: RiskLevel


class KycReview(BaseModel):
    status: KycStatus
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None


class KycDocument(BaseModel):
    id: str
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    passport_series: Optional[str] = None
    passport_number: Optional[str] = None
    data_match_score: Optional[float] = None
    fraud_score: Optional[float] = None
    risk_level: Optional[str] = None
    face_match_score: Optional[float] = None
    face_match_verified: Optional[bool] = None
    liveness_score: Optional[float] = None
    liveness_verified: Optional[bool] = None
    auto_verified: bool
    status: KycStatus
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Structured model output contracts ---

class FaceMatchResult(BaseModel):
    match: bool
    confidence: float = Field(..., ge=0, le=1)
    passport_face_detected: bool
    selfie_face_detected: bool
    similarity_score: float = Field(..., ge=0, le=1)
    issues: List[str] = []


class LivenessResult(BaseModel):
    passed: bool
    score: float = Field(..., ge=0, le=1)
    blink: bool
    head_movement: bool
    expression: bool
    fraud_indicators: List[str] = []


class BiometricCheckRequest(BaseModel):
    # Still frames from the video selfie, extracted on the device
    liveness_frame_urls: List[str] = Field(default_factory=list, max_length=5)


class BiometricResult(BaseModel):
    face_match: FaceMatchResult
    liveness: Optional[LivenessResult] = None
    auto_verified: bool
    status: KycStatus
