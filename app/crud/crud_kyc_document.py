# app/crud/crud_kyc_document.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import DomainValidationError, NotFoundError
from app.crud import crud_security_event
from app.models.kyc_document import KycDocument
from app.models.profile import Profile
from app.schemas.kyc import (
    FaceMatchResult,
    KycDocumentCheck,
    KycReview,
    KycSubmit,
    LivenessResult,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = {"pending", "manual_review"}

# Stricter than the auto-verification gate; only drives the badge on the document
FACE_MATCH_VERIFIED_CONFIDENCE = 0.8


def get(db: Session, document_id: str) -> Optional[KycDocument]:
    return db.query(KycDocument).filter(KycDocument.id == document_id).first()


def get_latest_for_user(db: Session, user_id: str) -> Optional[KycDocument]:
    return (
        db.query(KycDocument)
        .filter(KycDocument.user_id == user_id)
        .order_by(KycDocument.created_at.desc())
        .first()
    )


def get_multi_for_review(db: Session, limit: int = 100) -> List[KycDocument]:
    return (
        db.query(KycDocument)
        .filter(KycDocument.status.in_(OPEN_STATUSES))
        .order_by(KycDocument.created_at.asc())
        .limit(limit)
        .all()
    )


def submit(db: Session, *, user_id: str, obj_in: KycSubmit) -> KycDocument:
    latest = get_latest_for_user(db, user_id)
    if latest and latest.status == "verified":
        raise DomainValidationError("Identity is already verified")

    document = KycDocument(user_id=user_id, status="pending", **obj_in.model_dump())
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info(f"KYC document {document.id} submitted by {user_id}")
    return document


def record_document_check(
    db: Session, *, document_id: str, reviewer_id: str, obj_in: KycDocumentCheck
) -> KycDocument:
    """Scores that gate auto-verification, set before the biometric check."""
    document = get(db, document_id)
    if not document:
        raise NotFoundError("KYC document", document_id)
    if document.status not in OPEN_STATUSES:
        raise DomainValidationError(f"Document is already {document.status}")

    document.data_match_score = obj_in.data_match_score
    document.fraud_score = obj_in.fraud_score
    document.risk_level = obj_in.risk_level.value
    document.reviewed_by = reviewer_id
    db.commit()
    db.refresh(document)
    logger.info(
        f"KYC document {document_id} checked by {reviewer_id}: risk={document.risk_level}"
    )
    return document


def _set_profile_verified(db: Session, user_id: str, verified: bool) -> None:
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile:
        profile.is_verified = verified


def apply_biometric_result(
    db: Session,
    *,
    document: KycDocument,
    face_match: FaceMatchResult,
    liveness: Optional[LivenessResult],
    status: str,
    auto_verified: bool,
) -> KycDocument:
    """Persist the automated check and its audit event in one commit."""
    document.face_match_score = face_match.similarity_score
    document.face_match_verified = face_match.match and face_match.confidence >= FACE_MATCH_VERIFIED_CONFIDENCE
    if liveness is not None:
        document.liveness_score = liveness.score
        document.liveness_verified = liveness.passed
        document.liveness_data = liveness.model_dump()
    document.auto_verified = auto_verified
    document.status = status
    if status == "verified":
        document.reviewed_at = datetime.now(timezone.utc)
        _set_profile_verified(db, document.user_id, True)

    crud_security_event.log_event(
        db,
        user_id=document.user_id,
        event_type="kyc_biometric_verification",
        severity="info" if auto_verified else "warning",
        description=f"Biometric check finished with status {status}",
        metadata={
            "document_id": document.id,
            "face_match": face_match.match,
            "face_confidence": face_match.confidence,
            "liveness_passed": liveness.passed if liveness else None,
            "auto_verified": auto_verified,
        },
        commit=False,
    )
    db.commit()
    db.refresh(document)
    return document


def review(
    db: Session, *, document_id: str, reviewer_id: str, obj_in: KycReview
) -> KycDocument:
    """Admin decision on a pending or manual-review document."""
    document = get(db, document_id)
    if not document:
        raise NotFoundError("KYC document", document_id)
    if document.status not in OPEN_STATUSES:
        raise DomainValidationError(f"Document is already {document.status}")
    if obj_in.status.value not in ("verified", "rejected"):
        raise DomainValidationError("Review must verify or reject the document")

    document.status = obj_in.status.value
    document.rejection_reason = obj_in.rejection_reason
    document.admin_notes = obj_in.admin_notes
    document.reviewed_by = reviewer_id
    document.reviewed_at = datetime.now(timezone.utc)
    _set_profile_verified(db, document.user_id, obj_in.status.value == "verified")
    db.commit()
    db.refresh(document)
    logger.info(f"KYC document {document_id} {document.status} by {reviewer_id}")
    return document
