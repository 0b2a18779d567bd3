# app/api/v1/endpoints/kyc.py
"""
Carrier identity verification: document submission, automated biometric
check and admin review.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.exceptions import DomainValidationError, NotFoundError, PermissionDeniedError
from app.crud import crud_kyc_document
from app.schemas.kyc import (
    BiometricCheckRequest,
    BiometricResult,
    KycDocument,
    KycDocumentCheck,
    KycReview,
    KycSubmit,
)
from app.schemas.token import TokenPayload
from app.services.kyc_biometrics import KycBiometricsClient, evaluate, get_kyc_biometrics_client
from app.utils import notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kyc", tags=["KYC"])


@router.post("", response_model=KycDocument, status_code=status.HTTP_201_CREATED)
def submit_documents(
    kyc_in: KycSubmit,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_kyc_document.submit(db, user_id=current_user.sub, obj_in=kyc_in)


@router.get("/me", response_model=KycDocument)
def get_my_document(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    document = crud_kyc_document.get_latest_for_user(db, current_user.sub)
    if not document:
        raise NotFoundError("KYC document", current_user.sub)
    return document


@router.post("/{document_id}/biometric-check", response_model=BiometricResult)
async def run_biometric_check(
    document_id: str,
    check_in: BiometricCheckRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
    client: KycBiometricsClient = Depends(get_kyc_biometrics_client),
):
    """
    Face match (passport vs selfie) and, when frames are supplied, liveness.
    Only a fully passing result auto-verifies; everything else goes to manual review.
    """
    document = crud_kyc_document.get(db, document_id)
    if not document:
        raise NotFoundError("KYC document", document_id)
    if document.user_id != current_user.sub:
        raise PermissionDeniedError("Not your document")
    if document.status not in crud_kyc_document.OPEN_STATUSES:
        raise DomainValidationError(f"Document is already {document.status}")

    face_match = await client.face_match(document.passport_front_url, document.selfie_url)
    liveness = None
    if check_in.liveness_frame_urls:
        liveness = await client.liveness(check_in.liveness_frame_urls)

    result_status, auto_verified = evaluate(document, face_match, liveness)
    document = crud_kyc_document.apply_biometric_result(
        db,
        document=document,
        face_match=face_match,
        liveness=liveness,
        status=result_status,
        auto_verified=auto_verified,
    )
    notifications.notify_kyc_result(db, document=document)

    return BiometricResult(
        face_match=face_match,
        liveness=liveness,
        auto_verified=auto_verified,
        status=result_status,
    )


@router.get("/admin/queue", response_model=List[KycDocument])
def list_review_queue(
    db: Session = Depends(get_db),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    return crud_kyc_document.get_multi_for_review(db)


@router.post("/{document_id}/review", response_model=KycDocument)
def review_document(
    document_id: str,
    review_in: KycReview,
    db: Session = Depends(get_db),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    document = crud_kyc_document.review(
        db, document_id=document_id, reviewer_id=admin.sub, obj_in=review_in
    )
    notifications.notify_kyc_result(db, document=document)
    return document


@router.post("/{document_id}/document-check", response_model=KycDocument)
def record_document_check(
    document_id: str,
    check_in: KycDocumentCheck,
    db: Session = Depends(get_db),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    return crud_kyc_document.record_document_check(
        db, document_id=document_id, reviewer_id=admin.sub, obj_in=check_in
    )
