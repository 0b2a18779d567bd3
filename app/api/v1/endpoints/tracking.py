# app/api/v1/endpoints/tracking.py
"""GPS positions reported by the carrier while a deal is under way."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.crud import crud_deal, crud_gps_location
from app.schemas.tracking import Location, LocationReport
from app.schemas.token import TokenPayload

router = APIRouter(prefix="/deals/{deal_id}/locations", tags=["Tracking"])


@router.post("", response_model=Location, status_code=status.HTTP_201_CREATED)
def report_location(
    deal_id: str,
    report: LocationReport,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    deal = crud_deal.get_for_participant(db, deal_id, current_user.sub)
    if deal.carrier_id != current_user.sub:
        raise PermissionDeniedError("Only the deal's carrier reports positions")
    return crud_gps_location.record(
        db, deal_id=deal_id, carrier_id=current_user.sub, report=report
    )


@router.get("", response_model=List[Location])
def get_track(
    deal_id: str,
    since: Optional[datetime] = None,
    limit: int = Query(1000, ge=1, le=5000),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    crud_deal.get_for_participant(db, deal_id, current_user.sub)
    return crud_gps_location.get_track(db, deal_id, since=since, limit=limit)


@router.get("/latest", response_model=Location)
def get_latest_location(
    deal_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    crud_deal.get_for_participant(db, deal_id, current_user.sub)
    location = crud_gps_location.get_latest(db, deal_id)
    if not location:
        raise NotFoundError("Location", deal_id)
    return location
